"""Daily sweep that marks overdue, unresolved compliance statuses as MISSED."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update

from app.types.compliance_contract import OPEN_STATUSES, ComplianceStatus
from config import settings
from db.models import ComplianceEvent, ComplianceStatusRecord
import db

_LOGGER = logging.getLogger(__name__)


async def sweep_missed_compliance(now: datetime | None = None, actor_id: str | None = None) -> int:
    """Move UPCOMING/YET_TO_PAY records of past-due active events to MISSED.

    PAID and MISSED records are left alone, so a second run is a no-op.
    """
    now = now or datetime.now(timezone.utc)
    actor_id = actor_id or settings.SYSTEM_ACTOR_ID

    overdue = (
        select(ComplianceEvent.event_id)
        .where(ComplianceEvent.due_date < now, ComplianceEvent.is_active.is_(True))
    )
    async for s in db.get_session():
        res = await s.execute(
            update(ComplianceStatusRecord)
            .where(
                ComplianceStatusRecord.event_id.in_(overdue),
                ComplianceStatusRecord.status.in_(OPEN_STATUSES),
            )
            .values(status=ComplianceStatus.MISSED, updated_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        await s.commit()
        modified = res.rowcount or 0

    _LOGGER.info("Marked %d compliances as MISSED", modified)
    return modified
