"""Per-employer fulfilment status of compliance events.

There is exactly one ``ComplianceStatusRecord`` per (event, employer). Records
are created lazily the first time an employer acts on an event; reads before
that return a virtual UPCOMING status without touching the database.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ComplianceValidationError
from app.services.events import require_event
from app.types.compliance_contract import (
    CallerRole,
    ComplianceStatus,
    StatusOut,
    ensure_utc,
)
from db.models import ComplianceStatusRecord
import db

_LOGGER = logging.getLogger(__name__)

# Employers report what they did; moving back to UPCOMING is an admin correction
EMPLOYER_SETTABLE = frozenset(
    {ComplianceStatus.PAID, ComplianceStatus.YET_TO_PAY, ComplianceStatus.MISSED}
)


def _coerce_status(value) -> ComplianceStatus:
    if isinstance(value, ComplianceStatus):
        return value
    try:
        return ComplianceStatus(value)
    except ValueError:
        raise ComplianceValidationError(
            f"Invalid status {value!r}. Must be one of "
            + ", ".join(s.value for s in ComplianceStatus)
        )


async def ensure_in_session(
    s: AsyncSession, event_id: str, employer_id: str, actor_id: str
) -> ComplianceStatusRecord:
    record = await db.find_status(s, event_id, employer_id)
    if record is not None:
        return record

    record = ComplianceStatusRecord(
        event_id=event_id,
        employer_id=employer_id,
        status=ComplianceStatus.UPCOMING,
        attachments=[],
        created_by=actor_id,
        updated_by=actor_id,
    )
    s.add(record)
    try:
        await s.commit()
    except IntegrityError:
        # A concurrent request created it first; use theirs
        await s.rollback()
        record = await db.find_status(s, event_id, employer_id)
        if record is None:
            raise
    return record


async def get_or_default(event_id: str, employer_id: str) -> StatusOut:
    event = await require_event(event_id)
    record = None
    async for s in db.get_session():
        record = await db.find_status(s, event.event_id, employer_id)
    if record is not None:
        return StatusOut.model_validate(record)
    return StatusOut(event_id=event.event_id, employer_id=employer_id, persisted=False)


async def ensure_status(
    event_id: str, employer_id: str, actor_id: str | None = None
) -> ComplianceStatusRecord:
    event = await require_event(event_id)
    async for s in db.get_session():
        record = await ensure_in_session(s, event.event_id, employer_id, actor_id or employer_id)
    return record


async def update_status(
    event_id: str,
    employer_id: str,
    new_status: ComplianceStatus | str,
    date_paid: datetime | None = None,
    notes: str | None = None,
    actor_id: str | None = None,
    role: CallerRole = CallerRole.EMPLOYER,
) -> ComplianceStatusRecord:
    """Upsert the employer's status for an event.

    PAID requires ``date_paid``; every other status clears it.
    """
    new_status = _coerce_status(new_status)
    if role is CallerRole.EMPLOYER and new_status not in EMPLOYER_SETTABLE:
        raise ComplianceValidationError("Invalid status. Must be PAID, YET_TO_PAY, or MISSED")
    if new_status is ComplianceStatus.PAID and date_paid is None:
        raise ComplianceValidationError("date_paid is required when status is PAID")

    event = await require_event(event_id)
    actor_id = actor_id or employer_id

    async for s in db.get_session():
        record = await ensure_in_session(s, event.event_id, employer_id, actor_id)
        previous = record.status
        record.status = new_status
        record.date_paid = ensure_utc(date_paid) if new_status is ComplianceStatus.PAID else None
        if notes is not None:
            record.notes = notes
        record.updated_by = actor_id
        await s.commit()

    _LOGGER.info(
        "Compliance status %s -> %s (event=%s employer=%s by=%s)",
        previous.value, new_status.value, event.event_id, employer_id, actor_id,
    )
    return record


async def append_attachment(
    event_id: str, employer_id: str, url: str, actor_id: str | None = None
) -> ComplianceStatusRecord:
    event = await require_event(event_id)
    actor_id = actor_id or employer_id
    async for s in db.get_session():
        record = await ensure_in_session(s, event.event_id, employer_id, actor_id)
        attachments = list(record.attachments or [])
        if url not in attachments:
            # Reassign so the JSON column is flagged dirty
            record.attachments = attachments + [url]
        record.updated_by = actor_id
        await s.commit()
    return record
