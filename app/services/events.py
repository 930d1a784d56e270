"""Event store operations used by the admin API and maintenance jobs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update

from app.errors import ComplianceValidationError, NotFoundError
from app.services.paging import page_limit, page_meta
from app.types.compliance_contract import (
    EventCategory,
    EventCreate,
    EventUpdate,
    PageMeta,
    parse_identifier,
)
from app.utils import storage
from config import settings
from db.models import ComplianceEvent
import db

_LOGGER = logging.getLogger(__name__)


def validate_event_id(event_id: str) -> str:
    try:
        return parse_identifier(event_id, "compliance calendar ID")
    except ValueError as exc:
        raise ComplianceValidationError(str(exc))


async def require_event(event_id: str) -> ComplianceEvent:
    event = await db.get_event(validate_event_id(event_id))
    if event is None:
        raise NotFoundError("Compliance calendar event not found")
    return event


async def create_event(data: EventCreate) -> ComplianceEvent:
    event = ComplianceEvent(**data.model_dump(), is_active=True)
    async for s in db.get_session():
        s.add(event)
        await s.commit()
    _LOGGER.info("Created compliance event %s (%s) due %s", event.event_id, event.title, event.due_date)
    return event


async def list_events(
    page: int | None = None,
    limit: int | None = None,
    category: EventCategory | None = None,
    active: bool | None = True,
) -> tuple[list[ComplianceEvent], PageMeta]:
    page, limit, offset = page_limit(page, limit)
    stmt = select(ComplianceEvent)
    if active is not None:
        stmt = stmt.where(ComplianceEvent.is_active.is_(active))
    if category is not None:
        stmt = stmt.where(ComplianceEvent.category == category)

    async for s in db.get_session():
        total = (await s.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
        res = await s.execute(
            stmt.order_by(ComplianceEvent.due_date, ComplianceEvent.event_id).offset(offset).limit(limit)
        )
        rows = list(res.scalars().all())
    return rows, page_meta(page, limit, total)


async def update_event(event_id: str, data: EventUpdate) -> ComplianceEvent:
    event_id = validate_event_id(event_id)
    changes = data.model_dump(exclude_unset=True)
    replaced_document = None

    async for s in db.get_session():
        event = await s.get(ComplianceEvent, event_id)
        if event is not None:
            new_document = changes.get("document")
            if new_document and event.document and new_document != event.document:
                replaced_document = event.document
            for field, value in changes.items():
                setattr(event, field, value)
            await s.commit()

    if event is None:
        raise NotFoundError("Compliance calendar event not found")
    if replaced_document:
        try:
            storage.delete_object(replaced_document)
        except RuntimeError as exc:
            _LOGGER.warning("Could not delete replaced document %s: %s", replaced_document, exc)
    return event


async def deactivate_event(event_id: str) -> ComplianceEvent:
    """Soft delete: events are never removed from the store."""
    return await update_event(event_id, EventUpdate(is_active=False))


async def archive_old_events(now: datetime | None = None, days_old: int | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.ARCHIVE_AFTER_DAYS if days_old is None else days_old)
    async for s in db.get_session():
        res = await s.execute(
            update(ComplianceEvent)
            .where(ComplianceEvent.due_date < cutoff, ComplianceEvent.is_active.is_(True))
            .values(is_active=False)
        )
        await s.commit()
        archived = res.rowcount or 0
    _LOGGER.info("Archived %d compliance events due before %s", archived, cutoff)
    return archived
