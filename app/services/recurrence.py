"""Recurrence materializer.

Clones every active recurring compliance event one period ahead, unless an
event with the same title and category already exists on that day.
"""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import select
from typing_extensions import assert_never

from app.types.compliance_contract import RecurrencePattern
from config import settings
from db.models import ComplianceEvent
import db

_LOGGER = logging.getLogger(__name__)


def _local_tz() -> ZoneInfo:
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's end."""
    idx = value.month - 1 + months
    year = value.year + idx // 12
    month = idx % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_occurrence(due: datetime, pattern: RecurrencePattern) -> datetime | None:
    """Return the due date one period after ``due`` or None for NONE.

    Arithmetic happens on the wall clock of ``DEFAULT_TIMEZONE`` so that a
    filing due on the 31st stays a month-end filing for local users.
    """
    local = due.astimezone(_local_tz())
    if pattern is RecurrencePattern.NONE:
        return None
    elif pattern is RecurrencePattern.DAILY:
        nxt = local + timedelta(days=1)
    elif pattern is RecurrencePattern.WEEKLY:
        nxt = local + timedelta(days=7)
    elif pattern is RecurrencePattern.MONTHLY:
        nxt = add_months(local, 1)
    elif pattern is RecurrencePattern.QUARTERLY:
        nxt = add_months(local, 3)
    elif pattern is RecurrencePattern.YEARLY:
        nxt = add_months(local, 12)
    else:
        assert_never(pattern)
    return nxt.astimezone(timezone.utc)


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """[start of local day, start of next local day) in UTC."""
    local = moment.astimezone(_local_tz())
    start = datetime(local.year, local.month, local.day, tzinfo=_local_tz())
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def materialize_recurring_events() -> int:
    """Create the next period of every active recurring event. Idempotent."""
    created = 0
    async for s in db.get_session():
        res = await s.execute(
            select(ComplianceEvent).where(
                ComplianceEvent.is_active.is_(True),
                ComplianceEvent.recurrence != RecurrencePattern.NONE,
            )
        )
        recurring = res.scalars().all()
        if not recurring:
            _LOGGER.info("No recurring compliance events found")

        for event in recurring:
            nxt = next_occurrence(event.due_date, event.recurrence)
            if nxt is None:
                continue
            start, end = day_bounds(nxt)
            existing = await s.execute(
                select(ComplianceEvent.event_id)
                .where(
                    ComplianceEvent.title == event.title,
                    ComplianceEvent.category == event.category,
                    ComplianceEvent.due_date >= start,
                    ComplianceEvent.due_date < end,
                )
                .limit(1)
            )
            if existing.first() is not None:
                continue

            s.add(
                ComplianceEvent(
                    title=event.title,
                    notes=event.notes,
                    category=event.category,
                    custom_label=event.custom_label,
                    due_date=nxt,
                    recurrence=event.recurrence,
                    document=event.document,
                    tags=list(event.tags or []),
                    is_active=True,
                )
            )
            await s.commit()
            created += 1
            _LOGGER.debug("Materialized %s (%s) due %s", event.title, event.recurrence.value, nxt)

    _LOGGER.info("Created %d new recurring compliance periods", created)
    return created
