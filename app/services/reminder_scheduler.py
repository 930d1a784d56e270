"""Create the fixed-offset reminders for one employer and one event."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.errors import ComplianceValidationError
from app.services.events import require_event
from app.services.status_tracker import ensure_in_session
from app.types.compliance_contract import (
    ReminderChannel,
    ReminderOffset,
    ReminderStatus,
)
from db.models import ComplianceReminder
import db

_LOGGER = logging.getLogger(__name__)

DEFAULT_CHANNELS = (ReminderChannel.IN_APP,)


def _coerce_channels(channels: Iterable[ReminderChannel | str] | None) -> list[str]:
    if channels is None:
        channels = DEFAULT_CHANNELS
    out: list[str] = []
    for channel in channels:
        try:
            value = ReminderChannel(channel).value
        except ValueError:
            raise ComplianceValidationError(f"Unknown reminder channel {channel!r}")
        if value not in out:
            out.append(value)
    if not out:
        raise ComplianceValidationError("At least one reminder channel is required")
    return out


async def schedule_reminders(
    event_id: str,
    employer_id: str,
    channels: Iterable[ReminderChannel | str] | None = None,
    actor_id: str | None = None,
) -> list[ComplianceReminder]:
    """Create the 7-day, 1-day and due-date reminders that do not exist yet.

    Returns only the reminders created by this call, so a repeated call
    returns an empty list.
    """
    channel_values = _coerce_channels(channels)
    event = await require_event(event_id)
    created: list[ComplianceReminder] = []

    async for s in db.get_session():
        status = await ensure_in_session(s, event.event_id, employer_id, actor_id or employer_id)
        status_id = status.status_id

    # One session per offset: each insert stands alone and a lost race only
    # discards its own row
    for offset in ReminderOffset:
        async for s in db.get_session():
            exists = await s.execute(
                select(ComplianceReminder.reminder_id).where(
                    ComplianceReminder.status_id == status_id,
                    ComplianceReminder.offset == offset,
                )
            )
            if exists.first() is not None:
                continue

            reminder = ComplianceReminder(
                status_id=status_id,
                event_id=event.event_id,
                employer_id=employer_id,
                offset=offset,
                channels=channel_values,
                status=ReminderStatus.PENDING,
                scheduled_for=event.due_date - offset.delta,
                retry_count=0,
            )
            s.add(reminder)
            try:
                await s.commit()
            except IntegrityError:
                await s.rollback()
                continue
            created.append(reminder)

    _LOGGER.info(
        "Scheduled %d reminder(s) for event=%s employer=%s channels=%s",
        len(created), event.event_id, employer_id, ",".join(channel_values),
    )
    return created


async def list_reminders(event_id: str, employer_id: str) -> list[ComplianceReminder]:
    async for s in db.get_session():
        res = await s.execute(
            select(ComplianceReminder)
            .where(
                ComplianceReminder.event_id == event_id,
                ComplianceReminder.employer_id == employer_id,
            )
            .order_by(ComplianceReminder.scheduled_for)
        )
        rows = list(res.scalars().all())
    return rows
