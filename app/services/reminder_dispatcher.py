"""Hourly reminder dispatch.

State machine per reminder::

    PENDING --any channel ok--------------------------> SENT
    PENDING --all failed, retry_count < max----------> PENDING (retry_count+1, +1h)
    PENDING --all failed, retry_count >= max---------> FAILED
    PENDING --event inactive / already paid----------> SKIPPED

Each transition is a single committed, status-guarded update, so a crash in
the middle of a batch only leaves unprocessed reminders PENDING for the next
run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable
from zoneinfo import ZoneInfo

from sqlalchemy import select
from typing_extensions import assert_never

from app.services.notifier import send_notification
from app.types.compliance_contract import (
    ComplianceStatus,
    DispatchReport,
    NotificationPayload,
    NotificationResult,
    ReminderChannel,
    ReminderOffset,
)
from config import settings
from db.models import ComplianceEvent, ComplianceReminder, ComplianceStatusRecord
import db

_LOGGER = logging.getLogger(__name__)

MAX_RETRY_REASON = "Max retry attempts exceeded"

Notifier = Callable[[NotificationPayload], Awaitable[NotificationResult]]


@dataclass
class Contact:
    phone: str | None = None
    email: str | None = None


ContactResolver = Callable[[str], Awaitable[Contact]]


async def no_contact(employer_id: str) -> Contact:
    """Default resolver; employer contact details live with the auth service."""
    return Contact()


def reminder_message(offset: ReminderOffset, due_date: datetime) -> str:
    formatted = due_date.astimezone(ZoneInfo(settings.DEFAULT_TIMEZONE)).strftime("%d %b %Y")
    if offset is ReminderOffset.BEFORE_7_DAYS:
        return f"Compliance due in 7 days on {formatted}. Please ensure timely payment."
    elif offset is ReminderOffset.BEFORE_1_DAY:
        return f"Compliance payment due tomorrow on {formatted}. Please complete immediately."
    elif offset is ReminderOffset.ON_DUE_DATE:
        return f"Compliance is due today ({formatted}). Please pay immediately to avoid penalties."
    else:
        assert_never(offset)


async def _load_context(
    reminders: Iterable[ComplianceReminder],
) -> tuple[dict[str, ComplianceEvent], dict[str, ComplianceStatus]]:
    event_ids = sorted({r.event_id for r in reminders})
    status_ids = sorted({r.status_id for r in reminders})
    async for s in db.get_session():
        res = await s.execute(select(ComplianceEvent).where(ComplianceEvent.event_id.in_(event_ids)))
        events = {e.event_id: e for e in res.scalars()}
        res = await s.execute(
            select(ComplianceStatusRecord.status_id, ComplianceStatusRecord.status).where(
                ComplianceStatusRecord.status_id.in_(status_ids)
            )
        )
        statuses = {sid: status for sid, status in res.all()}
    return events, statuses


async def _deliver(
    reminder: ComplianceReminder,
    event: ComplianceEvent,
    contact: Contact,
    notifier: Notifier,
) -> bool:
    """Try every enabled channel independently; True if any delivered."""
    delivered = False
    for raw_channel in reminder.channels:
        channel = ReminderChannel(raw_channel)
        payload = NotificationPayload(
            user_id=reminder.employer_id,
            title=f"{event.title} Reminder",
            message=reminder_message(reminder.offset, event.due_date),
            channel=channel,
            data={
                "event_id": event.event_id,
                "reminder_id": reminder.reminder_id,
                "reminder_offset": reminder.offset.value,
            },
            phone=contact.phone,
            email=contact.email,
        )
        try:
            result = await notifier(payload)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Failed to send %s notification for reminder %s: %s",
                          channel.value, reminder.reminder_id, exc)
            continue
        if result.channels.get(channel):
            delivered = True
        else:
            _LOGGER.error("Failed to send %s notification for reminder %s: %s",
                          channel.value, reminder.reminder_id,
                          result.errors.get(channel, "channel reported failure"))
    return delivered


async def _process(
    reminder: ComplianceReminder,
    event: ComplianceEvent | None,
    employer_status: ComplianceStatus | None,
    now: datetime,
    notifier: Notifier,
    contact_resolver: ContactResolver,
) -> str:
    rid = reminder.reminder_id
    if event is None or not event.is_active:
        await db.mark_reminder_skipped(rid, "Compliance event is no longer active")
        return "skipped"
    if employer_status is ComplianceStatus.PAID:
        await db.mark_reminder_skipped(rid, "Compliance already paid")
        return "skipped"

    contact = await contact_resolver(reminder.employer_id)
    if await _deliver(reminder, event, contact, notifier):
        await db.mark_reminder_sent(rid, now)
        _LOGGER.info("Sent %s reminder for %s to %s", reminder.offset.value, event.title, reminder.employer_id)
        return "sent"

    # Re-read: an overlapping run may have moved the counter
    retry_count = await db.get_retry_count(rid)
    if retry_count is None:
        _LOGGER.warning("Reminder %s disappeared during dispatch", rid)
        return "errors"
    if retry_count < settings.REMINDER_MAX_RETRIES:
        next_attempt = now + timedelta(minutes=settings.REMINDER_RETRY_DELAY_MINUTES)
        await db.reschedule_reminder(rid, retry_count + 1, next_attempt)
        _LOGGER.warning("Reminder %s failed on every channel; retry %d at %s",
                        rid, retry_count + 1, next_attempt)
        return "rescheduled"

    await db.mark_reminder_failed(rid, MAX_RETRY_REASON)
    _LOGGER.error("Reminder %s failed permanently after %d retries", rid, retry_count)
    return "failed"


async def dispatch_due_reminders(
    now: datetime | None = None,
    batch_size: int | None = None,
    notifier: Notifier | None = None,
    contact_resolver: ContactResolver | None = None,
) -> DispatchReport:
    now = now or datetime.now(timezone.utc)
    batch_size = batch_size or settings.REMINDER_BATCH_SIZE
    notifier = notifier or send_notification
    contact_resolver = contact_resolver or no_contact

    due = await db.fetch_due_reminders(now, limit=batch_size)
    report = DispatchReport(selected=len(due))
    _LOGGER.info("Found %d pending reminders to send", len(due))
    if not due:
        return report

    events, statuses = await _load_context(due)
    for reminder in due:
        try:
            outcome = await _process(
                reminder,
                events.get(reminder.event_id),
                statuses.get(reminder.status_id),
                now,
                notifier,
                contact_resolver,
            )
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Error processing reminder %s", reminder.reminder_id)
            outcome = "errors"
        setattr(report, outcome, getattr(report, outcome) + 1)

    _LOGGER.info("Reminder dispatch completed: %s", report.model_dump())
    return report
