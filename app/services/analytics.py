"""Read-side views over events and employer statuses.

Employer calendar listing, per-status summaries, history, analytics and the
audit report. Nothing here writes to the database.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, func, or_, select

from app.errors import ComplianceValidationError
from app.services.paging import page_limit, page_meta
from app.types.compliance_contract import (
    OPEN_STATUSES,
    AdminAnalytics,
    CalendarEntry,
    ComplianceReport,
    ComplianceStatus,
    ComplianceSummary,
    DeadlineOut,
    EmployerAnalytics,
    EventCategory,
    EventOut,
    HistoryEntry,
    PageMeta,
    ReminderChannel,
    StatusOut,
    ensure_utc,
)
from db.models import ComplianceEvent, ComplianceReminder, ComplianceStatusRecord
import db

UPCOMING_WINDOW = timedelta(days=30)


def _percent(part: int, total: int) -> int:
    # Half-up, not banker's rounding
    return math.floor(part * 100 / total + 0.5) if total else 0


async def _breakdown(s, *criteria) -> ComplianceSummary:
    stmt = select(ComplianceStatusRecord.status, func.count()).group_by(ComplianceStatusRecord.status)
    if criteria:
        stmt = stmt.where(*criteria)
    res = await s.execute(stmt)
    return ComplianceSummary(**{status.value: count for status, count in res.all()})


def _default_status(event_id: str, employer_id: str) -> StatusOut:
    return StatusOut(event_id=event_id, employer_id=employer_id, persisted=False)


async def employer_calendar(
    employer_id: str,
    page: int | None = None,
    limit: int | None = None,
    category: EventCategory | None = None,
    status: ComplianceStatus | None = None,
) -> tuple[list[CalendarEntry], PageMeta]:
    """Active events joined with this employer's status and reminder state.

    Events the employer never touched count as UPCOMING for the status filter.
    """
    page, limit, offset = page_limit(page, limit)
    joined = and_(
        ComplianceStatusRecord.event_id == ComplianceEvent.event_id,
        ComplianceStatusRecord.employer_id == employer_id,
    )
    filters = [ComplianceEvent.is_active.is_(True)]
    if category is not None:
        filters.append(ComplianceEvent.category == category)
    if status is ComplianceStatus.UPCOMING:
        filters.append(
            or_(
                ComplianceStatusRecord.status_id.is_(None),
                ComplianceStatusRecord.status == ComplianceStatus.UPCOMING,
            )
        )
    elif status is not None:
        filters.append(ComplianceStatusRecord.status == status)

    async for s in db.get_session():
        total = (
            await s.execute(
                select(func.count(ComplianceEvent.event_id))
                .select_from(ComplianceEvent)
                .outerjoin(ComplianceStatusRecord, joined)
                .where(*filters)
            )
        ).scalar_one()
        res = await s.execute(
            select(ComplianceEvent, ComplianceStatusRecord)
            .outerjoin(ComplianceStatusRecord, joined)
            .where(*filters)
            .order_by(ComplianceEvent.due_date, ComplianceEvent.event_id)
            .offset(offset)
            .limit(limit)
        )
        rows = res.all()

        channels: dict[str, list[ReminderChannel]] = {}
        event_ids = [event.event_id for event, _ in rows]
        if event_ids:
            res = await s.execute(
                select(ComplianceReminder.event_id, ComplianceReminder.channels).where(
                    ComplianceReminder.employer_id == employer_id,
                    ComplianceReminder.event_id.in_(event_ids),
                )
            )
            for event_id, reminder_channels in res.all():
                seen = channels.setdefault(event_id, [])
                for raw in reminder_channels or []:
                    channel = ReminderChannel(raw)
                    if channel not in seen:
                        seen.append(channel)

    entries = [
        CalendarEntry(
            event=EventOut.model_validate(event),
            employer_status=(
                StatusOut.model_validate(record)
                if record is not None
                else _default_status(event.event_id, employer_id)
            ),
            is_reminder_active=event.event_id in channels,
            active_channels=channels.get(event.event_id, []),
        )
        for event, record in rows
    ]
    return entries, page_meta(page, limit, total)


async def compliance_summary(employer_id: str) -> ComplianceSummary:
    async for s in db.get_session():
        summary = await _breakdown(s, ComplianceStatusRecord.employer_id == employer_id)
    return summary


async def compliance_history(
    employer_id: str, page: int | None = None, limit: int | None = None
) -> tuple[list[HistoryEntry], PageMeta]:
    page, limit, offset = page_limit(page, limit)
    async for s in db.get_session():
        total = (
            await s.execute(
                select(func.count())
                .select_from(ComplianceStatusRecord)
                .where(ComplianceStatusRecord.employer_id == employer_id)
            )
        ).scalar_one()
        res = await s.execute(
            select(
                ComplianceStatusRecord,
                ComplianceEvent.title,
                ComplianceEvent.due_date,
                ComplianceEvent.category,
            )
            .join(ComplianceEvent, ComplianceEvent.event_id == ComplianceStatusRecord.event_id)
            .where(ComplianceStatusRecord.employer_id == employer_id)
            .order_by(ComplianceStatusRecord.updated_at.desc(), ComplianceStatusRecord.status_id)
            .offset(offset)
            .limit(limit)
        )
        rows = res.all()

    history = [
        HistoryEntry(
            status=StatusOut.model_validate(record),
            title=title,
            due_date=due_date,
            category=category,
        )
        for record, title, due_date, category in rows
    ]
    return history, page_meta(page, limit, total)


async def employer_analytics(employer_id: str, now: datetime | None = None) -> EmployerAnalytics:
    now = now or datetime.now(timezone.utc)
    async for s in db.get_session():
        breakdown = await _breakdown(s, ComplianceStatusRecord.employer_id == employer_id)
        res = await s.execute(
            select(
                ComplianceEvent.event_id,
                ComplianceEvent.title,
                ComplianceEvent.due_date,
                ComplianceStatusRecord.status,
            )
            .join(ComplianceEvent, ComplianceEvent.event_id == ComplianceStatusRecord.event_id)
            .where(
                ComplianceStatusRecord.employer_id == employer_id,
                ComplianceStatusRecord.status.in_(OPEN_STATUSES),
                ComplianceEvent.due_date <= now + UPCOMING_WINDOW,
            )
            .order_by(ComplianceEvent.due_date)
        )
        deadlines = [
            DeadlineOut(event_id=event_id, title=title, due_date=due_date, status=status)
            for event_id, title, due_date, status in res.all()
        ]

    total = breakdown.UPCOMING + breakdown.YET_TO_PAY + breakdown.PAID + breakdown.MISSED
    return EmployerAnalytics(
        total_assigned=total,
        status_breakdown=breakdown,
        compliance_rate=_percent(breakdown.PAID + breakdown.UPCOMING, total),
        upcoming_deadlines=deadlines,
        overdue=breakdown.MISSED,
    )


async def admin_analytics() -> AdminAnalytics:
    async for s in db.get_session():
        total = (
            await s.execute(
                select(func.count(ComplianceEvent.event_id)).where(ComplianceEvent.is_active.is_(True))
            )
        ).scalar_one()
        breakdown = await _breakdown(s)

    return AdminAnalytics(
        total_compliances=total,
        status_breakdown=breakdown,
        overall_compliance_rate=_percent(breakdown.PAID, total),
        pending_actions=breakdown.YET_TO_PAY,
        missed_compliances=breakdown.MISSED,
    )


async def compliance_report(employer_id: str, start: datetime, end: datetime) -> ComplianceReport:
    """Status records the employer touched between ``start`` and ``end`` inclusive."""
    start, end = ensure_utc(start), ensure_utc(end)
    if start > end:
        raise ComplianceValidationError("start must not be after end")

    async for s in db.get_session():
        res = await s.execute(
            select(ComplianceStatusRecord)
            .where(
                ComplianceStatusRecord.employer_id == employer_id,
                ComplianceStatusRecord.updated_at >= start,
                ComplianceStatusRecord.updated_at <= end,
            )
            .order_by(ComplianceStatusRecord.updated_at)
        )
        records = [StatusOut.model_validate(r) for r in res.scalars().all()]

    def count(status: ComplianceStatus) -> int:
        return sum(1 for r in records if r.status is status)

    return ComplianceReport(
        employer_id=employer_id,
        period_from=start,
        period_to=end,
        total_records=len(records),
        paid=count(ComplianceStatus.PAID),
        pending=count(ComplianceStatus.YET_TO_PAY),
        missed=count(ComplianceStatus.MISSED),
        upcoming=count(ComplianceStatus.UPCOMING),
        records=records,
    )
