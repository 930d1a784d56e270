"""Employer endpoints: the calendar as seen by the calling employer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.routes.deps import Caller, envelope, get_caller, paged
from app.services import analytics, events, reminder_scheduler, status_tracker
from app.types.compliance_contract import (
    AttachmentRequest,
    ComplianceStatus,
    EventCategory,
    EventDetail,
    EventOut,
    ReminderOut,
    ReminderRequest,
    StatusOut,
    StatusUpdate,
)

router = APIRouter(prefix="/v1/compliance-calendar", tags=["compliance"])


@router.get("")
async def list_calendar(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[EventCategory] = None,
    status: Optional[ComplianceStatus] = None,
    caller: Caller = Depends(get_caller),
):
    entries, meta = await analytics.employer_calendar(caller.user_id, page, limit, category, status)
    return envelope(paged(entries, meta), "Compliance calendars fetched successfully")


@router.get("/summary")
async def get_summary(caller: Caller = Depends(get_caller)):
    summary = await analytics.compliance_summary(caller.user_id)
    return envelope(summary, "Compliance summary fetched successfully")


@router.get("/history")
async def get_history(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    caller: Caller = Depends(get_caller),
):
    history, meta = await analytics.compliance_history(caller.user_id, page, limit)
    return envelope(paged(history, meta), "Compliance history fetched successfully")


@router.get("/analytics")
async def get_analytics(caller: Caller = Depends(get_caller)):
    data = await analytics.employer_analytics(caller.user_id)
    return envelope(data, "Compliance analytics fetched successfully")


@router.get("/report")
async def get_report(start: datetime, end: datetime, caller: Caller = Depends(get_caller)):
    report = await analytics.compliance_report(caller.user_id, start, end)
    return envelope(report, "Compliance report generated successfully")


@router.get("/{event_id}")
async def get_detail(event_id: str, caller: Caller = Depends(get_caller)):
    event = await events.require_event(event_id)
    status = await status_tracker.get_or_default(event.event_id, caller.user_id)
    reminders = await reminder_scheduler.list_reminders(event.event_id, caller.user_id)
    detail = EventDetail(
        event=EventOut.model_validate(event),
        status=status,
        reminders=[ReminderOut.model_validate(r) for r in reminders],
    )
    return envelope(detail, "Compliance calendar details fetched successfully")


@router.get("/{event_id}/status")
async def get_status(event_id: str, caller: Caller = Depends(get_caller)):
    status = await status_tracker.get_or_default(event_id, caller.user_id)
    return envelope(status, "Compliance status fetched successfully")


@router.post("/{event_id}/status")
async def update_status(event_id: str, body: StatusUpdate, caller: Caller = Depends(get_caller)):
    record = await status_tracker.update_status(
        event_id,
        caller.user_id,
        body.status,
        date_paid=body.date_paid,
        notes=body.notes,
        actor_id=caller.user_id,
    )
    return envelope(StatusOut.model_validate(record), f"Compliance status updated to {body.status.value}")


@router.post("/{event_id}/reminders")
async def set_reminders(
    event_id: str,
    body: Optional[ReminderRequest] = None,
    caller: Caller = Depends(get_caller),
):
    body = body or ReminderRequest()
    created = await reminder_scheduler.schedule_reminders(
        event_id, caller.user_id, body.channels, actor_id=caller.user_id
    )
    return envelope(
        [ReminderOut.model_validate(r) for r in created], "Reminders set successfully", 201
    )


@router.post("/{event_id}/attachments")
async def add_attachment(event_id: str, body: AttachmentRequest, caller: Caller = Depends(get_caller)):
    record = await status_tracker.append_attachment(event_id, caller.user_id, body.url, actor_id=caller.user_id)
    return envelope(StatusOut.model_validate(record), "Document uploaded successfully")
