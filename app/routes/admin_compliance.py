"""Admin endpoints: manage the global compliance calendar."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.routes.deps import Caller, envelope, paged, require_admin
from app.services import analytics, events, status_tracker
from app.types.compliance_contract import (
    CallerRole,
    EventCategory,
    EventCreate,
    EventOut,
    EventUpdate,
    StatusOut,
    StatusUpdate,
)

router = APIRouter(
    prefix="/v1/admin/compliance-calendar",
    tags=["admin-compliance"],
    dependencies=[Depends(require_admin)],
)


@router.post("")
async def create_event(body: EventCreate):
    event = await events.create_event(body)
    return envelope(EventOut.model_validate(event), "Compliance calendar event created successfully", 201)


@router.get("")
async def list_events(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[EventCategory] = None,
    is_active: Literal["true", "false", "all"] = "true",
):
    active = None if is_active == "all" else is_active == "true"
    rows, meta = await events.list_events(page, limit, category, active)
    items = [EventOut.model_validate(e) for e in rows]
    return envelope(paged(items, meta), "Compliance calendar events fetched successfully")


@router.get("/analytics")
async def get_analytics():
    return envelope(await analytics.admin_analytics(), "Compliance analytics fetched successfully")


@router.post("/archive")
async def archive_events(days_old: int = Query(365, ge=1)):
    archived = await events.archive_old_events(days_old=days_old)
    return envelope({"archived": archived}, f"Archived {archived} compliance calendar events")


@router.get("/{event_id}")
async def get_event(event_id: str):
    event = await events.require_event(event_id)
    return envelope(EventOut.model_validate(event), "Compliance calendar event fetched successfully")


@router.patch("/{event_id}")
async def update_event(event_id: str, body: EventUpdate):
    event = await events.update_event(event_id, body)
    return envelope(EventOut.model_validate(event), "Compliance calendar event updated successfully")


@router.delete("/{event_id}")
async def delete_event(event_id: str):
    event = await events.deactivate_event(event_id)
    return envelope(EventOut.model_validate(event), "Compliance calendar event deleted successfully")


@router.put("/{event_id}/status/{employer_id}")
async def set_employer_status(
    event_id: str,
    employer_id: str,
    body: StatusUpdate,
    caller: Caller = Depends(require_admin),
):
    record = await status_tracker.update_status(
        event_id,
        employer_id,
        body.status,
        date_paid=body.date_paid,
        notes=body.notes,
        actor_id=caller.user_id,
        role=CallerRole.ADMIN,
    )
    return envelope(StatusOut.model_validate(record), f"Compliance status updated to {body.status.value}")
