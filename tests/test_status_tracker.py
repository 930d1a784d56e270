from datetime import datetime, timezone

import pytest

from app.errors import ComplianceValidationError, NotFoundError
from app.services import status_tracker
from app.types.compliance_contract import CallerRole, ComplianceStatus

PAID_ON = datetime(2025, 6, 9, 11, 0, tzinfo=timezone.utc)
MISSING_EVENT = "00000000-0000-0000-0000-0000000000aa"


@pytest.mark.asyncio
async def test_untouched_event_reads_as_virtual_upcoming(make_event):
    event = await make_event()
    status = await status_tracker.get_or_default(event.event_id, "employer-1")
    assert status.status is ComplianceStatus.UPCOMING
    assert status.persisted is False
    assert status.status_id is None


@pytest.mark.asyncio
async def test_paid_sets_date_and_later_status_clears_it(make_event):
    event = await make_event()
    record = await status_tracker.update_status(
        event.event_id, "employer-1", ComplianceStatus.PAID, date_paid=PAID_ON, notes="Paid via NEFT"
    )
    assert record.status is ComplianceStatus.PAID
    assert record.date_paid == PAID_ON
    assert record.created_by == "employer-1"

    record = await status_tracker.update_status(event.event_id, "employer-1", "YET_TO_PAY")
    assert record.status is ComplianceStatus.YET_TO_PAY
    assert record.date_paid is None
    # notes untouched when not supplied
    assert record.notes == "Paid via NEFT"

    status = await status_tracker.get_or_default(event.event_id, "employer-1")
    assert status.persisted is True
    assert status.status_id == record.status_id


@pytest.mark.asyncio
async def test_paid_without_date_is_rejected(make_event):
    event = await make_event()
    with pytest.raises(ComplianceValidationError, match="date_paid"):
        await status_tracker.update_status(event.event_id, "employer-1", ComplianceStatus.PAID)


@pytest.mark.asyncio
async def test_employer_cannot_reset_to_upcoming_but_admin_can(make_event):
    event = await make_event()
    await status_tracker.update_status(event.event_id, "employer-1", ComplianceStatus.MISSED)
    with pytest.raises(ComplianceValidationError, match="PAID, YET_TO_PAY, or MISSED"):
        await status_tracker.update_status(event.event_id, "employer-1", ComplianceStatus.UPCOMING)

    record = await status_tracker.update_status(
        event.event_id,
        "employer-1",
        ComplianceStatus.UPCOMING,
        actor_id="admin-7",
        role=CallerRole.ADMIN,
    )
    assert record.status is ComplianceStatus.UPCOMING
    assert record.updated_by == "admin-7"
    assert record.created_by == "employer-1"


@pytest.mark.asyncio
async def test_unknown_status_value(make_event):
    event = await make_event()
    with pytest.raises(ComplianceValidationError, match="Invalid status"):
        await status_tracker.update_status(event.event_id, "employer-1", "LATE")


@pytest.mark.asyncio
async def test_one_record_per_employer_and_event(make_event):
    event = await make_event()
    first = await status_tracker.ensure_status(event.event_id, "employer-1")
    again = await status_tracker.ensure_status(event.event_id, "employer-1")
    other = await status_tracker.ensure_status(event.event_id, "employer-2")
    assert first.status_id == again.status_id
    assert other.status_id != first.status_id


@pytest.mark.asyncio
async def test_attachments_append_without_duplicates(make_event):
    event = await make_event()
    url = "https://files.example.com/challan.pdf"
    await status_tracker.append_attachment(event.event_id, "employer-1", url)
    record = await status_tracker.append_attachment(event.event_id, "employer-1", url)
    record = await status_tracker.append_attachment(
        event.event_id, "employer-1", "https://files.example.com/receipt.pdf"
    )
    assert record.attachments == [url, "https://files.example.com/receipt.pdf"]
    assert record.status is ComplianceStatus.UPCOMING


@pytest.mark.asyncio
async def test_bad_and_missing_event_ids(database):
    with pytest.raises(ComplianceValidationError, match="Invalid compliance calendar ID"):
        await status_tracker.get_or_default("abc", "employer-1")
    with pytest.raises(NotFoundError):
        await status_tracker.update_status(MISSING_EVENT, "employer-1", ComplianceStatus.MISSED)
