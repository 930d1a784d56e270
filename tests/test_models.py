from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, StatementError

from db.models import ComplianceEvent, ComplianceStatusRecord, UTCDateTime
from app.types.compliance_contract import ComplianceStatus
import db


def test_naive_datetime_rejected_at_bind():
    with pytest.raises(ValueError, match="timezone-aware"):
        UTCDateTime().process_bind_param(datetime(2025, 4, 25, 15, 0, 0), None)


def test_aware_datetime_normalised_to_utc():
    ist = timezone(timedelta(hours=5, minutes=30))
    bound = UTCDateTime().process_bind_param(datetime(2025, 4, 25, 15, 0, tzinfo=ist), None)
    assert bound == datetime(2025, 4, 25, 9, 30, tzinfo=timezone.utc)
    assert bound.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_insert_naive_datetime_raises(database):
    async for s in db.get_session():
        s.add(ComplianceEvent(title="t", notes="n", due_date=datetime(2025, 4, 25, 15, 0, 0)))
        with pytest.raises((ValueError, StatementError), match="timezone-aware"):
            await s.commit()


@pytest.mark.asyncio
async def test_round_trip_returns_aware_utc(make_event):
    ist = timezone(timedelta(hours=5, minutes=30))
    event = await make_event(due_date=datetime(2025, 6, 10, 9, 0, tzinfo=ist))
    stored = await db.get_event(event.event_id)
    assert stored.due_date == datetime(2025, 6, 10, 3, 30, tzinfo=timezone.utc)
    assert stored.due_date.tzinfo is not None
    assert stored.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_paid_without_date_violates_check(make_event):
    event = await make_event()
    async for s in db.get_session():
        s.add(
            ComplianceStatusRecord(
                event_id=event.event_id,
                employer_id="employer-1",
                status=ComplianceStatus.PAID,
                attachments=[],
                created_by="employer-1",
                updated_by="employer-1",
            )
        )
        with pytest.raises(IntegrityError):
            await s.commit()
