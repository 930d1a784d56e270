from datetime import datetime, timezone

import pytest

from app.errors import ComplianceValidationError, NotFoundError
from app.services import events
from app.types.compliance_contract import EventCategory, EventUpdate
from app.utils import storage

UTC = timezone.utc


@pytest.mark.asyncio
async def test_list_is_paged_and_filtered(make_event):
    for day in (5, 1, 20):
        await make_event(title=f"PF {day}", due_date=datetime(2025, 6, day, tzinfo=UTC))
    await make_event(title="Diwali", category=EventCategory.HOLIDAY)

    rows, meta = await events.list_events(page=1, limit=2)
    assert [r.title for r in rows] == ["PF 1", "PF 5"]
    assert (meta.total, meta.pages) == (4, 2)

    rows, _ = await events.list_events(category=EventCategory.HOLIDAY)
    assert [r.title for r in rows] == ["Diwali"]


@pytest.mark.asyncio
async def test_page_size_is_capped(make_event):
    await make_event()
    _, meta = await events.list_events(page=0, limit=10_000)
    assert meta.page == 1
    assert meta.limit == 100


@pytest.mark.asyncio
async def test_update_replacing_document_deletes_old_one(make_event, monkeypatch):
    deleted = []
    monkeypatch.setattr(storage, "delete_object", lambda url: deleted.append(url) or True)
    event = await make_event(document="https://bucket.s3.amazonaws.com/docs/old.pdf")

    updated = await events.update_event(
        event.event_id,
        EventUpdate(document="https://bucket.s3.amazonaws.com/docs/new.pdf", tags="PF,Q1"),
    )

    assert updated.document.endswith("new.pdf")
    assert updated.tags == ["pf", "q1"]
    assert updated.title == "PF Return June"
    assert deleted == ["https://bucket.s3.amazonaws.com/docs/old.pdf"]


@pytest.mark.asyncio
async def test_storage_failure_does_not_fail_update(make_event, monkeypatch):
    def broken(url):
        raise RuntimeError("Error deleting docs/old.pdf from S3")

    monkeypatch.setattr(storage, "delete_object", broken)
    event = await make_event(document="https://bucket.s3.amazonaws.com/docs/old.pdf")
    updated = await events.update_event(event.event_id, EventUpdate(document="https://x.test/new.pdf"))
    assert updated.document == "https://x.test/new.pdf"


@pytest.mark.asyncio
async def test_soft_delete_hides_from_default_listing(make_event):
    event = await make_event()
    await events.deactivate_event(event.event_id)

    rows, _ = await events.list_events()
    assert rows == []
    rows, _ = await events.list_events(active=None)
    assert rows[0].is_active is False


@pytest.mark.asyncio
async def test_archive_deactivates_only_old_events(make_event):
    await make_event(title="Old", due_date=datetime(2023, 1, 1, tzinfo=UTC))
    await make_event(title="Recent", due_date=datetime(2025, 5, 1, tzinfo=UTC))

    archived = await events.archive_old_events(now=datetime(2025, 6, 1, tzinfo=UTC), days_old=365)
    assert archived == 1
    rows, _ = await events.list_events()
    assert [r.title for r in rows] == ["Recent"]


@pytest.mark.asyncio
async def test_missing_and_malformed_ids(database):
    with pytest.raises(ComplianceValidationError):
        await events.require_event("12345")
    with pytest.raises(NotFoundError, match="not found"):
        await events.update_event("00000000-0000-0000-0000-0000000000aa", EventUpdate(title="x"))


def test_object_key_only_for_own_bucket(monkeypatch):
    monkeypatch.setattr(storage.settings, "S3_BUCKET", "compliance-docs")
    assert storage.object_key("https://compliance-docs.s3.amazonaws.com/a/b.pdf") == "a/b.pdf"
    assert storage.object_key("https://elsewhere.example.com/a/b.pdf") is None
