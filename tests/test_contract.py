import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from app.types.compliance_contract import (
    NOTIFY_ALL,
    EventCreate,
    EventUpdate,
    NotificationPayload,
    NotificationResult,
    ReminderChannel,
    ReminderOffset,
    ReminderRequest,
    StatusUpdate,
    AttachmentRequest,
    ComplianceStatus,
    parse_identifier,
)


def test_offsets_are_seven_one_and_zero_days():
    assert [o.days for o in ReminderOffset] == [7, 1, 0]
    assert ReminderOffset.BEFORE_1_DAY.delta == timedelta(days=1)


def test_event_create_normalises_tags_and_due_date():
    ev = EventCreate(
        title="  GST Return ",
        notes="Quarterly",
        due_date=datetime(2025, 7, 20, 9, 0),
        tags="GST, tax ,gst,,",
    )
    assert ev.title == "GST Return"
    assert ev.tags == ["gst", "tax"]
    assert ev.due_date.tzinfo is timezone.utc


def test_event_create_requires_title_and_notes():
    with pytest.raises(ValidationError):
        EventCreate(title="", notes="x", due_date=datetime.now(timezone.utc))
    with pytest.raises(ValidationError):
        EventCreate(title="x", due_date=datetime.now(timezone.utc))


def test_event_update_rejects_null_for_required_fields():
    for name in ("title", "notes", "category", "due_date", "recurrence", "tags", "is_active"):
        with pytest.raises(ValidationError, match=f"{name} cannot be null"):
            EventUpdate(**{name: None})
    cleared = EventUpdate(custom_label=None, document=None)
    assert cleared.model_dump(exclude_unset=True) == {"custom_label": None, "document": None}


def test_paid_status_requires_date_paid():
    with pytest.raises(ValidationError, match="date_paid"):
        StatusUpdate(status=ComplianceStatus.PAID)
    upd = StatusUpdate(status="PAID", date_paid="2025-06-09T10:00:00+05:30")
    assert upd.date_paid == datetime(2025, 6, 9, 4, 30, tzinfo=timezone.utc)


def test_reminder_request_defaults_and_dedupes():
    assert ReminderRequest().channels == [ReminderChannel.IN_APP]
    req = ReminderRequest(channels=["EMAIL", "EMAIL", "IN_APP"])
    assert req.channels == [ReminderChannel.EMAIL, ReminderChannel.IN_APP]
    with pytest.raises(ValidationError):
        ReminderRequest(channels=[])
    with pytest.raises(ValidationError):
        ReminderRequest(channels=["SMS"])


def test_attachment_must_be_http_url():
    assert AttachmentRequest(url=" https://files.example.com/proof.pdf ").url.startswith("https://")
    with pytest.raises(ValidationError):
        AttachmentRequest(url="ftp://files.example.com/proof.pdf")


def test_parse_identifier():
    raw = "3F2504E0-4F89-11D3-9A0C-0305E82C3301"
    assert parse_identifier(raw) == raw.lower()
    with pytest.raises(ValueError, match="Invalid compliance calendar ID"):
        parse_identifier("not-a-uuid", "compliance calendar ID")


def test_notification_payload_targets():
    single = NotificationPayload(user_id="e1", title="t", message="m", channel="EMAIL")
    assert single.targets() == [ReminderChannel.EMAIL]
    everyone = NotificationPayload(user_id="e1", title="t", message="m", channel=NOTIFY_ALL)
    assert everyone.targets() == list(ReminderChannel)
    with pytest.raises(ValidationError):
        NotificationPayload(user_id="e1", title="t", message="m", channel="PIGEON")


def test_notification_result_defaults_to_all_channels_false():
    result = NotificationResult()
    assert result.success is False
    assert result.channels == {c: False for c in ReminderChannel}
