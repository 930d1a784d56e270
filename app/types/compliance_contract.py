"""Pydantic models and closed enums shared by the compliance calendar.

These classes are intentionally framework-agnostic so they can be reused by
workers, API responses, and tests without pulling in FastAPI or database
layers.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ──────────────────────────────
# Enums
# ──────────────────────────────


class EventCategory(str, enum.Enum):
    PF_RETURN = "PF Return"
    GST_RETURN = "GST Return"
    ESI_FILING = "ESI Filing"
    HOLIDAY = "Holiday"
    POLICY_UPDATE = "Policy Update"
    GENERAL = "General"
    OTHER = "Other"


class RecurrencePattern(str, enum.Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class ComplianceStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    YET_TO_PAY = "YET_TO_PAY"
    PAID = "PAID"
    MISSED = "MISSED"


# Statuses the missed-compliance sweep is allowed to move to MISSED
OPEN_STATUSES = (ComplianceStatus.UPCOMING, ComplianceStatus.YET_TO_PAY)


class ReminderOffset(str, enum.Enum):
    BEFORE_7_DAYS = "BEFORE_7_DAYS"
    BEFORE_1_DAY = "BEFORE_1_DAY"
    ON_DUE_DATE = "ON_DUE_DATE"

    @property
    def days(self) -> int:
        return _OFFSET_DAYS[self]

    @property
    def delta(self) -> timedelta:
        return timedelta(days=self.days)


_OFFSET_DAYS = {
    ReminderOffset.BEFORE_7_DAYS: 7,
    ReminderOffset.BEFORE_1_DAY: 1,
    ReminderOffset.ON_DUE_DATE: 0,
}


class ReminderChannel(str, enum.Enum):
    IN_APP = "IN_APP"
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"


class ReminderStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class CallerRole(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYER = "employer"


# ──────────────────────────────
# Helpers
# ──────────────────────────────


def ensure_utc(value: datetime) -> datetime:
    """Treat naive input as UTC and normalise everything else to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalise_tags(v: Union[str, List[str], None]) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        v = v.split(",")
    seen: list[str] = []
    for tag in v:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def parse_identifier(value: str, label: str = "id") -> str:
    """Return the canonical form of a UUID string or raise ``ValueError``."""
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {label}: {value!r}")


# ──────────────────────────────
# Events
# ──────────────────────────────


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    notes: str = Field(min_length=1, max_length=2000)
    category: EventCategory = EventCategory.GENERAL
    custom_label: Optional[str] = Field(default=None, max_length=100)
    due_date: datetime
    recurrence: RecurrencePattern = RecurrencePattern.NONE
    document: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "custom_label", mode="before")
    def _strip(cls, v):  # noqa: N805
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    def _tags(cls, v):  # noqa: N805
        return _normalise_tags(v)

    @field_validator("due_date")
    def _due_utc(cls, v: datetime):  # noqa: N805
        return ensure_utc(v)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    notes: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    category: Optional[EventCategory] = None
    custom_label: Optional[str] = Field(default=None, max_length=100)
    due_date: Optional[datetime] = None
    recurrence: Optional[RecurrencePattern] = None
    document: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("title", "custom_label", mode="before")
    def _strip(cls, v):  # noqa: N805
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    def _tags(cls, v):  # noqa: N805
        return None if v is None else _normalise_tags(v)

    @field_validator("due_date")
    def _due_utc(cls, v: Optional[datetime]):  # noqa: N805
        return ensure_utc(v) if v is not None else v

    @model_validator(mode="after")
    def _no_null_required(self):
        # Only custom_label and document may be cleared
        for name in sorted(self.model_fields_set - {"custom_label", "document"}):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: str
    title: str
    notes: str
    category: EventCategory
    custom_label: Optional[str] = None
    due_date: datetime
    recurrence: RecurrencePattern
    document: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ──────────────────────────────
# Status records
# ──────────────────────────────


class StatusUpdate(BaseModel):
    status: ComplianceStatus
    date_paid: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("notes", mode="before")
    def _strip_notes(cls, v):  # noqa: N805
        return v.strip() if isinstance(v, str) else v

    @field_validator("date_paid")
    def _paid_utc(cls, v: Optional[datetime]):  # noqa: N805
        return ensure_utc(v) if v is not None else v

    @model_validator(mode="after")
    def _paid_needs_date(self):
        if self.status is ComplianceStatus.PAID and self.date_paid is None:
            raise ValueError("date_paid is required when status is PAID")
        return self


class StatusOut(BaseModel):
    """Status of one employer for one event.

    ``persisted`` is False for the virtual UPCOMING default returned before
    the employer has interacted with the event.
    """

    model_config = ConfigDict(from_attributes=True)

    status_id: Optional[str] = None
    event_id: str
    employer_id: str
    status: ComplianceStatus = ComplianceStatus.UPCOMING
    date_paid: Optional[datetime] = None
    notes: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    persisted: bool = True


class AttachmentRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)

    @field_validator("url")
    def _http_url(cls, v: str):  # noqa: N805
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must be an http(s) URL")
        return v


# ──────────────────────────────
# Reminders
# ──────────────────────────────


class ReminderRequest(BaseModel):
    channels: List[ReminderChannel] = Field(
        default_factory=lambda: [ReminderChannel.IN_APP]
    )

    @field_validator("channels")
    def _dedupe(cls, v: List[ReminderChannel]):  # noqa: N805
        if not v:
            raise ValueError("at least one channel must be provided")
        return list(dict.fromkeys(v))


class ReminderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reminder_id: str
    status_id: str
    event_id: str
    employer_id: str
    offset: ReminderOffset
    channels: List[ReminderChannel]
    status: ReminderStatus
    scheduled_for: datetime
    sent_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    retry_count: int = 0


class DispatchReport(BaseModel):
    selected: int = 0
    sent: int = 0
    rescheduled: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0


# ──────────────────────────────
# Notification collaborator
# ──────────────────────────────


NOTIFY_ALL = "ALL"


class NotificationPayload(BaseModel):
    """What the dispatcher hands to the notification collaborator."""

    user_id: str
    type: str = "COMPLIANCE_REMINDER"
    title: str
    message: str
    channel: Union[ReminderChannel, str]
    data: Dict[str, Any] = Field(default_factory=dict)
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("channel")
    def _channel(cls, v):  # noqa: N805
        if v == NOTIFY_ALL:
            return v
        return ReminderChannel(v)

    def targets(self) -> List[ReminderChannel]:
        if self.channel == NOTIFY_ALL:
            return list(ReminderChannel)
        return [self.channel]


class NotificationResult(BaseModel):
    success: bool = False
    channels: Dict[ReminderChannel, bool] = Field(
        default_factory=lambda: {c: False for c in ReminderChannel}
    )
    errors: Dict[ReminderChannel, str] = Field(default_factory=dict)


# ──────────────────────────────
# Listings / analytics
# ──────────────────────────────


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ComplianceSummary(BaseModel):
    UPCOMING: int = 0
    YET_TO_PAY: int = 0
    PAID: int = 0
    MISSED: int = 0


class CalendarEntry(BaseModel):
    """An event as one employer sees it in their calendar."""

    event: EventOut
    employer_status: StatusOut
    is_reminder_active: bool = False
    active_channels: List[ReminderChannel] = Field(default_factory=list)


class EventDetail(BaseModel):
    event: EventOut
    status: StatusOut
    reminders: List[ReminderOut] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    status: StatusOut
    title: str
    due_date: datetime
    category: EventCategory


class DeadlineOut(BaseModel):
    event_id: str
    title: str
    due_date: datetime
    status: ComplianceStatus


class EmployerAnalytics(BaseModel):
    total_assigned: int
    status_breakdown: ComplianceSummary
    compliance_rate: int
    upcoming_deadlines: List[DeadlineOut] = Field(default_factory=list)
    overdue: int


class AdminAnalytics(BaseModel):
    total_compliances: int
    status_breakdown: ComplianceSummary
    overall_compliance_rate: int
    pending_actions: int
    missed_compliances: int


class ComplianceReport(BaseModel):
    employer_id: str
    period_from: datetime
    period_to: datetime
    total_records: int
    paid: int
    pending: int
    missed: int
    upcoming: int
    records: List[StatusOut] = Field(default_factory=list)
