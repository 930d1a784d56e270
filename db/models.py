"""ORM models for the compliance calendar.

Every timestamp column goes through ``UTCDateTime`` so that naive datetimes
never reach the database and values always come back as aware UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from app.types.compliance_contract import (
    ComplianceStatus,
    EventCategory,
    RecurrencePattern,
    ReminderOffset,
    ReminderStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class UTCDateTime(TypeDecorator):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("datetime values must be timezone-aware")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        # SQLite hands back naive values; they were written as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _enum(cls):
    return Enum(
        cls,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
    )


# ──────────────────────────────────────────────────────────────────────
# Declarative metadata
# ──────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


class ComplianceEvent(Base):
    __tablename__ = "compliance_events"

    event_id:     Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title:        Mapped[str] = mapped_column(String(200))
    notes:        Mapped[str] = mapped_column(Text)
    category:     Mapped[EventCategory] = mapped_column(_enum(EventCategory), default=EventCategory.GENERAL)
    custom_label: Mapped[str | None] = mapped_column(String(100))
    due_date:     Mapped[datetime] = mapped_column(UTCDateTime)
    recurrence:   Mapped[RecurrencePattern] = mapped_column(
        _enum(RecurrencePattern), default=RecurrencePattern.NONE
    )
    document:     Mapped[str | None] = mapped_column(String(2048))
    tags:         Mapped[list[str]] = mapped_column(JSON, default=list)
    is_active:    Mapped[bool] = mapped_column(Boolean, default=True)
    created_at:   Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at:   Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_compliance_events_due_active", "due_date", "is_active"),
        Index("ix_compliance_events_category", "category"),
        Index("ix_compliance_events_title_category", "title", "category"),
    )


class ComplianceStatusRecord(Base):
    __tablename__ = "compliance_statuses"

    status_id:   Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id:    Mapped[str] = mapped_column(
        String(36), ForeignKey("compliance_events.event_id", ondelete="CASCADE")
    )
    employer_id: Mapped[str] = mapped_column(String(64))
    status:      Mapped[ComplianceStatus] = mapped_column(
        _enum(ComplianceStatus), default=ComplianceStatus.UPCOMING
    )
    date_paid:   Mapped[datetime | None] = mapped_column(UTCDateTime)
    notes:       Mapped[str | None] = mapped_column(String(1000))
    attachments: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_by:  Mapped[str] = mapped_column(String(64))
    updated_by:  Mapped[str] = mapped_column(String(64))
    created_at:  Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at:  Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("event_id", "employer_id", name="uq_compliance_statuses_event_employer"),
        Index("ix_compliance_statuses_employer_status", "employer_id", "status"),
        Index("ix_compliance_statuses_event_status", "event_id", "status"),
        CheckConstraint(
            "status != 'PAID' OR date_paid IS NOT NULL",
            name="ck_compliance_statuses_paid_has_date",
        ),
    )


class ComplianceReminder(Base):
    __tablename__ = "compliance_reminders"

    reminder_id:    Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    status_id:      Mapped[str] = mapped_column(
        String(36), ForeignKey("compliance_statuses.status_id", ondelete="CASCADE")
    )
    event_id:       Mapped[str] = mapped_column(
        String(36), ForeignKey("compliance_events.event_id", ondelete="CASCADE")
    )
    employer_id:    Mapped[str] = mapped_column(String(64))
    offset:         Mapped[ReminderOffset] = mapped_column("reminder_offset", _enum(ReminderOffset))
    channels:       Mapped[list[str]] = mapped_column(JSON, default=list)
    status:         Mapped[ReminderStatus] = mapped_column(
        _enum(ReminderStatus), default=ReminderStatus.PENDING
    )
    scheduled_for:  Mapped[datetime] = mapped_column(UTCDateTime)
    sent_at:        Mapped[datetime | None] = mapped_column(UTCDateTime)
    failure_reason: Mapped[str | None] = mapped_column(String(500))
    retry_count:    Mapped[int] = mapped_column(Integer, default=0)
    created_at:     Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at:     Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("status_id", "reminder_offset", name="uq_compliance_reminders_status_offset"),
        Index("ix_compliance_reminders_status_scheduled", "status", "scheduled_for"),
        Index("ix_compliance_reminders_employer_created", "employer_id", "created_at"),
        Index("ix_compliance_reminders_sent_at", "sent_at"),
        CheckConstraint("retry_count >= 0", name="ck_compliance_reminders_retry_nonneg"),
    )


class InAppNotification(Base):
    __tablename__ = "in_app_notifications"

    notification_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id:         Mapped[str] = mapped_column(String(64))
    type:            Mapped[str] = mapped_column(String(64))
    title:           Mapped[str] = mapped_column(String(300))
    message:         Mapped[str] = mapped_column(Text)
    data:            Mapped[dict[str, Any] | None] = mapped_column(JSON)
    read_at:         Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at:      Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    __table_args__ = (
        Index("ix_in_app_notifications_user_created", "user_id", "created_at"),
    )


class JobLease(Base):
    __tablename__ = "job_leases"

    job_name:    Mapped[str] = mapped_column(String(100), primary_key=True)
    holder:      Mapped[str] = mapped_column(String(100))
    acquired_at: Mapped[datetime] = mapped_column(UTCDateTime)
    expires_at:  Mapped[datetime] = mapped_column(UTCDateTime)
