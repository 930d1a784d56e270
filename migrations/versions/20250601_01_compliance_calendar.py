"""compliance calendar tables

Revision ID: 20250601_01
Revises:
Create Date: 2025-06-01
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20250601_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TZ = sa.DateTime(timezone=True)


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


EVENT_CATEGORY = _enum(
    "eventcategory",
    "PF Return", "GST Return", "ESI Filing", "Holiday", "Policy Update", "General", "Other",
)
RECURRENCE = _enum("recurrencepattern", "NONE", "DAILY", "WEEKLY", "MONTHLY", "QUARTERLY", "YEARLY")
COMPLIANCE_STATUS = _enum("compliancestatus", "UPCOMING", "YET_TO_PAY", "PAID", "MISSED")
REMINDER_OFFSET = _enum("reminderoffset", "BEFORE_7_DAYS", "BEFORE_1_DAY", "ON_DUE_DATE")
REMINDER_STATUS = _enum("reminderstatus", "PENDING", "SENT", "FAILED", "SKIPPED")


def upgrade() -> None:
    op.create_table(
        "compliance_events",
        sa.Column("event_id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("category", EVENT_CATEGORY, nullable=False),
        sa.Column("custom_label", sa.String(length=100), nullable=True),
        sa.Column("due_date", TZ, nullable=False),
        sa.Column("recurrence", RECURRENCE, nullable=False),
        sa.Column("document", sa.String(length=2048), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TZ, nullable=False),
        sa.Column("updated_at", TZ, nullable=False),
    )
    op.create_index("ix_compliance_events_due_active", "compliance_events", ["due_date", "is_active"])
    op.create_index("ix_compliance_events_category", "compliance_events", ["category"])
    op.create_index("ix_compliance_events_title_category", "compliance_events", ["title", "category"])

    op.create_table(
        "compliance_statuses",
        sa.Column("status_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "event_id",
            sa.String(length=36),
            sa.ForeignKey("compliance_events.event_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employer_id", sa.String(length=64), nullable=False),
        sa.Column("status", COMPLIANCE_STATUS, nullable=False),
        sa.Column("date_paid", TZ, nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("updated_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", TZ, nullable=False),
        sa.Column("updated_at", TZ, nullable=False),
        sa.UniqueConstraint("event_id", "employer_id", name="uq_compliance_statuses_event_employer"),
        sa.CheckConstraint(
            "status != 'PAID' OR date_paid IS NOT NULL",
            name="ck_compliance_statuses_paid_has_date",
        ),
    )
    op.create_index(
        "ix_compliance_statuses_employer_status", "compliance_statuses", ["employer_id", "status"]
    )
    op.create_index("ix_compliance_statuses_event_status", "compliance_statuses", ["event_id", "status"])

    op.create_table(
        "compliance_reminders",
        sa.Column("reminder_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "status_id",
            sa.String(length=36),
            sa.ForeignKey("compliance_statuses.status_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "event_id",
            sa.String(length=36),
            sa.ForeignKey("compliance_events.event_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employer_id", sa.String(length=64), nullable=False),
        sa.Column("reminder_offset", REMINDER_OFFSET, nullable=False),
        sa.Column("channels", sa.JSON(), nullable=False),
        sa.Column("status", REMINDER_STATUS, nullable=False),
        sa.Column("scheduled_for", TZ, nullable=False),
        sa.Column("sent_at", TZ, nullable=True),
        sa.Column("failure_reason", sa.String(length=500), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("created_at", TZ, nullable=False),
        sa.Column("updated_at", TZ, nullable=False),
        sa.UniqueConstraint("status_id", "reminder_offset", name="uq_compliance_reminders_status_offset"),
        sa.CheckConstraint("retry_count >= 0", name="ck_compliance_reminders_retry_nonneg"),
    )
    op.create_index(
        "ix_compliance_reminders_status_scheduled", "compliance_reminders", ["status", "scheduled_for"]
    )
    op.create_index(
        "ix_compliance_reminders_employer_created", "compliance_reminders", ["employer_id", "created_at"]
    )
    op.create_index("ix_compliance_reminders_sent_at", "compliance_reminders", ["sent_at"])

    op.create_table(
        "in_app_notifications",
        sa.Column("notification_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("read_at", TZ, nullable=True),
        sa.Column("created_at", TZ, nullable=False),
    )
    op.create_index(
        "ix_in_app_notifications_user_created", "in_app_notifications", ["user_id", "created_at"]
    )

    op.create_table(
        "job_leases",
        sa.Column("job_name", sa.String(length=100), primary_key=True),
        sa.Column("holder", sa.String(length=100), nullable=False),
        sa.Column("acquired_at", TZ, nullable=False),
        sa.Column("expires_at", TZ, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("job_leases")
    op.drop_index("ix_in_app_notifications_user_created", table_name="in_app_notifications")
    op.drop_table("in_app_notifications")
    op.drop_index("ix_compliance_reminders_sent_at", table_name="compliance_reminders")
    op.drop_index("ix_compliance_reminders_employer_created", table_name="compliance_reminders")
    op.drop_index("ix_compliance_reminders_status_scheduled", table_name="compliance_reminders")
    op.drop_table("compliance_reminders")
    op.drop_index("ix_compliance_statuses_event_status", table_name="compliance_statuses")
    op.drop_index("ix_compliance_statuses_employer_status", table_name="compliance_statuses")
    op.drop_table("compliance_statuses")
    op.drop_index("ix_compliance_events_title_category", table_name="compliance_events")
    op.drop_index("ix_compliance_events_category", table_name="compliance_events")
    op.drop_index("ix_compliance_events_due_active", table_name="compliance_events")
    op.drop_table("compliance_events")
