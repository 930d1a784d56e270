"""
Async DB helpers for the compliance calendar.
Uses SQLAlchemy 2.0 + asyncpg driver – no raw SQL strings in app code.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import AsyncGenerator, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import (
    create_async_engine, async_sessionmaker, AsyncSession
)

from app.types.compliance_contract import ReminderStatus
from db.models import (
    Base,
    ComplianceEvent,
    ComplianceReminder,
    ComplianceStatusRecord,
)

# ──────────────────────────────────────────────────────────────────────
# 1. Lazy engine / session factory
# ──────────────────────────────────────────────────────────────────────
_engine = None
_session_maker: async_sessionmaker[AsyncSession] | None = None

def _build_url() -> str:
    url = os.getenv("DATABASE_URL") or os.getenv("DATABASE_PUBLIC_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set")
    if url.startswith("sqlite"):
        return url
    if "+asyncpg" not in url:
        url = url.replace("postgres://", "postgresql+asyncpg://", 1).replace(
            "postgresql://", "postgresql+asyncpg://", 1
        )
    return url

def get_engine():
    global _engine
    if _engine is None:
        url = _build_url()
        pool_args = {} if url.startswith("sqlite") else {"pool_size": 5, "max_overflow": 5}
        _engine = create_async_engine(url, **pool_args)
    return _engine

def get_session() -> AsyncGenerator[AsyncSession, None]:
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(get_engine(), expire_on_commit=False)
    async def _session_scope():
        async with _session_maker() as session:
            yield session
    return _session_scope()

# ──────────────────────────────────────────────────────────────────────
# 2. DDL helper (run once at startup or from Alembic)
# ──────────────────────────────────────────────────────────────────────
async def create_all():
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ──────────────────────────────────────────────────────────────────────
# 3. Shared lookups
# ──────────────────────────────────────────────────────────────────────

async def get_event(event_id: str) -> ComplianceEvent | None:
    event = None
    async for s in get_session():
        event = await s.get(ComplianceEvent, event_id)
    return event


async def find_status(s: AsyncSession, event_id: str, employer_id: str) -> ComplianceStatusRecord | None:
    res = await s.execute(
        select(ComplianceStatusRecord).where(
            ComplianceStatusRecord.event_id == event_id,
            ComplianceStatusRecord.employer_id == employer_id,
        )
    )
    return res.scalar_one_or_none()


# ──────────────────────────────────────────────────────────────────────
# 4. Reminder state transitions (one committed write each)
# ──────────────────────────────────────────────────────────────────────

async def fetch_due_reminders(now: datetime, limit: int = 100) -> Sequence[ComplianceReminder]:
    async for s in get_session():
        stmt = (
            select(ComplianceReminder)
            .where(
                ComplianceReminder.status == ReminderStatus.PENDING,
                ComplianceReminder.scheduled_for <= now,
            )
            .order_by(ComplianceReminder.scheduled_for)
            .limit(limit)
        )
        res = await s.execute(stmt)
        rows = res.scalars().all()
    return rows


async def get_retry_count(rid: str) -> int | None:
    async for s in get_session():
        res = await s.execute(
            select(ComplianceReminder.retry_count).where(ComplianceReminder.reminder_id == rid)
        )
        count = res.scalar_one_or_none()
    return count


async def mark_reminder_sent(rid: str, now: datetime):
    async for s in get_session():
        await s.execute(
            update(ComplianceReminder)
            .where(
                ComplianceReminder.reminder_id == rid,
                ComplianceReminder.status == ReminderStatus.PENDING,
            )
            .values(status=ReminderStatus.SENT, sent_at=now, retry_count=0, failure_reason=None)
        )
        await s.commit()


async def reschedule_reminder(rid: str, retry_count: int, next_attempt: datetime):
    async for s in get_session():
        await s.execute(
            update(ComplianceReminder)
            .where(
                ComplianceReminder.reminder_id == rid,
                ComplianceReminder.status == ReminderStatus.PENDING,
            )
            .values(retry_count=retry_count, scheduled_for=next_attempt)
        )
        await s.commit()


async def mark_reminder_failed(rid: str, err: str):
    async for s in get_session():
        await s.execute(
            update(ComplianceReminder)
            .where(
                ComplianceReminder.reminder_id == rid,
                ComplianceReminder.status == ReminderStatus.PENDING,
            )
            .values(status=ReminderStatus.FAILED, failure_reason=err[:500])
        )
        await s.commit()


async def mark_reminder_skipped(rid: str, reason: str):
    async for s in get_session():
        await s.execute(
            update(ComplianceReminder)
            .where(
                ComplianceReminder.reminder_id == rid,
                ComplianceReminder.status == ReminderStatus.PENDING,
            )
            .values(status=ReminderStatus.SKIPPED, failure_reason=reason[:500])
        )
        await s.commit()


async def purge_sent_reminders(now: datetime, retention_days: int) -> int:
    cutoff = now - timedelta(days=retention_days)
    async for s in get_session():
        res = await s.execute(
            delete(ComplianceReminder).where(
                ComplianceReminder.status == ReminderStatus.SENT,
                ComplianceReminder.sent_at < cutoff,
            )
        )
        await s.commit()
        purged = res.rowcount or 0
    return purged


async def dispose_engine():
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
    _session_maker = None
