"""Periodic compliance jobs driven by Celery beat.

Every task takes a database lease first, so overlapping beat deliveries or a
second worker never run the same job twice at once. Failures are logged and
swallowed; the next scheduled run starts fresh.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.celery_app import celery_app
from app.services.leases import job_lease
from app.services.recurrence import materialize_recurring_events
from app.services.reminder_dispatcher import dispatch_due_reminders
from app.services.sweeper import sweep_missed_compliance
from config import settings
import db

_LOGGER = logging.getLogger(__name__)


async def _leased(job_name: str, work: Callable[[], Awaitable[Any]]) -> Any:
    try:
        async with job_lease(job_name) as acquired:
            if not acquired:
                return None
            return await work()
    finally:
        # Each asyncio.run gets a new loop; pooled connections cannot outlive it
        await db.dispose_engine()


def run_job(job_name: str, work: Callable[[], Awaitable[Any]]) -> Any:
    _LOGGER.info("[CRON] %s: job started", job_name)
    try:
        result = asyncio.run(_leased(job_name, work))
    except Exception:  # noqa: BLE001
        _LOGGER.exception("[CRON] %s: job failed", job_name)
        return None
    _LOGGER.info("[CRON] %s: job completed (%s)", job_name, result)
    return result


async def _dispatch() -> dict:
    report = await dispatch_due_reminders()
    return report.model_dump()


async def _purge() -> int:
    return await db.purge_sent_reminders(
        datetime.now(timezone.utc), settings.SENT_REMINDER_RETENTION_DAYS
    )


# Job name -> coroutine factory; shared with the maintenance CLI
JOBS: dict[str, Callable[[], Awaitable[Any]]] = {
    "dispatch_reminders": _dispatch,
    "sweep_missed": sweep_missed_compliance,
    "materialize_recurring": materialize_recurring_events,
    "purge_sent_reminders": _purge,
}


# ---------------------------------------------------------------------------
# Celery Tasks
# ---------------------------------------------------------------------------

@celery_app.task(name="app.workers.compliance.dispatch_reminders")
def dispatch_reminders():  # noqa: D401
    """Send every due PENDING reminder (hourly)."""
    return run_job("dispatch_reminders", JOBS["dispatch_reminders"])


@celery_app.task(name="app.workers.compliance.sweep_missed")
def sweep_missed():  # noqa: D401
    """Mark past-due unresolved statuses MISSED (daily)."""
    return run_job("sweep_missed", JOBS["sweep_missed"])


@celery_app.task(name="app.workers.compliance.materialize_recurring")
def materialize_recurring():  # noqa: D401
    """Clone recurring events one period ahead (weekly)."""
    return run_job("materialize_recurring", JOBS["materialize_recurring"])


@celery_app.task(name="app.workers.compliance.purge_sent_reminders")
def purge_sent_reminders():  # noqa: D401
    """Delete SENT reminders past the retention window (daily)."""
    return run_job("purge_sent_reminders", JOBS["purge_sent_reminders"])
