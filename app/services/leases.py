"""Database-backed job leases.

A lease row per job name; a worker owns the job while ``expires_at`` is in
the future. Acquisition is an insert, or a conditional update of an expired
row, so exactly one contender wins no matter how many worker processes or
hosts run the beat schedule.
"""

from __future__ import annotations

import logging
import os
import socket
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from config import settings
from db.models import JobLease
import db

_LOGGER = logging.getLogger(__name__)


def new_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


async def acquire_lease(
    job_name: str,
    holder: str,
    ttl_seconds: int | None = None,
    now: datetime | None = None,
) -> bool:
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=ttl_seconds or settings.JOB_LEASE_SECONDS)

    async for s in db.get_session():
        s.add(JobLease(job_name=job_name, holder=holder, acquired_at=now, expires_at=expires_at))
        try:
            await s.commit()
            acquired = True
        except IntegrityError:
            await s.rollback()
            res = await s.execute(
                update(JobLease)
                .where(JobLease.job_name == job_name, JobLease.expires_at <= now)
                .values(holder=holder, acquired_at=now, expires_at=expires_at)
            )
            await s.commit()
            acquired = res.rowcount == 1
    return acquired


async def release_lease(job_name: str, holder: str, now: datetime | None = None) -> None:
    now = now or datetime.now(timezone.utc)
    async for s in db.get_session():
        await s.execute(
            update(JobLease)
            .where(JobLease.job_name == job_name, JobLease.holder == holder)
            .values(expires_at=now)
        )
        await s.commit()


@asynccontextmanager
async def job_lease(job_name: str, ttl_seconds: int | None = None) -> AsyncIterator[bool]:
    """Yield True when this worker owns ``job_name`` for the duration of the block."""
    holder = new_holder()
    acquired = await acquire_lease(job_name, holder, ttl_seconds)
    if not acquired:
        _LOGGER.info("Job %s is already running elsewhere; skipping", job_name)
    try:
        yield acquired
    finally:
        if acquired:
            await release_lease(job_name, holder)
