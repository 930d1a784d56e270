"""Operator entry point for the compliance calendar.

Usage:
    python -m app.scripts.compliance_maintenance init-db
    python -m app.scripts.compliance_maintenance run dispatch_reminders
    python -m app.scripts.compliance_maintenance archive --days-old 365
    python -m app.scripts.compliance_maintenance purge --days 90
    python -m app.scripts.compliance_maintenance health
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import func, select, text

from app.services.events import archive_old_events
from app.types.compliance_contract import ReminderStatus
from app.workers.compliance import JOBS, run_job
from config import settings
from db.models import ComplianceReminder
import db

_LOGGER = logging.getLogger("compliance_maintenance")


async def _init_db() -> None:
    try:
        await db.create_all()
    finally:
        await db.dispose_engine()


async def _archive(days_old: int) -> int:
    try:
        return await archive_old_events(days_old=days_old)
    finally:
        await db.dispose_engine()


async def _purge(days: int) -> int:
    try:
        return await db.purge_sent_reminders(datetime.now(timezone.utc), days)
    finally:
        await db.dispose_engine()


async def health() -> dict:
    """Database reachability plus reminder backlog counts."""
    try:
        async for s in db.get_session():
            await s.execute(text("SELECT 1"))
            res = await s.execute(
                select(ComplianceReminder.status, func.count()).group_by(ComplianceReminder.status)
            )
            counts = {status.value: count for status, count in res.all()}
            res = await s.execute(
                select(func.count()).select_from(ComplianceReminder).where(
                    ComplianceReminder.status == ReminderStatus.PENDING,
                    ComplianceReminder.scheduled_for <= datetime.now(timezone.utc),
                )
            )
            overdue = res.scalar_one()
    finally:
        await db.dispose_engine()
    return {
        "database": "ok",
        "reminders": {s.value: counts.get(s.value, 0) for s in ReminderStatus},
        "due_now": overdue,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="compliance_maintenance", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create all tables (development and tests only)")

    run = sub.add_parser("run", help="run one periodic job now, under its lease")
    run.add_argument("job", choices=sorted(JOBS))

    archive = sub.add_parser("archive", help="deactivate events older than N days")
    archive.add_argument("--days-old", type=int, default=settings.ARCHIVE_AFTER_DAYS)

    purge = sub.add_parser("purge", help="delete SENT reminders older than N days")
    purge.add_argument("--days", type=int, default=settings.SENT_REMINDER_RETENTION_DAYS)

    sub.add_parser("health", help="check the database and print the reminder backlog")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "init-db":
        asyncio.run(_init_db())
        _LOGGER.info("Tables created")
    elif args.command == "run":
        result = run_job(args.job, JOBS[args.job])
        print(json.dumps({"job": args.job, "result": result}))
        if result is None:
            return 1
    elif args.command == "archive":
        archived = asyncio.run(_archive(args.days_old))
        print(json.dumps({"archived": archived}))
    elif args.command == "purge":
        purged = asyncio.run(_purge(args.days))
        print(json.dumps({"purged": purged}))
    elif args.command == "health":
        try:
            report = asyncio.run(health())
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Health check failed: %s", exc)
            print(json.dumps({"database": "error", "error": str(exc)}))
            return 1
        print(json.dumps(report))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
