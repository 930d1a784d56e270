from datetime import datetime, timezone

import pytest
import pytest_asyncio

from app.services import events
from app.types.compliance_contract import EventCategory, EventCreate
from config import settings
import db

DUE = datetime(2025, 6, 10, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _utc_calendar(monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_TIMEZONE", "UTC")


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.dispose_engine()
    await db.create_all()
    yield
    await db.dispose_engine()


@pytest.fixture
def make_event(database):
    async def _make(**overrides):
        data = {
            "title": "PF Return June",
            "notes": "Monthly provident fund return",
            "category": EventCategory.PF_RETURN,
            "due_date": DUE,
        }
        data.update(overrides)
        return await events.create_event(EventCreate(**data))

    return _make
