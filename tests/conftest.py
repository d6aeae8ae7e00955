"""Shared test fixtures and configuration.

Sets up fake environment variables before any worktracker imports, and
provides a temp-file document store, a pinned clock and a reset service
wired to both.
"""

import os

# Patch env vars BEFORE any worktracker imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("RESET_TIME", "00:00")

from datetime import datetime, timedelta, timezone

import pytest


class FixedClock:
    """ClockPort whose "now" only moves when a test moves it."""

    def __init__(self, now: datetime, tz=timezone.utc, tz_name: str = "UTC") -> None:
        self._now = now
        self._tz = tz
        self._tz_name = tz_name

    @property
    def timezone(self):
        return self._tz

    @property
    def timezone_name(self) -> str:
        return self._tz_name

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_tracker.db")


@pytest.fixture
def tracker_db(tmp_db_path):
    """Return a TrackerDB instance backed by a temp file."""
    from worktracker.data.db import TrackerDB
    return TrackerDB(db_path=tmp_db_path)


@pytest.fixture
def storage(tracker_db):
    """Async StoragePort over the same temp file as tracker_db."""
    from worktracker.adapters.sqlite_storage import SQLiteStorage
    return SQLiteStorage(db=tracker_db)


@pytest.fixture
def clock():
    """Clock pinned to 2024-06-01 09:00 UTC."""
    return FixedClock(utc(2024, 6, 1, 9, 0))


@pytest.fixture
def service(storage, clock):
    """DailyResetService with default settings (reset at 00:00, 30-day retention)."""
    from worktracker.core.reset_service import DailyResetService
    return DailyResetService(storage=storage, clock=clock)
