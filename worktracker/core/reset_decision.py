"""Daily reset decision — pure business logic.

Decides whether a new tracker day has begun, given the reset bookkeeping,
the current instant and what is known about the previous session.

No I/O: this module only transforms data. Callers load bookkeeping and
session state from storage and pass them in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from worktracker.data.models import ResetBookkeeping, SessionState

logger = logging.getLogger(__name__)

SESSION_GAP = timedelta(hours=2)
PRECISE_TIMER_HORIZON = timedelta(hours=24)


class ResetReason(str, Enum):
    BOOTSTRAP = "bootstrap"
    SESSION_GAP = "session-gap"
    DAY_ROLLED = "day-rolled"
    CATCH_UP = "catch-up"
    TIME_CHANGED = "time-changed"
    MANUAL = "manual"
    UP_TO_DATE = "up-to-date"
    CLOCK_BEHIND = "clock-behind"


@dataclass(frozen=True)
class ResetDecision:
    needed: bool
    reason: ResetReason


@dataclass(frozen=True)
class SessionGapInfo:
    """What the previous session looked like when it went quiet."""

    is_new_session: bool
    current_date: str
    time_since_last_active: timedelta


@dataclass(frozen=True)
class TimeUntilReset:
    hours: int
    minutes: int
    total_minutes: int
    next_reset_time: datetime


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def parse_reset_time(reset_time: str) -> tuple[int, int]:
    """Split "HH:MM" into (hour, minute). Raises ValueError on malformed input."""
    hours, minutes = map(int, reset_time.split(":"))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Hour/minute out of range: {reset_time!r}")
    return hours, minutes


def reset_datetime(day: str, reset_time: str, tz: tzinfo) -> datetime:
    """Combine a calendar date with the configured HH:MM in the user's timezone."""
    hours, minutes = parse_reset_time(reset_time)
    return datetime.combine(date.fromisoformat(day), time(hours, minutes), tzinfo=tz)


def today_in(now: datetime, tz: tzinfo) -> str:
    """The calendar date of ``now`` as seen in the user's timezone."""
    return now.astimezone(tz).date().isoformat()


def days_ago(day: str, days: int) -> str:
    return (date.fromisoformat(day) - timedelta(days=days)).isoformat()


def parse_instant(value: str, tz: tzinfo) -> datetime:
    """Parse an ISO-8601 instant; naive values are read in the user's timezone."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def next_reset_time(now: datetime, reset_time: str, tz: tzinfo) -> datetime:
    """Today's reset instant if it is still ahead, otherwise tomorrow's."""
    today = today_in(now, tz)
    todays_reset = reset_datetime(today, reset_time, tz)
    if now < todays_reset:
        return todays_reset
    tomorrow = (date.fromisoformat(today) + timedelta(days=1)).isoformat()
    return reset_datetime(tomorrow, reset_time, tz)


def time_until_next_reset(now: datetime, reset_time: str, tz: tzinfo) -> TimeUntilReset:
    upcoming = next_reset_time(now, reset_time, tz)
    total_minutes = int((upcoming - now).total_seconds() // 60)
    return TimeUntilReset(
        hours=total_minutes // 60,
        minutes=total_minutes % 60,
        total_minutes=total_minutes,
        next_reset_time=upcoming,
    )


def session_gap_info(session: SessionState | None, now: datetime, tz: tzinfo) -> SessionGapInfo | None:
    """Describe the previous session, or None when nothing usable was saved."""
    if session is None:
        return None
    try:
        last_active = parse_instant(session.last_active_time, tz)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring unreadable session state: %s", exc)
        return None
    since = now - last_active
    return SessionGapInfo(
        is_new_session=since > SESSION_GAP,
        current_date=session.current_date,
        time_since_last_active=since,
    )


# ---------------------------------------------------------------------------
# The decision
# ---------------------------------------------------------------------------


def should_reset(
    now: datetime,
    bookkeeping: ResetBookkeeping | None,
    session: SessionGapInfo | None,
    tz: tzinfo,
) -> ResetDecision:
    """Decide whether a reset is due. First matching rule wins.

    1. nothing recorded yet                                  -> bootstrap
    2. long idle gap and the day changed while idle          -> session-gap
    3. last reset on an earlier day, reset instant passed    -> day-rolled,
       or catch-up when more than one day was missed
    4. reset time moved past the last reset's instant today  -> time-changed

    Unreadable bookkeeping counts as "nothing recorded": an extra reset is
    cheaper than a missed one.
    """
    if bookkeeping is None or not bookkeeping.last_reset_date:
        return ResetDecision(True, ResetReason.BOOTSTRAP)

    try:
        return _evaluate(now, bookkeeping, session, tz)
    except (TypeError, ValueError) as exc:
        logger.warning("Unreadable reset bookkeeping, treating as bootstrap: %s", exc)
        return ResetDecision(True, ResetReason.BOOTSTRAP)


def _evaluate(
    now: datetime,
    bookkeeping: ResetBookkeeping,
    session: SessionGapInfo | None,
    tz: tzinfo,
) -> ResetDecision:
    today = today_in(now, tz)
    last = date.fromisoformat(bookkeeping.last_reset_date).isoformat()
    todays_reset = reset_datetime(today, bookkeeping.reset_time, tz)

    if session is not None and session.is_new_session and session.current_date != today:
        return ResetDecision(True, ResetReason.SESSION_GAP)

    if last > today:
        # Wall clock is behind the last reset; never move backward.
        return ResetDecision(False, ResetReason.CLOCK_BEHIND)

    if last != today:
        if now >= todays_reset:
            if last < days_ago(today, 1):
                return ResetDecision(True, ResetReason.CATCH_UP)
            return ResetDecision(True, ResetReason.DAY_ROLLED)
        return ResetDecision(False, ResetReason.UP_TO_DATE)

    if bookkeeping.reset_time_changed_at and bookkeeping.last_reset_timestamp:
        changed_at = parse_instant(bookkeeping.reset_time_changed_at, tz)
        last_reset_at = parse_instant(bookkeeping.last_reset_timestamp, tz)
        if changed_at > last_reset_at and last_reset_at < todays_reset <= now:
            return ResetDecision(True, ResetReason.TIME_CHANGED)

    return ResetDecision(False, ResetReason.UP_TO_DATE)
