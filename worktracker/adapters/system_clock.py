"""System clock adapter — implements ClockPort with zoneinfo."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None) -> tuple[tzinfo, str]:
    """Resolve an IANA name to a tzinfo. Unknown or empty names fall back to UTC."""
    if not name or name.strip().upper() in {"UTC", "Z", "GMT"}:
        return timezone.utc, "UTC"
    try:
        return ZoneInfo(name.strip()), name.strip()
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.error("Unknown timezone %r, falling back to UTC: %s", name, exc)
        return timezone.utc, "UTC"


class SystemClock:
    """Wall-clock time in the user's configured timezone."""

    def __init__(self, timezone_name: str | None = None) -> None:
        self._tz, self._tz_name = resolve_timezone(timezone_name)

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    @property
    def timezone_name(self) -> str:
        return self._tz_name

    def now(self) -> datetime:
        return datetime.now(self._tz)
