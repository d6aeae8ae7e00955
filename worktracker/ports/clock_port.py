"""Clock port — the engine's only source of "now".

Injected so tests can pin the current instant and timezone.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Protocol


class ClockPort(Protocol):
    """Current instant plus the user's resolved timezone."""

    @property
    def timezone(self) -> tzinfo: ...

    @property
    def timezone_name(self) -> str: ...

    def now(self) -> datetime:
        """Return the current instant as a timezone-aware datetime."""
        ...
