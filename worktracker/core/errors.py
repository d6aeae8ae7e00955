"""Error types raised at the boundaries of the reset engine."""

from __future__ import annotations


class SettingsError(ValueError):
    """Raised when a reset-time or retention setting fails validation."""
