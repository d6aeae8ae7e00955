"""
Work Tracker — Centralized configuration.

Loads all settings from .env and validates them at the boundary.
The reset engine never reads this module directly: it receives a
ResetSettings snapshot built from it (see reset_settings()).
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from worktracker.core.errors import SettingsError

# Load .env from project root (two levels up from worktracker/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

RESET_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MIN_RETENTION_DAYS = 7
MAX_RETENTION_DAYS = 365
DEFAULT_RETENTION_DAYS = 30
DEFAULT_RESET_TIME = "00:00"


def validate_reset_time(value: str) -> str:
    """Return a normalized HH:MM string, or raise SettingsError."""
    if not isinstance(value, str) or not RESET_TIME_PATTERN.match(value.strip()):
        raise SettingsError(f"Invalid time format {value!r}. Use HH:MM format")
    hours, minutes = value.strip().split(":")
    return f"{int(hours):02d}:{minutes}"


def validate_retention_days(value: int | str) -> int:
    """Strict check used when the user changes the setting."""
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise SettingsError(f"Data retention must be a whole number of days, got {value!r}")
    if not MIN_RETENTION_DAYS <= days <= MAX_RETENTION_DAYS:
        raise SettingsError(
            f"Data retention must be between {MIN_RETENTION_DAYS} and {MAX_RETENTION_DAYS} days"
        )
    return days


def clamp_retention_days(value: int | str | None) -> int:
    """Lenient read path: stored values are clamped, garbage falls back to the default."""
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_RETENTION_DAYS
    return max(MIN_RETENTION_DAYS, min(MAX_RETENTION_DAYS, days))


class ResetSettings(BaseModel):
    """Immutable settings snapshot injected into the reset engine."""

    model_config = ConfigDict(frozen=True)

    reset_time: str = DEFAULT_RESET_TIME
    data_retention_days: int = DEFAULT_RETENTION_DAYS
    carry_forward_window_days: int = 7
    archive_retention_days: int = 90
    history_limit: int = 30

    @field_validator("reset_time", mode="before")
    @classmethod
    def check_reset_time(cls, v: str) -> str:
        return validate_reset_time(v)

    @field_validator("data_retention_days", mode="before")
    @classmethod
    def clamp_retention(cls, v: int | str | None) -> int:
        return clamp_retention_days(v)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite document store
    DATABASE_PATH: str = "data/tracker.db"

    # Day boundary
    TIMEZONE: str = "UTC"
    RESET_TIME: str = DEFAULT_RESET_TIME
    DATA_RETENTION_DAYS: int = DEFAULT_RETENTION_DAYS
    CARRY_FORWARD_WINDOW_DAYS: int = 7
    CHECK_INTERVAL_SECONDS: float = 60.0

    # Telegram (optional: without a token the engine runs headless)
    TELEGRAM_BOT_TOKEN: str = ""
    ALLOWED_USER_IDS: list[int] = []
    ANNOUNCE_RESETS: bool = True

    @field_validator("RESET_TIME", mode="before")
    @classmethod
    def parse_reset_time(cls, v: str) -> str:
        return validate_reset_time(v)

    @field_validator("DATA_RETENTION_DAYS", mode="before")
    @classmethod
    def parse_retention(cls, v: str | int) -> int:
        return clamp_retention_days(v)

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("ANNOUNCE_RESETS", mode="before")
    @classmethod
    def parse_bool(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in {"1", "true", "yes", "on"}


def reset_settings(source: Settings | None = None) -> ResetSettings:
    """Build the engine's settings snapshot from application settings."""
    s = source or settings
    return ResetSettings(
        reset_time=s.RESET_TIME,
        data_retention_days=s.DATA_RETENTION_DAYS,
        carry_forward_window_days=s.CARRY_FORWARD_WINDOW_DAYS,
    )


def _load_settings() -> Settings:
    """Load settings from environment."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    if token.startswith("your-"):
        token = ""

    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/tracker.db"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        RESET_TIME=os.getenv("RESET_TIME", DEFAULT_RESET_TIME),
        DATA_RETENTION_DAYS=os.getenv("DATA_RETENTION_DAYS", str(DEFAULT_RETENTION_DAYS)),
        CARRY_FORWARD_WINDOW_DAYS=int(os.getenv("CARRY_FORWARD_WINDOW_DAYS", "7")),
        CHECK_INTERVAL_SECONDS=float(os.getenv("CHECK_INTERVAL_SECONDS", "60")),
        TELEGRAM_BOT_TOKEN=token,
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        ANNOUNCE_RESETS=os.getenv("ANNOUNCE_RESETS", "true"),
    )


# Singleton, imported by the entry point and the bot as:
#   from worktracker.config import settings
settings = _load_settings()
