"""Reset announcements — tells users when a day rolled over, or didn't.

Subscribes to the reset event bus and pushes a short message to each
allowed user through the NotificationPort. Delivery failures are logged
per user and never reach the reset engine.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Callable

from worktracker.core.events import DailyResetComplete, DailyResetFailed, ResetEvent

if TYPE_CHECKING:
    from worktracker.core.events import ResetEventBus
    from worktracker.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def format_date(day: str) -> str:
    """'2024-06-01' -> 'Saturday, June 1, 2024'."""
    try:
        d = date.fromisoformat(day)
    except ValueError:
        return day
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def format_reset_event(event: ResetEvent) -> str:
    if isinstance(event, DailyResetFailed):
        phases = ", ".join(event.errors) or "unknown phase"
        return (
            f"❌ Daily reset for {format_date(event.date)} had problems ({phases}).\n"
            "Use /reset to try again."
        )
    return f"✅ Daily checklist reset for {format_date(event.date)}"


async def announce(
    notifier: NotificationPort,
    user_ids: list[int],
    event: ResetEvent,
) -> int:
    """Send the event to every user. Returns how many deliveries succeeded."""
    text = format_reset_event(event)
    sent = 0
    for user_id in user_ids:
        try:
            await notifier.send_message(user_id, text)
            sent += 1
        except Exception as exc:
            logger.error("Failed to announce reset to %d: %s", user_id, exc)
    return sent


def attach_announcer(
    events: ResetEventBus,
    notifier: NotificationPort,
    user_ids: list[int],
) -> Callable[[], None]:
    """Subscribe the announcer. Returns the unsubscribe function."""

    async def _on_event(event: ResetEvent) -> None:
        if isinstance(event, (DailyResetComplete, DailyResetFailed)):
            await announce(notifier, user_ids, event)

    logger.info("Reset announcements enabled for %d users", len(user_ids))
    return events.subscribe(_on_event)
