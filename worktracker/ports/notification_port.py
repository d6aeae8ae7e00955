"""Notification port — how reset outcomes reach the people using the tracker.

The reset announcer depends on this protocol, never on a specific
messaging provider.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Sends one text message to one user."""

    async def send_message(self, user_id: int, text: str) -> None: ...
