"""Reset notifications — publish/subscribe between the engine and its views.

The engine publishes; view-owning collaborators subscribe. Publishing
never waits on a subscriber: plain callables run inline, coroutine
callables are scheduled on the running loop. A failing subscriber is
logged and does not affect the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyResetComplete:
    date: str
    timestamp: str


@dataclass(frozen=True)
class DailyResetFailed:
    date: str
    timestamp: str
    errors: dict[str, str] = field(default_factory=dict)


ResetEvent = Union[DailyResetComplete, DailyResetFailed]
Subscriber = Callable[[ResetEvent], Any]


class ResetEventBus:
    """In-process fan-out of reset events."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: ResetEvent) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
            except Exception as exc:
                logger.error("Reset subscriber %r failed: %s", callback, exc)
                continue
            if inspect.isawaitable(result):
                self._schedule(callback, result)

    def _schedule(self, callback: Subscriber, awaitable: Any) -> None:
        async def _guarded() -> None:
            try:
                await awaitable
            except Exception as exc:
                logger.error("Reset subscriber %r failed: %s", callback, exc)

        task = asyncio.ensure_future(_guarded())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled subscriber coroutines. Used at shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
