"""Tests for worktracker.core.events — ResetEventBus."""

from unittest.mock import MagicMock

import pytest

from worktracker.core.events import DailyResetComplete, DailyResetFailed, ResetEventBus

EVENT = DailyResetComplete(date="2024-06-01", timestamp="2024-06-01T00:00:00+00:00")


class TestResetEventBus:
    def test_sync_subscriber_called_inline(self):
        bus = ResetEventBus()
        callback = MagicMock(return_value=None)
        bus.subscribe(callback)

        bus.publish(EVENT)

        callback.assert_called_once_with(EVENT)

    def test_unsubscribe(self):
        bus = ResetEventBus()
        callback = MagicMock(return_value=None)
        unsubscribe = bus.subscribe(callback)
        unsubscribe()
        unsubscribe()  # second call is a no-op

        bus.publish(EVENT)

        callback.assert_not_called()

    def test_failing_subscriber_does_not_block_others(self):
        bus = ResetEventBus()
        bad = MagicMock(side_effect=RuntimeError("view gone"))
        good = MagicMock(return_value=None)
        bus.subscribe(bad)
        bus.subscribe(good)

        bus.publish(EVENT)

        good.assert_called_once_with(EVENT)

    @pytest.mark.asyncio
    async def test_async_subscriber_scheduled_and_drained(self):
        bus = ResetEventBus()
        seen = []

        async def on_event(event):
            seen.append(event)

        bus.subscribe(on_event)
        bus.publish(EVENT)
        await bus.drain()

        assert seen == [EVENT]

    @pytest.mark.asyncio
    async def test_failing_async_subscriber_is_contained(self):
        bus = ResetEventBus()
        seen = []

        async def broken(event):
            raise RuntimeError("boom")

        async def fine(event):
            seen.append(event)

        bus.subscribe(broken)
        bus.subscribe(fine)
        bus.publish(EVENT)
        await bus.drain()

        assert seen == [EVENT]

    def test_failed_event_carries_errors(self):
        event = DailyResetFailed(
            date="2024-06-01",
            timestamp="2024-06-01T00:00:00+00:00",
            errors={"retention_cleanup": "disk full"},
        )
        assert event.errors["retention_cleanup"] == "disk full"
