"""
Work Tracker — Reset Scheduler.

Keeps asking the reset service whether a new day has started:

- a coarse repeating job (every 60 s by default);
- a precise one-shot job for the next reset instant when that is less
  than 24 h away, re-armed after every check and every reset-time change;
- lifecycle signals (the view became visible, the window got focus),
  since wall-clock time may have jumped while timers were suspended.

Timed jobs run on the Telegram bot's JobQueue when one is given, and on a
private APScheduler AsyncIOScheduler when running headless. Every trigger
goes through check(). A trigger that arrives while a reset is running is
dropped, not queued.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from worktracker.core.reset_decision import PRECISE_TIMER_HORIZON

if TYPE_CHECKING:
    from telegram.ext import JobQueue

    from worktracker.core.reset_service import DailyResetService, ResetReport

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0
INTERVAL_JOB = "daily_reset_interval"
PRECISE_JOB = "daily_reset_precise"


class ResetScheduler:
    """Drives DailyResetService.check_and_reset from timed jobs and lifecycle events."""

    def __init__(
        self,
        service: DailyResetService,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        job_queue: JobQueue | None = None,
    ) -> None:
        self._service = service
        self._interval = interval_seconds
        self._job_queue = job_queue
        self._apscheduler: AsyncIOScheduler | None = None
        self._interval_job: Any = None
        self._precise_job: Any = None
        self._running = False
        service.add_reset_time_listener(self._on_reset_time_changed)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def precise_timer_armed(self) -> bool:
        return self._precise_job is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load settings, run the startup check and schedule both jobs."""
        logger.info("Starting daily reset scheduler...")
        await self._service.load_settings()
        tz_changed = await self._service.detect_timezone_change()

        self._running = True
        self._interval_job = self._schedule_repeating(self._interval)
        await self.check("timezone-change" if tz_changed else "startup")
        logger.info("Daily reset scheduler started (checking every %ss)", self._interval)

    async def stop(self) -> None:
        """Remove the jobs and save session state (the shutdown hook)."""
        self._running = False
        self._remove_job(self._interval_job)
        self._remove_job(self._precise_job)
        self._interval_job = None
        self._precise_job = None
        if self._apscheduler is not None and self._apscheduler.running:
            self._apscheduler.shutdown(wait=False)
        self._apscheduler = None
        await self._service.save_session_state()
        await self._service.events.drain()
        logger.info("Daily reset scheduler stopped")

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def check(self, trigger: str = "manual-check") -> ResetReport | None:
        """Single entry point for every trigger."""
        if self._service.reset_in_progress:
            logger.debug("Reset in progress, dropping %s trigger", trigger)
            return None
        try:
            report = await self._service.check_and_reset(trigger)
        finally:
            if self._running:
                self.arm_precise_timer()
        return report

    async def on_visible(self) -> ResetReport | None:
        logger.info("View became visible, checking for daily reset...")
        return await self.check("visible")

    async def on_focus(self) -> ResetReport | None:
        logger.info("Window focused, checking for daily reset...")
        return await self.check("focus")

    async def on_interval(self, context: Any = None) -> None:
        """Repeating job callback. ``context`` is the JobQueue's CallbackContext."""
        await self.check("interval")

    async def on_precise_timer(self, context: Any = None) -> None:
        """One-shot job callback for the reset instant."""
        self._precise_job = None
        await self.check("precise-timer")

    # ------------------------------------------------------------------
    # Precise timer
    # ------------------------------------------------------------------

    def arm_precise_timer(self) -> float | None:
        """(Re)arm the one-shot job. Returns its delay in seconds, or None."""
        self._remove_job(self._precise_job)
        self._precise_job = None

        now = self._service.clock.now()
        upcoming = self._service.next_reset_time(now)
        delay = upcoming - now
        if not (delay.total_seconds() > 0 and delay < PRECISE_TIMER_HORIZON):
            return None

        seconds = delay.total_seconds()
        self._precise_job = self._schedule_once(seconds)
        logger.info("Precise reset timer set for %s", upcoming.isoformat())
        return seconds

    def _on_reset_time_changed(self, reset_time: str) -> None:
        if self._running:
            logger.info("Reset time changed to %s, re-arming timer", reset_time)
            self.arm_precise_timer()

    # ------------------------------------------------------------------
    # Job backends
    # ------------------------------------------------------------------

    def _scheduler(self) -> AsyncIOScheduler:
        """The headless backend, started on first use."""
        if self._apscheduler is None:
            self._apscheduler = AsyncIOScheduler(timezone=timezone.utc)
        if not self._apscheduler.running:
            self._apscheduler.start()
        return self._apscheduler

    def _schedule_repeating(self, seconds: float) -> Any:
        if self._job_queue is not None:
            return self._job_queue.run_repeating(
                self.on_interval, interval=seconds, first=seconds, name=INTERVAL_JOB,
            )
        return self._scheduler().add_job(
            self.on_interval,
            IntervalTrigger(seconds=seconds),
            id=INTERVAL_JOB,
            replace_existing=True,
        )

    def _schedule_once(self, seconds: float) -> Any:
        if self._job_queue is not None:
            return self._job_queue.run_once(self.on_precise_timer, when=seconds, name=PRECISE_JOB)
        run_date = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        return self._scheduler().add_job(
            self.on_precise_timer,
            DateTrigger(run_date=run_date),
            id=PRECISE_JOB,
            replace_existing=True,
        )

    def _remove_job(self, job: Any) -> None:
        if job is None:
            return
        try:
            if self._job_queue is not None:
                job.schedule_removal()
            else:
                job.remove()
        except JobLookupError:
            # One-shot jobs are dropped by the scheduler once they have run.
            pass
