"""
Work Tracker — Daily Reset Service.

Runs the rollover from one tracker day to the next as a fixed sequence of
phases:

    archiving -> checklist materialization -> todo carryforward
    -> meeting reset -> retention cleanup -> bookkeeping update
    -> notify complete

Every phase is best-effort. A phase that fails is logged and recorded in
the run's ResetReport, and the next phase still runs; the reset prefers
resilience over atomicity. Bookkeeping is written only after all earlier
phases were attempted, so an interrupted run is detected and retried on
the next check.

Collaborators (storage, clock, settings snapshot, event bus) are injected;
the service keeps no module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import ValidationError

from worktracker.config import (
    ResetSettings,
    clamp_retention_days,
    validate_reset_time,
    validate_retention_days,
)
from worktracker.core.archiver import archive_day
from worktracker.core.carryforward import carry_forward
from worktracker.core.checklist_materializer import materialize_today
from worktracker.core.errors import SettingsError
from worktracker.core.events import DailyResetComplete, DailyResetFailed, ResetEventBus
from worktracker.core.meeting_reset import reset_meeting_status
from worktracker.core.reset_decision import (
    ResetDecision,
    ResetReason,
    SessionGapInfo,
    TimeUntilReset,
    days_ago,
    next_reset_time,
    session_gap_info,
    should_reset,
    time_until_next_reset,
    today_in,
)
from worktracker.core.retention import prune
from worktracker.data.models import (
    ResetBookkeeping,
    ResetHistoryEntry,
    ResetType,
    SessionState,
)

if TYPE_CHECKING:
    from worktracker.ports.clock_port import ClockPort
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

BOOKKEEPING_KEY = "reset_bookkeeping"
SETTINGS_KEY = "app_settings"
SESSION_KEY = "daily_reset_session"
TIMEZONE_KEY = "app_timezone"


class ResetPhase(str, Enum):
    IDLE = "idle"
    ARCHIVING = "archiving"
    CHECKLIST_MATERIALIZATION = "checklist_materialization"
    TODO_CARRYFORWARD = "todo_carryforward"
    MEETING_RESET = "meeting_reset"
    RETENTION_CLEANUP = "retention_cleanup"
    BOOKKEEPING_UPDATE = "bookkeeping_update"
    NOTIFY_COMPLETE = "notify_complete"


@dataclass
class PhaseOutcome:
    phase: ResetPhase
    ok: bool
    result: Any = None
    error: str | None = None


@dataclass
class ResetReport:
    """What one run of the reset did, phase by phase."""

    date: str
    timestamp: str
    reset_type: ResetType
    reason: ResetReason
    phases: list[PhaseOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(p.ok for p in self.phases)

    @property
    def errors(self) -> dict[str, str]:
        return {p.phase.value: p.error or "" for p in self.phases if not p.ok}

    def result_of(self, phase: ResetPhase) -> Any:
        for outcome in self.phases:
            if outcome.phase == phase:
                return outcome.result
        return None


@dataclass
class ResetStats:
    last_reset_date: str | None
    next_reset_time: datetime
    total_resets: int
    recent_resets: list[ResetHistoryEntry]
    reset_time: str
    is_reset_due: bool
    time_until_next_reset: TimeUntilReset


class DailyResetService:
    """Decides when a new day starts and carries tracker state across it."""

    def __init__(
        self,
        storage: StoragePort,
        clock: ClockPort,
        config: ResetSettings | None = None,
        events: ResetEventBus | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._config = config or ResetSettings()
        self.events = events or ResetEventBus()

        self._reset_time = self._config.reset_time
        self._retention_days = self._config.data_retention_days
        self._reset_in_progress = False
        self._phase = ResetPhase.IDLE
        self._reset_time_listeners: list[Callable[[str], Any]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def reset_in_progress(self) -> bool:
        return self._reset_in_progress

    @property
    def phase(self) -> ResetPhase:
        return self._phase

    @property
    def reset_time(self) -> str:
        return self._reset_time

    @property
    def data_retention_days(self) -> int:
        return self._retention_days

    @property
    def clock(self) -> ClockPort:
        return self._clock

    def today(self, now: datetime | None = None) -> str:
        return today_in(now or self._clock.now(), self._clock.timezone)

    def next_reset_time(self, now: datetime | None = None) -> datetime:
        return next_reset_time(now or self._clock.now(), self._reset_time, self._clock.timezone)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_settings(self) -> None:
        """Pick up user-changed settings persisted under app_settings."""
        try:
            stored = await self._storage.get(SETTINGS_KEY) or {}
        except Exception as exc:
            logger.error("Failed to load daily reset settings: %s", exc)
            return

        if stored.get("reset_time"):
            try:
                self._reset_time = validate_reset_time(stored["reset_time"])
            except SettingsError as exc:
                logger.warning("Ignoring stored reset time: %s", exc)
        if "data_retention_days" in stored:
            self._retention_days = clamp_retention_days(stored["data_retention_days"])

        logger.info(
            "Daily reset settings loaded. Reset time: %s, retention: %d days",
            self._reset_time, self._retention_days,
        )

    async def load_bookkeeping(self) -> ResetBookkeeping | None:
        """The stored bookkeeping, or None when missing or unreadable."""
        raw = await self._storage.get(BOOKKEEPING_KEY)
        if raw is None:
            return None
        try:
            return ResetBookkeeping.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Reset bookkeeping unreadable, will re-bootstrap: %s", exc)
            return None

    async def load_session_gap(self, now: datetime) -> SessionGapInfo | None:
        raw = await self._storage.get(SESSION_KEY)
        if raw is None:
            return None
        try:
            session = SessionState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Session state unreadable: %s", exc)
            return None
        return session_gap_info(session, now, self._clock.timezone)

    async def save_session_state(self, now: datetime | None = None) -> None:
        """Remember when this session was last active and what day it was."""
        now = now or self._clock.now()
        state = SessionState(
            last_active_time=now.isoformat(),
            current_date=self.today(now),
            user_timezone=self._clock.timezone_name,
        )
        try:
            await self._storage.set(SESSION_KEY, state.model_dump())
        except Exception as exc:
            logger.error("Error saving session state: %s", exc)

    async def detect_timezone_change(self) -> bool:
        """Compare the clock's zone with the one seen last run, then record it."""
        current = self._clock.timezone_name
        try:
            saved = await self._storage.get(TIMEZONE_KEY)
            await self._storage.set(TIMEZONE_KEY, current)
        except Exception as exc:
            logger.error("Error checking timezone change: %s", exc)
            return False
        if saved and saved != current:
            logger.info("Timezone changed from %s to %s", saved, current)
            return True
        logger.info("Timezone detected: %s", current)
        return False

    # ------------------------------------------------------------------
    # Deciding
    # ------------------------------------------------------------------

    async def evaluate(self, now: datetime | None = None) -> ResetDecision:
        """Load bookkeeping and session state, then ask the decision rules."""
        now = now or self._clock.now()
        bookkeeping = await self.load_bookkeeping()
        if bookkeeping is not None:
            bookkeeping = bookkeeping.model_copy(update={"reset_time": self._reset_time})
        session = await self.load_session_gap(now)
        return should_reset(now, bookkeeping, session, self._clock.timezone)

    async def check_and_reset(self, trigger: str = "check") -> ResetReport | None:
        """Run a reset if one is due. Never raises.

        Every check counts as activity: the session state is refreshed even
        when no reset runs, so a process that stays up overnight is not
        mistaken for one that was idle.
        """
        if self._reset_in_progress:
            logger.info("Reset already in progress, skipping %s trigger", trigger)
            return None

        now = self._clock.now()
        try:
            decision = await self.evaluate(now)
        except Exception as exc:
            # Could not even read bookkeeping: an extra reset beats a missed one.
            logger.error("Error during daily reset check (%s): %s", trigger, exc)
            decision = ResetDecision(True, ResetReason.BOOTSTRAP)

        if not decision.needed:
            logger.debug("No daily reset needed (%s, %s)", trigger, decision.reason.value)
            await self.save_session_state(now)
            return None

        logger.info("Daily reset needed (%s), triggered by %s", decision.reason.value, trigger)
        return await self.perform_reset(ResetType.AUTOMATIC, decision.reason)

    # ------------------------------------------------------------------
    # Executing
    # ------------------------------------------------------------------

    async def perform_manual_reset(self) -> ResetReport | None:
        """User-requested reset; recorded in history as manual."""
        logger.info("Performing manual daily reset...")
        return await self.perform_reset(ResetType.MANUAL, ResetReason.MANUAL)

    async def perform_reset(
        self,
        reset_type: ResetType = ResetType.AUTOMATIC,
        reason: ResetReason = ResetReason.DAY_ROLLED,
    ) -> ResetReport | None:
        """Run every phase once. Returns None if another run holds the guard."""
        if self._reset_in_progress:
            logger.info("Reset already in progress, skipping")
            return None

        self._reset_in_progress = True
        try:
            now = self._clock.now()
            today = self.today(now)
            report = ResetReport(
                date=today,
                timestamp=now.isoformat(),
                reset_type=reset_type,
                reason=reason,
            )
            logger.info("Performing daily reset for %s (%s)", today, reason.value)

            try:
                previous = await self.load_bookkeeping()
            except Exception as exc:
                logger.error("Could not read reset bookkeeping: %s", exc)
                previous = None

            archive_date = self._archive_date(previous, today)

            await self._run_phase(
                report, ResetPhase.ARCHIVING,
                lambda: archive_day(self._storage, archive_date, now),
            )
            await self._run_phase(
                report, ResetPhase.CHECKLIST_MATERIALIZATION,
                lambda: materialize_today(self._storage, today, now),
            )
            await self._run_phase(
                report, ResetPhase.TODO_CARRYFORWARD,
                lambda: carry_forward(
                    self._storage, today,
                    days_ago(today, self._config.carry_forward_window_days), now,
                ),
            )
            await self._run_phase(
                report, ResetPhase.MEETING_RESET,
                lambda: reset_meeting_status(self._storage, today, now),
            )
            await self._run_phase(
                report, ResetPhase.RETENTION_CLEANUP,
                lambda: prune(
                    self._storage,
                    days_ago(today, self._retention_days),
                    days_ago(today, self._config.archive_retention_days),
                ),
            )
            await self._run_phase(
                report, ResetPhase.BOOKKEEPING_UPDATE,
                lambda: self._update_bookkeeping(report, now),
            )
            await self._run_phase(
                report, ResetPhase.NOTIFY_COMPLETE,
                lambda: self._notify(report),
            )

            if report.succeeded:
                logger.info("Daily reset completed successfully for %s", today)
            else:
                logger.warning(
                    "Daily reset for %s finished with failed phases: %s",
                    today, ", ".join(report.errors),
                )
            return report
        finally:
            self._phase = ResetPhase.IDLE
            self._reset_in_progress = False

    async def _run_phase(
        self,
        report: ResetReport,
        phase: ResetPhase,
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        self._phase = phase
        try:
            result = await action()
        except Exception as exc:
            logger.error("Daily reset phase %s failed: %s", phase.value, exc)
            report.phases.append(PhaseOutcome(phase, ok=False, error=str(exc)))
            return
        report.phases.append(PhaseOutcome(phase, ok=True, result=result))

    @staticmethod
    def _archive_date(previous: ResetBookkeeping | None, today: str) -> str:
        """The last day the tracker was live; yesterday if unknown."""
        if previous is not None and previous.last_reset_date:
            if previous.last_reset_date < today:
                return previous.last_reset_date
        return days_ago(today, 1)

    async def _update_bookkeeping(self, report: ResetReport, now: datetime) -> ResetBookkeeping:
        # Re-read: a settings change may have landed while the phases ran.
        bookkeeping = await self.load_bookkeeping() or ResetBookkeeping()

        if bookkeeping.last_reset_date and bookkeeping.last_reset_date > report.date:
            logger.warning(
                "Keeping last reset date %s; %s would move it backward",
                bookkeeping.last_reset_date, report.date,
            )
        else:
            bookkeeping.last_reset_date = report.date
        bookkeeping.last_reset_timestamp = now.isoformat()
        bookkeeping.reset_time = self._reset_time
        bookkeeping.history.append(
            ResetHistoryEntry(
                date=report.date,
                timestamp=now.isoformat(),
                type=report.reset_type,
                reason=report.reason.value,
            )
        )
        bookkeeping.history = bookkeeping.history[-self._config.history_limit:]

        await self._storage.set(BOOKKEEPING_KEY, bookkeeping.model_dump(mode="json"))
        await self.save_session_state(now)
        return bookkeeping

    async def _notify(self, report: ResetReport) -> None:
        self.events.publish(DailyResetComplete(date=report.date, timestamp=report.timestamp))
        if not report.succeeded:
            self.events.publish(
                DailyResetFailed(date=report.date, timestamp=report.timestamp, errors=report.errors)
            )

    # ------------------------------------------------------------------
    # Settings surface
    # ------------------------------------------------------------------

    def add_reset_time_listener(self, callback: Callable[[str], Any]) -> None:
        """Called with the new HH:MM after every accepted reset-time change."""
        self._reset_time_listeners.append(callback)

    async def update_reset_time(self, new_reset_time: str) -> str:
        """Validate and persist a new reset time. Raises SettingsError if malformed."""
        value = validate_reset_time(new_reset_time)
        now = self._clock.now()

        stored = await self._storage.get(SETTINGS_KEY) or {}
        stored["reset_time"] = value
        await self._storage.set(SETTINGS_KEY, stored)

        bookkeeping = await self.load_bookkeeping() or ResetBookkeeping()
        bookkeeping.reset_time = value
        bookkeeping.reset_time_changed_at = now.isoformat()
        await self._storage.set(BOOKKEEPING_KEY, bookkeeping.model_dump(mode="json"))

        self._reset_time = value
        logger.info("Reset time updated to %s", value)

        for callback in list(self._reset_time_listeners):
            try:
                callback(value)
            except Exception as exc:
                logger.error("Reset time listener failed: %s", exc)
        return value

    async def update_retention_days(self, days: int | str) -> int:
        """Validate and persist the retention horizon. Raises SettingsError if out of range."""
        value = validate_retention_days(days)
        stored = await self._storage.get(SETTINGS_KEY) or {}
        stored["data_retention_days"] = value
        await self._storage.set(SETTINGS_KEY, stored)
        self._retention_days = value
        logger.info("Data retention updated to %d days", value)
        return value

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_reset_stats(self) -> ResetStats | None:
        try:
            now = self._clock.now()
            bookkeeping = await self.load_bookkeeping() or ResetBookkeeping()
            decision = await self.evaluate(now)
            return ResetStats(
                last_reset_date=bookkeeping.last_reset_date,
                next_reset_time=self.next_reset_time(now),
                total_resets=len(bookkeeping.history),
                recent_resets=bookkeeping.history[-7:],
                reset_time=self._reset_time,
                is_reset_due=decision.needed,
                time_until_next_reset=time_until_next_reset(
                    now, self._reset_time, self._clock.timezone,
                ),
            )
        except Exception as exc:
            logger.error("Error getting reset stats: %s", exc)
            return None
