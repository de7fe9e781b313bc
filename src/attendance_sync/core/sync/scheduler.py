"""Recurring background sync of every active location.

The scheduler owns a two-valued run state. Timer ticks only start a run when
the scheduler is idle and are dropped otherwise; manual triggers wait for the
current run to finish, so at most one run touches the local database at a
time.
"""

import logging
import threading
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Callable, List, Optional

from ...database.location_registry import LocationRegistry
from ...database.models import DEFAULT_SYNC_INTERVAL_MINUTES, RemoteLocation
from .applier import SyncResult
from .service import LocationSyncOutcome, OutcomeKind, Reviewer, SyncService
from .state import PendingChange

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """Run state of the scheduler."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class SyncEvent:
    """Notification raised after a location sync.

    Attributes:
        location: Location that was synced
        message: One-line description of the outcome
        result: Apply result, set for completed syncs
        pending_changes: Detected changes, set for conflict notifications
    """

    location: RemoteLocation
    message: str
    result: Optional[SyncResult] = None
    pending_changes: List[PendingChange] = dataclass_field(default_factory=list)


SyncListener = Callable[[SyncEvent], None]


class SyncScheduler:
    """Runs automatic syncs on a timer and serializes manual ones."""

    def __init__(
        self,
        registry: LocationRegistry,
        sync_service: SyncService,
        default_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES,
    ) -> None:
        """Initialize the scheduler.

        Args:
            registry: Location registry, also holding the settings
            sync_service: Per-location sync workflow
            default_interval_minutes: Interval used until settings are loaded
        """
        self.registry = registry
        self.sync_service = sync_service

        self._enabled = False
        self._interval_minutes = default_interval_minutes

        self._state = SchedulerState.IDLE
        self._state_changed = threading.Condition()

        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._timer_lock = threading.Lock()

        self._completed_listeners: List[SyncListener] = []
        self._conflict_listeners: List[SyncListener] = []

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> SchedulerState:
        """Current run state."""
        with self._state_changed:
            return self._state

    @property
    def is_enabled(self) -> bool:
        """Whether automatic sync is enabled."""
        return self._enabled

    @property
    def interval_minutes(self) -> int:
        """Minutes between timer ticks."""
        return self._interval_minutes

    @property
    def is_timer_running(self) -> bool:
        """Whether the timer thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def _try_begin(self) -> bool:
        with self._state_changed:
            if self._state == SchedulerState.RUNNING:
                return False
            self._state = SchedulerState.RUNNING
            return True

    def _begin_when_idle(self, timeout: Optional[float]) -> bool:
        with self._state_changed:
            if not self._state_changed.wait_for(
                lambda: self._state == SchedulerState.IDLE, timeout=timeout
            ):
                return False
            self._state = SchedulerState.RUNNING
            return True

    def _finish(self) -> None:
        with self._state_changed:
            self._state = SchedulerState.IDLE
            self._state_changed.notify_all()

    # =========================================================================
    # Listeners
    # =========================================================================

    def on_sync_completed(self, listener: SyncListener) -> None:
        """Register a listener for applied syncs."""
        self._completed_listeners.append(listener)

    def on_conflicts_detected(self, listener: SyncListener) -> None:
        """Register a listener for change sets held back for review."""
        self._conflict_listeners.append(listener)

    def _notify(self, listeners: List[SyncListener], event: SyncEvent) -> None:
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Sync listener failed for %s", event.location.location_name
                )

    def _publish(self, outcome: LocationSyncOutcome) -> None:
        if outcome.kind == OutcomeKind.CONFLICTS and outcome.change_set is not None:
            self._notify(
                self._conflict_listeners,
                SyncEvent(
                    location=outcome.location,
                    message=outcome.message,
                    pending_changes=list(outcome.change_set.changes),
                ),
            )
        elif outcome.kind == OutcomeKind.APPLIED:
            self._notify(
                self._completed_listeners,
                SyncEvent(
                    location=outcome.location,
                    message=outcome.message,
                    result=outcome.result,
                ),
            )

    # =========================================================================
    # Timer
    # =========================================================================

    def initialize(self) -> None:
        """Load settings from the registry and start the timer if enabled."""
        settings = self.registry.get_sync_settings()
        self._enabled = settings.auto_sync_enabled
        self._interval_minutes = settings.sync_interval_minutes
        logger.info(
            "Scheduler initialized: enabled=%s, interval=%s min",
            self._enabled,
            self._interval_minutes,
        )
        if self._enabled:
            self.start()

    def start(self) -> None:
        """Start the timer thread. The first tick fires after one interval."""
        with self._timer_lock:
            if self.is_timer_running:
                logger.debug("Scheduler timer already running")
                return

            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._timer_loop,
                args=(self._stop_event, self._interval_minutes * 60),
                name="attendance-sync-scheduler",
                daemon=True,
            )
            self._thread.start()
            logger.info(
                "Scheduler started (interval: %s min)", self._interval_minutes
            )

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """Stop the timer. A run already in progress is left to finish.

        Args:
            wait: Join the timer thread, which includes an in-flight run
            timeout: Seconds to wait when joining
        """
        with self._timer_lock:
            if self._stop_event is not None:
                self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None

        if thread is not None:
            logger.info("Scheduler stopped")
            if wait and thread is not threading.current_thread():
                thread.join(timeout)

    def update_settings(self, enabled: bool, interval_minutes: int) -> None:
        """Persist new settings and restart the timer with them.

        Raises:
            ValueError: If the interval is not a positive number of minutes
        """
        self.registry.update_sync_settings(enabled, interval_minutes)
        self._enabled = enabled
        self._interval_minutes = interval_minutes

        self.stop()
        if enabled:
            self.start()

    def refresh_settings(self) -> bool:
        """Pick up settings changed by another process.

        Returns:
            True if the settings differed and the timer was restarted or stopped
        """
        settings = self.registry.get_sync_settings()
        if (
            settings.auto_sync_enabled == self._enabled
            and settings.sync_interval_minutes == self._interval_minutes
        ):
            return False

        logger.info(
            "Sync settings changed: enabled=%s, interval=%s min",
            settings.auto_sync_enabled,
            settings.sync_interval_minutes,
        )
        self._enabled = settings.auto_sync_enabled
        self._interval_minutes = settings.sync_interval_minutes
        self.stop()
        if self._enabled:
            self.start()
        return True

    def _timer_loop(self, stop_event: threading.Event, interval_seconds: float) -> None:
        while not stop_event.wait(interval_seconds):
            self.tick()

    def tick(self) -> None:
        """Run once unless a run is already in progress.

        Never raises; a failed run is logged and retried on the next tick.
        """
        try:
            if self.run_once() is None:
                logger.debug("Scheduler tick dropped, previous run still in progress")
        except Exception:
            logger.exception("Scheduled sync run failed")

    # =========================================================================
    # Runs
    # =========================================================================

    def _sync_guarded(
        self,
        location_id: int,
        action: Callable[[RemoteLocation], LocationSyncOutcome],
    ) -> Optional[LocationSyncOutcome]:
        """Run one location sync, recording unexpected errors as its status."""
        location: Optional[RemoteLocation] = None
        try:
            location = self.registry.require(location_id)
            outcome = action(location)
        except Exception as e:
            name = location.location_name if location else location_id
            logger.exception("Sync of %s failed", name)
            try:
                self.registry.update_sync_status(location_id, f"Error: {e}")
            except Exception as status_error:
                logger.error(
                    "Could not record error status for %s: %s", name, status_error
                )
            return None

        logger.info("%s", outcome.message)
        self._publish(outcome)
        return outcome

    def run_once(self) -> Optional[List[LocationSyncOutcome]]:
        """Sync every active location automatically, one after another.

        Returns:
            Outcomes of the locations that finished without an unexpected
            error, or None if another run was in progress
        """
        if not self._try_begin():
            return None

        try:
            outcomes: List[LocationSyncOutcome] = []
            locations = self.registry.get_active()
            logger.info("Scheduled sync of %d location(s)", len(locations))
            for location in locations:
                outcome = self._sync_guarded(
                    location.location_id, self.sync_service.sync_location_auto
                )
                if outcome is not None:
                    outcomes.append(outcome)
            return outcomes
        finally:
            self._finish()

    def sync_now(
        self,
        location_id: int,
        reviewer: Optional[Reviewer] = None,
        timeout: Optional[float] = None,
    ) -> Optional[LocationSyncOutcome]:
        """Manually sync one location once the scheduler is idle.

        Args:
            location_id: Location to sync
            reviewer: Approves or rejects changes; conflicts are rejected
                when omitted
            timeout: Seconds to wait for a running sync to finish

        Returns:
            The outcome, or None if the sync failed unexpectedly

        Raises:
            LocationNotFoundError: If the location is not registered
            TimeoutError: If the scheduler did not become idle in time
        """
        self.registry.require(location_id)
        if not self._begin_when_idle(timeout):
            raise TimeoutError("A sync is still in progress")

        try:
            return self._sync_guarded(
                location_id,
                lambda location: self.sync_service.sync_location_manual(
                    location, reviewer
                ),
            )
        finally:
            self._finish()

    def sync_all_now(self, timeout: Optional[float] = None) -> List[LocationSyncOutcome]:
        """Manually sync every active location, rejecting conflicts.

        Raises:
            TimeoutError: If the scheduler did not become idle in time
        """
        if not self._begin_when_idle(timeout):
            raise TimeoutError("A sync is still in progress")

        try:
            outcomes: List[LocationSyncOutcome] = []
            for location in self.registry.get_active():
                outcome = self._sync_guarded(
                    location.location_id, self.sync_service.sync_location_manual
                )
                if outcome is not None:
                    outcomes.append(outcome)
            return outcomes
        finally:
            self._finish()
