"""Per-location sync workflow.

Composes the probe, detector, applier, registry and report into the two paths
a location can be synced through:

- automatic: conflict-free change sets are approved and applied, change sets
  with conflicts are returned for review
- manual: an optional reviewer approves or rejects each change, or cancels
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ...database.location_registry import LocationRegistry
from ...database.models import RemoteLocation, SyncStatus, SyncType
from ...utils.sync_report import SyncReport
from .applier import ChangeApplier, SyncResult
from .detector import ChangeDetector
from .probe import ConnectivityProbe
from .state import PendingChangeSet

logger = logging.getLogger(__name__)

# Returns False to cancel the sync; approves/rejects changes in place
Reviewer = Callable[[RemoteLocation, PendingChangeSet], bool]


class OutcomeKind(str, Enum):
    """How a location sync ended."""

    CONNECTION_FAILED = "connection_failed"
    NO_CHANGES = "no_changes"
    CONFLICTS = "conflicts"
    CANCELLED = "cancelled"
    APPLIED = "applied"


@dataclass
class LocationSyncOutcome:
    """Result of syncing one location."""

    location: RemoteLocation
    kind: OutcomeKind
    message: str
    change_set: Optional[PendingChangeSet] = None
    result: Optional[SyncResult] = None

    @property
    def applied(self) -> bool:
        """Whether an apply pass ran."""
        return self.kind == OutcomeKind.APPLIED


class SyncService:
    """Runs the probe, detect and apply steps for a single location."""

    def __init__(
        self,
        registry: LocationRegistry,
        probe: ConnectivityProbe,
        detector: ChangeDetector,
        applier: ChangeApplier,
        report: Optional[SyncReport] = None,
    ) -> None:
        """Initialize the service.

        Args:
            registry: Location registry
            probe: Connectivity probe run before detection
            detector: Change detector
            applier: Change applier
            report: Optional sync report file writer
        """
        self.registry = registry
        self.probe = probe
        self.detector = detector
        self.applier = applier
        self.report = report

    def _check_connection(self, location: RemoteLocation) -> bool:
        reachable = self.probe.test_connection(location)
        if self.report:
            self.report.log_connection_test(location.location_name, reachable)
        if not reachable:
            self.registry.update_sync_status(
                location.location_id, SyncStatus.CONNECTION_FAILED.value
            )
        return reachable

    def _connection_failed(self, location: RemoteLocation) -> LocationSyncOutcome:
        return LocationSyncOutcome(
            location=location,
            kind=OutcomeKind.CONNECTION_FAILED,
            message=f"Cannot connect to {location.location_name}",
        )

    def _apply(
        self,
        location: RemoteLocation,
        change_set: PendingChangeSet,
        sync_type: SyncType,
    ) -> LocationSyncOutcome:
        if self.report:
            self.report.log_sync_start(location.location_name, len(change_set))

        # A partial detection must be rescanned from the same watermark
        watermark = None if change_set.is_partial else change_set.detected_at
        result = self.applier.apply(
            change_set.changes,
            location.location_id,
            sync_type=sync_type,
            watermark=watermark,
            location_name=location.location_name,
        )

        if self.report:
            self.report.log_sync_result(location.location_name, result)

        return LocationSyncOutcome(
            location=location,
            kind=OutcomeKind.APPLIED,
            message=result.message,
            change_set=change_set,
            result=result,
        )

    def _no_changes(
        self, location: RemoteLocation, change_set: PendingChangeSet
    ) -> LocationSyncOutcome:
        if self.report:
            self.report.log_no_changes(location.location_name)
        return LocationSyncOutcome(
            location=location,
            kind=OutcomeKind.NO_CHANGES,
            message=f"No changes at {location.location_name}",
            change_set=change_set,
        )

    def detect(self, location: RemoteLocation) -> PendingChangeSet:
        """Run detection for a location without applying anything."""
        return self.detector.detect(location)

    def sync_location_auto(self, location: RemoteLocation) -> LocationSyncOutcome:
        """Sync a location without human review.

        Change sets containing a conflict are returned untouched; nothing is
        applied for that location. An empty change set writes no history row.
        """
        if not self._check_connection(location):
            return self._connection_failed(location)

        change_set = self.detector.detect(location)

        if change_set.has_conflicts:
            conflicts = len(change_set.conflicts())
            logger.info(
                "%d conflict(s) at %s, waiting for review",
                conflicts,
                location.location_name,
            )
            return LocationSyncOutcome(
                location=location,
                kind=OutcomeKind.CONFLICTS,
                message=f"Found {conflicts} conflicts at {location.location_name}",
                change_set=change_set,
            )

        if not change_set.has_changes():
            return self._no_changes(location, change_set)

        change_set.approve_all()
        return self._apply(location, change_set, SyncType.AUTO)

    def sync_location_manual(
        self, location: RemoteLocation, reviewer: Optional[Reviewer] = None
    ) -> LocationSyncOutcome:
        """Sync a location on operator request.

        Without a reviewer, conflicts are rejected and every other change is
        applied. The apply pass always writes a history row, even when every
        change was rejected.

        Args:
            location: Location to sync
            reviewer: Approves or rejects changes in place; returning False
                cancels the sync
        """
        if not self._check_connection(location):
            return self._connection_failed(location)

        change_set = self.detector.detect(location)

        if not change_set.has_changes():
            self.registry.update_sync_status(
                location.location_id, SyncStatus.NO_CHANGES.value
            )
            return self._no_changes(location, change_set)

        if reviewer is not None:
            if not reviewer(location, change_set):
                logger.info("Sync of %s cancelled by reviewer", location.location_name)
                return LocationSyncOutcome(
                    location=location,
                    kind=OutcomeKind.CANCELLED,
                    message=f"Sync of {location.location_name} cancelled",
                    change_set=change_set,
                )
        else:
            rejected = change_set.reject_conflicts()
            if rejected:
                logger.info(
                    "Rejected %d conflict(s) at %s", rejected, location.location_name
                )

        return self._apply(location, change_set, SyncType.MANUAL)
