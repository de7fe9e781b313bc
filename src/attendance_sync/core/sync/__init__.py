"""Synchronization module.

Handles change detection, apply, per-location workflow and scheduling.
"""

from .applier import ChangeApplier, SyncResult, normalize_badge
from .detector import SYNC_EPOCH, ChangeDetector
from .probe import ConnectivityProbe, create_remote_engine, remote_engine_factory
from .records import (
    TRACKED_TABLES,
    AttendanceLogRecord,
    DepartmentRecord,
    EmployeeExceptionRecord,
    ExceptionTypeRecord,
    MachineRecord,
    RemoteRecord,
    ShiftRecord,
    UserRecord,
)
from .scheduler import SchedulerState, SyncEvent, SyncScheduler
from .service import LocationSyncOutcome, OutcomeKind, SyncService
from .state import ChangeType, PendingChange, PendingChangeSet

__all__ = [
    # Records
    "RemoteRecord",
    "UserRecord",
    "DepartmentRecord",
    "ShiftRecord",
    "MachineRecord",
    "ExceptionTypeRecord",
    "EmployeeExceptionRecord",
    "AttendanceLogRecord",
    "TRACKED_TABLES",
    # Pending changes
    "ChangeType",
    "PendingChange",
    "PendingChangeSet",
    # Engine
    "ConnectivityProbe",
    "create_remote_engine",
    "remote_engine_factory",
    "ChangeDetector",
    "SYNC_EPOCH",
    "ChangeApplier",
    "SyncResult",
    "normalize_badge",
    # Workflow
    "SyncService",
    "LocationSyncOutcome",
    "OutcomeKind",
    "SyncScheduler",
    "SchedulerState",
    "SyncEvent",
]
