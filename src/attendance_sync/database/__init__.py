"""Local database layer: models, engine/session service and the location registry."""

from .location_registry import LocationRegistry
from .models import (
    AttendanceLog,
    Base,
    Department,
    EmployeeException,
    ExceptionType,
    Machine,
    RemoteLocation,
    Shift,
    SyncHistory,
    SyncSettings,
    SyncStatus,
    SyncType,
    User,
)
from .service import DatabaseService

__all__ = [
    # Models
    "Base",
    "RemoteLocation",
    "SyncHistory",
    "SyncSettings",
    "SyncStatus",
    "SyncType",
    "User",
    "Department",
    "Shift",
    "Machine",
    "ExceptionType",
    "EmployeeException",
    "AttendanceLog",
    # Services
    "DatabaseService",
    "LocationRegistry",
]
