"""Attendance site synchronization.

Keeps the databases of independently running attendance installations loosely
consistent with a central instance: detects divergence per entity table, applies
approved changes locally and keeps an audit trail of every run.
"""

__version__ = "1.0.0"
__author__ = "Attendance Sync Contributors"
__email__ = ""

from .config import Config
from .exceptions import (
    ApplyError,
    LocationNotFoundError,
    RemoteConnectionError,
    SyncError,
    UnsupportedRecordError,
)

__all__ = [
    "Config",
    "SyncError",
    "ApplyError",
    "LocationNotFoundError",
    "RemoteConnectionError",
    "UnsupportedRecordError",
]
