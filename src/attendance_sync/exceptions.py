"""Exceptions raised by the synchronization engine."""


class SyncError(Exception):
    """Base class for synchronization errors."""


class LocationNotFoundError(SyncError):
    """Raised when a remote location id is not in the registry."""

    def __init__(self, location_id: int) -> None:
        """Initialize with the missing location id."""
        super().__init__(f"Remote location not found: {location_id}")
        self.location_id = location_id


class RemoteConnectionError(SyncError):
    """Raised when a remote location cannot be reached."""


class ApplyError(SyncError):
    """Raised when a single pending change cannot be applied locally."""


class UnsupportedRecordError(ApplyError):
    """Raised when a pending change carries a record type with no applier."""
