"""Durable store of remote locations, sync settings and sync history."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import joinedload

from ..exceptions import LocationNotFoundError
from .models import (
    DEFAULT_REMOTE_PORT,
    DEFAULT_SYNC_INTERVAL_MINUTES,
    STATUS_MAX_LENGTH,
    Base,
    RemoteLocation,
    SyncHistory,
    SyncSettings,
    SyncStatus,
    SyncType,
)
from .service import DatabaseService

if TYPE_CHECKING:
    from ..core.sync.applier import SyncResult

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "location_name",
        "host",
        "port",
        "database_name",
        "username",
        "password",
        "is_active",
    }
)


def truncate_status(status: str) -> str:
    """Fit a status label into the ``last_sync_status`` column."""
    if len(status) > STATUS_MAX_LENGTH:
        return status[: STATUS_MAX_LENGTH - 3] + "..."
    return status


class LocationRegistry:
    """Data access for ``remote_locations``, ``sync_history`` and ``sync_settings``.

    Every method opens its own short-lived session. Returned ORM objects are
    detached but fully loaded.
    """

    def __init__(self, db_service: DatabaseService) -> None:
        """Initialize the registry.

        Args:
            db_service: Local database service
        """
        self.db_service = db_service

    def ensure_schema(self) -> None:
        """Create the registry tables and the default settings row if missing."""
        tables = [
            Base.metadata.tables[name]
            for name in ("remote_locations", "sync_history", "sync_settings")
        ]
        Base.metadata.create_all(bind=self.db_service.engine, tables=tables)

        with self.db_service.get_session() as session:
            if session.scalar(select(SyncSettings).limit(1)) is None:
                session.add(
                    SyncSettings(
                        auto_sync_enabled=False,
                        sync_interval_minutes=DEFAULT_SYNC_INTERVAL_MINUTES,
                    )
                )
                session.commit()
                logger.info("Created default sync settings")

    # =========================================================================
    # Locations
    # =========================================================================

    def get_all(self) -> List[RemoteLocation]:
        """Get all locations ordered by name."""
        with self.db_service.get_session() as session:
            stmt = select(RemoteLocation).order_by(RemoteLocation.location_name)
            return list(session.scalars(stmt).all())

    def get_active(self) -> List[RemoteLocation]:
        """Get locations with ``is_active`` set, ordered by name."""
        with self.db_service.get_session() as session:
            stmt = (
                select(RemoteLocation)
                .where(RemoteLocation.is_active.is_(True))
                .order_by(RemoteLocation.location_name)
            )
            return list(session.scalars(stmt).all())

    def get_by_id(self, location_id: int) -> Optional[RemoteLocation]:
        """Get a location by id.

        Args:
            location_id: Location id

        Returns:
            RemoteLocation or None if not found
        """
        with self.db_service.get_session() as session:
            return session.get(RemoteLocation, location_id)

    def require(self, location_id: int) -> RemoteLocation:
        """Get a location by id or raise LocationNotFoundError."""
        location = self.get_by_id(location_id)
        if location is None:
            raise LocationNotFoundError(location_id)
        return location

    def add(
        self,
        location_name: str,
        host: str,
        database_name: str,
        username: str,
        password: str,
        port: int = DEFAULT_REMOTE_PORT,
        is_active: bool = True,
    ) -> RemoteLocation:
        """Register a new remote location.

        Returns:
            Created RemoteLocation
        """
        with self.db_service.get_session() as session:
            location = RemoteLocation(
                location_name=location_name,
                host=host,
                port=port,
                database_name=database_name,
                username=username,
                password=password,
                is_active=is_active,
            )
            session.add(location)
            session.commit()
            session.refresh(location)
            logger.info(
                "Added location: %s (ID: %s)",
                location.location_name,
                location.location_id,
            )
            return location

    def update(self, location_id: int, **fields: Any) -> RemoteLocation:
        """Update connection fields of a location.

        Args:
            location_id: Location id
            **fields: Any of the editable descriptor fields

        Returns:
            Updated RemoteLocation

        Raises:
            LocationNotFoundError: If the location does not exist
            ValueError: If a field is not editable
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")

        with self.db_service.get_session() as session:
            location = session.get(RemoteLocation, location_id)
            if location is None:
                raise LocationNotFoundError(location_id)

            for key, value in fields.items():
                setattr(location, key, value)

            session.commit()
            session.refresh(location)
            logger.debug("Updated location: %s", location_id)
            return location

    def delete(self, location_id: int) -> bool:
        """Delete a location together with its sync history.

        Returns:
            True if a location was deleted
        """
        with self.db_service.get_session() as session:
            location = session.get(RemoteLocation, location_id)
            if location is None:
                logger.warning("Location not found for deletion: %s", location_id)
                return False

            session.execute(
                delete(SyncHistory).where(SyncHistory.location_id == location_id)
            )
            session.delete(location)
            session.commit()
            logger.info("Deleted location: %s", location_id)
            return True

    def update_sync_status(
        self,
        location_id: int,
        status: str,
        synced_at: Optional[datetime] = None,
    ) -> None:
        """Record the latest sync status of a location.

        Args:
            location_id: Location id
            status: Status label, truncated to fit the column
            synced_at: New ``last_sync_time``; left unchanged when None
        """
        with self.db_service.get_session() as session:
            location = session.get(RemoteLocation, location_id)
            if location is None:
                raise LocationNotFoundError(location_id)

            location.last_sync_status = truncate_status(status)
            if synced_at is not None:
                location.last_sync_time = synced_at
            session.commit()

    # =========================================================================
    # History
    # =========================================================================

    def log_sync(
        self,
        location_id: int,
        sync_type: Union[SyncType, str],
        result: "SyncResult",
        started_at: datetime,
    ) -> SyncHistory:
        """Append one history row for a finished apply pass.

        Args:
            location_id: Location id
            sync_type: Label of the path that ran the pass
            result: Outcome of the pass
            started_at: When the pass started

        Returns:
            The inserted SyncHistory row
        """
        status = SyncStatus.SUCCESS if result.success else SyncStatus.FAILED
        with self.db_service.get_session() as session:
            entry = SyncHistory(
                location_id=location_id,
                sync_type=sync_type.value
                if isinstance(sync_type, SyncType)
                else sync_type,
                records_added=result.records_added,
                records_updated=result.records_updated,
                records_skipped=result.records_skipped,
                records_failed=result.records_failed,
                status=status.value,
                error_message="; ".join(result.errors) if result.errors else None,
                duration_seconds=int(result.duration.total_seconds()),
                started_at=started_at,
                completed_at=datetime.now(),
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry

    def get_history(
        self, limit: int = 100, location_id: Optional[int] = None
    ) -> List[SyncHistory]:
        """Get the most recent history rows, newest first.

        The ``location`` relationship is loaded so the location name is
        available on the detached rows.
        """
        with self.db_service.get_session() as session:
            stmt = select(SyncHistory).options(joinedload(SyncHistory.location))
            if location_id is not None:
                stmt = stmt.where(SyncHistory.location_id == location_id)
            stmt = stmt.order_by(
                SyncHistory.completed_at.desc(), SyncHistory.sync_id.desc()
            ).limit(limit)
            return list(session.scalars(stmt).unique().all())

    # =========================================================================
    # Settings
    # =========================================================================

    def get_sync_settings(self) -> SyncSettings:
        """Get scheduler settings, falling back to defaults when no row exists."""
        with self.db_service.get_session() as session:
            settings = session.scalar(
                select(SyncSettings).order_by(SyncSettings.setting_id).limit(1)
            )
            if settings is None:
                return SyncSettings(
                    auto_sync_enabled=False,
                    sync_interval_minutes=DEFAULT_SYNC_INTERVAL_MINUTES,
                    last_modified=datetime.now(),
                )
            return settings

    def update_sync_settings(self, enabled: bool, interval_minutes: int) -> SyncSettings:
        """Persist scheduler settings.

        Raises:
            ValueError: If the interval is not a positive number of minutes
        """
        if interval_minutes < 1:
            raise ValueError("Sync interval must be at least 1 minute")

        with self.db_service.get_session() as session:
            settings = session.scalar(
                select(SyncSettings).order_by(SyncSettings.setting_id).limit(1)
            )
            if settings is None:
                settings = SyncSettings()
                session.add(settings)

            settings.auto_sync_enabled = enabled
            settings.sync_interval_minutes = interval_minutes
            settings.last_modified = datetime.now()
            session.commit()
            session.refresh(settings)
            logger.info(
                "Sync settings updated: enabled=%s, interval=%s min",
                enabled,
                interval_minutes,
            )
            return settings
