"""Tests for database models, service and location registry."""

from datetime import datetime, timedelta

import pytest

from attendance_sync.core.sync.applier import SyncResult
from attendance_sync.database import DatabaseService, LocationRegistry
from attendance_sync.database.models import (
    RemoteLocation,
    SyncStatus,
    SyncType,
)
from attendance_sync.exceptions import LocationNotFoundError


class TestDatabaseModels:
    """Test database models."""

    def test_connection_url(self):
        """Test the Postgres URL built from a location."""
        location = RemoteLocation(
            location_name="North Branch",
            host="10.0.0.5",
            port=5433,
            database_name="attendance",
            username="sync",
            password="s3cret",
        )
        url = location.connection_url()
        assert url.drivername == "postgresql+psycopg2"
        assert url.host == "10.0.0.5"
        assert url.port == 5433
        assert url.database == "attendance"
        assert url.username == "sync"
        assert url.password == "s3cret"

    def test_repr_hides_credentials(self):
        """Test that the location repr does not leak the password."""
        location = RemoteLocation(
            location_id=1,
            location_name="North Branch",
            host="10.0.0.5",
            port=5432,
            database_name="attendance",
            username="sync",
            password="s3cret",
        )
        assert "s3cret" not in repr(location)
        assert "North Branch" in repr(location)

    def test_status_labels(self):
        """Test the status labels written to the registry."""
        assert SyncStatus.SUCCESS.value == "Success"
        assert SyncStatus.CONNECTION_FAILED.value == "Connection Failed"
        assert SyncType.AUTO.value == "Auto"


class TestDatabaseService:
    """Test database service operations."""

    def test_init_db(self, local_db):
        """Test database initialization."""
        assert local_db.is_initialized()
        stats = local_db.get_statistics()
        assert stats["locations"] == 0
        assert stats["sync_runs"] == 0
        assert stats["attendance_logs"] == 0

    def test_not_initialized_without_schema(self, tmp_path):
        """Test that a fresh database reports missing tables."""
        db_service = DatabaseService(f"sqlite:///{tmp_path / 'empty.db'}")
        try:
            assert not db_service.is_initialized()
        finally:
            db_service.close()

    def test_statistics_hide_password(self, tmp_path):
        """Test that statistics never show the database password."""
        db_service = DatabaseService(f"sqlite:///{tmp_path / 'stats.db'}")
        db_service.init_db()
        try:
            assert "stats.db" in db_service.get_statistics()["database_url"]
        finally:
            db_service.close()


class TestLocationRegistry:
    """Test remote location persistence."""

    def test_ensure_schema_creates_default_settings(self, registry):
        """Test the default settings row."""
        settings = registry.get_sync_settings()
        assert settings.auto_sync_enabled is False
        assert settings.sync_interval_minutes == 15

    def test_ensure_schema_is_idempotent(self, registry):
        """Test that repeated schema setup keeps a single settings row."""
        registry.update_sync_settings(True, 30)
        registry.ensure_schema()
        settings = registry.get_sync_settings()
        assert settings.auto_sync_enabled is True
        assert settings.sync_interval_minutes == 30

    def test_add_and_get(self, registry, location):
        """Test registering and reading back a location."""
        assert location.location_id is not None
        assert location.port == 5432
        assert location.is_active is True
        assert location.last_sync_time is None

        fetched = registry.get_by_id(location.location_id)
        assert fetched.location_name == "North Branch"
        assert fetched.password == "secret"

    def test_get_all_ordered_by_name(self, registry):
        """Test that locations are listed by name."""
        for name in ("Zeta", "Alpha", "Mid"):
            registry.add(
                location_name=name,
                host="h",
                database_name="d",
                username="u",
                password="p",
            )
        assert [loc.location_name for loc in registry.get_all()] == [
            "Alpha",
            "Mid",
            "Zeta",
        ]

    def test_get_active(self, registry, location):
        """Test that inactive locations are excluded."""
        registry.add(
            location_name="Closed Site",
            host="h",
            database_name="d",
            username="u",
            password="p",
            is_active=False,
        )
        active = registry.get_active()
        assert [loc.location_id for loc in active] == [location.location_id]

    def test_require_missing(self, registry):
        """Test lookup of an unknown id."""
        assert registry.get_by_id(999) is None
        with pytest.raises(LocationNotFoundError, match="999"):
            registry.require(999)

    def test_update(self, registry, location):
        """Test editing connection fields."""
        updated = registry.update(location.location_id, host="10.0.0.9", port=5433)
        assert updated.host == "10.0.0.9"
        assert updated.port == 5433
        assert updated.location_name == "North Branch"

    def test_update_rejects_unknown_field(self, registry, location):
        """Test that sync bookkeeping cannot be edited directly."""
        with pytest.raises(ValueError, match="last_sync_status"):
            registry.update(location.location_id, last_sync_status="Success")

    def test_update_missing(self, registry):
        """Test editing an unknown location."""
        with pytest.raises(LocationNotFoundError):
            registry.update(42, host="x")

    def test_delete_removes_history(self, registry, location):
        """Test that deleting a location deletes its history first."""
        registry.log_sync(
            location.location_id, SyncType.MANUAL, SyncResult(), datetime.now()
        )
        assert len(registry.get_history()) == 1

        assert registry.delete(location.location_id) is True
        assert registry.get_by_id(location.location_id) is None
        assert registry.get_history() == []

    def test_delete_missing(self, registry):
        """Test deleting an unknown location."""
        assert registry.delete(999) is False

    def test_update_sync_status_truncates(self, registry, location):
        """Test that long status labels fit the column."""
        status = "Error: " + "x" * 80
        registry.update_sync_status(location.location_id, status)
        stored = registry.get_by_id(location.location_id).last_sync_status
        assert len(stored) == 50
        assert stored == status[:47] + "..."

    def test_update_sync_status_keeps_time_without_watermark(
        self, registry, location
    ):
        """Test that last_sync_time only moves when a time is given."""
        synced_at = datetime(2024, 5, 1, 12, 0, 0)
        registry.update_sync_status(location.location_id, "Success", synced_at)
        registry.update_sync_status(location.location_id, "Connection Failed")

        stored = registry.get_by_id(location.location_id)
        assert stored.last_sync_status == "Connection Failed"
        assert stored.last_sync_time == synced_at

    def test_update_sync_status_missing(self, registry):
        """Test status update of an unknown location."""
        with pytest.raises(LocationNotFoundError):
            registry.update_sync_status(999, "Success")


class TestSyncHistory:
    """Test history rows."""

    def test_log_sync_success(self, registry, location):
        """Test a successful run row."""
        result = SyncResult(
            records_added=3,
            records_updated=2,
            records_skipped=1,
            duration=timedelta(seconds=4),
        )
        started_at = datetime(2024, 5, 1, 12, 0, 0)
        entry = registry.log_sync(
            location.location_id, SyncType.AUTO, result, started_at
        )

        assert entry.sync_id is not None
        assert entry.sync_type == "Auto"
        assert entry.status == "Success"
        assert entry.records_added == 3
        assert entry.records_updated == 2
        assert entry.records_skipped == 1
        assert entry.duration_seconds == 4
        assert entry.error_message is None
        assert entry.started_at == started_at
        assert entry.completed_at >= started_at

    def test_log_sync_failure_joins_errors(self, registry, location):
        """Test that errors are joined into one text."""
        result = SyncResult(
            records_skipped=2,
            records_failed=2,
            errors=["users/1: boom", "departments/2: bang"],
            success=False,
        )
        entry = registry.log_sync(
            location.location_id, "Full", result, datetime.now()
        )
        assert entry.status == "Failed"
        assert entry.sync_type == "Full"
        assert entry.records_failed == 2
        assert entry.error_message == "users/1: boom; departments/2: bang"

    def test_get_history_newest_first_with_limit(self, registry, location):
        """Test ordering, limit and the loaded location name."""
        for added in range(5):
            registry.log_sync(
                location.location_id,
                SyncType.MANUAL,
                SyncResult(records_added=added),
                datetime.now(),
            )

        history = registry.get_history(limit=3)
        assert [h.records_added for h in history] == [4, 3, 2]
        assert history[0].location.location_name == "North Branch"

    def test_get_history_by_location(self, registry, location):
        """Test filtering history by location."""
        other = registry.add(
            location_name="South Branch",
            host="h",
            database_name="d",
            username="u",
            password="p",
        )
        registry.log_sync(location.location_id, "Manual", SyncResult(), datetime.now())
        registry.log_sync(other.location_id, "Manual", SyncResult(), datetime.now())

        history = registry.get_history(location_id=other.location_id)
        assert len(history) == 1
        assert history[0].location_id == other.location_id


class TestSyncSettings:
    """Test scheduler settings persistence."""

    def test_update_sync_settings(self, registry):
        """Test persisting settings."""
        registry.update_sync_settings(True, 5)
        settings = registry.get_sync_settings()
        assert settings.auto_sync_enabled is True
        assert settings.sync_interval_minutes == 5

    def test_update_sync_settings_rejects_zero_interval(self, registry):
        """Test interval validation."""
        with pytest.raises(ValueError):
            registry.update_sync_settings(True, 0)

    def test_defaults_without_row(self, local_db):
        """Test settings fallback before the schema helper ran."""
        settings = LocationRegistry(local_db).get_sync_settings()
        assert settings.auto_sync_enabled is False
        assert settings.sync_interval_minutes == 15
