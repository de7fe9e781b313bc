"""Tests for applying approved changes to the local database."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import ClassVar
from unittest.mock import Mock

import pytest
from conftest import add_rows
from sqlalchemy import select

from attendance_sync.core.sync.applier import (
    ChangeApplier,
    SyncResult,
    normalize_badge,
)
from attendance_sync.core.sync.records import (
    AttendanceLogRecord,
    DepartmentRecord,
    EmployeeExceptionRecord,
    ExceptionTypeRecord,
    MachineRecord,
    ShiftRecord,
    UserRecord,
)
from attendance_sync.core.sync.state import ChangeType, PendingChange
from attendance_sync.database.models import (
    AttendanceLog,
    Department,
    EmployeeException,
    ExceptionType,
    Machine,
    Shift,
    User,
)


@dataclass(frozen=True)
class UnknownRecord:
    """Record variant the applier has no handler for."""

    table: ClassVar[str] = "payroll"

    record_key: str = "1"
    description: str = "unknown"


def new(record):
    """Build an approved New change."""
    return PendingChange(ChangeType.NEW, record)


def updated(record):
    """Build an approved Updated change."""
    return PendingChange(ChangeType.UPDATED, record)


def fetch_all(db_service, model):
    """Read every row of a model."""
    with db_service.get_session() as session:
        return list(session.scalars(select(model)))


class TestNormalizeBadge:
    """Test badge normalization."""

    @pytest.mark.parametrize(
        "badge, expected",
        [("0001234", "1234"), ("1234", "1234"), ("0000", "0"), ("", "0"), (None, "0")],
    )
    def test_normalize_badge(self, badge, expected):
        """Test leading-zero stripping with the "0" fallback."""
        assert normalize_badge(badge) == expected


class TestSyncResult:
    """Test result aggregation."""

    def test_totals_and_message(self):
        """Test derived values."""
        result = SyncResult(records_added=3, records_updated=2, location_name="North")
        assert result.total_records == 5
        assert result.message == "Synced 5 records from North"
        summary = result.get_summary()
        assert summary["added"] == 3
        assert summary["success"] is True


class TestApplyDispatch:
    """Test per-table apply semantics."""

    def test_upserts_reference_tables(self, applier, local_db, location):
        """Test insert then update of every reference table."""
        first = [
            new(UserRecord("1001", "Alice", 1)),
            new(DepartmentRecord(1, "Ops")),
            new(ShiftRecord(1, "Day", time(8), time(16))),
            new(MachineRecord(1, "Gate", "10.0.0.8")),
            new(ExceptionTypeRecord(1, "Leave", "", True)),
        ]
        result = applier.apply(first, location.location_id)
        assert result.records_added == 5
        assert result.errors == []

        second = [
            updated(UserRecord("1001", "Alice Smith", 2)),
            updated(DepartmentRecord(1, "Operations")),
            updated(ShiftRecord(1, "Day", time(9), time(17))),
            updated(MachineRecord(1, "Main Gate", "10.0.0.9")),
            updated(ExceptionTypeRecord(1, "Annual Leave", "paid", False)),
        ]
        result = applier.apply(second, location.location_id)
        assert result.records_updated == 5

        users = fetch_all(local_db, User)
        assert len(users) == 1
        assert users[0].name == "Alice Smith"
        assert users[0].default_dept_id == 2
        assert fetch_all(local_db, Department)[0].dept_name == "Operations"
        assert fetch_all(local_db, Shift)[0].end_time == time(17)
        assert fetch_all(local_db, Machine)[0].ip_address == "10.0.0.9"
        exception_type = fetch_all(local_db, ExceptionType)[0]
        assert exception_type.description == "paid"
        assert exception_type.is_active is False

    def test_attendance_badge_normalized(self, applier, local_db, location):
        """Test that attendance badges lose their leading zeros."""
        log_time = datetime(2024, 3, 1, 8, 0, 0)
        result = applier.apply(
            [new(AttendanceLogRecord("0001234", log_time, 1))], location.location_id
        )

        assert result.records_added == 1
        logs = fetch_all(local_db, AttendanceLog)
        assert [log.user_badge_number for log in logs] == ["1234"]
        assert logs[0].log_time == log_time

    def test_attendance_insert_if_absent(self, applier, local_db, location):
        """Test that an existing punch is never duplicated or updated."""
        log_time = datetime(2024, 3, 1, 8, 0, 0)
        add_rows(
            local_db,
            AttendanceLog(user_badge_number="1234", log_time=log_time, machine_id=1),
        )

        result = applier.apply(
            [new(AttendanceLogRecord("0001234", log_time, 9))], location.location_id
        )

        assert result.errors == []
        logs = fetch_all(local_db, AttendanceLog)
        assert len(logs) == 1
        assert logs[0].machine_id == 1

    def test_employee_exception_replaces_pair(self, applier, local_db, location):
        """Test delete-then-insert of a (user, date) exception."""
        add_rows(local_db, User(user_id=5, badge_number="1001", name="Alice"))
        add_rows(
            local_db,
            EmployeeException(
                user_id_fk=5, exception_date=date(2024, 3, 5), notes="old"
            ),
        )

        record = EmployeeExceptionRecord(
            badge_number="1001",
            exception_date=date(2024, 3, 5),
            exception_type_id=2,
            notes="new",
            clock_in_override=time(9, 30),
        )
        result = applier.apply([updated(record)], location.location_id)

        assert result.records_updated == 1
        exceptions = fetch_all(local_db, EmployeeException)
        assert len(exceptions) == 1
        assert exceptions[0].user_id_fk == 5
        assert exceptions[0].notes == "new"
        assert exceptions[0].exception_type_id_fk == 2
        assert exceptions[0].clock_in_override == time(9, 30)
        assert exceptions[0].updated_at is not None

    def test_employee_exception_without_data_only_deletes(
        self, applier, local_db, location
    ):
        """Test that an empty remote exception clears the local one."""
        add_rows(local_db, User(user_id=5, badge_number="1001", name="Alice"))
        add_rows(
            local_db,
            EmployeeException(
                user_id_fk=5, exception_date=date(2024, 3, 5), notes="old"
            ),
        )

        record = EmployeeExceptionRecord(
            badge_number="1001", exception_date=date(2024, 3, 5)
        )
        result = applier.apply([updated(record)], location.location_id)

        assert result.errors == []
        assert fetch_all(local_db, EmployeeException) == []


class TestApplyFailures:
    """Test per-record failure isolation."""

    def test_missing_user_does_not_block_others(
        self, applier, local_db, registry, location
    ):
        """Test that an unknown badge is a per-record error."""
        changes = [
            new(DepartmentRecord(1, "Ops")),
            new(
                EmployeeExceptionRecord(
                    badge_number="9999",
                    exception_date=date(2024, 3, 1),
                    notes="sick",
                )
            ),
            new(AttendanceLogRecord("1001", datetime(2024, 3, 1, 8, 0, 0))),
        ]

        result = applier.apply(changes, location.location_id)

        assert result.success
        assert result.records_added == 2
        assert result.records_skipped == 1
        assert result.records_failed == 1
        assert result.errors == [
            "employee_exceptions/9999_20240301: User with badge 9999 not found"
        ]
        assert len(fetch_all(local_db, Department)) == 1
        assert len(fetch_all(local_db, AttendanceLog)) == 1

        history = registry.get_history()
        assert history[0].status == "Success"
        assert "User with badge 9999 not found" in history[0].error_message

    def test_unknown_record_variant(self, applier, location):
        """Test that dispatch rejects a record type without handler."""
        result = applier.apply(
            [new(UnknownRecord()), new(DepartmentRecord(1, "Ops"))],
            location.location_id,
        )
        assert result.records_added == 1
        assert result.errors == ["payroll/1: No applier for UnknownRecord"]

    def test_all_failed_is_still_success(self, applier, registry, location):
        """Test that per-record failures alone do not fail the pass."""
        watermark = datetime(2024, 6, 1)
        result = applier.apply(
            [new(EmployeeExceptionRecord("9999", date(2024, 3, 1), notes="x"))],
            location.location_id,
            watermark=watermark,
        )

        assert result.success
        assert result.records_failed == 1
        assert result.total_records == 0
        stored = registry.get_by_id(location.location_id)
        assert stored.last_sync_status == "Success"
        assert stored.last_sync_time == watermark
        history = registry.get_history()[0]
        assert history.status == "Success"
        assert history.records_failed == 1

    def test_aborted_pass_marks_failure(self, registry, location):
        """Test that losing the local database fails the pass."""
        broken_db = Mock()
        broken_db.get_session.side_effect = RuntimeError("database is down")
        applier = ChangeApplier(broken_db, registry)

        result = applier.apply(
            [new(DepartmentRecord(1, "Ops"))],
            location.location_id,
            watermark=datetime(2024, 6, 1),
        )

        assert not result.success
        assert result.errors == ["Sync aborted: database is down"]
        stored = registry.get_by_id(location.location_id)
        assert stored.last_sync_status == "Failed"
        assert stored.last_sync_time is None
        assert registry.get_history()[0].status == "Failed"


class TestApplyBookkeeping:
    """Test history and status written after a pass."""

    def test_unapproved_changes_are_skipped(self, applier, local_db, registry, location):
        """Test that rejected changes are counted but not applied."""
        rejected = new(DepartmentRecord(1, "Ops"))
        rejected.reject()

        result = applier.apply([rejected], location.location_id, sync_type="Manual")

        assert result.success
        assert result.records_skipped == 1
        assert result.total_records == 0
        assert fetch_all(local_db, Department) == []
        history = registry.get_history()
        assert len(history) == 1
        assert history[0].records_added == 0
        assert history[0].records_skipped == 1
        assert history[0].sync_type == "Manual"

    def test_empty_pass_writes_history(self, applier, registry, location):
        """Test that an empty apply still leaves an audit row."""
        result = applier.apply([], location.location_id)
        assert result.success
        assert len(registry.get_history()) == 1
        assert registry.get_history()[0].sync_type == "Full"

    def test_watermark_advances_on_success(self, applier, registry, location):
        """Test last_sync_time and status after a good pass."""
        watermark = datetime(2024, 6, 1, 10, 0, 0)
        applier.apply(
            [new(DepartmentRecord(1, "Ops"))],
            location.location_id,
            watermark=watermark,
        )

        stored = registry.get_by_id(location.location_id)
        assert stored.last_sync_status == "Success"
        assert stored.last_sync_time == watermark

    def test_scenario_apply(self, detector, applier, local_db, location, seeded_remote):
        """Test detection plus auto apply of an empty local database."""
        change_set = detector.detect(location)
        change_set.approve_all()

        result = applier.apply(
            change_set.changes,
            location.location_id,
            watermark=change_set.detected_at,
        )

        assert result.records_added == 55
        assert result.records_updated == 0
        assert result.records_skipped == 0
        assert result.errors == []
        stats = local_db.get_statistics()
        assert stats["users"] == 3
        assert stats["attendance_logs"] == 50

    def test_second_detection_is_empty(
        self, detector, applier, registry, location, seeded_remote
    ):
        """Test idempotence of detection after a full apply."""
        change_set = detector.detect(location)
        applier.apply(
            change_set.changes,
            location.location_id,
            watermark=change_set.detected_at,
        )

        # Rescan from the epoch so attendance is compared by existence
        assert not detector.detect(location, since=change_set.since).has_changes()
        synced = registry.get_by_id(location.location_id)
        assert not detector.detect(synced).has_changes()
