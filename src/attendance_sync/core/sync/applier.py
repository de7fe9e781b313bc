"""Apply approved pending changes to the local database.

Each approved change is dispatched on its record variant and committed on its
own. A failing change is rolled back alone, recorded as an error and counted
as skipped; the remaining changes are still applied. There is no transaction
spanning the whole pass. The pass only fails when an error aborts it outside a
single change, such as losing the local database.
"""

import logging
import time
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ...database.location_registry import LocationRegistry
from ...database.models import (
    AttendanceLog,
    Department,
    EmployeeException,
    ExceptionType,
    Machine,
    Shift,
    SyncStatus,
    SyncType,
    User,
)
from ...database.service import DatabaseService
from ...exceptions import ApplyError, UnsupportedRecordError
from .records import (
    AttendanceLogRecord,
    DepartmentRecord,
    EmployeeExceptionRecord,
    ExceptionTypeRecord,
    MachineRecord,
    ShiftRecord,
    UserRecord,
)
from .state import ChangeType, PendingChange

logger = logging.getLogger(__name__)


def normalize_badge(badge_number: Optional[str]) -> str:
    """Strip leading zeros from a badge number, keeping at least ``"0"``."""
    return (badge_number or "").lstrip("0") or "0"


@dataclass
class SyncResult:
    """Outcome of one apply pass.

    ``records_skipped`` counts unapproved changes and failed changes;
    ``records_failed`` counts the failed ones alone. ``success`` stays True
    unless the pass was aborted.
    """

    records_added: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    errors: List[str] = dataclass_field(default_factory=list)
    applied_changes: List[str] = dataclass_field(default_factory=list)
    success: bool = True
    duration: timedelta = dataclass_field(default_factory=timedelta)
    location_name: str = ""

    @property
    def total_records(self) -> int:
        """Rows added or updated."""
        return self.records_added + self.records_updated

    @property
    def message(self) -> str:
        """One-line outcome message."""
        return f"Synced {self.total_records} records from {self.location_name}"

    def get_summary(self) -> Dict[str, Any]:
        """Get result summary."""
        return {
            "added": self.records_added,
            "updated": self.records_updated,
            "skipped": self.records_skipped,
            "failed": self.records_failed,
            "errors": len(self.errors),
            "success": self.success,
            "duration_seconds": round(self.duration.total_seconds(), 2),
        }


RecordHandler = Callable[[Session, Any], None]


class ChangeApplier:
    """Applies approved changes and records the run in the registry."""

    def __init__(self, db_service: DatabaseService, registry: LocationRegistry) -> None:
        """Initialize the applier.

        Args:
            db_service: Local database service
            registry: Registry receiving the history row and status
        """
        self.db_service = db_service
        self.registry = registry
        self._handlers: Dict[Type[Any], RecordHandler] = {
            UserRecord: self._apply_user,
            DepartmentRecord: self._apply_department,
            ShiftRecord: self._apply_shift,
            MachineRecord: self._apply_machine,
            ExceptionTypeRecord: self._apply_exception_type,
            EmployeeExceptionRecord: self._apply_employee_exception,
            AttendanceLogRecord: self._apply_attendance_log,
        }

    def apply(
        self,
        changes: Iterable[PendingChange],
        location_id: int,
        sync_type: Union[SyncType, str] = SyncType.FULL,
        watermark: Optional[datetime] = None,
        location_name: str = "",
    ) -> SyncResult:
        """Apply every approved change and skip the rest.

        Args:
            changes: Pending changes from one detection pass
            location_id: Location the changes came from
            sync_type: Label stored in the history row
            watermark: New ``last_sync_time`` written on success; left
                unchanged when None
            location_name: Used in the result message

        Returns:
            SyncResult of the pass
        """
        started_at = datetime.now()
        start = time.monotonic()
        result = SyncResult(location_name=location_name)

        approved: List[PendingChange] = []
        for change in changes:
            if change.is_approved:
                approved.append(change)
            else:
                result.records_skipped += 1

        try:
            self._apply_approved(approved, result)
        except Exception as e:
            logger.exception("Apply pass for location %s aborted", location_id)
            result.success = False
            result.errors.append(f"Sync aborted: {e}")

        result.duration = timedelta(seconds=time.monotonic() - start)

        self.registry.log_sync(location_id, sync_type, result, started_at)
        if result.success:
            self.registry.update_sync_status(
                location_id, SyncStatus.SUCCESS.value, synced_at=watermark
            )
        else:
            self.registry.update_sync_status(location_id, SyncStatus.FAILED.value)

        logger.info(
            "Applied changes for location %s: %d added, %d updated, %d skipped, "
            "%d error(s)",
            location_id,
            result.records_added,
            result.records_updated,
            result.records_skipped,
            len(result.errors),
        )
        return result

    def _apply_approved(
        self, approved: List[PendingChange], result: SyncResult
    ) -> None:
        """Apply changes one by one, isolating per-record failures."""
        with self.db_service.get_session() as session:
            for change in approved:
                try:
                    self._apply_change(session, change)
                    session.commit()
                except Exception as e:
                    session.rollback()
                    result.records_skipped += 1
                    result.records_failed += 1
                    result.errors.append(
                        f"{change.table_name}/{change.record_key}: {e}"
                    )
                    logger.warning(
                        "Failed to apply %s/%s: %s",
                        change.table_name,
                        change.record_key,
                        e,
                    )
                    continue

                if change.change_type == ChangeType.NEW:
                    result.records_added += 1
                else:
                    result.records_updated += 1
                result.applied_changes.append(str(change))

    def _apply_change(self, session: Session, change: PendingChange) -> None:
        """Dispatch one change to the handler of its record variant."""
        handler = self._handlers.get(type(change.record))
        if handler is None:
            raise UnsupportedRecordError(
                f"No applier for {type(change.record).__name__}"
            )
        handler(session, change.record)

    # =========================================================================
    # Upserts by natural key
    # =========================================================================

    def _apply_user(self, session: Session, record: UserRecord) -> None:
        user = session.scalar(
            select(User).where(User.badge_number == record.badge_number)
        )
        if user is None:
            user = User(badge_number=record.badge_number)
            session.add(user)
        user.name = record.name
        user.default_dept_id = record.default_dept_id

    def _apply_department(self, session: Session, record: DepartmentRecord) -> None:
        department = session.get(Department, record.dept_id)
        if department is None:
            department = Department(dept_id=record.dept_id)
            session.add(department)
        department.dept_name = record.dept_name

    def _apply_shift(self, session: Session, record: ShiftRecord) -> None:
        shift = session.get(Shift, record.shift_id)
        if shift is None:
            shift = Shift(shift_id=record.shift_id)
            session.add(shift)
        shift.shift_name = record.shift_name
        shift.start_time = record.start_time
        shift.end_time = record.end_time

    def _apply_machine(self, session: Session, record: MachineRecord) -> None:
        machine = session.get(Machine, record.machine_id)
        if machine is None:
            machine = Machine(id=record.machine_id)
            session.add(machine)
        machine.machine_alias = record.machine_alias
        machine.ip_address = record.ip_address

    def _apply_exception_type(
        self, session: Session, record: ExceptionTypeRecord
    ) -> None:
        exception_type = session.get(ExceptionType, record.exception_type_id)
        if exception_type is None:
            exception_type = ExceptionType(exception_type_id=record.exception_type_id)
            session.add(exception_type)
        exception_type.exception_name = record.exception_name
        exception_type.description = record.description_text
        exception_type.is_active = record.is_active

    # =========================================================================
    # Dependent and append-only tables
    # =========================================================================

    def _apply_employee_exception(
        self, session: Session, record: EmployeeExceptionRecord
    ) -> None:
        """Replace the exception of one (user, date) pair."""
        user_id = session.scalar(
            select(User.user_id).where(User.badge_number == record.badge_number)
        )
        if user_id is None:
            raise ApplyError(f"User with badge {record.badge_number} not found")

        session.execute(
            delete(EmployeeException).where(
                EmployeeException.user_id_fk == user_id,
                EmployeeException.exception_date == record.exception_date,
            )
        )

        if not record.has_data:
            return

        session.add(
            EmployeeException(
                user_id_fk=user_id,
                exception_type_id_fk=record.exception_type_id,
                exception_date=record.exception_date,
                notes=record.notes or None,
                clock_in_override=record.clock_in_override,
                clock_out_override=record.clock_out_override,
                updated_at=datetime.now(),
            )
        )

    def _apply_attendance_log(
        self, session: Session, record: AttendanceLogRecord
    ) -> None:
        """Insert the punch unless it is already stored."""
        badge_number = normalize_badge(record.badge_number)
        existing = session.scalar(
            select(AttendanceLog.log_id).where(
                AttendanceLog.user_badge_number == badge_number,
                AttendanceLog.log_time == record.log_time,
            )
        )
        if existing is not None:
            return

        session.add(
            AttendanceLog(
                user_badge_number=badge_number,
                log_time=record.log_time,
                machine_id=record.machine_id,
            )
        )
