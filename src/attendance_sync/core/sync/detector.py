"""Change detection between a remote location and the local database.

For every tracked table the detector reads the remote rows, looks up the local
row by natural key and classifies the pair:

- no local row: ``ChangeType.NEW``
- local row with a differing compared field: ``ChangeType.UPDATED``
- identical compared fields: nothing is emitted

``attendance_logs`` is append-only, so an exact natural-key match is enough to
suppress a change. Badge numbers are compared as stored remotely; the applier
normalizes attendance badges only when inserting.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from ...database.models import (
    AttendanceLog,
    Department,
    EmployeeException,
    ExceptionType,
    Machine,
    RemoteLocation,
    Shift,
    User,
)
from ...database.service import DatabaseService
from ...exceptions import RemoteConnectionError
from .probe import EngineFactory, remote_engine_factory
from .records import (
    AttendanceLogRecord,
    DepartmentRecord,
    EmployeeExceptionRecord,
    ExceptionTypeRecord,
    MachineRecord,
    RemoteRecord,
    ShiftRecord,
    UserRecord,
)
from .state import ChangeType, PendingChange, PendingChangeSet

logger = logging.getLogger(__name__)

# Watermark used for locations that never synced successfully
SYNC_EPOCH = datetime(2020, 1, 1)

TableDetector = Callable[[Connection, Session, datetime], List[PendingChange]]


def _classify(
    record: RemoteRecord,
    local_values: Optional[Tuple[Any, ...]],
    remote_values: Tuple[Any, ...],
) -> Optional[PendingChange]:
    """Classify one remote row against its local counterpart."""
    if local_values is None:
        return PendingChange(change_type=ChangeType.NEW, record=record)
    if local_values != remote_values:
        return PendingChange(change_type=ChangeType.UPDATED, record=record)
    return None


class ChangeDetector:
    """Produces the pending change set of one remote location."""

    def __init__(
        self,
        db_service: DatabaseService,
        engine_factory: Optional[EngineFactory] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            db_service: Local database service
            engine_factory: Builds the remote engine for a location
        """
        self.db_service = db_service
        self.engine_factory = engine_factory or remote_engine_factory()

    def _table_detectors(self) -> List[Tuple[str, TableDetector]]:
        """Per-table detection routines in detection order."""
        return [
            (UserRecord.table, self._detect_users),
            (DepartmentRecord.table, self._detect_departments),
            (ShiftRecord.table, self._detect_shifts),
            (MachineRecord.table, self._detect_machines),
            (ExceptionTypeRecord.table, self._detect_exception_types),
            (EmployeeExceptionRecord.table, self._detect_employee_exceptions),
            (AttendanceLogRecord.table, self._detect_attendance_logs),
        ]

    def detect(
        self, location: RemoteLocation, since: Optional[datetime] = None
    ) -> PendingChangeSet:
        """Detect divergent rows for every tracked table.

        A failure on one table is logged and recorded in
        ``PendingChangeSet.failed_tables``; the remaining tables are still
        detected. Failing to connect at all raises ``RemoteConnectionError``.

        Args:
            location: Remote location to read from
            since: Watermark for time-filtered tables. Defaults to the
                location's last successful sync, or ``SYNC_EPOCH``.

        Returns:
            PendingChangeSet for the location

        Raises:
            RemoteConnectionError: If the remote database cannot be reached
        """
        if since is None:
            since = location.last_sync_time or SYNC_EPOCH

        change_set = PendingChangeSet(
            location_id=location.location_id,
            since=since,
            detected_at=datetime.now(),
        )
        logger.info(
            "Detecting changes at %s since %s", location.location_name, since
        )

        engine, remote = self._connect(location)
        try:
            with remote, self.db_service.get_session() as local:
                for table_name, detect_table in self._table_detectors():
                    try:
                        changes = detect_table(remote, local, since)
                    except Exception as e:
                        logger.error(
                            "Detection of %s at %s failed: %s",
                            table_name,
                            location.location_name,
                            e,
                        )
                        change_set.failed_tables[table_name] = str(e)
                        remote.rollback()
                        local.rollback()
                        continue

                    logger.debug("%s: %d change(s)", table_name, len(changes))
                    change_set.extend(changes)
        finally:
            engine.dispose()

        logger.info(
            "Detected %d change(s) at %s", len(change_set), location.location_name
        )
        return change_set

    def _connect(self, location: RemoteLocation) -> Tuple[Engine, Connection]:
        engine: Optional[Engine] = None
        try:
            engine = self.engine_factory(location)
            return engine, engine.connect()
        except Exception as e:
            if engine is not None:
                engine.dispose()
            raise RemoteConnectionError(
                f"Cannot connect to {location.location_name}: {e}"
            ) from e

    # =========================================================================
    # Reference tables (full scan)
    # =========================================================================

    def _detect_users(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows = {
            u.badge_number: (u.name, u.default_dept_id)
            for u in local.scalars(select(User))
        }
        changes: List[PendingChange] = []
        stmt = select(User.user_id, User.badge_number, User.name, User.default_dept_id)
        for row in remote.execute(stmt):
            record = UserRecord(
                badge_number=row.badge_number,
                name=row.name,
                default_dept_id=row.default_dept_id,
            )
            change = _classify(
                record,
                local_rows.get(record.badge_number),
                (record.name, record.default_dept_id),
            )
            if change:
                changes.append(change)
        return changes

    def _detect_departments(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows = {
            d.dept_id: (d.dept_name,) for d in local.scalars(select(Department))
        }
        changes: List[PendingChange] = []
        for row in remote.execute(select(Department.dept_id, Department.dept_name)):
            record = DepartmentRecord(dept_id=row.dept_id, dept_name=row.dept_name)
            change = _classify(
                record, local_rows.get(record.dept_id), (record.dept_name,)
            )
            if change:
                changes.append(change)
        return changes

    def _detect_shifts(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows = {
            s.shift_id: (s.shift_name, s.start_time, s.end_time)
            for s in local.scalars(select(Shift))
        }
        changes: List[PendingChange] = []
        stmt = select(Shift.shift_id, Shift.shift_name, Shift.start_time, Shift.end_time)
        for row in remote.execute(stmt):
            record = ShiftRecord(
                shift_id=row.shift_id,
                shift_name=row.shift_name,
                start_time=row.start_time,
                end_time=row.end_time,
            )
            change = _classify(
                record,
                local_rows.get(record.shift_id),
                (record.shift_name, record.start_time, record.end_time),
            )
            if change:
                changes.append(change)
        return changes

    def _detect_machines(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows = {
            m.id: (m.machine_alias, m.ip_address) for m in local.scalars(select(Machine))
        }
        changes: List[PendingChange] = []
        stmt = select(Machine.id, Machine.machine_alias, Machine.ip_address)
        for row in remote.execute(stmt):
            record = MachineRecord(
                machine_id=row.id,
                machine_alias=row.machine_alias,
                ip_address=row.ip_address,
            )
            change = _classify(
                record,
                local_rows.get(record.machine_id),
                (record.machine_alias, record.ip_address),
            )
            if change:
                changes.append(change)
        return changes

    def _detect_exception_types(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows = {
            t.exception_type_id: (
                t.exception_name,
                t.description or "",
                t.is_active,
            )
            for t in local.scalars(select(ExceptionType))
        }
        changes: List[PendingChange] = []
        stmt = select(
            ExceptionType.exception_type_id,
            ExceptionType.exception_name,
            ExceptionType.description,
            ExceptionType.is_active,
        )
        for row in remote.execute(stmt):
            record = ExceptionTypeRecord(
                exception_type_id=row.exception_type_id,
                exception_name=row.exception_name,
                description_text=row.description or "",
                is_active=True if row.is_active is None else bool(row.is_active),
            )
            change = _classify(
                record,
                local_rows.get(record.exception_type_id),
                (record.exception_name, record.description_text, record.is_active),
            )
            if change:
                changes.append(change)
        return changes

    # =========================================================================
    # Time-filtered tables
    # =========================================================================

    def _detect_employee_exceptions(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        local_rows: Dict[Tuple[str, date], Tuple[Any, ...]] = {}
        local_stmt = select(
            User.badge_number,
            EmployeeException.exception_date,
            EmployeeException.exception_type_id_fk,
            EmployeeException.notes,
            EmployeeException.clock_in_override,
            EmployeeException.clock_out_override,
        ).join(User, EmployeeException.user_id_fk == User.user_id)
        for row in local.execute(local_stmt):
            local_rows[(row.badge_number, row.exception_date)] = (
                row.exception_type_id_fk,
                row.notes or "",
                row.clock_in_override,
                row.clock_out_override,
            )

        stmt = (
            select(
                EmployeeException.exception_id,
                EmployeeException.user_id_fk,
                User.name,
                User.badge_number,
                EmployeeException.exception_type_id_fk,
                ExceptionType.exception_name,
                EmployeeException.exception_date,
                EmployeeException.notes,
                EmployeeException.clock_in_override,
                EmployeeException.clock_out_override,
                EmployeeException.updated_at,
            )
            .outerjoin(User, EmployeeException.user_id_fk == User.user_id)
            .outerjoin(
                ExceptionType,
                EmployeeException.exception_type_id_fk
                == ExceptionType.exception_type_id,
            )
            .where(
                or_(
                    EmployeeException.updated_at > since,
                    EmployeeException.created_at > since,
                )
            )
        )
        changes: List[PendingChange] = []
        for row in remote.execute(stmt):
            record = EmployeeExceptionRecord(
                badge_number=row.badge_number or "",
                exception_date=row.exception_date,
                user_name=row.name or "",
                exception_type_id=row.exception_type_id_fk,
                exception_name=row.exception_name or "",
                notes=row.notes or "",
                clock_in_override=row.clock_in_override,
                clock_out_override=row.clock_out_override,
                updated_at=row.updated_at,
            )
            change = _classify(
                record,
                local_rows.get((record.badge_number, record.exception_date)),
                record.compared_fields(),
            )
            if change:
                changes.append(change)
        return changes

    def _detect_attendance_logs(
        self, remote: Connection, local: Session, since: datetime
    ) -> List[PendingChange]:
        # Rows at or before the watermark can never match a remote row after it
        local_stmt = select(
            AttendanceLog.user_badge_number, AttendanceLog.log_time
        ).where(AttendanceLog.log_time > since)
        local_keys = {
            (row.user_badge_number, row.log_time) for row in local.execute(local_stmt)
        }
        changes: List[PendingChange] = []
        stmt = (
            select(
                AttendanceLog.log_id,
                AttendanceLog.user_badge_number,
                AttendanceLog.log_time,
                AttendanceLog.machine_id,
            )
            .where(AttendanceLog.log_time > since)
            .order_by(AttendanceLog.log_time)
        )
        for row in remote.execute(stmt):
            if (row.user_badge_number, row.log_time) in local_keys:
                continue
            record = AttendanceLogRecord(
                badge_number=row.user_badge_number,
                log_time=row.log_time,
                machine_id=row.machine_id,
            )
            changes.append(PendingChange(change_type=ChangeType.NEW, record=record))
        return changes
