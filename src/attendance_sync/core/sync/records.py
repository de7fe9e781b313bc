"""Typed remote records, one variant per tracked table.

Each variant carries the remote field values the applier needs, its table tag,
the natural key used to match local rows and a human-readable description.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import ClassVar, Optional, Tuple, Union


@dataclass(frozen=True)
class UserRecord:
    """Remote ``users`` row, matched by badge number."""

    table: ClassVar[str] = "users"

    badge_number: str
    name: str
    default_dept_id: Optional[int] = None

    @property
    def record_key(self) -> str:
        """Natural key."""
        return self.badge_number

    @property
    def description(self) -> str:
        """Display text."""
        return f"{self.name} ({self.badge_number})"


@dataclass(frozen=True)
class DepartmentRecord:
    """Remote ``departments`` row."""

    table: ClassVar[str] = "departments"

    dept_id: int
    dept_name: str

    @property
    def record_key(self) -> str:
        """Natural key."""
        return str(self.dept_id)

    @property
    def description(self) -> str:
        """Display text."""
        return self.dept_name


@dataclass(frozen=True)
class ShiftRecord:
    """Remote ``shifts`` row."""

    table: ClassVar[str] = "shifts"

    shift_id: int
    shift_name: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def record_key(self) -> str:
        """Natural key."""
        return str(self.shift_id)

    @property
    def description(self) -> str:
        """Display text."""
        return self.shift_name


@dataclass(frozen=True)
class MachineRecord:
    """Remote ``machines`` row."""

    table: ClassVar[str] = "machines"

    machine_id: int
    machine_alias: str
    ip_address: str

    @property
    def record_key(self) -> str:
        """Natural key."""
        return str(self.machine_id)

    @property
    def description(self) -> str:
        """Display text."""
        return f"{self.machine_alias} ({self.ip_address})"


@dataclass(frozen=True)
class ExceptionTypeRecord:
    """Remote ``exception_types`` row."""

    table: ClassVar[str] = "exception_types"

    exception_type_id: int
    exception_name: str
    description_text: str = ""
    is_active: bool = True

    @property
    def record_key(self) -> str:
        """Natural key."""
        return str(self.exception_type_id)

    @property
    def description(self) -> str:
        """Display text."""
        return self.exception_name


@dataclass(frozen=True)
class EmployeeExceptionRecord:
    """Remote ``employee_exceptions`` row, matched by (badge number, date)."""

    table: ClassVar[str] = "employee_exceptions"

    badge_number: str
    exception_date: date
    user_name: str = ""
    exception_type_id: Optional[int] = None
    exception_name: str = ""
    notes: str = ""
    clock_in_override: Optional[time] = None
    clock_out_override: Optional[time] = None
    updated_at: Optional[datetime] = None

    @property
    def record_key(self) -> str:
        """Natural key."""
        return f"{self.badge_number}_{self.exception_date:%Y%m%d}"

    @property
    def description(self) -> str:
        """Display text."""
        text = f"{self.user_name} - {self.exception_date:%Y-%m-%d}"
        if self.exception_name:
            text += f" ({self.exception_name})"
        return text

    @property
    def has_data(self) -> bool:
        """Whether the row carries anything worth storing."""
        return (
            self.exception_type_id is not None
            or bool(self.notes)
            or self.clock_in_override is not None
            or self.clock_out_override is not None
        )

    def compared_fields(
        self,
    ) -> Tuple[Optional[int], str, Optional[time], Optional[time]]:
        """Fields compared against the local row."""
        return (
            self.exception_type_id,
            self.notes,
            self.clock_in_override,
            self.clock_out_override,
        )


@dataclass(frozen=True)
class AttendanceLogRecord:
    """Remote ``attendance_logs`` row, matched by (badge number, log time)."""

    table: ClassVar[str] = "attendance_logs"

    badge_number: str
    log_time: datetime
    machine_id: Optional[int] = None

    @property
    def record_key(self) -> str:
        """Natural key."""
        return f"{self.badge_number}_{self.log_time:%Y%m%d%H%M%S}"

    @property
    def description(self) -> str:
        """Display text."""
        return f"{self.badge_number} @ {self.log_time:%Y-%m-%d %H:%M}"


RemoteRecord = Union[
    UserRecord,
    DepartmentRecord,
    ShiftRecord,
    MachineRecord,
    ExceptionTypeRecord,
    EmployeeExceptionRecord,
    AttendanceLogRecord,
]

# Detection and apply order
TRACKED_TABLES: Tuple[str, ...] = (
    UserRecord.table,
    DepartmentRecord.table,
    ShiftRecord.table,
    MachineRecord.table,
    ExceptionTypeRecord.table,
    EmployeeExceptionRecord.table,
    AttendanceLogRecord.table,
)
