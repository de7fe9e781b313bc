"""SQLAlchemy database models for the sync registry and the tracked entity tables.

The registry tables (``remote_locations``, ``sync_history``, ``sync_settings``)
only exist in the local database. The entity tables share one schema across the
local database and every remote site.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.engine import URL
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

STATUS_MAX_LENGTH = 50
DEFAULT_REMOTE_PORT = 5432
DEFAULT_SYNC_INTERVAL_MINUTES = 15


class SyncStatus(str, Enum):
    """Status labels written to ``last_sync_status`` and ``sync_history.status``."""

    SUCCESS = "Success"
    FAILED = "Failed"
    CONNECTION_FAILED = "Connection Failed"
    NO_CHANGES = "No Changes"


class SyncType(str, Enum):
    """Label of the path that produced a ``sync_history`` row."""

    FULL = "Full"
    AUTO = "Auto"
    MANUAL = "Manual"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


# =============================================================================
# Registry
# =============================================================================


class RemoteLocation(Base):
    """Connection descriptor of one remote site database."""

    __tablename__ = "remote_locations"

    location_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    location_name: Mapped[str] = mapped_column(String(100), nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    port: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_REMOTE_PORT
    )
    database_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Credentials are only used to open connections
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_sync_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    last_sync_status: Mapped[Optional[str]] = mapped_column(
        String(STATUS_MAX_LENGTH), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now
    )

    history: Mapped[List["SyncHistory"]] = relationship(
        "SyncHistory", back_populates="location", cascade="all, delete-orphan"
    )

    def connection_url(self) -> URL:
        """Build the Postgres connection URL for this location."""
        return URL.create(
            "postgresql+psycopg2",
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database_name,
        )

    def __repr__(self) -> str:
        """String representation of RemoteLocation."""
        return (
            f"<RemoteLocation(id={self.location_id}, name='{self.location_name}', "
            f"host='{self.host}:{self.port}/{self.database_name}')>"
        )


class SyncHistory(Base):
    """Append-only audit record of one applied sync run."""

    __tablename__ = "sync_history"

    sync_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("remote_locations.location_id", ondelete="CASCADE"),
        nullable=True,
    )
    sync_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Counters
    records_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now
    )

    location: Mapped[Optional["RemoteLocation"]] = relationship(
        "RemoteLocation", back_populates="history"
    )

    __table_args__ = (Index("idx_history_location_completed", "location_id", "completed_at"),)

    def __repr__(self) -> str:
        """String representation of SyncHistory."""
        return (
            f"<SyncHistory(id={self.sync_id}, location_id={self.location_id}, "
            f"status='{self.status}')>"
        )


class SyncSettings(Base):
    """Single-row scheduler settings."""

    __tablename__ = "sync_settings"

    setting_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    auto_sync_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    sync_interval_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_SYNC_INTERVAL_MINUTES
    )
    last_modified: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    def __repr__(self) -> str:
        """String representation of SyncSettings."""
        return (
            f"<SyncSettings(enabled={self.auto_sync_enabled}, "
            f"interval={self.sync_interval_minutes})>"
        )


# =============================================================================
# Tracked entity tables
# =============================================================================


class User(Base):
    """Employee, identified across sites by badge number."""

    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    badge_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # No foreign key: users are applied before departments within a pass
    default_dept_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.user_id}, badge='{self.badge_number}')>"


class Department(Base):
    """Department, keyed by its id on every site."""

    __tablename__ = "departments"

    dept_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    dept_name: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        """String representation of Department."""
        return f"<Department(id={self.dept_id}, name='{self.dept_name}')>"


class Shift(Base):
    """Work shift."""

    __tablename__ = "shifts"

    shift_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    shift_name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    def __repr__(self) -> str:
        """String representation of Shift."""
        return f"<Shift(id={self.shift_id}, name='{self.shift_name}')>"


class Machine(Base):
    """Biometric clock device registered at a site."""

    __tablename__ = "machines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    machine_alias: Mapped[str] = mapped_column(String(200), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        """String representation of Machine."""
        return f"<Machine(id={self.id}, alias='{self.machine_alias}')>"


class ExceptionType(Base):
    """Kind of attendance exception (leave, mission, ...)."""

    __tablename__ = "exception_types"

    exception_type_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False
    )
    exception_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        """String representation of ExceptionType."""
        return (
            f"<ExceptionType(id={self.exception_type_id}, "
            f"name='{self.exception_name}')>"
        )


class EmployeeException(Base):
    """Exception assigned to one employee on one date."""

    __tablename__ = "employee_exceptions"

    exception_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id_fk: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    exception_type_id_fk: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("exception_types.exception_type_id"), nullable=True
    )
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clock_in_override: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    clock_out_override: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, default=datetime.now, onupdate=datetime.now
    )

    user: Mapped["User"] = relationship("User")
    exception_type: Mapped[Optional["ExceptionType"]] = relationship("ExceptionType")

    __table_args__ = (
        UniqueConstraint("user_id_fk", "exception_date", name="uq_user_exception_date"),
    )

    def __repr__(self) -> str:
        """String representation of EmployeeException."""
        return (
            f"<EmployeeException(id={self.exception_id}, user_id={self.user_id_fk}, "
            f"date={self.exception_date})>"
        )


class AttendanceLog(Base):
    """Punch recorded by a clock device. Immutable once written."""

    __tablename__ = "attendance_logs"

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_badge_number: Mapped[str] = mapped_column(String(50), nullable=False)
    log_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    machine_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_badge_number", "log_time", name="uq_badge_log_time"),
        Index("idx_attendance_log_time", "log_time"),
    )

    def __repr__(self) -> str:
        """String representation of AttendanceLog."""
        return (
            f"<AttendanceLog(id={self.log_id}, badge='{self.user_badge_number}', "
            f"time='{self.log_time}')>"
        )
