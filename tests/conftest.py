"""Shared fixtures: a local and a remote SQLite database plus the sync stack."""

import logging
from datetime import datetime

import pytest
from sqlalchemy import create_engine

from attendance_sync.core.sync.applier import ChangeApplier
from attendance_sync.core.sync.detector import ChangeDetector
from attendance_sync.core.sync.probe import ConnectivityProbe
from attendance_sync.core.sync.records import DepartmentRecord, UserRecord
from attendance_sync.core.sync.service import SyncService
from attendance_sync.core.sync.state import ChangeType, PendingChange, PendingChangeSet
from attendance_sync.database import DatabaseService, LocationRegistry
from attendance_sync.database.models import (
    AttendanceLog,
    Base,
    Department,
    User,
)
from attendance_sync.utils.sync_report import SyncReport


def add_rows(db_service, *rows):
    """Insert ORM rows and commit."""
    with db_service.get_session() as session:
        session.add_all(rows)
        session.commit()


def make_attendance_logs(count, badge_numbers=("1001", "1002", "1003")):
    """Build attendance rows spread over March 2024."""
    logs = []
    for i in range(count):
        logs.append(
            AttendanceLog(
                user_badge_number=badge_numbers[i % len(badge_numbers)],
                log_time=datetime(2024, 3, 1 + i // 10, 8, i % 10, 0),
                machine_id=1,
            )
        )
    return logs


def conflicting_change_set(location):
    """Change set with one conflict and one new row."""
    return PendingChangeSet(
        location_id=location.location_id,
        since=datetime(2020, 1, 1),
        changes=[
            PendingChange(ChangeType.CONFLICT, UserRecord("1001", "Alice", 1)),
            PendingChange(ChangeType.NEW, DepartmentRecord(1, "Ops")),
        ],
    )


@pytest.fixture
def local_db(tmp_path):
    """Local (central) database with every table."""
    db_service = DatabaseService(f"sqlite:///{tmp_path / 'local.db'}")
    db_service.init_db()
    yield db_service
    db_service.close()


@pytest.fixture
def remote_url(tmp_path):
    """URL of the remote site database."""
    return f"sqlite:///{tmp_path / 'remote.db'}"


@pytest.fixture
def remote_db(remote_url):
    """Remote site database with the entity tables."""
    db_service = DatabaseService(remote_url)
    Base.metadata.create_all(bind=db_service.engine)
    yield db_service
    db_service.close()


@pytest.fixture
def engine_factory(remote_url, remote_db):
    """Engine factory pointing every location at the remote SQLite file."""

    def factory(location):
        return create_engine(remote_url)

    return factory


@pytest.fixture
def registry(local_db):
    """Location registry with its schema."""
    registry = LocationRegistry(local_db)
    registry.ensure_schema()
    return registry


@pytest.fixture
def location(registry):
    """A registered, active remote location."""
    return registry.add(
        location_name="North Branch",
        host="10.0.0.5",
        database_name="attendance",
        username="sync",
        password="secret",
    )


@pytest.fixture
def report(tmp_path):
    """Sync report writing under tmp_path."""
    sync_report = SyncReport(tmp_path / "reports")
    yield sync_report
    sync_report.close()


@pytest.fixture
def probe(engine_factory):
    """Probe using the remote SQLite database."""
    return ConnectivityProbe(engine_factory)


@pytest.fixture
def detector(local_db, engine_factory):
    """Detector reading the remote SQLite database."""
    return ChangeDetector(local_db, engine_factory)


@pytest.fixture
def applier(local_db, registry):
    """Applier writing to the local database."""
    return ChangeApplier(local_db, registry)


@pytest.fixture
def sync_service(registry, probe, detector, applier, report):
    """Complete per-location sync workflow."""
    return SyncService(registry, probe, detector, applier, report)


@pytest.fixture
def seeded_remote(remote_db):
    """Remote site with 3 users, 2 departments and 50 attendance logs."""
    add_rows(
        remote_db,
        User(badge_number="1001", name="Alice", default_dept_id=1),
        User(badge_number="1002", name="Bob", default_dept_id=1),
        User(badge_number="1003", name="Carol", default_dept_id=2),
        Department(dept_id=1, dept_name="Operations"),
        Department(dept_id=2, dept_name="Finance"),
        *make_attendance_logs(50),
    )
    return remote_db


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and levels after a test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("attendance_sync"):
            logging.getLogger(name).setLevel(logging.NOTSET)
