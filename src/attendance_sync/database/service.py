"""Database service owning the local engine and session factory."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from alembic import command  # type: ignore[attr-defined]
from alembic.config import Config as AlembicConfig  # type: ignore[import-not-found]

from .models import (
    AttendanceLog,
    Base,
    RemoteLocation,
    SyncHistory,
    User,
)

logger = logging.getLogger(__name__)

REGISTRY_TABLES = ("remote_locations", "sync_history", "sync_settings")


class DatabaseService:
    """Service for the local (central) database connection."""

    def __init__(self, database_url: Optional[str] = None) -> None:
        """Initialize database service.

        Args:
            database_url: SQLAlchemy URL of the local database.
                If None, uses the configured ATTENDANCE_SYNC_DATABASE_URL.
        """
        if database_url is None:
            from ..config import get_config

            database_url = get_config().database_url

        self.database_url = database_url
        self.engine: Engine = create_engine(database_url, echo=False)

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

        logger.info(
            "Database initialized at: %s",
            make_url(database_url).render_as_string(hide_password=True),
        )

    def init_db(self) -> None:
        """Initialize database schema.

        Creates all tables using SQLAlchemy and then stamps Alembic to mark the
        database as current.
        """
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema created successfully")

        self._stamp_migrations()

    def _alembic_config(self) -> Optional[AlembicConfig]:
        """Build an Alembic config pointing at this database, if Alembic is shipped."""
        # alembic.ini and alembic/ are in the project root
        project_dir = Path(__file__).parent.parent.parent.parent
        alembic_ini = project_dir / "alembic.ini"
        alembic_dir = project_dir / "alembic"

        if not alembic_ini.exists() or not alembic_dir.exists():
            logger.warning("Alembic not found at %s, skipping migrations", project_dir)
            return None

        alembic_cfg = AlembicConfig(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(alembic_dir))
        alembic_cfg.set_main_option(
            "sqlalchemy.url",
            make_url(self.database_url)
            .render_as_string(hide_password=False)
            .replace("%", "%%"),
        )
        alembic_cfg.attributes["configured_by_service"] = True
        return alembic_cfg

    def _stamp_migrations(self) -> None:
        """Stamp database as being at the latest migration version."""
        try:
            alembic_cfg = self._alembic_config()
            if alembic_cfg is None:
                return
            command.stamp(alembic_cfg, "head")
            logger.info("Database stamped with latest migration version")
        except Exception as e:
            logger.error("Failed to stamp migrations: %s", e)
            logger.warning("Database may need manual migration")

    def run_migrations(self) -> None:
        """Run Alembic migrations to upgrade database to latest version."""
        try:
            alembic_cfg = self._alembic_config()
            if alembic_cfg is None:
                return
            command.upgrade(alembic_cfg, "head")
            logger.info("Database migrations applied successfully")
        except Exception as e:
            logger.error("Failed to run migrations: %s", e)
            logger.warning("Continuing with base schema only")

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def is_initialized(self) -> bool:
        """Check whether the registry tables exist and a session can be opened."""
        try:
            inspector = inspect(self.engine)
            missing = [t for t in REGISTRY_TABLES if not inspector.has_table(t)]
            if missing:
                logger.debug("Required tables missing: %s", ", ".join(missing))
                return False

            with self.SessionLocal() as session:
                session.execute(select(1))

            return True
        except Exception as e:
            logger.debug("Database initialization check failed: %s", e)
            return False

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with statistics
        """
        with self.get_session() as session:
            return {
                "locations": session.query(RemoteLocation).count(),
                "sync_runs": session.query(SyncHistory).count(),
                "users": session.query(User).count(),
                "attendance_logs": session.query(AttendanceLog).count(),
                "database_url": make_url(self.database_url).render_as_string(
                    hide_password=True
                ),
            }

    def close(self) -> None:
        """Close database connection."""
        self.engine.dispose()
        logger.info("Database connection closed")
