"""Service wiring shared by the CLI commands."""

from typing import Optional

import click

from ...config import Config, get_config
from ...core.sync.applier import ChangeApplier
from ...core.sync.detector import ChangeDetector
from ...core.sync.probe import ConnectivityProbe, remote_engine_factory
from ...core.sync.scheduler import SyncScheduler
from ...core.sync.service import SyncService
from ...database import DatabaseService, LocationRegistry
from ...utils.sync_report import SyncReport


class SyncApp:
    """Builds the sync services from configuration."""

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize application.

        Args:
            config: Configuration; read from the environment when None
        """
        self.config = config or get_config()
        self._schema_ready = False

        self.db_service = DatabaseService(self.config.database_url)
        self.registry = LocationRegistry(self.db_service)
        self.report = SyncReport(self.config.sync_log_dir)

        engine_factory = remote_engine_factory(self.config.connect_timeout)
        self.probe = ConnectivityProbe(engine_factory)
        self.detector = ChangeDetector(self.db_service, engine_factory)
        self.applier = ChangeApplier(self.db_service, self.registry)
        self.sync_service = SyncService(
            self.registry, self.probe, self.detector, self.applier, self.report
        )
        self.scheduler = SyncScheduler(
            self.registry,
            self.sync_service,
            default_interval_minutes=self.config.default_interval_minutes,
        )

    def ensure_ready(self) -> "SyncApp":
        """Create the registry tables on first use."""
        if not self._schema_ready:
            self.registry.ensure_schema()
            self._schema_ready = True
        return self

    def close(self) -> None:
        """Release the report file and database connections."""
        self.scheduler.stop()
        self.report.close()
        self.db_service.close()


pass_app = click.make_pass_decorator(SyncApp)
