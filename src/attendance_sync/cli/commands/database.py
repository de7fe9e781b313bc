"""Local database maintenance commands."""

import logging

import click
from rich.table import Table

from ..display import console
from .app import SyncApp, pass_app

logger = logging.getLogger(__name__)


@click.group("db")
def db() -> None:
    """Local database maintenance."""
    pass


@db.command(name="init")
@pass_app
def db_init(app: SyncApp) -> None:
    """Create all tables and the default settings row."""
    try:
        app.db_service.init_db()
        app.ensure_ready()
    except Exception as e:
        logger.exception("Database initialization failed")
        raise click.ClickException(str(e))
    console.print("[green]✓ Database initialized[/green]")


@db.command(name="upgrade")
@pass_app
def db_upgrade(app: SyncApp) -> None:
    """Apply pending schema migrations."""
    app.db_service.run_migrations()
    console.print("[green]✓ Migrations applied[/green]")


@db.command(name="status")
@pass_app
def db_status(app: SyncApp) -> None:
    """Show database statistics."""
    if not app.db_service.is_initialized():
        raise click.ClickException("Database not initialized, run 'db init'")

    stats = app.db_service.get_statistics()
    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Database", stats["database_url"])
    table.add_row("Remote locations", str(stats["locations"]))
    table.add_row("Sync runs", str(stats["sync_runs"]))
    table.add_row("Users", str(stats["users"]))
    table.add_row("Attendance logs", str(stats["attendance_logs"]))
    console.print(table)
