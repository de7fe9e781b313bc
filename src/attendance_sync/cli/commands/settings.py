"""Scheduler settings commands."""

from typing import Optional

import click

from ..display import console, display_settings
from .app import SyncApp, pass_app


@click.group("settings")
def settings() -> None:
    """Show or change automatic sync settings."""
    pass


@settings.command(name="show")
@pass_app
def show_settings(app: SyncApp) -> None:
    """Show automatic sync settings."""
    display_settings(app.ensure_ready().registry.get_sync_settings())


@settings.command(name="set")
@click.option("--enabled/--disabled", default=None, help="Turn automatic sync on/off")
@click.option("--interval", type=click.IntRange(min=1), help="Minutes between runs")
@pass_app
def set_settings(
    app: SyncApp, enabled: Optional[bool], interval: Optional[int]
) -> None:
    """Change automatic sync settings.

    A running scheduler picks up the new values within a minute.
    """
    if enabled is None and interval is None:
        raise click.UsageError("Pass --enabled/--disabled and/or --interval")

    current = app.ensure_ready().registry.get_sync_settings()
    updated = app.registry.update_sync_settings(
        current.auto_sync_enabled if enabled is None else enabled,
        current.sync_interval_minutes if interval is None else interval,
    )
    console.print("[green]✓ Settings saved[/green]")
    display_settings(updated)
