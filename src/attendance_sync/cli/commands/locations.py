"""Remote location management commands."""

import logging
from typing import Any, Dict, Optional

import click

from ...exceptions import LocationNotFoundError
from ..display import console, display_locations
from .app import SyncApp, pass_app

logger = logging.getLogger(__name__)


@click.group("locations")
def locations() -> None:
    """Manage remote site databases."""
    pass


@locations.command(name="list")
@pass_app
def list_locations(app: SyncApp) -> None:
    """List registered remote locations."""
    display_locations(app.ensure_ready().registry.get_all())


@locations.command(name="add")
@click.option("--name", required=True, help="Display name of the site")
@click.option("--host", required=True, help="Database server host")
@click.option("--port", default=5432, show_default=True, type=int)
@click.option("--database", "database_name", required=True, help="Database name")
@click.option("--username", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--inactive", is_flag=True, help="Register without syncing it")
@pass_app
def add_location(
    app: SyncApp,
    name: str,
    host: str,
    port: int,
    database_name: str,
    username: str,
    password: str,
    inactive: bool,
) -> None:
    """Register a remote location.

    Examples:
        attendance-sync locations add --name "North Branch" --host 10.0.0.5 \\
            --database attendance --username sync
    """
    location = app.ensure_ready().registry.add(
        location_name=name,
        host=host,
        port=port,
        database_name=database_name,
        username=username,
        password=password,
        is_active=not inactive,
    )
    console.print(
        f"[green]✓ Added location {location.location_name} "
        f"(ID: {location.location_id})[/green]"
    )


@locations.command(name="edit")
@click.argument("location_id", type=int)
@click.option("--name", default=None)
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
@click.option("--database", "database_name", default=None)
@click.option("--username", default=None)
@click.option("--password", default=None)
@click.option("--active/--inactive", "is_active", default=None)
@pass_app
def edit_location(
    app: SyncApp,
    location_id: int,
    name: Optional[str],
    host: Optional[str],
    port: Optional[int],
    database_name: Optional[str],
    username: Optional[str],
    password: Optional[str],
    is_active: Optional[bool],
) -> None:
    """Change the connection settings of a location."""
    candidates: Dict[str, Any] = {
        "location_name": name,
        "host": host,
        "port": port,
        "database_name": database_name,
        "username": username,
        "password": password,
        "is_active": is_active,
    }
    fields = {key: value for key, value in candidates.items() if value is not None}
    if not fields:
        raise click.UsageError("Nothing to update")

    try:
        location = app.ensure_ready().registry.update(location_id, **fields)
    except LocationNotFoundError as e:
        raise click.ClickException(str(e))

    console.print(f"[green]✓ Updated location {location.location_name}[/green]")


@locations.command(name="remove")
@click.argument("location_id", type=int)
@click.confirmation_option(prompt="Delete this location and its sync history?")
@pass_app
def remove_location(app: SyncApp, location_id: int) -> None:
    """Delete a location together with its sync history."""
    if not app.ensure_ready().registry.delete(location_id):
        raise click.ClickException(f"Remote location not found: {location_id}")
    console.print(f"[green]✓ Deleted location {location_id}[/green]")


@locations.command(name="test")
@click.argument("location_id", type=int)
@pass_app
def test_location(app: SyncApp, location_id: int) -> None:
    """Check that a location's database answers."""
    try:
        location = app.ensure_ready().registry.require(location_id)
    except LocationNotFoundError as e:
        raise click.ClickException(str(e))

    console.print(f"Connecting to {location.location_name}...")
    reachable = app.probe.test_connection(location)
    app.report.log_connection_test(location.location_name, reachable)

    if not reachable:
        raise click.ClickException(f"Cannot connect to {location.location_name}")
    console.print(f"[green]✓ Connected to {location.location_name}[/green]")
