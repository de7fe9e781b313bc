"""Sync history command."""

from typing import Optional

import click

from ..display import display_history
from .app import SyncApp, pass_app


@click.command("history")
@click.option("--limit", default=100, show_default=True, type=click.IntRange(min=1))
@click.option("--location", "location_id", type=int, help="Only this location")
@pass_app
def history(app: SyncApp, limit: int, location_id: Optional[int]) -> None:
    """Show recent sync runs."""
    entries = app.ensure_ready().registry.get_history(
        limit=limit, location_id=location_id
    )
    display_history(entries)
