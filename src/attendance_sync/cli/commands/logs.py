"""Sync report file listing."""

import click

from ..display import console, display_log_files
from .app import SyncApp, pass_app


@click.command("logs")
@pass_app
def logs(app: SyncApp) -> None:
    """List sync report files."""
    console.print(f"Sync reports in {app.report.log_dir}\n")
    display_log_files(app.report.list_log_files())
