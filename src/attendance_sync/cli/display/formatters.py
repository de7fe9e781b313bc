"""Display formatters and UI helpers for CLI."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ...core.sync.service import LocationSyncOutcome, OutcomeKind
from ...core.sync.state import ChangeType, PendingChangeSet
from ...database.models import RemoteLocation, SyncHistory, SyncSettings

console = Console()
logger = logging.getLogger(__name__)

CHANGE_STYLES = {
    ChangeType.NEW: "green",
    ChangeType.UPDATED: "yellow",
    ChangeType.CONFLICT: "red",
}


def _format_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _status_style(status: Optional[str]) -> str:
    if not status:
        return "-"
    if status in ("Success", "No Changes"):
        return f"[green]{status}[/green]"
    return f"[red]{status}[/red]"


def display_locations(locations: Sequence[RemoteLocation]) -> None:
    """Display registered remote locations.

    Args:
        locations: Locations to list
    """
    if not locations:
        console.print("[yellow]No remote locations registered[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Server")
    table.add_column("Database")
    table.add_column("Active", justify="center")
    table.add_column("Last Sync")
    table.add_column("Status")

    for location in locations:
        table.add_row(
            str(location.location_id),
            location.location_name,
            f"{location.host}:{location.port}",
            location.database_name,
            "✓" if location.is_active else "✗",
            _format_time(location.last_sync_time),
            _status_style(location.last_sync_status),
        )

    console.print(table)


def display_pending_changes(
    location: RemoteLocation, change_set: PendingChangeSet
) -> None:
    """Display the pending changes of a detection pass.

    Args:
        location: Location the changes were read from
        change_set: Detected changes
    """
    console.print(
        f"\n[bold cyan]Pending changes at {location.location_name}[/bold cyan] "
        f"(since {change_set.since:%Y-%m-%d %H:%M})\n"
    )

    for table_name, error in change_set.failed_tables.items():
        console.print(f"[red]✗ {table_name}: detection failed ({error})[/red]")

    if not change_set.has_changes():
        console.print("[green]✓ No changes[/green]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Table", style="cyan")
    table.add_column("Key")
    table.add_column("Description")
    table.add_column("Approved", justify="center")

    for index, change in enumerate(change_set, start=1):
        style = CHANGE_STYLES.get(change.change_type, "white")
        table.add_row(
            str(index),
            f"[{style}]{change.change_type.value}[/{style}]",
            change.table_name,
            change.record_key,
            change.description,
            "✓" if change.is_approved else "✗",
        )

    console.print(table)

    summary = change_set.get_summary()
    counts = ", ".join(f"{k}: {v}" for k, v in summary["by_type"].items())
    console.print(f"\nTotal: {summary['total']} ({counts})")


def display_sync_outcome(outcome: LocationSyncOutcome) -> None:
    """Display the outcome of a location sync.

    Args:
        outcome: Outcome returned by the sync service
    """
    name = outcome.location.location_name
    if outcome.kind == OutcomeKind.CONNECTION_FAILED:
        console.print(f"[red]✗ {outcome.message}[/red]")
        return
    if outcome.kind == OutcomeKind.NO_CHANGES:
        console.print(f"[green]✓ {name}: no changes[/green]")
        return
    if outcome.kind == OutcomeKind.CANCELLED:
        console.print(f"[yellow]{outcome.message}[/yellow]")
        return
    if outcome.kind == OutcomeKind.CONFLICTS:
        console.print(f"[yellow]⚠️  {outcome.message}[/yellow]")
        return

    result = outcome.result
    if result is None:
        return

    marker = "[green]✓[/green]" if result.success else "[red]✗[/red]"
    console.print(f"\n{marker} [bold]{outcome.message}[/bold]\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Added", str(result.records_added))
    table.add_row("Updated", str(result.records_updated))
    table.add_row("Skipped", str(result.records_skipped))
    table.add_row("Failed", str(result.records_failed))
    table.add_row("Duration (s)", f"{result.duration.total_seconds():.1f}")
    console.print(table)

    if result.errors:
        console.print(f"\n[yellow]⚠️  {len(result.errors)} error(s) occurred:[/yellow]")
        for error in result.errors[:10]:
            console.print(f"  • {error}")
        if len(result.errors) > 10:
            console.print(f"  ... and {len(result.errors) - 10} more")


def display_history(entries: Sequence[SyncHistory]) -> None:
    """Display sync history rows, newest first."""
    if not entries:
        console.print("[yellow]No sync history[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Completed")
    table.add_column("Location", style="bold")
    table.add_column("Type")
    table.add_column("Added", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Status")
    table.add_column("Errors")

    for entry in entries:
        table.add_row(
            _format_time(entry.completed_at),
            entry.location.location_name if entry.location else "-",
            entry.sync_type or "-",
            str(entry.records_added),
            str(entry.records_updated),
            str(entry.records_skipped),
            str(entry.records_failed),
            _status_style(entry.status),
            (entry.error_message or "")[:60],
        )

    console.print(table)


def display_settings(settings: SyncSettings) -> None:
    """Display scheduler settings."""
    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row(
        "Automatic sync", "enabled" if settings.auto_sync_enabled else "disabled"
    )
    table.add_row("Interval", f"{settings.sync_interval_minutes} min")
    table.add_row("Last modified", _format_time(settings.last_modified))
    console.print(table)


def display_log_files(files: List[Path]) -> None:
    """Display sync report files."""
    if not files:
        console.print("[yellow]No sync report files[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified")

    for path in files:
        stat = path.stat()
        table.add_row(
            str(path),
            f"{stat.st_size / 1024:.1f} KB",
            _format_time(datetime.fromtimestamp(stat.st_mtime)),
        )

    console.print(table)
