"""Foreground scheduler command."""

import logging
import threading

import click

from ...core.sync.scheduler import SyncEvent
from ..display import console, display_sync_outcome
from .app import SyncApp, pass_app

logger = logging.getLogger(__name__)


def _print_completed(event: SyncEvent) -> None:
    console.print(f"[green]✓ {event.message}[/green]")


def _print_conflicts(event: SyncEvent) -> None:
    console.print(
        f"[yellow]⚠️  {event.message}; run 'attendance-sync sync run "
        f"{event.location.location_id}' to review[/yellow]"
    )


@click.group("scheduler")
def scheduler() -> None:
    """Automatic sync scheduler."""
    pass


@scheduler.command(name="run")
@click.option("--once", is_flag=True, help="Run a single pass and exit")
@click.option(
    "--poll",
    default=60,
    show_default=True,
    type=click.IntRange(min=1),
    help="Seconds between settings checks",
)
@pass_app
def run_scheduler(app: SyncApp, once: bool, poll: int) -> None:
    """Run the scheduler in the foreground until interrupted."""
    sync_scheduler = app.ensure_ready().scheduler
    sync_scheduler.on_sync_completed(_print_completed)
    sync_scheduler.on_conflicts_detected(_print_conflicts)

    if once:
        outcomes = sync_scheduler.run_once() or []
        for outcome in outcomes:
            display_sync_outcome(outcome)
        return

    sync_scheduler.initialize()
    if sync_scheduler.is_enabled:
        console.print(
            f"[bold cyan]Scheduler running every "
            f"{sync_scheduler.interval_minutes} min (Ctrl+C to stop)[/bold cyan]"
        )
    else:
        console.print(
            "[yellow]Automatic sync is disabled; waiting for it to be enabled[/yellow]"
        )

    idle = threading.Event()
    try:
        while not idle.wait(poll):
            sync_scheduler.refresh_settings()
    except KeyboardInterrupt:
        console.print("\nStopping scheduler...")
    finally:
        sync_scheduler.stop(wait=True)
