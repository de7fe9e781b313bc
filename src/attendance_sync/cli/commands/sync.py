"""Manual sync commands."""

import logging

import click

from ...core.sync.state import PendingChangeSet
from ...database.models import RemoteLocation
from ...exceptions import LocationNotFoundError
from ..display import console, display_pending_changes, display_sync_outcome
from .app import SyncApp, pass_app

logger = logging.getLogger(__name__)


def review_interactively(
    location: RemoteLocation, change_set: PendingChangeSet
) -> bool:
    """Let the operator decide on conflicts, then confirm the apply.

    Returns:
        False if the operator cancelled the sync
    """
    display_pending_changes(location, change_set)

    for change in change_set.conflicts():
        if click.confirm(f"Apply conflicting change {change}?", default=False):
            change.approve()
        else:
            change.reject()

    approved = len(change_set.approved())
    return click.confirm(
        f"Apply {approved} of {len(change_set)} change(s) to the local database?",
        default=True,
    )


@click.group("sync")
def sync() -> None:
    """Detect and apply changes from remote locations."""
    pass


@sync.command(name="detect")
@click.argument("location_id", type=int)
@pass_app
def detect_changes(app: SyncApp, location_id: int) -> None:
    """Show pending changes of a location without applying them."""
    try:
        location = app.ensure_ready().registry.require(location_id)
    except LocationNotFoundError as e:
        raise click.ClickException(str(e))

    if not app.probe.test_connection(location):
        raise click.ClickException(f"Cannot connect to {location.location_name}")

    try:
        change_set = app.sync_service.detect(location)
    except Exception as e:
        logger.exception("Detection failed")
        raise click.ClickException(str(e))

    display_pending_changes(location, change_set)


@sync.command(name="run")
@click.argument("location_id", type=int)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Apply without review; conflicting changes are rejected",
)
@pass_app
def run_sync(app: SyncApp, location_id: int, yes: bool) -> None:
    """Sync one location now.

    Examples:
        # Review the pending changes before applying
        attendance-sync sync run 3

        # Apply every non-conflicting change
        attendance-sync sync run 3 --yes
    """
    reviewer = None if yes else review_interactively
    try:
        outcome = app.ensure_ready().scheduler.sync_now(location_id, reviewer=reviewer)
    except LocationNotFoundError as e:
        raise click.ClickException(str(e))

    if outcome is None:
        location = app.registry.get_by_id(location_id)
        status = location.last_sync_status if location else "unknown error"
        raise click.ClickException(f"Sync failed: {status}")

    display_sync_outcome(outcome)


@sync.command(name="all")
@pass_app
def sync_all(app: SyncApp) -> None:
    """Sync every active location, rejecting conflicting changes."""
    outcomes = app.ensure_ready().scheduler.sync_all_now()
    if not outcomes:
        console.print("[yellow]No location synced[/yellow]")
    for outcome in outcomes:
        display_sync_outcome(outcome)

    failed = len(app.registry.get_active()) - len(outcomes)
    if failed:
        console.print(f"\n[red]✗ {failed} location(s) failed, see history[/red]")
