"""Command-line interface for the attendance sync application.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    SyncApp,
    db,
    history,
    locations,
    logs,
    scheduler,
    settings,
    sync,
)


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Attendance site sync.

    Keeps the central attendance database up to date with the databases of
    remote sites.
    """
    if ctx.obj is None:
        ctx.obj = SyncApp()
    app = ctx.obj

    # Set up logging
    setup_logging(
        log_level=log_level or app.config.log_level,
        log_file=Path(log_file) if log_file else app.config.log_file,
    )
    configure_third_party_loggers()

    ctx.call_on_close(app.close)


# Register command groups and commands
cli.add_command(locations)
cli.add_command(sync)
cli.add_command(history)
cli.add_command(settings)
cli.add_command(scheduler)
cli.add_command(db)
cli.add_command(logs)


if __name__ == "__main__":
    cli()
