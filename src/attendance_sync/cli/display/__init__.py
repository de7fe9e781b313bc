"""Display utilities for CLI output."""

from .formatters import (
    console,
    display_history,
    display_locations,
    display_log_files,
    display_pending_changes,
    display_settings,
    display_sync_outcome,
)

__all__ = [
    "console",
    "display_history",
    "display_locations",
    "display_log_files",
    "display_pending_changes",
    "display_settings",
    "display_sync_outcome",
]
