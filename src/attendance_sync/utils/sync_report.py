"""Human-readable sync report files.

Each sync run appends a block to ``sync.log`` in the configured report
directory. The file rolls over at midnight, so older days are kept as
``sync.log.YYYY-MM-DD``.
"""

import logging
import logging.handlers
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from ..core.sync.applier import SyncResult

REPORT_FILE_NAME = "sync.log"
HEAVY_RULE = "=" * 67
LIGHT_RULE = "-" * 67


class SyncReport:
    """Writes sync runs to a daily rotating report file."""

    def __init__(self, log_dir: Path, backup_count: int = 90) -> None:
        """Initialize the report.

        Args:
            log_dir: Directory holding the report files
            backup_count: Number of past days to keep
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

        self._handler = logging.handlers.TimedRotatingFileHandler(
            self.log_dir / REPORT_FILE_NAME,
            when="midnight",
            backupCount=backup_count,
            encoding="utf-8",
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))

        # Not registered with the logging manager, so nothing propagates to root
        self._logger = logging.Logger("attendance_sync.sync_report", logging.INFO)
        self._logger.propagate = False
        self._logger.addHandler(self._handler)

    @property
    def current_file(self) -> Path:
        """Path of the file currently written to."""
        return self.log_dir / REPORT_FILE_NAME

    def _write(self, text: str) -> None:
        with self._lock:
            self._logger.info(text)
            self._handler.flush()

    def log_sync_start(self, location_name: str, pending_count: int) -> None:
        """Record the start of an apply pass."""
        self._write(
            f"\n[{datetime.now():%H:%M:%S}] Sync started with: {location_name}\n"
            f"  Pending changes: {pending_count}"
        )

    def log_no_changes(self, location_name: str) -> None:
        """Record a run that found nothing to apply."""
        self._write(f"[{datetime.now():%H:%M:%S}] {location_name}: no new changes")

    def log_connection_test(
        self, location_name: str, success: bool, error_message: Optional[str] = None
    ) -> None:
        """Record a connectivity probe outcome."""
        outcome = "success" if success else f"failed - {error_message or 'unreachable'}"
        self._write(
            f"[{datetime.now():%H:%M:%S}] Connection test to {location_name}: {outcome}"
        )

    def log_sync_result(
        self,
        location_name: str,
        result: "SyncResult",
        applied_changes: Optional[Sequence[str]] = None,
    ) -> None:
        """Record the outcome of an apply pass."""
        lines = [
            HEAVY_RULE,
            f"  Sync time: {datetime.now():%Y-%m-%d %H:%M:%S}",
            f"  Location: {location_name}",
            LIGHT_RULE,
            f"  Status: {'Success' if result.success else 'Failed'}",
            f"  Records added: {result.records_added}",
            f"  Records updated: {result.records_updated}",
            f"  Records skipped: {result.records_skipped}",
        ]

        if result.errors:
            lines.append(LIGHT_RULE)
            lines.append("  Errors:")
            lines.extend(f"    - {error}" for error in result.errors)

        changes = result.applied_changes if applied_changes is None else applied_changes
        if changes:
            lines.append(LIGHT_RULE)
            lines.append("  Applied changes:")
            lines.extend(f"    {change}" for change in changes)

        lines.append(HEAVY_RULE)
        self._write("\n".join(lines) + "\n")

    def list_log_files(self) -> List[Path]:
        """List report files, newest first."""
        files = list(self.log_dir.glob(f"{REPORT_FILE_NAME}*"))
        return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)

    def close(self) -> None:
        """Close the report file."""
        self._logger.removeHandler(self._handler)
        self._handler.close()
