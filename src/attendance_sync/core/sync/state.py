"""Pending change tracking.

A detection pass produces one PendingChangeSet holding a PendingChange per
divergent remote row. Changes live for a single run only and are never
persisted.
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, List, Optional

from .records import RemoteRecord


class ChangeType(str, Enum):
    """Classification of a row-level divergence."""

    NEW = "New"
    UPDATED = "Updated"
    # Reserved: surfaced for review, never auto-applied
    CONFLICT = "Conflict"


@dataclass
class PendingChange:
    """One divergent remote row awaiting approval.

    Attributes:
        change_type: How the remote row differs from the local one
        record: Typed remote field values
        is_approved: Whether the applier should apply the change
    """

    change_type: ChangeType
    record: RemoteRecord
    is_approved: bool = True

    @property
    def table_name(self) -> str:
        """Source table of the change."""
        return self.record.table

    @property
    def record_key(self) -> str:
        """Natural key of the row within its table."""
        return self.record.record_key

    @property
    def description(self) -> str:
        """Human-readable description of the row."""
        return self.record.description

    @property
    def is_conflict(self) -> bool:
        """Whether the change must not be auto-applied."""
        return self.change_type == ChangeType.CONFLICT

    def approve(self) -> None:
        """Mark the change for apply."""
        self.is_approved = True

    def reject(self) -> None:
        """Exclude the change from apply."""
        self.is_approved = False

    def __str__(self) -> str:
        """Human-readable representation of the change."""
        return (
            f"[{self.change_type.value}] {self.table_name}/{self.record_key}: "
            f"{self.description}"
        )


@dataclass
class PendingChangeSet:
    """Ordered result of one detection pass for one location.

    Attributes:
        location_id: Location the changes were read from
        since: Watermark that bounded the time-filtered tables
        detected_at: When detection started; becomes the next watermark
        changes: Divergent rows in table order
        failed_tables: Tables whose detection failed, with the error message
    """

    location_id: int
    since: datetime
    detected_at: datetime = dataclass_field(default_factory=datetime.now)
    changes: List[PendingChange] = dataclass_field(default_factory=list)
    failed_tables: dict[str, str] = dataclass_field(default_factory=dict)

    def add(self, change: PendingChange) -> None:
        """Append a change."""
        self.changes.append(change)

    def extend(self, changes: List[PendingChange]) -> None:
        """Append several changes."""
        self.changes.extend(changes)

    def __iter__(self) -> Iterator[PendingChange]:
        """Iterate over changes in detection order."""
        return iter(self.changes)

    def __len__(self) -> int:
        """Number of changes."""
        return len(self.changes)

    def has_changes(self) -> bool:
        """Check if any changes were detected."""
        return len(self.changes) > 0

    @property
    def has_conflicts(self) -> bool:
        """Whether any change is classified as a conflict."""
        return any(c.is_conflict for c in self.changes)

    @property
    def is_partial(self) -> bool:
        """Whether detection failed for at least one table."""
        return bool(self.failed_tables)

    def get_changes_by_type(self, change_type: ChangeType) -> List[PendingChange]:
        """Get all changes of a specific type."""
        return [c for c in self.changes if c.change_type == change_type]

    def get_changes_by_table(self, table_name: str) -> List[PendingChange]:
        """Get all changes of one table."""
        return [c for c in self.changes if c.table_name == table_name]

    def conflicts(self) -> List[PendingChange]:
        """Get changes classified as conflicts."""
        return self.get_changes_by_type(ChangeType.CONFLICT)

    def approved(self) -> List[PendingChange]:
        """Get changes currently approved for apply."""
        return [c for c in self.changes if c.is_approved]

    def approve_all(self) -> None:
        """Approve every change."""
        for change in self.changes:
            change.approve()

    def reject_all(self) -> None:
        """Reject every change."""
        for change in self.changes:
            change.reject()

    def reject_conflicts(self) -> int:
        """Reject every conflict and return how many were rejected."""
        conflicts = self.conflicts()
        for change in conflicts:
            change.reject()
        return len(conflicts)

    def get_summary(self) -> dict[str, Any]:
        """Get counts by change type and by table."""
        by_type: dict[str, int] = {}
        by_table: dict[str, int] = {}
        for change in self.changes:
            by_type[change.change_type.value] = (
                by_type.get(change.change_type.value, 0) + 1
            )
            by_table[change.table_name] = by_table.get(change.table_name, 0) + 1

        return {
            "total": len(self.changes),
            "approved": len(self.approved()),
            "by_type": by_type,
            "by_table": by_table,
            "failed_tables": sorted(self.failed_tables),
        }

    def find(self, table_name: str, record_key: str) -> Optional[PendingChange]:
        """Find a change by table and natural key."""
        for change in self.changes:
            if change.table_name == table_name and change.record_key == record_key:
                return change
        return None
