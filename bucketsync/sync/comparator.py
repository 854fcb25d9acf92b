"""Inventory comparison logic for sync operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .modes import SyncDirection
from .scanner import Inventory


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to the bucket"""

    DOWNLOAD = "download"
    """Download object to the local directory"""

    DELETE_LOCAL = "delete_local"
    """Delete local file"""

    DELETE_REMOTE = "delete_remote"
    """Delete object from the bucket"""

    SKIP = "skip"
    """Skip key (no action needed or allowed)"""


@dataclass(frozen=True)
class DiffResult:
    """Partition of the keys of a source and a destination inventory.

    The three groups are disjoint and together cover every key of both
    inventories.
    """

    to_transfer: frozenset[str] = field(default_factory=frozenset)
    """Keys missing from the destination or holding different content"""

    unchanged: frozenset[str] = field(default_factory=frozenset)
    """Keys present on both sides with equal fingerprint/tag"""

    destination_only: frozenset[str] = field(default_factory=frozenset)
    """Keys present only in the destination"""

    @property
    def in_sync(self) -> bool:
        """True if nothing needs to be transferred or deleted."""
        return not self.to_transfer and not self.destination_only


def diff_inventories(source: Inventory, dest: Inventory) -> DiffResult:
    """Classify every key of two inventories.

    Comparison is plain string equality of fingerprints/tags. Sizes and
    timestamps are never consulted, so the source side always wins when
    the content differs.

    Args:
        source: Inventory of the side being copied from
        dest: Inventory of the side being copied to

    Returns:
        DiffResult

    Examples:
        >>> result = diff_inventories({"a": "1", "b": "2"}, {"b": "2", "c": "3"})
        >>> sorted(result.to_transfer), sorted(result.unchanged)
        (['a'], ['b'])
        >>> sorted(result.destination_only)
        ['c']
    """
    to_transfer = set()
    unchanged = set()

    for key, fingerprint in source.items():
        if key not in dest or dest[key] != fingerprint:
            to_transfer.add(key)
        else:
            unchanged.add(key)

    destination_only = {key for key in dest if key not in source}

    return DiffResult(
        to_transfer=frozenset(to_transfer),
        unchanged=frozenset(unchanged),
        destination_only=frozenset(destination_only),
    )


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a single key."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Path key"""

    source_fingerprint: Optional[str] = None
    """Fingerprint/tag on the source side (if present)"""

    dest_fingerprint: Optional[str] = None
    """Fingerprint/tag on the destination side (if present)"""


class InventoryComparator:
    """Turns a diff into per-key sync decisions for one direction."""

    def __init__(self, direction: SyncDirection, delete_extra: bool = False):
        """Initialize inventory comparator.

        Args:
            direction: Sync direction
            delete_extra: Whether destination-only keys are deleted
        """
        self.direction = direction
        self.delete_extra = delete_extra

    @property
    def transfer_action(self) -> SyncAction:
        if self.direction == SyncDirection.UPLOAD:
            return SyncAction.UPLOAD
        return SyncAction.DOWNLOAD

    @property
    def delete_action(self) -> SyncAction:
        if self.direction == SyncDirection.UPLOAD:
            return SyncAction.DELETE_REMOTE
        return SyncAction.DELETE_LOCAL

    def compare(self, source: Inventory, dest: Inventory) -> list[SyncDecision]:
        """Compare two inventories and decide an action for every key.

        Args:
            source: Source inventory
            dest: Destination inventory

        Returns:
            List of SyncDecision objects, ordered by path key
        """
        result = diff_inventories(source, dest)
        decisions: list[SyncDecision] = []

        all_keys = set(source) | set(dest)
        for key in sorted(all_keys):
            decisions.append(self._decide(key, result, source, dest))

        return decisions

    def _decide(
        self, key: str, result: DiffResult, source: Inventory, dest: Inventory
    ) -> SyncDecision:
        source_fp = source.get(key)
        dest_fp = dest.get(key)

        if key in result.to_transfer:
            reason = "New file" if dest_fp is None else "Content differs"
            action = self.transfer_action
        elif key in result.unchanged:
            reason = "Unchanged"
            action = SyncAction.SKIP
        elif self.delete_extra:
            reason = "Not present in source"
            action = self.delete_action
        else:
            reason = "Not present in source (deletion disabled)"
            action = SyncAction.SKIP

        return SyncDecision(
            action=action,
            reason=reason,
            relative_path=key,
            source_fingerprint=source_fp,
            dest_fingerprint=dest_fp,
        )
