"""Custom exceptions for bucketsync."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sync.engine import SyncReport


class BucketSyncError(Exception):
    """Base exception for all bucketsync errors."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key
        # Set by the sync engine when the error aborts a run
        self.report: Optional["SyncReport"] = None


class BucketSyncConfigError(BucketSyncError):
    """Raised when a sync configuration is invalid."""

    pass


class ConnectivityError(BucketSyncError):
    """Raised when the object store cannot be reached or the bucket is
    inaccessible (network failure, bad credentials, missing bucket)."""

    pass


class TraversalError(BucketSyncError):
    """Raised when walking or reading the local directory tree fails."""

    pass


class TransferError(BucketSyncError):
    """Raised when a single upload or download fails."""

    pass


class DeletionError(BucketSyncError):
    """Raised when deleting a single destination entry fails."""

    pass


class ReconcileErrors(BucketSyncError):
    """Raised when a phase run with the collect-all policy had failures.

    Attributes:
        errors: Every per-key error of the phase, in completion order
    """

    def __init__(self, phase: str, errors: list[BucketSyncError]):
        super().__init__(f"{len(errors)} {phase} operation(s) failed")
        self.phase = phase
        self.errors = errors
