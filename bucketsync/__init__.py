"""bucketsync - Sync a local directory with an S3 bucket by content checksum."""

from .exceptions import (
    BucketSyncConfigError,
    BucketSyncError,
    ConnectivityError,
    DeletionError,
    ReconcileErrors,
    TransferError,
    TraversalError,
)
from .store import ObjectInfo, ObjectStore, S3Store
from .sync import SyncConfig, SyncDirection, SyncEngine, SyncReport

__all__ = [
    "S3Store",
    "ObjectStore",
    "ObjectInfo",
    "SyncEngine",
    "SyncConfig",
    "SyncDirection",
    "SyncReport",
    "BucketSyncError",
    "BucketSyncConfigError",
    "ConnectivityError",
    "TraversalError",
    "TransferError",
    "DeletionError",
    "ReconcileErrors",
]
