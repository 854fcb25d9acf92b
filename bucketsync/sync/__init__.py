"""Sync engine for bucketsync - inventory, diff and reconcile pipeline."""

from .comparator import (
    DiffResult,
    InventoryComparator,
    SyncAction,
    SyncDecision,
    diff_inventories,
)
from .config import SyncConfig, load_sync_config_from_json
from .engine import PipelineStage, SyncEngine, SyncReport
from .fingerprint import compute_fingerprint, fingerprint_file
from .modes import SyncDirection
from .operations import SyncOperations
from .reconciler import ErrorPolicy, PhaseResult, Reconciler
from .scanner import (
    DirectoryScanner,
    Inventory,
    LocalFile,
    RemoteObject,
    RemoteScanner,
    build_local_inventory,
    build_remote_inventory,
)

__all__ = [
    "SyncEngine",
    "SyncReport",
    "PipelineStage",
    "SyncConfig",
    "load_sync_config_from_json",
    "SyncDirection",
    "SyncOperations",
    "Reconciler",
    "ErrorPolicy",
    "PhaseResult",
    "DiffResult",
    "InventoryComparator",
    "SyncAction",
    "SyncDecision",
    "diff_inventories",
    "compute_fingerprint",
    "fingerprint_file",
    "DirectoryScanner",
    "RemoteScanner",
    "Inventory",
    "LocalFile",
    "RemoteObject",
    "build_local_inventory",
    "build_remote_inventory",
]
