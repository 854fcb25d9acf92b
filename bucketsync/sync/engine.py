"""Core sync engine: inventory, diff and reconcile pipeline."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..exceptions import BucketSyncError, ConnectivityError, TraversalError
from ..output import OutputFormatter
from ..store import ObjectStore
from .comparator import InventoryComparator, SyncAction, diff_inventories
from .config import SyncConfig
from .modes import SyncDirection
from .operations import SyncOperations
from .reconciler import KeyCallback, PhaseCallback, PhaseResult, Reconciler
from .scanner import Inventory, build_local_inventory, build_remote_inventory

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Stages of a sync run, in execution order."""

    BUILD_SOURCE = "build_source"
    BUILD_DESTINATION = "build_destination"
    DIFF = "diff"
    TRANSFER = "transfer"
    DELETE = "delete"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncReport:
    """What a sync run did. Built fresh for every run, never persisted."""

    direction: SyncDirection
    bucket: str
    local: str
    dry_run: bool = False
    stage: PipelineStage = PipelineStage.BUILD_SOURCE
    failed_stage: Optional[PipelineStage] = None
    transferred: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    destination_only: list[str] = field(default_factory=list)
    """Destination-only keys left in place (deletion disabled or dry run)"""
    planned_transfers: list[str] = field(default_factory=list)
    planned_deletions: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.stage == PipelineStage.DONE

    def fail(self, error: BucketSyncError) -> None:
        self.failed_stage = self.stage
        self.stage = PipelineStage.FAILED
        self.error = str(error)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a JSON-serializable dictionary."""
        return {
            "direction": self.direction.value,
            "bucket": self.bucket,
            "local": self.local,
            "dryRun": self.dry_run,
            "stage": self.stage.value,
            "failedStage": self.failed_stage.value if self.failed_stage else None,
            "transferred": sorted(self.transferred),
            "unchanged": sorted(self.unchanged),
            "deleted": sorted(self.deleted),
            "destinationOnly": sorted(self.destination_only),
            "plannedTransfers": sorted(self.planned_transfers),
            "plannedDeletions": sorted(self.planned_deletions),
            "error": self.error,
        }


class SyncEngine:
    """Orchestrates one sync run between a local directory and a bucket.

    The engine holds no per-run state: every call to :meth:`sync` takes its
    own :class:`SyncConfig` and rebuilds both inventories from scratch.
    """

    def __init__(self, store: ObjectStore, output: Optional[OutputFormatter] = None):
        """Initialize sync engine.

        Args:
            store: Object store client
            output: Output formatter for displaying progress/status
        """
        self.store = store
        self.output = output or OutputFormatter()

    def sync(
        self,
        sync_config: SyncConfig,
        progress_callback: Optional[KeyCallback] = None,
        phase_callback: Optional[PhaseCallback] = None,
    ) -> SyncReport:
        """Run the full pipeline for one configuration.

        Stages run in order: build source inventory, build destination
        inventory, diff, transfer, and (if enabled) delete. The first
        failing stage ends the run; work already applied stays applied.

        Args:
            sync_config: Configuration of this run
            progress_callback: Optional callback(phase, key) after each
                applied transfer or deletion
            phase_callback: Optional callback(phase, total) before the
                transfer and delete phases start

        Returns:
            SyncReport of the completed run

        Raises:
            BucketSyncError: The error that failed the run; its ``report``
                attribute holds the SyncReport up to the failure

        Examples:
            >>> engine = SyncEngine(S3Store())
            >>> cfg = SyncConfig(local="./site", bucket="b", direction="push")
            >>> report = engine.sync(cfg)
            >>> print(f"Uploaded {len(report.transferred)} files")
        """
        report = SyncReport(
            direction=sync_config.direction,
            bucket=sync_config.bucket,
            local=str(sync_config.local),
            dry_run=sync_config.dry_run,
        )

        start_time = time.time()
        try:
            self._run(sync_config, report, progress_callback, phase_callback)
        except BucketSyncError as e:
            report.fail(e)
            e.report = report
            logger.debug(f"Sync failed in stage {report.failed_stage}: {e}")
            raise

        logger.debug(f"Sync finished in {time.time() - start_time:.2f}s")
        return report

    def _run(
        self,
        sync_config: SyncConfig,
        report: SyncReport,
        progress_callback: Optional[KeyCallback],
        phase_callback: Optional[PhaseCallback] = None,
    ) -> None:
        direction = sync_config.direction

        if not self.output.quiet:
            self.output.info(f"Syncing: {sync_config}")
            self.output.info(f"Direction: {direction.value}")
            if sync_config.dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        # Steps 1 and 2: build inventories
        report.stage = PipelineStage.BUILD_SOURCE
        if direction.source_is_local:
            source = self._build_local(sync_config, is_destination=False)
        else:
            source = self._build_remote(sync_config)

        report.stage = PipelineStage.BUILD_DESTINATION
        if direction.source_is_local:
            dest = self._build_remote(sync_config)
        else:
            dest = self._build_local(sync_config, is_destination=True)

        # Step 3: diff
        report.stage = PipelineStage.DIFF
        diff = diff_inventories(source, dest)
        report.unchanged = sorted(diff.unchanged)
        report.planned_transfers = sorted(diff.to_transfer)
        if sync_config.delete_extra:
            report.planned_deletions = sorted(diff.destination_only)
        else:
            report.destination_only = sorted(diff.destination_only)
        logger.debug(
            f"Diff: {len(diff.to_transfer)} to transfer, {len(diff.unchanged)} "
            f"unchanged, {len(diff.destination_only)} destination-only"
        )

        if sync_config.dry_run:
            self._display_plan(sync_config, source, dest)
            if sync_config.delete_extra:
                report.destination_only = sorted(diff.destination_only)
            report.stage = PipelineStage.DONE
            if not self.output.quiet:
                self._display_summary(report)
            return

        if not self.output.quiet:
            for key in report.unchanged:
                self.output.info(f"Skipped (unchanged): {key}")

        # Step 4: transfer
        reconciler = Reconciler(
            SyncOperations(self.store, sync_config.bucket, sync_config.local),
            direction,
            max_workers=sync_config.max_workers,
            error_policy=sync_config.error_policy,
            on_key=self._make_key_callback(sync_config, progress_callback),
        )

        report.stage = PipelineStage.TRANSFER
        if phase_callback is not None:
            phase_callback("transfer", len(diff.to_transfer))
        result = reconciler.transfer_all(diff.to_transfer)
        report.transferred = list(result.completed)
        self._raise_phase_errors(result)

        # Step 5: optional delete
        if sync_config.delete_extra:
            report.stage = PipelineStage.DELETE
            if phase_callback is not None:
                phase_callback("delete", len(diff.destination_only))
            result = reconciler.delete_all(diff.destination_only)
            report.deleted = list(result.completed)
            self._raise_phase_errors(result)

        report.stage = PipelineStage.DONE
        if not self.output.quiet:
            self._display_summary(report)

    def _build_local(self, sync_config: SyncConfig, is_destination: bool) -> Inventory:
        """Build the local inventory, creating a missing pull target."""
        root = sync_config.local
        try:
            missing = is_destination and not root.exists()
        except OSError as e:
            raise TraversalError(f"Cannot stat local directory {root}: {e}") from e
        if missing:
            if sync_config.dry_run:
                logger.debug(f"Local directory {root} does not exist yet")
                return {}
            try:
                root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise TraversalError(
                    f"Cannot create local directory {root}: {e}"
                ) from e
            logger.debug(f"Created local directory {root}")

        scan_start = time.time()
        inventory = build_local_inventory(root)
        logger.debug(
            f"Local scan took {time.time() - scan_start:.2f}s "
            f"for {len(inventory)} files"
        )
        return inventory

    def _build_remote(self, sync_config: SyncConfig) -> Inventory:
        """Check the bucket is usable, then build its inventory."""
        bucket = sync_config.bucket
        if not self.store.bucket_exists(bucket):
            can_create = (
                sync_config.create_bucket
                and sync_config.direction == SyncDirection.UPLOAD
            )
            if not can_create:
                raise ConnectivityError(f"Bucket does not exist: {bucket}")
            if sync_config.dry_run:
                logger.debug(f"Bucket {bucket} would be created")
                return {}
            self.store.create_bucket(bucket)
            if not self.output.quiet:
                self.output.info(f"Created bucket: {bucket}")
            return {}

        list_start = time.time()
        inventory = build_remote_inventory(self.store, bucket)
        logger.debug(
            f"Remote listing took {time.time() - list_start:.2f}s "
            f"for {len(inventory)} objects"
        )
        return inventory

    def _make_key_callback(
        self, sync_config: SyncConfig, progress_callback: Optional[KeyCallback]
    ) -> KeyCallback:
        bucket = sync_config.bucket
        direction = sync_config.direction

        def on_key(phase: str, key: str) -> None:
            if not self.output.quiet:
                if phase == "transfer" and direction == SyncDirection.UPLOAD:
                    self.output.info(f"Uploaded {key} to s3://{bucket}/{key}")
                elif phase == "transfer":
                    self.output.info(f"Downloaded s3://{bucket}/{key} to {key}")
                elif direction == SyncDirection.UPLOAD:
                    self.output.info(f"Deleted s3://{bucket}/{key}")
                else:
                    self.output.info(f"Deleted local file: {key}")
            if progress_callback is not None:
                progress_callback(phase, key)

        return on_key

    def _raise_phase_errors(self, result: PhaseResult) -> None:
        if result.ok:
            return
        if not self.output.quiet:
            for error in result.errors:
                self.output.error(str(error))
            if result.not_attempted:
                self.output.warning(
                    f"{len(result.not_attempted)} {result.phase} operation(s) "
                    "not attempted"
                )
        result.raise_for_errors()

    def _display_plan(
        self, sync_config: SyncConfig, source: Inventory, dest: Inventory
    ) -> None:
        """Display the per-key plan of a dry run."""
        if self.output.quiet:
            return

        comparator = InventoryComparator(
            sync_config.direction, delete_extra=sync_config.delete_extra
        )
        labels = {
            SyncAction.UPLOAD: "Would upload",
            SyncAction.DOWNLOAD: "Would download",
            SyncAction.DELETE_LOCAL: "Would delete local file",
            SyncAction.DELETE_REMOTE: "Would delete object",
            SyncAction.SKIP: "Skip",
        }

        self.output.info("Sync plan:")
        for decision in comparator.compare(source, dest):
            label = labels[decision.action]
            self.output.info(f"  {label}: {decision.relative_path} ({decision.reason})")
        self.output.print("")

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary."""
        self.output.print("")
        if report.dry_run:
            self.output.success("Dry run complete!")
            self.output.info(f"  Would transfer: {len(report.planned_transfers)}")
            self.output.info(f"  Would delete: {len(report.planned_deletions)}")
            self.output.info(f"  Unchanged: {len(report.unchanged)}")
            return

        self.output.success("Sync complete!")
        total_actions = len(report.transferred) + len(report.deleted)
        if total_actions > 0:
            self.output.info(f"Total actions: {total_actions}")
            if report.transferred:
                verb = report.direction.transfer_verb
                self.output.info(f"  {verb}: {len(report.transferred)}")
            if report.deleted:
                self.output.info(f"  Deleted: {len(report.deleted)}")
        else:
            self.output.info("No changes needed - everything is in sync!")
        if report.unchanged:
            self.output.info(f"  Unchanged: {len(report.unchanged)}")
        if report.destination_only:
            self.output.info(
                f"  Not in source (kept): {len(report.destination_only)}"
            )
