"""Reconciler: applies a diff by transferring and deleting keys."""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from ..exceptions import BucketSyncError, ReconcileErrors
from .modes import SyncDirection
from .operations import SyncOperations

logger = logging.getLogger(__name__)

KeyCallback = Callable[[str, str], None]
"""Called as callback(phase, key) after each key is applied successfully."""

PhaseCallback = Callable[[str, int], None]
"""Called as callback(phase, total) before a phase applies its keys."""


class ErrorPolicy(str, Enum):
    """What a phase does after a per-key failure."""

    ABORT = "abort"
    """Stop at the first failure; remaining keys are not attempted"""

    COLLECT = "collect"
    """Attempt every key and report all failures at the end"""


@dataclass
class PhaseResult:
    """Outcome of one reconcile phase (transfer or delete)."""

    phase: str
    """Phase name ("transfer" or "delete")"""

    policy: ErrorPolicy
    """Error policy the phase ran with"""

    completed: list[str] = field(default_factory=list)
    """Keys applied successfully, in completion order"""

    errors: list[BucketSyncError] = field(default_factory=list)
    """Per-key failures, in completion order"""

    not_attempted: list[str] = field(default_factory=list)
    """Keys left untouched because the phase aborted"""

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise the phase failure, if any.

        Raises:
            BucketSyncError: The first failure, under ErrorPolicy.ABORT
            ReconcileErrors: All failures, under ErrorPolicy.COLLECT
        """
        if not self.errors:
            return
        if self.policy == ErrorPolicy.ABORT:
            raise self.errors[0]
        raise ReconcileErrors(self.phase, list(self.errors))


class Reconciler:
    """Runs the transfer and deletion phases of a sync.

    Keys are applied one at a time in path order, or on a bounded thread
    pool when max_workers > 1. Applied keys are never rolled back.
    """

    def __init__(
        self,
        operations: SyncOperations,
        direction: SyncDirection,
        max_workers: int = 1,
        error_policy: ErrorPolicy = ErrorPolicy.ABORT,
        on_key: Optional[KeyCallback] = None,
    ):
        """Initialize reconciler.

        Args:
            operations: Per-key operations for the local root and bucket
            direction: Sync direction
            max_workers: Number of parallel workers (1 for sequential)
            error_policy: Continuation policy after a per-key failure
            on_key: Optional callback invoked after each applied key
        """
        self.operations = operations
        self.direction = direction
        self.max_workers = max(1, max_workers)
        self.error_policy = error_policy
        self.on_key = on_key

    def transfer_all(self, keys: Iterable[str]) -> PhaseResult:
        """Copy every key from the source side to the destination side."""
        return self._run_phase(
            "transfer", keys, lambda key: self.operations.transfer(key, self.direction)
        )

    def delete_all(self, keys: Iterable[str]) -> PhaseResult:
        """Delete every key from the destination side."""
        return self._run_phase(
            "delete", keys, lambda key: self.operations.delete(key, self.direction)
        )

    def _run_phase(
        self, phase: str, keys: Iterable[str], action: Callable[[str], None]
    ) -> PhaseResult:
        ordered = sorted(keys)
        result = PhaseResult(phase=phase, policy=self.error_policy)
        if not ordered:
            return result

        start = time.time()
        if self.max_workers > 1 and len(ordered) > 1:
            self._run_parallel(result, ordered, action)
        else:
            self._run_sequential(result, ordered, action)

        logger.debug(
            f"Phase {phase}: {len(result.completed)} done, {len(result.errors)} "
            f"failed, {len(result.not_attempted)} not attempted "
            f"in {time.time() - start:.2f}s"
        )
        return result

    def _record_success(self, result: PhaseResult, key: str) -> None:
        result.completed.append(key)
        if self.on_key is not None:
            self.on_key(result.phase, key)

    def _run_sequential(
        self, result: PhaseResult, keys: list[str], action: Callable[[str], None]
    ) -> None:
        for index, key in enumerate(keys):
            try:
                action(key)
            except BucketSyncError as e:
                logger.debug(f"{result.phase} of {key} failed: {e}")
                result.errors.append(e)
                if self.error_policy == ErrorPolicy.ABORT:
                    result.not_attempted.extend(keys[index + 1 :])
                    return
                continue
            self._record_success(result, key)

    def _run_parallel(
        self, result: PhaseResult, keys: list[str], action: Callable[[str], None]
    ) -> None:
        logger.debug(
            f"Running {result.phase} of {len(keys)} key(s) "
            f"with {self.max_workers} workers"
        )
        processed: set[Future] = set()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(action, key): key for key in keys}

            for future in as_completed(futures):
                processed.add(future)
                key = futures[future]
                error = future.exception()
                if error is None:
                    self._record_success(result, key)
                    continue
                if not isinstance(error, BucketSyncError):
                    raise error
                logger.debug(f"{result.phase} of {key} failed: {error}")
                result.errors.append(error)
                if self.error_policy == ErrorPolicy.ABORT:
                    for pending in futures:
                        pending.cancel()
                    break

        # Settle work that was in flight or cancelled when the phase aborted
        for future, key in futures.items():
            if future in processed:
                continue
            if future.cancelled():
                result.not_attempted.append(key)
                continue
            error = future.exception()
            if error is None:
                self._record_success(result, key)
            elif isinstance(error, BucketSyncError):
                result.errors.append(error)
            else:
                raise error
