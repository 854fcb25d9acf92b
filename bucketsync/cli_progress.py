"""CLI progress display for sync operations.

This module provides a Rich-based progress display that is fed by the
phase and per-key callbacks of the sync engine.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.config import SyncConfig
from .sync.engine import SyncEngine, SyncReport

_PHASE_LABELS = {
    "transfer": "Transferring",
    "delete": "Deleting",
}


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    One task is shown per reconcile phase. The engine announces each phase
    with its planned key count before the first key is applied.
    """

    def __init__(self) -> None:
        """Initialize the progress display."""
        self._progress: Optional[Progress] = None
        self._tasks: dict[str, TaskID] = {}

    def _add_task(self, phase: str, total: Optional[int]) -> TaskID:
        label = _PHASE_LABELS.get(phase, phase.capitalize())
        task_id = self._progress.add_task(label, total=total, current="")
        self._tasks[phase] = task_id
        return task_id

    def start_phase(self, phase: str, total: int) -> None:
        """Create the task of a phase with its planned number of keys.

        Args:
            phase: Phase name ("transfer" or "delete")
            total: Number of keys the phase will apply
        """
        if self._progress is None or total == 0:
            return

        if phase in self._tasks:
            self._progress.update(self._tasks[phase], total=total)
        else:
            self._add_task(phase, total)

    def handle_key(self, phase: str, key: str) -> None:
        """Advance the task of a phase after a key was applied.

        Args:
            phase: Phase name ("transfer" or "delete")
            key: Path key that was applied
        """
        if self._progress is None:
            return

        task_id = self._tasks.get(phase)
        if task_id is None:
            task_id = self._add_task(phase, None)
        self._progress.update(task_id, advance=1, current=key)

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[cyan]{task.fields[current]}"),
            TimeElapsedColumn(),
            transient=True,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._tasks = {}


def run_sync_with_progress(
    engine: SyncEngine, sync_config: SyncConfig, show_progress: bool
) -> SyncReport:
    """Run sync with a Rich progress display.

    Args:
        engine: SyncEngine instance
        sync_config: Configuration of the run
        show_progress: Whether to show the progress bar

    Returns:
        SyncReport of the run
    """
    # For dry-run there is nothing to track (just text output)
    if sync_config.dry_run or not show_progress:
        return engine.sync(sync_config)

    with SyncProgressDisplay() as display:
        return engine.sync(
            sync_config,
            progress_callback=display.handle_key,
            phase_callback=display.start_phase,
        )
