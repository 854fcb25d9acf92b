"""Output formatting for the bucketsync CLI."""

import json
from typing import Any

from rich.console import Console


class OutputFormatter:
    """Formats human-readable and JSON output for CLI commands."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text messages
            quiet: Suppress non-essential output (errors are always shown)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.error_console = Console(stderr=True, highlight=False)

    def _show(self) -> bool:
        return not self.quiet and not self.json_output

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if self._show():
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self._show():
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a success message."""
        if self._show():
            self.console.print(f"✓ {message}", style="green", markup=False)

    def warning(self, message: str) -> None:
        """Print a warning message."""
        if not self.quiet:
            self.error_console.print(f"⚠ {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        """Print an error message to stderr."""
        self.error_console.print(f"✗ {message}", style="bold red", markup=False)

    def output_json(self, data: Any) -> None:
        """Print data as JSON on stdout."""
        self.console.print_json(json.dumps(data, default=str))
