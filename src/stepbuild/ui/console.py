"""Console output formatting utilities for stepbuild."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console as RichConsole


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, spinner: bool = True):
        """
        Initialize console formatter.

        Args:
            debug: If True, show the configure/condition/execute trace and
                   stack traces
            spinner: If False, never render spinners (plain progress lines only)
        """
        self.debug = debug
        self.spinner_enabled = spinner
        self._rich = RichConsole(stderr=True)

    def print_run_started(self, target: str, step_count: int, work_dir: str) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Target: {target}")
        print(f"Steps: {step_count}")
        print(f"Work directory: {work_dir}")
        print()

    def print_step(self, message: str) -> None:
        """Print step start message, e.g. `(2/6) Clone depot tools repository`."""
        print(message)

    def print_step_skipped(self, message: str) -> None:
        print(f"{message} (skipped)")

    def print_tolerated_failure(self, message: str, reason: str) -> None:
        print(f"{message} failed, continuing: {reason}")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        output: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            output: Optional captured process output (tail)
        """
        print(f"STEP FAILED: {name}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if output:
            print(output.rstrip())
        if self.debug:
            print(f"Error details: {reason}")
        else:
            # first line only outside debug mode
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            print(f"Error: {error_line}")

    def print_warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)

    @contextmanager
    def spinner(self, message: str, enabled: bool = True) -> Iterator[None]:
        """Show an indeterminate progress spinner while the block runs."""
        if not (enabled and self.spinner_enabled and self._rich.is_terminal):
            yield
            return
        with self._rich.status(message, spinner="dots"):
            yield


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
