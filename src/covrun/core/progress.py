"""User-facing progress feedback for CLI operations.

Design principles:
- One line per stage, success/error markers
- No live displays, child processes stream straight to the terminal

Usage::

    from covrun.core.progress import status, task

    status("Trigger matched", style="success")  # ✓ Trigger matched

    with task("Installing grcov 0.8.2"):
        install()
    # Prints: ✓ Installing grcov 0.8.2 (12.3s)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from covrun.pipeline.models import RunResult

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "skip": "[dim]-[/dim] ",
    "info": "  ",
    "none": "",
}

_STAGE_STATUS_STYLE = {
    "passed": "green",
    "failed": "red",
    "skipped": "dim",
}


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from covrun.core.logging import get_logger

    return get_logger("progress")


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)

    _get_logger().debug("status", message=message, style=style)


@contextmanager
def task(name: str) -> Iterator[None]:
    """Context manager for a named task with timing.

    Usage::

        with task("Provisioning toolchain"):
            ...
        # Prints: ✓ Provisioning toolchain (3.2s)
    """
    log = _get_logger()
    log.debug("task_start", task=name)
    status(f"{name}...", style="none", indent=0)
    start = time.perf_counter()

    try:
        yield
        elapsed = time.perf_counter() - start
        status(f"{name} ({elapsed:.1f}s)", style="success")
        log.debug("task_done", task=name, elapsed_s=elapsed)
    except Exception as e:
        elapsed = time.perf_counter() - start
        status(f"{name} failed: {e}", style="error")
        log.debug("task_failed", task=name, elapsed_s=elapsed, error=str(e))
        raise


def make_run_table(result: RunResult) -> Table:
    """Build a per-stage table for the end-of-run summary."""
    table = Table(title=f"Run {result.status}", title_justify="left", show_edge=False)
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Detail", overflow="fold")

    for stage in result.stages:
        style = _STAGE_STATUS_STYLE.get(stage.status, "")
        table.add_row(
            stage.stage,
            f"[{style}]{stage.status}[/{style}]" if style else stage.status,
            f"{stage.duration_seconds:.1f}s",
            stage.error_detail or "",
        )
    return table
