"""Shared utility functions for buildpilot.

Provides the Rich console, the ``BuildLogger`` the orchestrator reports
through, and formatting helpers for durations, artifact sizes and summary
tables.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

console = Console()


# ---------------------------------------------------------------------------
# Build logger
# ---------------------------------------------------------------------------


class BuildLogger:
    """Human-readable progress and error reporting for a build.

    Every line is printed to the Rich console and kept in an in-memory buffer
    so callers can inspect what was reported. Lines are printed with
    ``markup=False`` and styled per channel; Gradle output and artifact paths
    routinely contain bracketed text such as ``[ERROR]`` that Rich would
    otherwise parse.

    Args:
        verbose: When ``False``, ``trace`` lines are buffered but not printed.
        output: Console to print to (defaults to the shared module console).
    """

    def __init__(self, verbose: bool = False, output: Console | None = None) -> None:
        self.verbose = verbose
        self.console = output or console
        self.status_lines: list[str] = []
        self.error_lines: list[str] = []
        self.trace_lines: list[str] = []

    @property
    def status_text(self) -> str:
        return "\n".join(self.status_lines)

    @property
    def error_text(self) -> str:
        return "\n".join(self.error_lines)

    def status(self, line: str) -> None:
        self.status_lines.append(line)
        self.console.print(line, markup=False, highlight=False)

    def error(self, line: str) -> None:
        self.error_lines.append(line)
        self.console.print(line, style="red", markup=False, highlight=False)

    def trace(self, line: str) -> None:
        self.trace_lines.append(line)
        if self.verbose:
            self.console.print(line, style="dim", markup=False, highlight=False)

    def success(self, line: str) -> None:
        self.status_lines.append(line)
        self.console.print(line, style="bold green", markup=False, highlight=False)

    def warning(self, line: str) -> None:
        self.status_lines.append(line)
        self.console.print(line, style="bold yellow", markup=False, highlight=False)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


def format_size_mb(size_bytes: int) -> str:
    """Format a byte count as megabytes with one decimal, e.g. ``"12.3MB"``."""
    return f"{size_bytes / (1024 * 1024):.1f}MB"


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()
