#!/usr/bin/env python3
"""Unified output formatting for LitGap.

Consistent console presentation for the CLI: progress bars for the
citation fetch, status lines with icons, section headers and summaries.

Usage:
    from litgap.output_formatting import ProgressTracker, print_header, print_status

    progress = ProgressTracker("Fetching citations", total=50)
    progress.update(25, "Attention Is All You Need")
    progress.complete()
"""

import time
from datetime import UTC, datetime
from typing import Any

STATUS_ICONS = {"info": "ℹ️", "success": "✅", "warning": "⚠️", "error": "❌", "working": "🔄"}


class ProgressTracker:
    """Progress tracking for long-running operations."""

    def __init__(self, operation: str, total: int, show_eta: bool = True):
        self.operation = operation
        self.total = total
        self.show_eta = show_eta
        self.start_time = time.time()
        self.current = 0
        self.last_update = self.start_time

    def update(self, current: int, message: str = "", force: bool = False):
        """Update progress with current count and optional message.

        Args:
            current: Current progress count
            message: Optional status message
            force: Force update even if time threshold not met
        """
        self.current = current
        now = time.time()

        # Redraw at most every 0.5 seconds unless forced or finished
        if not force and current < self.total and (now - self.last_update) < 0.5:
            return

        self.last_update = now
        status_line = f"\r🔄 {format_progress(self.operation, current, self.total)}"

        if self.show_eta and current > 0:
            elapsed = now - self.start_time
            rate = current / elapsed if elapsed > 0 else 0
            remaining = (self.total - current) / rate if rate > 0 else 0
            status_line += f" (ETA: {int(remaining // 60)}:{int(remaining % 60):02d})"

        if message:
            status_line += f" - {message[:40]}"

        print(status_line, end="", flush=True)

    def complete(self, message: str = ""):
        """Mark progress as complete."""
        elapsed = time.time() - self.start_time
        elapsed_str = f"{int(elapsed // 60)}:{int(elapsed % 60):02d}"

        completion_msg = f"\r✅ {self.operation}: Complete ({self.total} items in {elapsed_str})"
        if message:
            completion_msg += f" - {message}"

        print(completion_msg + " " * 20)


class OutputFormatter:
    """Consistent output formatting for LitGap commands."""

    def __init__(self, show_timestamps: bool = False):
        self.show_timestamps = show_timestamps

    def format_timestamp(self) -> str:
        if not self.show_timestamps:
            return ""
        return f"[{datetime.now(UTC).strftime('%H:%M:%S')}] "

    def print_header(self, title: str, subtitle: str = "") -> None:
        """Print section header between ``=`` rules."""
        timestamp = self.format_timestamp()
        print(f"\n{timestamp}{'=' * 60}")
        print(f"{timestamp}{title}")
        if subtitle:
            print(f"{timestamp}{subtitle}")
        print(f"{timestamp}{'=' * 60}")

    def print_status(self, message: str, status_type: str = "info") -> None:
        """Print status message with an icon for its type.

        Args:
            message: Status message
            status_type: Type of status (info, success, warning, error, working)
        """
        print(f"{self.format_timestamp()}{format_status(message, status_type)}")

    def print_summary(self, stats: dict[str, Any], title: str = "Summary") -> None:
        """Print key/value statistics, keys title-cased for display."""
        self.print_header(title)

        for key, value in stats.items():
            display_key = key.replace("_", " ").title()
            if isinstance(value, float):
                display_value = f"{value:.2f}"
            elif isinstance(value, int) and value > 1000:
                display_value = f"{value:,}"
            else:
                display_value = str(value)
            print(f"  {display_key}: {display_value}")


_formatter = OutputFormatter()


def format_progress(operation: str, current: int, total: int, message: str = "") -> str:
    """Format progress string with a text bar.

    Returns:
        e.g. ``Fetching: [██████████░░░░░░░░░░] 50.0% (5/10)``
    """
    percentage = (current / total) * 100 if total > 0 else 0

    bar_width = 20
    filled = int(bar_width * percentage / 100)
    bar = "█" * filled + "░" * (bar_width - filled)

    progress_str = f"{operation}: [{bar}] {percentage:.1f}% ({current}/{total})"
    if message:
        progress_str += f" - {message}"
    return progress_str


def format_status(message: str, status_type: str = "info") -> str:
    icon = STATUS_ICONS.get(status_type, "•")
    return f"{icon} {message}"


def print_header(title: str, subtitle: str = "") -> None:
    """Print consistent section header using global formatter."""
    _formatter.print_header(title, subtitle)


def print_status(message: str, status_type: str = "info") -> None:
    """Print status message using global formatter."""
    _formatter.print_status(message, status_type)


def print_summary(stats: dict[str, Any], title: str = "Summary") -> None:
    """Print operation summary using global formatter."""
    _formatter.print_summary(stats, title)
