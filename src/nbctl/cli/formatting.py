"""Rich console helpers for the nbctl CLI.

Command output is plain text produced by the output dispatcher; rich is
used for diagnostics, which go to stderr as a single unwrapped line.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

PROG_NAME = "nbctl"


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def get_error_console() -> Console:
    return Console(stderr=True, highlight=False, soft_wrap=True, emoji=False)


def format_error(message: str, console: Console) -> None:
    """Display a fatal error as one ``nbctl: message`` line."""
    console.print(f"{PROG_NAME}: {escape(message)}", highlight=False)


def format_listing(lines: list[str], console: Console) -> None:
    """Print ``lines`` verbatim, one per line."""
    for line in lines:
        console.print(escape(line), highlight=False, soft_wrap=True)
