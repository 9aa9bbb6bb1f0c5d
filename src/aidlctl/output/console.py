"""Rich Console factory and theme for aidlctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

AIDL_THEME = Theme(
    {
        "aidl.ok": "bold green",
        "aidl.error": "bold red",
        "aidl.warning": "bold yellow",
        "aidl.op": "bold cyan",
        "aidl.key": "dim",
        "aidl.id": "bold blue",
        "aidl.path": "dim",
        "aidl.title": "bold",
        "aidl.seq": "magenta",
        "aidl.status.proposed": "cyan",
        "aidl.status.accepted": "green",
        "aidl.status.rejected": "red",
        "aidl.status.finished": "blue",
        "aidl.status.failed": "bold red",
        "aidl.status.superseded": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=AIDL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a record status."""
    style = f"aidl.status.{status.lower()}"
    return style if style in AIDL_THEME.styles else ""
