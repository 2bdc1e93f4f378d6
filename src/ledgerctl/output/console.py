"""Rich Console factory and theme for ledgerctl output.

Consoles render into a StringIO buffer, preserving the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LEDGER_THEME = Theme(
    {
        "ledger.ok": "bold green",
        "ledger.error": "bold red",
        "ledger.warning": "bold yellow",
        "ledger.op": "bold cyan",
        "ledger.key": "dim",
        "ledger.account": "bold blue",
        "ledger.path": "dim",
        "ledger.date": "cyan",
        "ledger.positive": "green",
        "ledger.negative": "red",
        "ledger.closed": "dim strike",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (keeps table layout stable in tests).
    """
    return Console(
        file=StringIO(),
        theme=LEDGER_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_number(text: str) -> str:
    """Style for a rendered amount: red when negative, green otherwise."""
    return "ledger.negative" if text.lstrip().startswith("-") else "ledger.positive"
