"""Console output for the querydoc CLI.

Messages go through two themed rich consoles: results on stdout, and
warnings, errors and debug lines on stderr. The CLI group sets verbosity
and color once per invocation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from querydoc.query import QuerySnapshot, SnapshotFilter, SnapshotFreeText

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "path": "blue underline",
        "token.key": "bold magenta",
        "token.operator": "dim",
        "token.value": "green",
        "token.freetext": "italic",
        "token.invalid": "bold red strike",
        "plaintext": "default",
        "action.delete": "red",
        "action.mark": "yellow",
    }
)

console = Console(theme=THEME)
error_console = Console(theme=THEME, stderr=True)

_verbose_enabled = False
_debug_enabled = False


def set_verbosity(*, verbose: bool = False, debug: bool = False) -> None:
    """Set the verbosity for :func:`verbose` and :func:`debug`; debug implies verbose."""
    global _verbose_enabled, _debug_enabled
    _verbose_enabled = verbose or debug
    _debug_enabled = debug


def is_verbose() -> bool:
    return _verbose_enabled


def set_color(enabled: bool) -> None:
    for target in (console, error_console):
        target.no_color = not enabled


def info(message: str) -> None:
    console.print(message, style="info")


def success(message: str) -> None:
    console.print(message, style="success")


def verbose(message: str) -> None:
    if _verbose_enabled:
        console.print(message, style="info")


def warning(message: str) -> None:
    error_console.print(f"[warning]Warning:[/warning] {message}")


def debug(message: str) -> None:
    if _debug_enabled:
        error_console.print(f"[dim]debug:[/dim] {message}")


def error(message: str, hint: str | None = None) -> None:
    """Print an error to stderr.

    Args:
        message: What went wrong.
        hint: What the user can do about it, printed on its own line.
    """
    error_console.print(f"[error]Error:[/error] {message}")
    if hint:
        error_console.print(f"  [info]Hint:[/info] {hint}")


def create_table(title: str | None = None, **kwargs: Any) -> Table:
    """A rich table with the CLI's defaults; ``kwargs`` go to :class:`Table`."""
    kwargs.setdefault("header_style", "bold")
    return Table(title=title, **kwargs)


def segment_table(snapshot: QuerySnapshot) -> Table:
    """One row per snapshot segment: position, type, key, operator, value."""
    table = create_table(title="Query segments")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Key", style="token.key")
    table.add_column("Operator", style="token.operator")
    table.add_column("Value")

    for index, segment in enumerate(snapshot.segments, start=1):
        if isinstance(segment, SnapshotFilter):
            value = Text(segment.value, "token.invalid" if segment.invalid else "token.value")
            table.add_row(str(index), segment.type, segment.key, segment.operator, value)
        elif isinstance(segment, SnapshotFreeText):
            table.add_row(str(index), segment.type, "", "", Text(segment.value, "token.freetext"))
        else:
            table.add_row(str(index), segment.type, "", "", repr(segment.value))
    return table


def violation_table(rows: Iterable[tuple[str, str, str, str]]) -> Table:
    """Table of ``(token, rule id, action, message)`` rows."""
    table = create_table(title="Rule violations")
    table.add_column("Token")
    table.add_column("Rule", style="bold")
    table.add_column("Action")
    table.add_column("Message")
    for token, rule_id, action, message in rows:
        table.add_row(token, rule_id, Text(action, f"action.{action}"), message)
    return table


def render_query(snapshot: QuerySnapshot, delimiter: str = ":") -> Text:
    """Render a snapshot as one styled line; invalid filters are struck through."""
    text = Text()
    for segment in snapshot.segments:
        if text:
            text.append(" ")
        if isinstance(segment, SnapshotFilter):
            if segment.invalid:
                text.append(f"{segment.key}{delimiter}{segment.operator}{delimiter}{segment.value}", "token.invalid")
                continue
            text.append(segment.key, "token.key")
            text.append(f"{delimiter}{segment.operator}{delimiter}", "token.operator")
            text.append(segment.value, "token.value")
        elif isinstance(segment, SnapshotFreeText):
            text.append(segment.value, "token.freetext")
        else:
            text.append(segment.value.strip(), "plaintext")
    return text
