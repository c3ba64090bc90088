"""Quoted-string helpers shared by the parser, serializer and tokenizer.

Double quotes delimit values containing spaces. Inside quotes a backslash
escapes the next character: ``\\"`` is a literal quote and ``\\\\`` a
literal backslash.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from querydoc.document import LEAF_TEXT

_WORD_SEPARATORS = (" ", "\u00a0")

# Escapes understood when a field value is quoted.
_VALUE_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}


def scan_quoted_string(
    text: str,
    on_char: Callable[[str, int, bool], bool | None] | None = None,
) -> bool:
    """Walk ``text`` tracking quote state.

    A leaf placeholder resets the state: quotes never span a token.

    Args:
        text: Text to scan.
        on_char: Called as ``on_char(char, index, in_quote)``; returning
            False stops the scan.

    Returns:
        Whether the scan ended inside an open quote.
    """
    in_quote = False
    escaped = False
    for index, char in enumerate(text):
        if char == LEAF_TEXT:
            if on_char is not None and on_char(char, index, False) is False:
                return in_quote
            in_quote = False
            escaped = False
            continue
        if in_quote and escaped:
            escaped = False
        elif in_quote and char == "\\":
            escaped = True
        elif char == '"':
            in_quote = not in_quote
        if on_char is not None and on_char(char, index, in_quote) is False:
            return in_quote
    return in_quote


def is_inside_quotes(text: str) -> bool:
    """True if the end of ``text`` sits inside an unclosed quote."""
    if not text:
        return False
    return scan_quoted_string(text)


def find_last_word_boundary(text: str) -> int:
    """Index of the last space outside quotes (or leaf placeholder), -1 if none."""
    last = -1

    def visit(char: str, index: int, in_quote: bool) -> None:
        nonlocal last
        if char == LEAF_TEXT or (not in_quote and char in _WORD_SEPARATORS):
            last = index

    scan_quoted_string(text, visit)
    return last


@dataclass(frozen=True)
class QuotedValue:
    value: str
    is_open: bool
    was_quoted: bool


def parse_quoted_string(text: str) -> QuotedValue:
    """Unquote a field value.

    ``"hello world"`` becomes ``hello world``; ``"hello`` is reported open.
    Unquoted input comes back unchanged.
    """
    if not text or not text.startswith('"'):
        return QuotedValue(text, is_open=False, was_quoted=False)

    state = "unquoted"
    out: list[str] = []
    for char in text:
        if state == "unquoted":
            if char == '"':
                state = "quoted"
            else:
                out.append(char)
        elif state == "quoted":
            if char == "\\":
                state = "escape"
            elif char == '"':
                state = "unquoted"
            else:
                out.append(char)
        else:
            out.append(_VALUE_ESCAPES.get(char, "\\" + char))
            state = "quoted"
    return QuotedValue("".join(out), is_open=state != "unquoted", was_quoted=True)


def escape_for_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def quote_if_needed(value: str) -> str:
    """Quote ``value`` when it contains a space, quote or backslash."""
    if " " not in value and '"' not in value and "\\" not in value:
        return value
    return f'"{escape_for_quotes(value)}"'
