"""How free text is represented in the document for each free-text mode."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from querydoc.document import FreeTextToken, PlainText, Segment
from querydoc.fields import FreeTextMode
from querydoc.query.parser import ParsedFreeText
from querydoc.query.quoting import escape_for_quotes

FinalizeAction = Literal["tokenize", "remove", "none"]


@dataclass(frozen=True)
class FreeTextStrategy:
    """Behaviour of one free-text mode.

    Attributes:
        to_doc_content: Segment for a parsed free-text item, or None to drop it.
        tokenize_on_space: Space and Tab turn the current word into a token.
        create_quoted_tokens: Typing ``"`` at a word boundary opens a quoted token.
        finalize_action: What submit and blur do with leftover text.
    """

    mode: FreeTextMode
    to_doc_content: Callable[[ParsedFreeText], Segment | None]
    tokenize_on_space: bool
    create_quoted_tokens: bool
    finalize_action: FinalizeAction


def _as_token(item: ParsedFreeText) -> Segment:
    return FreeTextToken(value=item.value, quoted=item.quoted)


def _as_text(item: ParsedFreeText) -> Segment:
    return PlainText(f'"{escape_for_quotes(item.value)}"' if item.quoted else item.value)


FREE_TEXT_STRATEGIES: dict[str, FreeTextStrategy] = {
    "tokenize": FreeTextStrategy(
        mode="tokenize",
        to_doc_content=_as_token,
        tokenize_on_space=True,
        create_quoted_tokens=True,
        finalize_action="tokenize",
    ),
    "plain": FreeTextStrategy(
        mode="plain",
        to_doc_content=_as_text,
        tokenize_on_space=False,
        create_quoted_tokens=False,
        finalize_action="none",
    ),
    "none": FreeTextStrategy(
        mode="none",
        to_doc_content=lambda item: None,
        tokenize_on_space=False,
        create_quoted_tokens=False,
        finalize_action="remove",
    ),
}


def get_free_text_strategy(mode: FreeTextMode) -> FreeTextStrategy:
    """Return the strategy for ``mode``.

    Raises:
        ValueError: If ``mode`` is unknown.
    """
    try:
        return FREE_TEXT_STRATEGIES[mode]
    except KeyError:
        raise ValueError(f"Unknown free text mode: {mode!r}") from None
