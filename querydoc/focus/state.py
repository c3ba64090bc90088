"""Document-level token focus: which token, if any, is being edited."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from querydoc.document import Document, Transaction, is_token

TOKEN_FOCUS = "tokenFocus"
EXITING_TOKEN = "exitingToken"
TOKEN_FOCUS_CHANGED = "tokenFocusChanged"
TOKEN_FOCUS_STEP = "tokenFocusStep"

Direction = Literal["from-left", "from-right"]
FocusPolicy = Literal["all", "entry"]


@dataclass(frozen=True)
class CursorEntry:
    """Keyboard entry into a token.

    ``policy`` ``"all"`` lets arrow keys reach every focusable part of the
    token (including its delete control); ``"entry"`` lands directly on the
    value editor, as Backspace and Delete do.
    """

    direction: Direction
    policy: FocusPolicy = "all"


CursorPosition = Union[CursorEntry, Literal["start", "end"], int]


def is_cursor_entry(position: object) -> bool:
    return isinstance(position, CursorEntry)


@dataclass(frozen=True)
class TokenFocusState:
    """Focused token position plus the cursor intent inside it."""

    focused_pos: int | None = None
    cursor_position: CursorPosition = "end"

    @property
    def mode(self) -> str | None:
        return None if self.focused_pos is None else "editing"

    @property
    def is_focused(self) -> bool:
        return self.focused_pos is not None


UNFOCUSED = TokenFocusState()


def set_token_focus(
    tr: Transaction,
    focused_pos: int | None,
    cursor_position: CursorPosition = "end",
) -> Transaction:
    """Request focus on the token at ``focused_pos`` (None to clear).

    ``focused_pos`` refers to ``tr.doc`` as it is now; steps added to
    ``tr`` afterwards remap it.
    """
    tr.set_meta(TOKEN_FOCUS_CHANGED, focused_pos)
    tr.set_meta(TOKEN_FOCUS_STEP, len(tr.mapping.maps))
    return tr.set_meta(TOKEN_FOCUS, TokenFocusState(focused_pos, cursor_position))


def get_token_focus_meta(tr: Transaction) -> TokenFocusState | None:
    meta = tr.get_meta(TOKEN_FOCUS)
    return meta if isinstance(meta, TokenFocusState) else None


def _lands_on_token(doc: Document, pos: int) -> bool:
    return is_token(doc.node_at(pos))


def apply_token_focus(tr: Transaction, value: TokenFocusState) -> TokenFocusState:
    """Compute the focus state after ``tr``.

    Explicit focus meta wins, remapped through any steps added after it
    was set. Otherwise the stored position is remapped through the
    transaction. Focus resets when the token was removed or the mapped
    position no longer holds a token.
    """
    meta = get_token_focus_meta(tr)
    if meta is not None:
        if meta.focused_pos is None:
            return TokenFocusState(None, meta.cursor_position)
        step = tr.get_meta(TOKEN_FOCUS_STEP)
        if isinstance(step, int) and step < len(tr.mapping.maps):
            mapped, deleted = tr.mapping.slice(step).map_result(meta.focused_pos)
            if deleted:
                return UNFOCUSED
            meta = TokenFocusState(mapped, meta.cursor_position)
        if not _lands_on_token(tr.doc, meta.focused_pos):
            return UNFOCUSED
        return meta

    if value.focused_pos is None:
        return value

    if tr.doc_changed:
        mapped, deleted = tr.mapping.map_result(value.focused_pos)
        if deleted:
            return UNFOCUSED
        value = TokenFocusState(mapped, value.cursor_position)

    if not _lands_on_token(tr.doc, value.focused_pos):  # type: ignore[arg-type]
        return UNFOCUSED
    return value
