"""Keep a collapsed cursor out of tokens.

A cursor may rest on either side of a spacer, but it only gets into a
token through an explicit entry: arrow keys crossing a boundary, Backspace
or Delete next to a token, or a range collapsing onto one.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from querydoc.document import ADD_TO_HISTORY, Document, Selection, Transaction, is_spacer, is_token
from querydoc.focus import EXITING_TOKEN, CursorEntry, CursorPosition, set_token_focus
from querydoc.state import EditorState

SELECTION_INVARIANT_META = "selectionInvariant"


@dataclass(frozen=True)
class MoveAction:
    pos: int


@dataclass(frozen=True)
class FocusAction:
    token_pos: int
    cursor: CursorPosition


@dataclass(frozen=True)
class SelectAction:
    """Select a whole token that cannot be entered."""

    start: int
    end: int


SelectionAction = Union[MoveAction, FocusAction, SelectAction]


@dataclass(frozen=True)
class InsideTokenInfo:
    token_pos: int
    token_end: int
    is_immutable: bool


def get_cursor_inside_token(doc: Document, pos: int) -> InsideTokenInfo | None:
    """Describe the token ``pos`` is strictly inside of, if any."""
    rp = doc.safe_resolve(pos)
    if rp is None or rp.parent_token is None or rp.token_pos is None:
        return None
    token = rp.parent_token
    return InsideTokenInfo(
        token_pos=rp.token_pos,
        token_end=rp.token_pos + token.size,
        is_immutable=bool(token.immutable),
    )


def enforce_selection_invariant(doc: Document, pos: int, move_direction: int) -> SelectionAction | None:
    """Decide whether a cursor arriving at ``pos`` enters a token.

    Moving right onto a token start enters it from the left; moving left
    onto a token end enters it from the right. An immutable token is
    selected whole instead of entered. Without a direction (clicks, drags)
    the cursor stays where it is.
    """
    rp = doc.safe_resolve(pos)
    if rp is None:
        return None

    if is_token(rp.node_after):
        if move_direction > 0:
            token = rp.node_after
            if token.immutable:  # type: ignore[union-attr]
                return SelectAction(pos, pos + token.size)  # type: ignore[union-attr]
            return FocusAction(pos, CursorEntry("from-left", "all"))
        return None

    if is_token(rp.node_before):
        if move_direction < 0:
            token = rp.node_before
            token_pos = pos - token.size  # type: ignore[union-attr]
            if token.immutable:  # type: ignore[union-attr]
                return SelectAction(token_pos, pos)
            return FocusAction(token_pos, CursorEntry("from-right", "all"))
        return None

    return None


def apply_selection_action(tr: Transaction, action: SelectionAction) -> Transaction:
    if isinstance(action, MoveAction):
        return tr.set_selection(Selection.cursor(action.pos))
    if isinstance(action, SelectAction):
        return tr.set_selection(Selection(action.start, action.end))
    return set_token_focus(tr, action.token_pos, action.cursor)


def find_spacer_before(doc: Document, pos: int) -> int | None:
    """Position before the spacer that ends at ``pos``."""
    rp = doc.safe_resolve(pos)
    if rp is None or not is_spacer(rp.node_before):
        return None
    return pos - rp.node_before.size  # type: ignore[union-attr]


def find_spacer_after(doc: Document, pos: int) -> int | None:
    """Position after the spacer that starts at ``pos``."""
    rp = doc.safe_resolve(pos)
    if rp is None or not is_spacer(rp.node_after):
        return None
    return pos + rp.node_after.size  # type: ignore[union-attr]


def _nearer_start(pos: int, info: InsideTokenInfo) -> bool:
    # Ties go to the start.
    return pos - info.token_pos <= info.token_end - pos


class SelectionInvariantStage:
    """Correct selections that landed inside or against a token.

    Runs only while no token is focused and the selection is collapsed.
    """

    name = "selection_invariant"

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None:
        if any(tr.has_meta(SELECTION_INVARIANT_META) for tr in transactions):
            return None
        if any(tr.is_composing for tr in transactions):
            return None
        if any(tr.get_meta(EXITING_TOKEN) for tr in transactions):
            return None
        if new_state.focus.is_focused:
            return None

        selection = new_state.selection
        if not selection.empty:
            return None

        doc = new_state.doc
        cursor = selection.head
        was_range = not old_state.selection.empty
        had_cursor = old_state.selection.empty
        tr = new_state.transaction()
        modified = False

        inside = get_cursor_inside_token(doc, cursor)
        if inside is not None:
            if inside.is_immutable:
                target = inside.token_pos if _nearer_start(cursor, inside) else inside.token_end
                tr.set_selection(Selection.cursor(target))
                modified = True
            elif was_range:
                direction = "from-left" if _nearer_start(cursor, inside) else "from-right"
                set_token_focus(tr, inside.token_pos, CursorEntry(direction, "all"))
                modified = True

        if not modified and was_range:
            modified = self._collapse_at_boundary(tr, doc, cursor)

        if not modified:
            dragging = new_state.dragging
            move_direction = cursor - old_state.selection.start if had_cursor and not dragging else 0
            action = enforce_selection_invariant(doc, cursor, move_direction)
            if action is not None:
                apply_selection_action(tr, action)
                modified = True

        if not modified:
            return None
        tr.set_meta(ADD_TO_HISTORY, False)
        tr.set_meta(SELECTION_INVARIANT_META, True)
        return tr

    @staticmethod
    def _collapse_at_boundary(tr: Transaction, doc: Document, cursor: int) -> bool:
        """A range collapsed right next to a token.

        A mutable token is entered from that side; an immutable one becomes
        a whole-token selection.
        """
        rp = doc.safe_resolve(cursor)
        if rp is None:
            return False
        if is_token(rp.node_after):
            token = rp.node_after
            if token.immutable:  # type: ignore[union-attr]
                tr.set_selection(Selection(cursor, cursor + token.size))  # type: ignore[union-attr]
            else:
                set_token_focus(tr, cursor, CursorEntry("from-left", "all"))
            return True
        if is_token(rp.node_before):
            token = rp.node_before
            token_pos = cursor - token.size  # type: ignore[union-attr]
            if token.immutable:  # type: ignore[union-attr]
                tr.set_selection(Selection(token_pos, cursor))
            else:
                set_token_focus(tr, token_pos, CursorEntry("from-right", "all"))
            return True
        return False
