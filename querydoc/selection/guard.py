"""Key handling that stops the cursor from slipping into tokens.

Handlers take the current :class:`EditorState` and return the transaction
to dispatch, or None to let the next handler (or the host default) run.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from querydoc.document import (
    ADD_TO_HISTORY,
    Document,
    Segment,
    Selection,
    Token,
    Transaction,
    is_spacer,
    is_token,
)
from querydoc.focus import EXITING_TOKEN, CursorEntry, set_token_focus
from querydoc.selection.invariant import apply_selection_action, enforce_selection_invariant
from querydoc.state import EditorState

SELECTION_GUARD_META = "selectionGuard"

EntryDirection = Literal["from-left", "from-right"]


@dataclass(frozen=True)
class KeyPress:
    """A key event as the engine sees it."""

    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False
    is_composing: bool = False


@dataclass(frozen=True)
class GuardContext:
    state: EditorState
    event: KeyPress
    node_before: Segment | None
    node_after: Segment | None

    @property
    def doc(self) -> Document:
        return self.state.doc

    @property
    def selection(self) -> Selection:
        return self.state.selection

    @classmethod
    def build(cls, state: EditorState, event: KeyPress) -> GuardContext:
        rp = state.doc.safe_resolve(state.selection.start)
        return cls(
            state=state,
            event=event,
            node_before=rp.node_before if rp else None,
            node_after=rp.node_after if rp else None,
        )


Predicate = Callable[[GuardContext], bool]
KeyHandler = Callable[[GuardContext], "Transaction | None"]


@dataclass(frozen=True)
class KeySpec:
    """Run ``action`` for ``key`` when ``when`` holds. First handled spec wins."""

    key: str
    when: Predicate
    action: KeyHandler


def all_of(*predicates: Predicate) -> Predicate:
    return lambda ctx: all(p(ctx) for p in predicates)


def run_key_handlers(specs: Sequence[KeySpec], ctx: GuardContext) -> Transaction | None:
    for spec in specs:
        if spec.key != ctx.event.key or not spec.when(ctx):
            continue
        tr = spec.action(ctx)
        if tr is not None:
            return tr
    return None


def mark_as_guarded(tr: Transaction) -> Transaction:
    return tr.set_meta(SELECTION_GUARD_META, True)


# Predicates


def is_empty_selection(ctx: GuardContext) -> bool:
    return ctx.selection.empty


def has_shift_key(ctx: GuardContext) -> bool:
    return ctx.event.shift


def token_not_focused(ctx: GuardContext) -> bool:
    return not ctx.state.focus.is_focused


def node_before_is_spacer(ctx: GuardContext) -> bool:
    return is_spacer(ctx.node_before)


def node_before_is_token(ctx: GuardContext) -> bool:
    return is_token(ctx.node_before)


def node_after_is_spacer(ctx: GuardContext) -> bool:
    return is_spacer(ctx.node_after)


def node_after_is_token(ctx: GuardContext) -> bool:
    return is_token(ctx.node_after)


def _token_before_spacer(ctx: GuardContext) -> tuple[int, Token] | None:
    if not is_spacer(ctx.node_before):
        return None
    before_spacer = ctx.selection.start - ctx.node_before.size  # type: ignore[union-attr]
    rp = ctx.doc.safe_resolve(before_spacer)
    if rp is None or not is_token(rp.node_before):
        return None
    return before_spacer - rp.node_before.size, rp.node_before  # type: ignore[union-attr,return-value]


def _token_after_spacer(ctx: GuardContext) -> tuple[int, Token] | None:
    if not is_spacer(ctx.node_after):
        return None
    after_spacer = ctx.selection.start + ctx.node_after.size  # type: ignore[union-attr]
    rp = ctx.doc.safe_resolve(after_spacer)
    if rp is None or not is_token(rp.node_after):
        return None
    return after_spacer, rp.node_after  # type: ignore[return-value]


def has_token_before_spacer(ctx: GuardContext) -> bool:
    return _token_before_spacer(ctx) is not None


def has_token_after_spacer(ctx: GuardContext) -> bool:
    return _token_after_spacer(ctx) is not None


# Navigation helpers


def find_next_selectable_position(doc: Document, current: int, direction: int) -> int:
    """Next head for Shift+Arrow: skip every spacer, then take a whole token."""
    pos = current
    if direction > 0:
        rp = doc.safe_resolve(pos)
        while rp is not None and is_spacer(rp.node_after):
            pos += rp.node_after.size  # type: ignore[union-attr]
            rp = doc.safe_resolve(pos)
        if rp is None:
            return current
        if is_token(rp.node_after):
            return pos + rp.node_after.size  # type: ignore[union-attr]
        return pos

    rp = doc.safe_resolve(pos)
    while rp is not None and is_spacer(rp.node_before):
        pos -= rp.node_before.size  # type: ignore[union-attr]
        rp = doc.safe_resolve(pos)
    if rp is None:
        return current
    if is_token(rp.node_before):
        return pos - rp.node_before.size  # type: ignore[union-attr]
    return pos


def expand_selection_for_deletion(doc: Document, start: int, end: int) -> tuple[int, int] | None:
    """Grow ``[start, end)`` so it never splits a token from its spacers.

    Every spacer inside the range pulls in a neighbouring token that sticks
    out of the range, together with that token's outer spacer.

    Returns:
        The expanded range, or None when the range needs no expansion.
    """
    new_start, new_end = start, end
    expanded = False
    for pos, segment in doc.walk():
        if pos + segment.size <= start or pos >= end:
            continue
        if not is_spacer(segment):
            continue
        before = doc.safe_resolve(pos)
        after = doc.safe_resolve(pos + segment.size)
        if before is not None and is_token(before.node_before):
            token_start = pos - before.node_before.size  # type: ignore[union-attr]
            if token_start < start:
                leading = find_spacer_start(doc, token_start)
                new_start = min(new_start, leading)
                expanded = True
        if after is not None and is_token(after.node_after):
            token_end = pos + segment.size + after.node_after.size  # type: ignore[union-attr]
            if token_end > end:
                trailing = find_spacer_end(doc, token_end)
                new_end = max(new_end, trailing)
                expanded = True
    return (new_start, new_end) if expanded else None


def find_spacer_start(doc: Document, pos: int) -> int:
    """``pos`` moved before an adjoining leading spacer, if there is one."""
    rp = doc.safe_resolve(pos)
    if rp is not None and is_spacer(rp.node_before):
        return pos - rp.node_before.size  # type: ignore[union-attr]
    return pos


def find_spacer_end(doc: Document, pos: int) -> int:
    """``pos`` moved past an adjoining trailing spacer, if there is one."""
    rp = doc.safe_resolve(pos)
    if rp is not None and is_spacer(rp.node_after):
        return pos + rp.node_after.size  # type: ignore[union-attr]
    return pos


# Token entry and exit


def handle_token_entry(
    state: EditorState,
    token: Token,
    token_pos: int,
    direction: EntryDirection,
) -> Transaction:
    """Enter ``token`` for Backspace or Delete.

    Immutable tokens cannot be edited, so they are selected instead; a
    second key press then deletes the selection.
    """
    tr = state.transaction()
    if token.immutable:
        tr.set_selection(Selection(token_pos, token_pos + token.size))
    else:
        set_token_focus(tr, token_pos, CursorEntry(direction, "entry"))
    return mark_as_guarded(tr)


def exit_token_right(state: EditorState, after_token_pos: int, tr: Transaction | None = None) -> Transaction:
    """Leave the focused token to the right, past its trailing spacer.

    A caller-supplied ``tr`` keeps its own history setting.
    """
    if tr is None:
        tr = state.transaction()
        tr.set_meta(ADD_TO_HISTORY, False)
    set_token_focus(tr, None)
    tr.set_meta(EXITING_TOKEN, True)
    tr.set_selection(Selection.cursor(find_spacer_end(tr.doc, after_token_pos)))
    return tr


def exit_token_left(state: EditorState, before_token_pos: int) -> Transaction:
    """Leave the focused token to the left, before its leading spacer."""
    tr = state.transaction()
    set_token_focus(tr, None)
    tr.set_meta(EXITING_TOKEN, True)
    tr.set_meta(ADD_TO_HISTORY, False)
    tr.set_selection(Selection.cursor(find_spacer_start(tr.doc, before_token_pos)))
    return tr


def collapse_on_blur(state: EditorState) -> Transaction | None:
    """Collapse a range selection to its end when the editor loses focus."""
    if state.selection.empty:
        return None
    tr = state.transaction()
    tr.set_selection(Selection.cursor(state.selection.end))
    tr.set_meta(ADD_TO_HISTORY, False)
    return tr


# Handlers


def _arrow_direction(ctx: GuardContext) -> int:
    return 1 if ctx.event.key == "ArrowRight" else -1


def handle_shift_arrow_selection(ctx: GuardContext) -> Transaction | None:
    head = find_next_selectable_position(ctx.doc, ctx.selection.head, _arrow_direction(ctx))
    if head == ctx.selection.head:
        return None
    tr = ctx.state.transaction()
    tr.set_selection(Selection(ctx.selection.anchor, head))
    return mark_as_guarded(tr)


def handle_arrow_move(ctx: GuardContext) -> Transaction | None:
    direction = _arrow_direction(ctx)
    next_pos = ctx.selection.start + direction
    if next_pos < 0 or next_pos > ctx.doc.size:
        return None
    action = enforce_selection_invariant(ctx.doc, next_pos, direction)
    if action is None:
        return None
    return mark_as_guarded(apply_selection_action(ctx.state.transaction(), action))


def handle_backspace_from_spacer(ctx: GuardContext) -> Transaction | None:
    found = _token_before_spacer(ctx)
    if found is None:
        return None
    token_pos, token = found
    return handle_token_entry(ctx.state, token, token_pos, "from-right")


def handle_backspace_from_token(ctx: GuardContext) -> Transaction | None:
    if not is_token(ctx.node_before):
        return None
    token_pos = ctx.selection.start - ctx.node_before.size  # type: ignore[union-attr]
    return handle_token_entry(ctx.state, ctx.node_before, token_pos, "from-right")  # type: ignore[arg-type]


def handle_delete_from_spacer(ctx: GuardContext) -> Transaction | None:
    found = _token_after_spacer(ctx)
    if found is None:
        return None
    token_pos, token = found
    return handle_token_entry(ctx.state, token, token_pos, "from-left")


def handle_delete_from_token(ctx: GuardContext) -> Transaction | None:
    if not is_token(ctx.node_after):
        return None
    return handle_token_entry(ctx.state, ctx.node_after, ctx.selection.start, "from-left")  # type: ignore[arg-type]


SELECTION_GUARD_KEY_SPECS: tuple[KeySpec, ...] = (
    KeySpec("ArrowLeft", all_of(has_shift_key, token_not_focused), handle_shift_arrow_selection),
    KeySpec("ArrowRight", all_of(has_shift_key, token_not_focused), handle_shift_arrow_selection),
    KeySpec(
        "Backspace",
        all_of(is_empty_selection, node_before_is_spacer, has_token_before_spacer, token_not_focused),
        handle_backspace_from_spacer,
    ),
    KeySpec(
        "Backspace",
        all_of(is_empty_selection, node_before_is_token, token_not_focused),
        handle_backspace_from_token,
    ),
    KeySpec(
        "Delete",
        all_of(is_empty_selection, node_after_is_spacer, has_token_after_spacer, token_not_focused),
        handle_delete_from_spacer,
    ),
    KeySpec(
        "Delete",
        all_of(is_empty_selection, node_after_is_token, token_not_focused),
        handle_delete_from_token,
    ),
    KeySpec("ArrowLeft", all_of(is_empty_selection, token_not_focused), handle_arrow_move),
    KeySpec("ArrowRight", all_of(is_empty_selection, token_not_focused), handle_arrow_move),
)


def handle_key(state: EditorState, event: KeyPress) -> Transaction | None:
    """Selection guard entry point for a key press.

    Returns:
        The transaction to dispatch, or None to fall through to the host.
    """
    if event.is_composing or state.focus.is_focused:
        return None

    selection = state.selection
    if not selection.empty and event.key in ("Backspace", "Delete"):
        expanded = expand_selection_for_deletion(state.doc, selection.start, selection.end)
        if expanded is not None:
            tr = state.transaction()
            tr.delete(*expanded)
            return mark_as_guarded(tr)

    return run_key_handlers(SELECTION_GUARD_KEY_SPECS, GuardContext.build(state, event))
