"""Headless editor: host input in, validated document and events out.

The editor owns the current :class:`~querydoc.state.EditorState`, runs every
dispatched transaction through the stage loop and keeps undo history. A
host (terminal UI, test, web bridge) feeds it key presses, text, clicks and
drags and listens for events:

``change``
    Every dispatch that changed the document, with the new snapshot.
``tokens_change``
    The confirmed token list changed. The token being edited is ignored
    until focus leaves it.
``submit``
    Enter outside a token, with the snapshot after finalizing input.
``focus`` / ``blur``
    The editor gained or lost host focus.

Inside a focused token, characters edit the value, arrow keys leave the
token on that side and Enter or Tab commit it. Immutable tokens are never
edited in place: arrow keys and clicks select them whole, and keys that
reach one while focused either leave it or delete it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from querydoc.document import (
    ADD_TO_HISTORY,
    COMPOSITION,
    DRAGGING,
    FORCE_VALIDATION_CHECK,
    HISTORY,
    Document,
    FreeTextToken,
    PlainText,
    Selection,
    Token,
    Transaction,
    is_spacer,
    is_text,
    is_token,
)
from querydoc.exceptions import ConfigValidationError, PositionError
from querydoc.fields import DEFAULT_TOKEN_DELIMITER, FieldDefinition, FreeTextMode, validate_delimiter
from querydoc.focus import EXITING_TOKEN, CursorPosition, EscapeHandler, set_token_focus
from querydoc.query import (
    FREE_TEXT_STRATEGIES,
    QuerySnapshot,
    are_token_lists_equal,
    are_token_lists_equal_excluding_focused,
    create_query_snapshot,
    get_all_tokens,
    parse_query_to_doc,
    serialize_doc_to_query,
)
from querydoc.repair import RepairStage
from querydoc.selection import (
    SELECTION_INVARIANT_META,
    DragCallbacks,
    DragTracker,
    KeyPress,
    SelectionInvariantStage,
    calculate_shift_click_head,
    collapse_on_blur,
    exit_token_left,
    exit_token_right,
    expand_selection_for_deletion,
    handle_key,
    normalize_cursor_position,
    resolve_spacer_click_target,
)
from querydoc.spacer import apply_spacer_deletion, expand_with_spacers
from querydoc.state import EditorState, Stage, apply_transaction
from querydoc.tokenize import (
    AutoTokenizeStage,
    Debouncer,
    FreeTextSanitizerStage,
    TokenizeContext,
    finalize_input,
    handle_delimiter,
    handle_enter_tokenize,
    handle_quote,
    handle_space,
    handle_tab,
    tokenize_all_text_nodes,
)
from querydoc.tokenize.content import DeserializeTextFn
from querydoc.validation import ValidationConfig, ValidationRule, ValidationStage

logger = logging.getLogger(__name__)

EDITOR_EVENTS: tuple[str, ...] = ("change", "tokens_change", "submit", "focus", "blur")


@dataclass(frozen=True)
class HistoryEvent:
    doc: Document
    selection: Selection


class Editor:
    """A query editor over a token/spacer document.

    Args:
        fields: Field definitions.
        rules: Validation rules; none disables validation.
        free_text_mode: ``tokenize``, ``plain`` or ``none``.
        allow_unknown_fields: Accept filter keys without a definition.
        unknown_field_operators: Operators for unknown fields; the first
            is the default.
        delimiter: Single character between key, operator and value.
        value: Initial query string.
        clock: Time source in seconds, used for typing debounce.
        deserialize_text: Custom parser for text being tokenized; return
            None to fall back to the query parser.

    Raises:
        DelimiterConfigError: If ``delimiter`` is not a usable single character.
        ConfigValidationError: If ``free_text_mode`` is unknown.
    """

    def __init__(
        self,
        fields: Sequence[FieldDefinition] = (),
        *,
        rules: Sequence[ValidationRule] = (),
        free_text_mode: FreeTextMode = "plain",
        allow_unknown_fields: bool = False,
        unknown_field_operators: Sequence[str] | None = None,
        delimiter: str = DEFAULT_TOKEN_DELIMITER,
        value: str = "",
        clock: Callable[[], float] = time.monotonic,
        deserialize_text: DeserializeTextFn | None = None,
    ) -> None:
        self.delimiter = validate_delimiter(delimiter)
        if free_text_mode not in FREE_TEXT_STRATEGIES:
            raise ConfigValidationError("free_text_mode", free_text_mode, "unknown free text mode")

        self.fields = tuple(fields)
        self.rules = tuple(rules)
        self.free_text_mode: FreeTextMode = free_text_mode
        self.allow_unknown_fields = allow_unknown_fields
        self.unknown_field_operators = tuple(unknown_field_operators) if unknown_field_operators else None
        self.deserialize_text = deserialize_text

        self.debouncer = Debouncer(clock=clock)
        self.stages: list[Stage] = [
            SelectionInvariantStage(),
            RepairStage(),
            AutoTokenizeStage(self.tokenize_context, self.debouncer, self._run_debounced_tokenize),
            FreeTextSanitizerStage(lambda: self.free_text_mode),
            ValidationStage(ValidationConfig(self.fields, self.rules)),
        ]

        self.has_focus = False
        self.suggestion_open = False
        self.composing = False
        self._composition: tuple[int, int] | None = None
        self._drag: DragTracker | None = None
        self._undo: list[HistoryEvent] = []
        self._redo: list[HistoryEvent] = []
        self._listeners: dict[str, list[Callable[..., None]]] = {name: [] for name in EDITOR_EVENTS}

        self.state = EditorState.create(self._parse(value))
        self._confirmed_tokens = get_all_tokens(self.snapshot)
        # Initial marks for the starting value; not undoable.
        self.dispatch(self.state.transaction().set_meta(FORCE_VALIDATION_CHECK, True).set_meta(ADD_TO_HISTORY, False))
        self._undo.clear()

    # ------------------------------------------------------------------
    # Context and events
    # ------------------------------------------------------------------

    def tokenize_context(self) -> TokenizeContext:
        return TokenizeContext(
            fields=self.fields,
            free_text_mode=self.free_text_mode,
            allow_unknown_fields=self.allow_unknown_fields,
            unknown_field_operators=self.unknown_field_operators,
            delimiter=self.delimiter,
            deserialize_text=self.deserialize_text,
        )

    def on(self, event: str, callback: Callable[..., None]) -> None:
        """Register ``callback`` for ``event``.

        Raises:
            ValueError: If ``event`` is not one of :data:`EDITOR_EVENTS`.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown editor event: {event!r}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: object) -> None:
        for callback in self._listeners[event]:
            callback(*args)

    # ------------------------------------------------------------------
    # Dispatch and history
    # ------------------------------------------------------------------

    @property
    def doc(self) -> Document:
        return self.state.doc

    @property
    def selection(self) -> Selection:
        return self.state.selection

    @property
    def snapshot(self) -> QuerySnapshot:
        return create_query_snapshot(self.state.doc, self.delimiter)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def dispatch(self, tr: Transaction) -> EditorState:
        """Apply ``tr`` and every correction the stages append."""
        old_state = self.state
        self.state, transactions = apply_transaction(old_state, tr, self.stages)
        self._record_history(old_state, transactions)
        self._notify(old_state, transactions)
        return self.state

    def _record_history(self, old_state: EditorState, transactions: Sequence[Transaction]) -> None:
        if any(t.is_history_operation for t in transactions):
            return
        if not any(t.doc_changed and t.add_to_history for t in transactions):
            return
        self._undo.append(HistoryEvent(old_state.doc, old_state.selection))
        self._redo.clear()

    def _restore(self, event: HistoryEvent, direction: str) -> None:
        tr = self.state.transaction().replace_document(event.doc)
        tr.set_selection(event.selection)
        tr.set_meta(HISTORY, direction)
        self.dispatch(tr)

    def undo(self) -> bool:
        if not self._undo:
            return False
        event = self._undo.pop()
        self._redo.append(HistoryEvent(self.state.doc, self.state.selection))
        self._restore(event, "undo")
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        event = self._redo.pop()
        self._undo.append(HistoryEvent(self.state.doc, self.state.selection))
        self._restore(event, "redo")
        return True

    def _focused_token_id(self) -> str | None:
        pos = self.state.focus.focused_pos
        node = self.state.doc.node_at(pos) if pos is not None else None
        return node.id if is_token(node) else None  # type: ignore[union-attr]

    def _notify(self, old_state: EditorState, transactions: Sequence[Transaction]) -> None:
        doc_changed = any(t.doc_changed for t in transactions)
        focus_left = old_state.focus.is_focused and not self.state.focus.is_focused
        if not doc_changed and not focus_left:
            return

        snapshot = self.snapshot
        current = get_all_tokens(snapshot)
        if doc_changed:
            unchanged = are_token_lists_equal_excluding_focused(
                self._confirmed_tokens, current, self._focused_token_id()
            )
        else:
            unchanged = are_token_lists_equal(self._confirmed_tokens, current)
        if not unchanged:
            self._confirmed_tokens = current
            self._emit("tokens_change", snapshot)
        if doc_changed:
            self._emit("change", snapshot)

    # ------------------------------------------------------------------
    # Value
    # ------------------------------------------------------------------

    def _parse(self, query: str) -> Document:
        return parse_query_to_doc(
            query,
            self.fields,
            free_text_mode=self.free_text_mode,
            allow_unknown_fields=self.allow_unknown_fields,
            unknown_field_operators=self.unknown_field_operators,
            delimiter=self.delimiter,
        )

    def get_value(self) -> str:
        return serialize_doc_to_query(self.state.doc, self.delimiter)

    def set_value(self, query: str, *, add_to_history: bool = False) -> None:
        """Replace the whole document with the parsed ``query``."""
        doc = self._parse(query)
        tr = self.state.transaction().replace_document(doc)
        tr.set_selection(Selection.cursor(doc.size))
        set_token_focus(tr, None)
        tr.set_meta(FORCE_VALIDATION_CHECK, True)
        if not add_to_history:
            tr.set_meta(ADD_TO_HISTORY, False)
        self.dispatch(tr)

    def clear(self) -> None:
        self.set_value("", add_to_history=True)

    # ------------------------------------------------------------------
    # Host focus
    # ------------------------------------------------------------------

    def focus(self) -> None:
        if self.has_focus:
            return
        self.has_focus = True
        self._emit("focus")

    def blur(self) -> None:
        """Leave the editor: finalize text, collapse the selection, drop token focus."""
        if not self.has_focus:
            return
        self.flush()
        tr = finalize_input(self.state, self.tokenize_context())
        if tr is not None:
            self.dispatch(tr)
        tr = collapse_on_blur(self.state)
        if tr is not None:
            self.dispatch(tr)
        if self.state.focus.is_focused:
            self.dispatch(set_token_focus(self.state.transaction(), None).set_meta(ADD_TO_HISTORY, False))
        self.has_focus = False
        self._emit("blur")

    # ------------------------------------------------------------------
    # Token focus
    # ------------------------------------------------------------------

    def focused_token(self) -> tuple[int, Token] | None:
        pos = self.state.focus.focused_pos
        if pos is None:
            return None
        node = self.state.doc.node_at(pos)
        return (pos, node) if is_token(node) else None  # type: ignore[return-value]

    def focus_token(self, pos: int, cursor: CursorPosition = "end") -> None:
        """Start editing the token at ``pos``.

        Raises:
            PositionError: If no token starts at ``pos``.
        """
        if not is_token(self.state.doc.node_at(pos)):
            raise PositionError(pos, "no token at position")
        tr = set_token_focus(self.state.transaction(), pos, cursor)
        self.dispatch(tr.set_meta(ADD_TO_HISTORY, False))

    def commit(self) -> bool:
        """Confirm the focused token and put the cursor after it."""
        focused = self.focused_token()
        if focused is None:
            return False
        pos, token = focused
        self.dispatch(exit_token_right(self.state, pos + token.size))
        return True

    def update_token_value(self, value: str, pos: int | None = None) -> None:
        """Set the value of the token at ``pos`` (the focused one by default).

        Raises:
            PositionError: If there is no such token, or it is immutable.
        """
        if pos is None:
            pos = self.state.focus.focused_pos
        if pos is None:
            raise PositionError(-1, "no focused token")
        node = self.state.doc.node_at(pos)
        if not is_token(node):
            raise PositionError(pos, "no token at position")
        if node.immutable:  # type: ignore[union-attr]
            raise PositionError(pos, "token is immutable")
        self.dispatch(self.state.transaction().set_token_attrs(pos, value=value))

    def escape(self) -> bool:
        """Two-stage Escape: close suggestions first, then leave the token."""
        focused = self.focused_token()
        if focused is None:
            return False
        handler = EscapeHandler(self.suggestion_open)
        if handler.press() == "close-suggestion":
            self.suggestion_open = handler.suggestion_open
            return True
        pos, token = focused
        self.dispatch(exit_token_right(self.state, pos + token.size))
        return True

    def _delete_focused_token(self, pos: int, token: Token) -> None:
        tr = self.state.transaction()
        rng = expand_with_spacers(self.state.doc, pos, token.size)
        apply_spacer_deletion(tr, rng)
        set_token_focus(tr, None)
        tr.set_meta(EXITING_TOKEN, True)
        tr.set_meta(ADD_TO_HISTORY, False)
        tr.set_selection(Selection.cursor(tr.mapping.map(rng.start, -1)))
        self.dispatch(tr)

    def _press_key_in_token(self, event: KeyPress, pos: int, token: Token) -> bool:
        key = event.key
        if key == "Escape":
            return self.escape()
        if key in ("Enter", "Tab", "ArrowRight"):
            self.dispatch(exit_token_right(self.state, pos + token.size))
            return True
        if key == "ArrowLeft":
            self.dispatch(exit_token_left(self.state, pos))
            return True
        if token.immutable:
            # Only whole-token deletion; characters are swallowed.
            if key in ("Backspace", "Delete"):
                self._delete_focused_token(pos, token)
                return True
            return len(key) == 1
        if key in ("Backspace", "Delete"):
            if token.value:
                if key == "Backspace":
                    self.update_token_value(token.value[:-1], pos)
                return True
            self._delete_focused_token(pos, token)
            return True
        if key == '"' and isinstance(token, FreeTextToken) and token.quoted:
            # Closing quote.
            self.dispatch(exit_token_right(self.state, pos + token.size))
            return True
        if len(key) == 1:
            self.update_token_value(token.value + key, pos)
            return True
        return False

    # ------------------------------------------------------------------
    # Keyboard and text input
    # ------------------------------------------------------------------

    def press_key(
        self,
        key: str,
        *,
        shift: bool = False,
        ctrl: bool = False,
        meta: bool = False,
        alt: bool = False,
    ) -> bool:
        """Handle one key press, falling back to plain-text defaults.

        Returns:
            True if the key did something.
        """
        event = KeyPress(key, shift=shift, ctrl=ctrl, meta=meta, alt=alt, is_composing=self.composing)

        focused = self.focused_token()
        if focused is not None:
            return self._press_key_in_token(event, *focused)

        tr = handle_key(self.state, event)
        if tr is None and not event.is_composing:
            tr = self._tokenize_on_key(event)
        if tr is not None:
            self.dispatch(tr)
            return True

        if key == "Enter" and not event.is_composing:
            self.submit()
            return True
        return self._default_key(event)

    def _tokenize_on_key(self, event: KeyPress) -> Transaction | None:
        context = self.tokenize_context()
        if event.key == self.delimiter:
            return handle_delimiter(self.state, context)
        if event.key == " ":
            return handle_space(self.state, context)
        if event.key == "Tab":
            return handle_tab(self.state, context, self.suggestion_open)
        if event.key == '"':
            return handle_quote(self.state, context)
        if event.key == "Enter":
            return handle_enter_tokenize(self.state, context)
        return None

    def _deletion_range(self, start: int, end: int) -> tuple[int, int]:
        return expand_selection_for_deletion(self.state.doc, start, end) or (start, end)

    def _default_key(self, event: KeyPress) -> bool:
        state = self.state
        selection = state.selection
        key = event.key

        if len(key) == 1:
            self.insert_text(key)
            return True

        if key in ("Backspace", "Delete"):
            tr = state.transaction()
            if not selection.empty:
                tr.delete(*self._deletion_range(selection.start, selection.end), join_text=True)
            else:
                rp = state.doc.safe_resolve(selection.start)
                if rp is None:
                    return False
                node = rp.node_before if key == "Backspace" else rp.node_after
                if node is None:
                    return False
                size = 1 if is_text(node) else node.size
                start = selection.start - size if key == "Backspace" else selection.start
                tr.delete(start, start + size, join_text=True)
            self.dispatch(tr)
            return True

        if key in ("ArrowLeft", "ArrowRight"):
            step = 1 if key == "ArrowRight" else -1
            if event.shift:
                head = min(max(selection.head + step, 0), state.doc.size)
                self.dispatch(state.transaction().set_selection(Selection(selection.anchor, head)))
            elif not selection.empty:
                target = selection.end if step > 0 else selection.start
                tr = state.transaction().set_selection(Selection.cursor(target))
                # Stepping off a selected token; do not reselect or enter it.
                self.dispatch(tr.set_meta(SELECTION_INVARIANT_META, True))
            else:
                target = min(max(selection.head + step, 0), state.doc.size)
                if target == selection.head:
                    return False
                self.dispatch(state.transaction().set_selection(Selection.cursor(target)))
            return True

        if key in ("Home", "End"):
            target = 0 if key == "Home" else state.doc.size
            self.dispatch(state.transaction().set_selection(Selection.cursor(target)))
            return True

        return False

    def insert_text(self, text: str) -> None:
        """Insert ``text`` at the selection as typed plain text."""
        selection = self.state.selection
        start, end = selection.start, selection.end
        if not selection.empty:
            start, end = self._deletion_range(start, end)
        tr = self.state.transaction()
        tr.insert_text(text, start, end)
        self.dispatch(tr)

    def type_text(self, text: str) -> None:
        """Type ``text`` one key at a time."""
        for char in text:
            self.press_key(char)

    def paste(self, text: str) -> None:
        """Paste ``text``; outside a token it is tokenized in one go."""
        text = " ".join(text.splitlines())
        focused = self.focused_token()
        if focused is not None:
            pos, token = focused
            if not token.immutable:
                self.update_token_value(token.value + text, pos)
            return
        self.insert_text(text)

    def submit(self) -> QuerySnapshot:
        """Finalize pending input and emit ``submit``."""
        self.flush()
        tr = finalize_input(self.state, self.tokenize_context())
        if tr is not None:
            self.dispatch(tr)
        snapshot = self.snapshot
        self._emit("submit", snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # IME composition
    # ------------------------------------------------------------------

    def start_composition(self) -> None:
        pos = self.state.selection.start
        self.composing = True
        self._composition = (pos, pos)

    def update_composition(self, text: str) -> None:
        """Show ``text`` as the in-progress composition."""
        if self._composition is None:
            self.start_composition()
        start, end = self._composition  # type: ignore[misc]
        tr = self.state.transaction()
        tr.insert_text(text, start, end)
        tr.set_meta(COMPOSITION, True)
        tr.set_meta(ADD_TO_HISTORY, False)
        self.dispatch(tr)
        self._composition = (start, start + len(text))

    def end_composition(self, text: str | None = None) -> None:
        """Commit the composition; correction stages run on the committed text."""
        if self._composition is None:
            self.composing = False
            return
        start, end = self._composition
        committed = self.state.doc.text_between(start, end) if text is None else text

        tr = self.state.transaction()
        tr.delete(start, end, join_text=True)
        tr.set_meta(COMPOSITION, True)
        tr.set_meta(ADD_TO_HISTORY, False)
        self.dispatch(tr)

        self.composing = False
        self._composition = None
        if committed:
            tr = self.state.transaction()
            tr.insert_text(committed, start)
            tr.set_selection(Selection.cursor(start + len(committed)))
            self.dispatch(tr)

    # ------------------------------------------------------------------
    # Pointer
    # ------------------------------------------------------------------

    def click(self, pos: int) -> None:
        """Place the cursor for a click at ``pos``.

        A click on a token start edits it; an immutable token is selected
        instead.
        """
        doc = self.state.doc
        node = doc.node_at(pos)
        tr = self.state.transaction()
        tr.set_meta(ADD_TO_HISTORY, False)

        if is_token(node):
            if getattr(node, "immutable", False):
                set_token_focus(tr, None)
                tr.set_selection(Selection(pos, pos + node.size))  # type: ignore[union-attr]
            else:
                set_token_focus(tr, pos, "end")
            self.dispatch(tr)
            return

        if self.state.focus.is_focused:
            set_token_focus(tr, None)
            tr.set_meta(EXITING_TOKEN, True)
        resolution = resolve_spacer_click_target(doc, pos, tr, allow_spacer_insertion=True)
        target = resolution.target_pos if resolution is not None else normalize_cursor_position(doc, pos)
        tr.set_selection(Selection.cursor(target))
        self.dispatch(tr)

    def shift_click(self, pos: int, on_token: bool = False) -> None:
        anchor = self.state.selection.anchor
        head = calculate_shift_click_head(self.state.doc, pos, anchor, on_token)
        tr = self.state.transaction().set_selection(Selection(anchor, pos if head is None else head))
        self.dispatch(tr.set_meta(ADD_TO_HISTORY, False))

    def start_drag(
        self,
        pos: int,
        x: float,
        y: float,
        pos_at_coords: Callable[[float, float], int | None],
    ) -> DragTracker:
        """Begin a pointer gesture at ``pos``; feed the tracker further events."""
        if self._drag is not None:
            self._drag.cleanup()
        self.click(pos)
        anchor = self.state.selection.anchor

        def on_drag_start() -> None:
            tr = self.state.transaction().set_meta(DRAGGING, True).set_meta(ADD_TO_HISTORY, False)
            if self.state.focus.is_focused:
                set_token_focus(tr, None)
            self.dispatch(tr)

        def on_drag_move(head: int) -> None:
            tr = self.state.transaction().set_selection(Selection(anchor, head))
            self.dispatch(tr.set_meta(ADD_TO_HISTORY, False))

        def on_cleanup() -> None:
            self._drag = None
            if self.state.dragging:
                self.dispatch(self.state.transaction().set_meta(DRAGGING, False).set_meta(ADD_TO_HISTORY, False))

        self._drag = DragTracker(
            start_x=x,
            start_y=y,
            pos_at_coords=pos_at_coords,
            callbacks=DragCallbacks(
                on_drag_start=on_drag_start,
                on_drag_move=on_drag_move,
                on_cleanup=on_cleanup,
            ),
        )
        return self._drag

    # ------------------------------------------------------------------
    # Debounced tokenization
    # ------------------------------------------------------------------

    def _run_debounced_tokenize(self) -> None:
        tr = tokenize_all_text_nodes(self.state, self.tokenize_context(), False)
        if tr is not None:
            tr.set_meta(FORCE_VALIDATION_CHECK, True)
            self.dispatch(tr)

    def poll(self) -> bool:
        """Run typing-triggered tokenization if its quiet period has passed."""
        return self.debouncer.poll()

    def flush(self) -> bool:
        """Run pending typing-triggered tokenization now."""
        return self.debouncer.flush()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def plain_text_runs(self) -> list[str]:
        return [seg.value for seg in self.state.doc.segments if isinstance(seg, PlainText)]

    def spacer_count(self) -> int:
        return sum(1 for seg in self.state.doc.segments if is_spacer(seg))
