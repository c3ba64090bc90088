"""Tests for cursor guards, the selection invariant, clicks and drags."""

from __future__ import annotations

import pytest

from querydoc.document import (
    ADD_TO_HISTORY,
    DRAGGING,
    Document,
    FilterToken,
    PlainText,
    Selection,
    Spacer,
    Transaction,
)
from querydoc.focus import EXITING_TOKEN, CursorEntry, TokenFocusState, get_token_focus_meta
from querydoc.selection import (
    SELECTION_GUARD_META,
    DragCallbacks,
    DragTracker,
    InsideTokenInfo,
    KeyPress,
    SelectionInvariantStage,
    calculate_shift_click_head,
    collapse_on_blur,
    exit_token_left,
    exit_token_right,
    expand_selection_for_deletion,
    find_next_selectable_position,
    find_spacer_after,
    find_spacer_before,
    get_cursor_inside_token,
    handle_key,
    normalize_cursor_position,
    resolve_spacer_click_target,
)
from querydoc.state import EditorState, apply_transaction


@pytest.fixture
def two_tokens(build_doc) -> Document:
    """``[sp][status][sp][sp][tag][sp]``; tokens at 1 and 5, size 8."""
    return build_doc(FilterToken(key="status", value="active"), FilterToken(key="tag", value="x"))


def _state(doc: Document, anchor: int, head: int | None = None, **kwargs) -> EditorState:
    selection = Selection(anchor, anchor if head is None else head)
    return EditorState(doc=doc, selection=selection, **kwargs)


# ---------------------------------------------------------------------------
# Selection guard
# ---------------------------------------------------------------------------


class TestBackspaceAndDelete:
    def test_backspace_between_spacers_enters_previous_token(self, two_tokens: Document) -> None:
        tr = handle_key(_state(two_tokens, 4), KeyPress("Backspace"))
        assert tr is not None
        assert tr.get_meta(SELECTION_GUARD_META)
        assert get_token_focus_meta(tr) == TokenFocusState(1, CursorEntry("from-right", "entry"))
        assert not tr.doc_changed

    def test_backspace_right_after_token(self, two_tokens: Document) -> None:
        tr = handle_key(_state(two_tokens, 3), KeyPress("Backspace"))
        assert get_token_focus_meta(tr).focused_pos == 1

    def test_delete_enters_next_token(self, two_tokens: Document) -> None:
        tr = handle_key(_state(two_tokens, 4), KeyPress("Delete"))
        assert get_token_focus_meta(tr) == TokenFocusState(5, CursorEntry("from-left", "entry"))

    def test_immutable_token_is_selected(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="owner", value="me", immutable=True))
        tr = handle_key(_state(doc, 4), KeyPress("Backspace"))
        assert tr.selection == Selection(1, 3)
        assert get_token_focus_meta(tr) is None

    def test_backspace_in_text_falls_through(self, build_doc) -> None:
        assert handle_key(_state(build_doc("abc"), 2), KeyPress("Backspace")) is None

    def test_inactive_while_token_focused(self, two_tokens: Document) -> None:
        state = _state(two_tokens, 4, focus=TokenFocusState(1))
        assert handle_key(state, KeyPress("Backspace")) is None

    def test_inactive_while_composing(self, two_tokens: Document) -> None:
        assert handle_key(_state(two_tokens, 4), KeyPress("Backspace", is_composing=True)) is None

    def test_range_deletion_takes_whole_token(self, build_doc) -> None:
        # "ab" [sp] [status] [sp] "cd"
        doc = build_doc("ab", FilterToken(key="status", value="active"), "cd")
        tr = handle_key(_state(doc, 1, 3), KeyPress("Backspace"))
        assert tr.doc.count_tokens() == 0
        assert tr.doc.text_between(0, tr.doc.size) == "acd"


class TestExpandSelectionForDeletion:
    def test_expands_over_token_and_outer_spacer(self, build_doc) -> None:
        doc = build_doc("ab", FilterToken(key="status", value="active"), "cd")
        assert expand_selection_for_deletion(doc, 1, 3) == (1, 6)
        assert expand_selection_for_deletion(doc, 5, 7) == (2, 7)

    def test_no_spacer_in_range(self, build_doc) -> None:
        doc = build_doc("ab", FilterToken(key="status", value="active"), "cd")
        assert expand_selection_for_deletion(doc, 0, 1) is None

    def test_range_already_covering_token(self, two_tokens: Document) -> None:
        assert expand_selection_for_deletion(two_tokens, 0, 4) is None


class TestArrowKeys:
    def test_shift_arrow_skips_spacers_and_takes_tokens(self, two_tokens: Document) -> None:
        assert find_next_selectable_position(two_tokens, 0, 1) == 3
        assert find_next_selectable_position(two_tokens, 3, 1) == 7
        assert find_next_selectable_position(two_tokens, 8, -1) == 5

    def test_shift_arrow_in_text_is_left_to_host(self, build_doc) -> None:
        assert find_next_selectable_position(build_doc("abc"), 1, 1) == 1

    def test_shift_arrow_extends_selection(self, two_tokens: Document) -> None:
        tr = handle_key(_state(two_tokens, 0), KeyPress("ArrowRight", shift=True))
        assert tr.selection == Selection(0, 3)

    def test_arrow_right_enters_token_from_left(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="status", value="active"))
        tr = handle_key(_state(doc, 0), KeyPress("ArrowRight"))
        assert get_token_focus_meta(tr) == TokenFocusState(1, CursorEntry("from-left", "all"))

    def test_arrow_left_enters_token_from_right(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="status", value="active"))
        tr = handle_key(_state(doc, 4), KeyPress("ArrowLeft"))
        assert get_token_focus_meta(tr) == TokenFocusState(1, CursorEntry("from-right", "all"))

    @pytest.mark.parametrize(("key", "cursor"), [("ArrowRight", 0), ("ArrowLeft", 4)])
    def test_arrow_selects_immutable_token(self, build_doc, key: str, cursor: int) -> None:
        doc = build_doc(FilterToken(key="owner", value="me", immutable=True))
        tr = handle_key(_state(doc, cursor), KeyPress(key))
        assert tr.selection == Selection(1, 3)
        assert get_token_focus_meta(tr) is None

    def test_arrow_in_text_falls_through(self, build_doc) -> None:
        assert handle_key(_state(build_doc("abc"), 0), KeyPress("ArrowRight")) is None


class TestTokenExit:
    def test_exit_right_lands_after_trailing_spacer(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="status", value="active"), "x")
        state = _state(doc, 1, focus=TokenFocusState(1))
        tr = exit_token_right(state, 3)
        assert tr.selection == Selection.cursor(4)
        assert tr.get_meta(EXITING_TOKEN)
        assert tr.get_meta(ADD_TO_HISTORY) is False
        assert get_token_focus_meta(tr).focused_pos is None

    def test_exit_right_keeps_caller_history_setting(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="status", value="active"))
        state = _state(doc, 1, focus=TokenFocusState(1))
        tr = exit_token_right(state, 3, state.transaction())
        assert tr.add_to_history

    def test_exit_left_lands_before_leading_spacer(self, build_doc) -> None:
        doc = build_doc("x", FilterToken(key="status", value="active"))
        state = _state(doc, 2, focus=TokenFocusState(2))
        tr = exit_token_left(state, 2)
        assert tr.selection == Selection.cursor(1)

    def test_collapse_on_blur(self, two_tokens: Document) -> None:
        tr = collapse_on_blur(_state(two_tokens, 0, 4))
        assert tr.selection == Selection.cursor(4)
        assert collapse_on_blur(_state(two_tokens, 4)) is None


# ---------------------------------------------------------------------------
# Selection invariant
# ---------------------------------------------------------------------------


class TestInvariantHelpers:
    def test_get_cursor_inside_token(self, two_tokens: Document) -> None:
        assert get_cursor_inside_token(two_tokens, 2) == InsideTokenInfo(1, 3, False)
        assert get_cursor_inside_token(two_tokens, 1) is None

    def test_find_spacer_before_and_after(self, two_tokens: Document) -> None:
        assert find_spacer_before(two_tokens, 1) == 0
        assert find_spacer_before(two_tokens, 0) is None
        assert find_spacer_after(two_tokens, 3) == 4
        assert find_spacer_after(two_tokens, 1) is None


class TestSelectionInvariantStage:
    def _run(self, state: EditorState, root: Transaction) -> tuple[EditorState, list[Transaction]]:
        return apply_transaction(state, root, [SelectionInvariantStage()])

    def test_cursor_moving_onto_token_enters_it(self, two_tokens: Document) -> None:
        state = _state(two_tokens, 0)
        new_state, transactions = self._run(state, state.transaction().set_selection(Selection.cursor(1)))
        assert new_state.focus.focused_pos == 1
        assert len(transactions) == 2
        assert transactions[1].get_meta(ADD_TO_HISTORY) is False

    def test_range_collapsing_inside_token_focuses_it(self, two_tokens: Document) -> None:
        state = _state(two_tokens, 0, 4)
        new_state, _ = self._run(state, state.transaction().set_selection(Selection.cursor(2)))
        assert new_state.focus.focused_pos == 1

    def test_cursor_inside_immutable_token_moves_out(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="owner", value="me", immutable=True))
        state = _state(doc, 0)
        new_state, _ = self._run(state, state.transaction().set_selection(Selection.cursor(2)))
        assert new_state.selection == Selection.cursor(1)
        assert not new_state.focus.is_focused

    def test_range_collapsing_against_immutable_token_selects_it(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="owner", value="me", immutable=True))
        state = _state(doc, 0, 4)
        new_state, _ = self._run(state, state.transaction().set_selection(Selection.cursor(1)))
        assert new_state.selection == Selection(1, 3)

    def test_drag_does_not_enter_tokens(self, two_tokens: Document) -> None:
        state = _state(two_tokens, 0)
        root = state.transaction().set_selection(Selection.cursor(1)).set_meta(DRAGGING, True)
        new_state, transactions = self._run(state, root)
        assert transactions == [root]
        assert not new_state.focus.is_focused

    def test_idle_while_token_focused(self, two_tokens: Document) -> None:
        state = _state(two_tokens, 1, focus=TokenFocusState(1))
        root = state.transaction().set_selection(Selection.cursor(2))
        _, transactions = self._run(state, root)
        assert transactions == [root]


# ---------------------------------------------------------------------------
# Clicks
# ---------------------------------------------------------------------------


class TestSpacerClicks:
    def test_between_two_spacers_stays(self, two_tokens: Document) -> None:
        assert resolve_spacer_click_target(two_tokens, 4).target_pos == 4

    def test_document_edges(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="status", value="active"))
        assert resolve_spacer_click_target(doc, 0).target_pos == 0
        assert resolve_spacer_click_target(doc, 4).target_pos == 4

    def test_not_touching_a_spacer(self, build_doc) -> None:
        assert resolve_spacer_click_target(build_doc("abc"), 1) is None

    def test_inserts_missing_spacer_between_tokens(self) -> None:
        first = FilterToken(key="status", value="active")
        second = FilterToken(key="tag", value="x")
        doc = Document([Spacer(), first, Spacer(), second, Spacer()])
        tr = Transaction(doc)
        result = resolve_spacer_click_target(doc, 3, tr, allow_spacer_insertion=True)
        assert result.target_pos == 3
        assert result.spacer_inserted
        assert tr.doc.segments == (Spacer(), first, Spacer(), Spacer(), second, Spacer())


class TestShiftClick:
    def test_forward_selection_takes_whole_token(self, two_tokens: Document) -> None:
        assert calculate_shift_click_head(two_tokens, 5, 0, True) == 7

    def test_backward_selection_takes_whole_token(self, two_tokens: Document) -> None:
        assert calculate_shift_click_head(two_tokens, 3, 8, True) == 1

    def test_spacer_click_keeps_position(self, two_tokens: Document) -> None:
        assert calculate_shift_click_head(two_tokens, 4, 0, False) == 4

    def test_plain_text_is_left_to_host(self, build_doc) -> None:
        assert calculate_shift_click_head(build_doc("abc"), 1, 0, False) is None


class TestNormalizeCursorPosition:
    @pytest.mark.parametrize(
        ("pos", "expected"),
        [(0, 0), (1, 0), (2, 0), (3, 4), (4, 4), (6, 4), (7, 8), (8, 8)],
    )
    def test_positions(self, two_tokens: Document, pos: int, expected: int) -> None:
        assert normalize_cursor_position(two_tokens, pos) == expected

    def test_plain_text_is_valid(self) -> None:
        assert normalize_cursor_position(Document([PlainText("abc")]), 2) == 2


# ---------------------------------------------------------------------------
# Drag tracking
# ---------------------------------------------------------------------------


class TestDragTracker:
    @pytest.fixture
    def events(self) -> list[tuple]:
        return []

    @pytest.fixture
    def tracker(self, events: list[tuple]) -> DragTracker:
        callbacks = DragCallbacks(
            on_drag_start=lambda: events.append(("start",)),
            on_drag_move=lambda pos: events.append(("move", pos)),
            on_drag_end=lambda was_drag: events.append(("end", was_drag)),
            on_cleanup=lambda: events.append(("cleanup",)),
        )
        return DragTracker(0, 0, lambda x, y: int(x) if x >= 0 else None, callbacks)

    def test_small_moves_are_not_a_drag(self, tracker: DragTracker, events: list[tuple]) -> None:
        tracker.move(3, 2)
        tracker.mouse_up()
        assert events == [("cleanup",), ("end", False)]

    def test_drag_past_threshold(self, tracker: DragTracker, events: list[tuple]) -> None:
        tracker.move(10, 0)
        tracker.move(12, 0)
        tracker.mouse_up()
        assert events == [("start",), ("move", 10), ("move", 12), ("cleanup",), ("end", True)]

    def test_cleanup_runs_once(self, tracker: DragTracker, events: list[tuple]) -> None:
        tracker.move(10, 0)
        tracker.window_blur()
        tracker.mouse_up()
        tracker.cleanup()
        assert events.count(("cleanup",)) == 1
        assert events[-2:] == [("end", True), ("cleanup",)]

    def test_move_with_button_released_ends_gesture(self, tracker: DragTracker, events: list[tuple]) -> None:
        tracker.move(1, 1, buttons=0)
        assert events == [("end", False), ("cleanup",)]
        assert tracker.cleaned_up

    def test_position_outside_document_is_skipped(self, tracker: DragTracker, events: list[tuple]) -> None:
        tracker.move(-10, 0)
        assert events == [("start",)]
