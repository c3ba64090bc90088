"""Unit tests for the document model and transactions."""

from __future__ import annotations

import logging

import pytest

from querydoc.document import (
    ADD_TO_HISTORY,
    COMPOSITION,
    HISTORY,
    LEAF_TEXT,
    TOKEN_NODE_SIZE,
    Document,
    FilterToken,
    FreeTextToken,
    PlainText,
    Selection,
    Spacer,
    StepMap,
    Transaction,
    ensure_token_id,
    generate_token_id,
    is_empty_token,
)
from querydoc.exceptions import PositionError
from querydoc.state import EditorState


def _doc_with_token() -> tuple[Document, FilterToken]:
    token = FilterToken(key="status", value="active")
    return Document([PlainText("ab"), Spacer(), token, Spacer(), PlainText("cd")]), token


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class TestSegments:
    def test_sizes(self) -> None:
        assert PlainText("hello").size == 5
        assert Spacer().size == 1
        assert FilterToken(key="a").size == TOKEN_NODE_SIZE == 2
        assert FreeTextToken(value="x").size == 2

    def test_generated_ids_are_url_safe(self) -> None:
        token_id = generate_token_id()
        assert len(token_id) == 21
        assert all(c.isalnum() or c in "_-" for c in token_id)
        assert generate_token_id() != token_id

    def test_tokens_get_distinct_ids(self) -> None:
        assert FilterToken(key="a").id != FilterToken(key="a").id

    def test_ensure_token_id_keeps_existing(self) -> None:
        assert ensure_token_id("abc") == "abc"

    def test_ensure_token_id_generates_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="querydoc.document.segments"):
            token_id = ensure_token_id(None)
        assert len(token_id) == 21
        assert "without id" in caplog.text

    def test_is_empty_token(self) -> None:
        assert is_empty_token(FilterToken(key="a"))
        assert is_empty_token(FreeTextToken(value="   "))
        assert not is_empty_token(FilterToken(key="a", value="x"))
        assert not is_empty_token(PlainText(""))


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class TestDocument:
    def test_size_counts_units(self) -> None:
        doc, _ = _doc_with_token()
        assert doc.size == 2 + 1 + 2 + 1 + 2

    def test_empty_text_runs_are_dropped(self) -> None:
        doc = Document([PlainText(""), Spacer(), FilterToken(key="a"), Spacer()])
        assert len(doc) == 3

    def test_adjacent_text_is_not_merged(self) -> None:
        doc = Document([PlainText("a"), PlainText("b")])
        assert len(doc) == 2

    def test_walk_and_tokens(self) -> None:
        doc, token = _doc_with_token()
        assert [pos for pos, _ in doc.walk()] == [0, 2, 3, 5, 6]
        assert doc.tokens() == [(3, token)]
        assert doc.spacers() == [2, 5]
        assert doc.count_tokens() == 1

    def test_resolve_at_boundary(self) -> None:
        doc, token = _doc_with_token()
        rp = doc.resolve(3)
        assert rp.node_before == Spacer()
        assert rp.node_after == token
        assert not rp.inside_token

    def test_resolve_inside_token(self) -> None:
        doc, token = _doc_with_token()
        rp = doc.resolve(4)
        assert rp.inside_token
        assert rp.parent_token == token
        assert rp.token_pos == 3
        assert rp.node_before is None and rp.node_after is None

    def test_resolve_inside_text(self) -> None:
        doc, _ = _doc_with_token()
        rp = doc.resolve(1)
        assert rp.node_before == PlainText("a")
        assert rp.node_after == PlainText("b")

    def test_resolve_out_of_range_raises(self) -> None:
        doc, _ = _doc_with_token()
        with pytest.raises(PositionError):
            doc.resolve(doc.size + 1)

    def test_safe_resolve_returns_none(self) -> None:
        doc, _ = _doc_with_token()
        assert doc.safe_resolve(-1) is None
        assert doc.safe_resolve(doc.size) is not None

    def test_node_at(self) -> None:
        doc, token = _doc_with_token()
        assert doc.node_at(3) == token
        assert doc.node_at(4) is None
        assert doc.node_at(1) == PlainText("ab")
        assert doc.node_at(doc.size) is None

    def test_text_before_uses_leaf_placeholder(self) -> None:
        doc, _ = _doc_with_token()
        assert doc.text_before(7) == "ab" + LEAF_TEXT * 3 + "c"

    def test_replace_rejects_range_inside_token(self) -> None:
        doc, _ = _doc_with_token()
        with pytest.raises(PositionError):
            doc.replace(4, 6)

    def test_replace_rejoins_split_run(self) -> None:
        doc = Document([PlainText("abcd")])
        assert doc.replace(1, 3).segments == (PlainText("ad"),)

    def test_equality_is_by_segments(self) -> None:
        token = FilterToken(key="a", value="b")
        assert Document([Spacer(), token, Spacer()]) == Document([Spacer(), token, Spacer()])


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TestTransaction:
    def test_no_steps_means_no_change(self) -> None:
        tr = Transaction(Document([PlainText("a")]))
        assert not tr.doc_changed

    def test_meta_defaults(self) -> None:
        tr = Transaction(Document())
        assert tr.add_to_history
        assert not tr.is_history_operation
        assert not tr.is_composing
        tr.set_meta(ADD_TO_HISTORY, False).set_meta(HISTORY, "undo").set_meta(COMPOSITION, True)
        assert not tr.add_to_history
        assert tr.is_history_operation
        assert tr.is_composing

    def test_insert_text_extends_adjacent_run(self) -> None:
        tr = Transaction(Document([PlainText("ab")]))
        tr.insert_text("c", 2)
        assert tr.doc.segments == (PlainText("abc"),)

    def test_insert_text_replaces_range(self) -> None:
        tr = Transaction(Document([PlainText("abcd")]))
        tr.insert_text("X", 1, 3)
        assert tr.doc.segments == (PlainText("aXd"),)

    def test_mapping_through_delete(self) -> None:
        tr = Transaction(Document([PlainText("abcdef")]))
        tr.delete(1, 3)
        assert tr.mapping.map(5) == 3
        assert tr.mapping.map(0) == 0
        assert tr.mapping.map_result(2) == (1, True)

    def test_step_map_insertion_uses_assoc(self) -> None:
        step = StepMap(2, 0, 3)
        assert step.map(2, 1) == (5, False)
        assert step.map(2, -1) == (2, False)

    def test_selection_is_mapped(self) -> None:
        tr = Transaction(Document([PlainText("abc")]), Selection.cursor(3))
        tr.insert_text("X", 0)
        assert tr.selection == Selection.cursor(4)

    def test_explicit_selection_is_clamped(self) -> None:
        tr = Transaction(Document([PlainText("abc")]))
        tr.set_selection(Selection(0, 99))
        assert tr.selection == Selection(0, 3)
        assert tr.selection_set

    def test_set_token_attrs(self) -> None:
        doc, _ = _doc_with_token()
        tr = Transaction(doc)
        tr.set_token_attrs(3, invalid=True, invalid_reason="nope")
        node = tr.doc.node_at(3)
        assert node.invalid and node.invalid_reason == "nope"
        assert tr.doc_changed

    def test_set_token_attrs_unchanged_is_noop(self) -> None:
        doc, _ = _doc_with_token()
        tr = Transaction(doc)
        tr.set_token_attrs(3, invalid=False)
        assert not tr.doc_changed
        assert tr.mapping.maps == []

    def test_set_token_attrs_requires_token(self) -> None:
        doc, _ = _doc_with_token()
        with pytest.raises(PositionError):
            Transaction(doc).set_token_attrs(0, invalid=True)

    def test_replace_document(self) -> None:
        tr = Transaction(Document([PlainText("old")]))
        tr.replace_document(Document([PlainText("new text")]))
        assert tr.doc.segments == (PlainText("new text"),)
        assert tr.doc_changed


class TestSelection:
    def test_start_end_empty(self) -> None:
        sel = Selection(5, 2)
        assert (sel.start, sel.end) == (2, 5)
        assert not sel.empty
        assert Selection.cursor(3).empty


class TestEditorState:
    def test_create_puts_cursor_at_end(self) -> None:
        state = EditorState.create(Document([PlainText("abc")]))
        assert state.selection == Selection.cursor(3)

    def test_apply_rejects_foreign_transaction(self) -> None:
        state = EditorState.create(Document([PlainText("abc")]))
        other = Transaction(Document([PlainText("xyz")]))
        with pytest.raises(ValueError):
            state.apply(other)

    def test_apply_maps_selection(self) -> None:
        state = EditorState.create(Document([PlainText("abc")]))
        tr = state.transaction().insert_text("X", 0)
        assert state.apply(tr).selection == Selection.cursor(4)
