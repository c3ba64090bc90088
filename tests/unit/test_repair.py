"""Tests for the document repair phases and stage."""

from __future__ import annotations

from querydoc.document import (
    ADD_TO_HISTORY,
    COMPOSITION,
    Document,
    FilterToken,
    PlainText,
    Spacer,
    Transaction,
)
from querydoc.focus import get_token_focus_meta
from querydoc.repair import (
    REPAIR_META,
    RepairContext,
    RepairStage,
    find_adjacent_text_seams,
    find_first_empty_token,
    find_missing_spacers,
    find_orphaned_spacers,
    map_through,
    run_repair_pipeline,
)
from querydoc.state import EditorState, apply_transaction

# ---------------------------------------------------------------------------
# Finders
# ---------------------------------------------------------------------------


class TestFinders:
    def test_find_orphaned_spacers(self) -> None:
        doc = Document([PlainText("a"), Spacer(), PlainText("b")])
        assert find_orphaned_spacers(doc) == [1]

    def test_spacers_next_to_tokens_are_not_orphaned(self) -> None:
        doc = Document([Spacer(), FilterToken(key="a", value="x"), Spacer()])
        assert find_orphaned_spacers(doc) == []

    def test_find_missing_spacers(self) -> None:
        assert find_missing_spacers(Document([FilterToken(key="a")])) == [0, 2]

    def test_find_adjacent_text_seams(self) -> None:
        doc = Document([PlainText("a"), PlainText("b"), PlainText(" c")])
        assert find_adjacent_text_seams(doc) == [1]

    def test_find_first_empty_token(self, build_doc) -> None:
        doc = build_doc(FilterToken(key="a", value="x"), FilterToken(key="b"))
        assert find_first_empty_token(doc) == 5
        assert find_first_empty_token(Document()) is None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class TestRunRepairPipeline:
    def test_inserts_missing_spacers(self) -> None:
        token = FilterToken(key="a", value="x")
        tr = Transaction(Document([token]))
        assert run_repair_pipeline(tr, RepairContext(doc=tr.doc, doc_changed=True))
        assert tr.doc.segments == (Spacer(), token, Spacer())

    def test_orphaned_spacer_between_words_becomes_space(self) -> None:
        tr = Transaction(Document([PlainText("a"), Spacer(), PlainText("b")]))
        run_repair_pipeline(tr, RepairContext(doc=tr.doc, doc_changed=True))
        assert tr.doc.text_between(0, tr.doc.size) == "a b"
        assert not any(isinstance(s, Spacer) for s in tr.doc.segments)

    def test_separates_touching_text(self) -> None:
        tr = Transaction(Document([PlainText("a"), PlainText("b")]))
        run_repair_pipeline(tr, RepairContext(doc=tr.doc, doc_changed=True))
        assert tr.doc.text_between(0, tr.doc.size) == "a b"

    def test_is_idempotent(self) -> None:
        tr = Transaction(Document([PlainText("a"), FilterToken(key="k", value="v"), Spacer(), Spacer()]))
        run_repair_pipeline(tr, RepairContext(doc=tr.doc, doc_changed=True))
        repaired = tr.doc
        second = Transaction(repaired)
        assert not run_repair_pipeline(second, RepairContext(doc=repaired, doc_changed=True))
        assert second.doc == repaired

    def test_skips_when_nothing_changed(self) -> None:
        tr = Transaction(Document([FilterToken(key="a")]))
        assert not run_repair_pipeline(tr, RepairContext(doc=tr.doc))

    def test_removes_empty_token_after_focus_leaves(self, build_doc) -> None:
        tr = Transaction(build_doc("a", FilterToken(key="status"), "b"))
        context = RepairContext(doc=tr.doc, old_focused_pos=2, focus_changed=True)
        assert run_repair_pipeline(tr, context)
        assert tr.doc.count_tokens() == 0
        assert tr.doc.text_between(0, tr.doc.size) == "a b"

    def test_keeps_filled_token_after_focus_leaves(self, build_doc) -> None:
        tr = Transaction(build_doc(FilterToken(key="status", value="active")))
        context = RepairContext(doc=tr.doc, old_focused_pos=1, focus_changed=True)
        assert not run_repair_pipeline(tr, context)

    def test_history_restore_focuses_empty_token(self, build_doc) -> None:
        tr = Transaction(build_doc(FilterToken(key="a", value="x"), FilterToken(key="b")))
        context = RepairContext(doc=tr.doc, doc_changed=True, is_history_operation=True)
        assert run_repair_pipeline(tr, context)
        meta = get_token_focus_meta(tr)
        assert meta is not None and meta.focused_pos == 5


class TestMapThrough:
    def test_maps_across_transactions(self) -> None:
        first = Transaction(Document([PlainText("abc")])).insert_text("X", 0)
        second = Transaction(first.doc).insert_text("Y", 0)
        assert map_through([first, second], 2) == 4

    def test_deleted_position_is_none(self) -> None:
        tr = Transaction(Document([PlainText("abcd")])).delete(0, 4)
        assert map_through([tr], 2) is None
        assert map_through([tr], None) is None


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------


class TestRepairStage:
    def test_appends_repair_outside_history(self) -> None:
        token = FilterToken(key="status", value="active")
        state = EditorState.create(Document([token]))
        root = state.transaction().insert_text("x", 0)

        new_state, transactions = apply_transaction(state, root, [RepairStage()])

        assert new_state.doc.segments == (PlainText("x"), Spacer(), token, Spacer())
        assert len(transactions) == 2
        assert transactions[1].get_meta(REPAIR_META)
        assert transactions[1].get_meta(ADD_TO_HISTORY) is False

    def test_skips_composition(self) -> None:
        state = EditorState.create(Document([FilterToken(key="a", value="x")]))
        root = state.transaction().insert_text("x", 0).set_meta(COMPOSITION, True)
        _, transactions = apply_transaction(state, root, [RepairStage()])
        assert transactions == [root]

    def test_nothing_to_repair(self, build_doc) -> None:
        state = EditorState.create(build_doc(FilterToken(key="a", value="x")))
        root = state.transaction().insert_text("hi ", 0)
        _, transactions = apply_transaction(state, root, [RepairStage()])
        assert transactions == [root]
