"""Structural guarantees of parsed documents across free-text modes."""

from __future__ import annotations

import pytest

from querydoc.document import Document, FilterToken, FreeTextToken, PlainText, Spacer, Transaction
from querydoc.query import parse_query_to_doc, serialize_doc_to_query
from querydoc.repair import RepairContext, run_repair_pipeline
from querydoc.spacer import find_spacer_violations

QUERIES = [
    "status:active",
    "status:Active tag:ui",
    'tag:contains:"a b"',
    "hello world",
    'status:is_not:inactive "quoted text" rest',
    "email:ends_with:@x.com note",
    "color:red status:active",
]

MODES = ["plain", "tokenize"]


@pytest.fixture(params=MODES)
def mode(request: pytest.FixtureRequest) -> str:
    return request.param


class TestParsedDocuments:
    @pytest.mark.parametrize("query", QUERIES)
    def test_spacer_invariant(self, fields, mode: str, query: str) -> None:
        doc = parse_query_to_doc(query, fields, free_text_mode=mode)
        assert find_spacer_violations(doc) == []

    @pytest.mark.parametrize("query", QUERIES)
    def test_serialized_form_is_stable(self, fields, mode: str, query: str) -> None:
        text = serialize_doc_to_query(parse_query_to_doc(query, fields, free_text_mode=mode))
        again = serialize_doc_to_query(parse_query_to_doc(text, fields, free_text_mode=mode))
        assert again == text

    @pytest.mark.parametrize("query", QUERIES)
    def test_repair_leaves_parsed_documents_alone(self, fields, mode: str, query: str) -> None:
        doc = parse_query_to_doc(query, fields, free_text_mode=mode)
        tr = Transaction(doc)
        assert not run_repair_pipeline(tr, RepairContext(doc=doc, doc_changed=True))
        assert tr.doc == doc


class TestRepairConvergence:
    @pytest.mark.parametrize(
        "segments",
        [
            [FilterToken(key="tag", value="a"), FilterToken(key="tag", value="b")],
            [PlainText("a"), Spacer(), Spacer(), PlainText("b")],
            [Spacer(), PlainText("x"), FreeTextToken(value="y"), PlainText("z")],
            [PlainText("a"), PlainText("b"), FilterToken(key="tag", value="c"), Spacer()],
        ],
        ids=["adjacent-tokens", "stacked-spacers", "free-text-between-text", "touching-text"],
    )
    def test_broken_documents_are_repaired_once(self, segments: list) -> None:
        tr = Transaction(Document(segments))
        run_repair_pipeline(tr, RepairContext(doc=tr.doc, doc_changed=True))
        assert find_spacer_violations(tr.doc) == []

        second = Transaction(tr.doc)
        assert not run_repair_pipeline(second, RepairContext(doc=tr.doc, doc_changed=True))
