"""Structured, host-facing snapshot of a document."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Union

from querydoc.document import Document, FilterToken, FreeTextToken, PlainText, ensure_token_id
from querydoc.fields import DEFAULT_TOKEN_DELIMITER
from querydoc.query.serializer import serialize_doc_to_query


@dataclass(frozen=True)
class SnapshotFilter:
    id: str
    key: str
    operator: str
    value: str
    invalid: bool = False
    invalid_reason: str | None = None
    type: str = "filter"


@dataclass(frozen=True)
class SnapshotFreeText:
    id: str
    value: str
    type: str = "freeText"


@dataclass(frozen=True)
class SnapshotPlainText:
    value: str
    type: str = "plaintext"


SnapshotSegment = Union[SnapshotFilter, SnapshotFreeText, SnapshotPlainText]
SnapshotToken = Union[SnapshotFilter, SnapshotFreeText]


@dataclass(frozen=True)
class QuerySnapshot:
    """Segments of a document plus its serialized query text."""

    segments: tuple[SnapshotSegment, ...] = field(default_factory=tuple)
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"segments": [asdict(s) for s in self.segments], "text": self.text}


EMPTY_SNAPSHOT = QuerySnapshot()


def create_query_snapshot(doc: Document, delimiter: str = DEFAULT_TOKEN_DELIMITER) -> QuerySnapshot:
    """Snapshot ``doc``.

    Filters without a value and blank free-text tokens are omitted, and
    adjacent plain-text runs are reported as one segment.
    """
    segments: list[SnapshotSegment] = []
    for segment in doc.segments:
        if isinstance(segment, FilterToken):
            if segment.value:
                segments.append(
                    SnapshotFilter(
                        id=ensure_token_id(segment.id),
                        key=segment.key,
                        operator=segment.operator or "is",
                        value=segment.value,
                        invalid=segment.invalid,
                        invalid_reason=segment.invalid_reason,
                    )
                )
        elif isinstance(segment, FreeTextToken):
            if segment.value.strip():
                segments.append(SnapshotFreeText(id=ensure_token_id(segment.id), value=segment.value))
        elif isinstance(segment, PlainText):
            if segments and isinstance(segments[-1], SnapshotPlainText):
                segments[-1] = SnapshotPlainText(segments[-1].value + segment.value)
            else:
                segments.append(SnapshotPlainText(segment.value))
    return QuerySnapshot(segments=tuple(segments), text=serialize_doc_to_query(doc, delimiter))


def get_filter_tokens(snapshot: QuerySnapshot) -> list[SnapshotFilter]:
    return [s for s in snapshot.segments if isinstance(s, SnapshotFilter)]


def get_free_text_tokens(snapshot: QuerySnapshot) -> list[SnapshotFreeText]:
    return [s for s in snapshot.segments if isinstance(s, SnapshotFreeText)]


def get_all_tokens(snapshot: QuerySnapshot) -> list[SnapshotToken]:
    """Filter and free-text segments in document order."""
    return [s for s in snapshot.segments if isinstance(s, (SnapshotFilter, SnapshotFreeText))]


def get_plain_text(snapshot: QuerySnapshot) -> str:
    return "".join(s.value for s in snapshot.segments if isinstance(s, SnapshotPlainText))


def are_token_lists_equal(prev: Sequence[SnapshotToken], nxt: Sequence[SnapshotToken]) -> bool:
    """Compare token lists by type, id and value (plus operator for filters)."""
    if len(prev) != len(nxt):
        return False
    for p, n in zip(prev, nxt):
        if p.type != n.type or p.id != n.id or p.value != n.value:
            return False
        if isinstance(p, SnapshotFilter) and isinstance(n, SnapshotFilter) and p.operator != n.operator:
            return False
    return True


def are_token_lists_equal_excluding_focused(
    prev: Sequence[SnapshotToken],
    nxt: Sequence[SnapshotToken],
    focused_token_id: str | None,
) -> bool:
    """Like :func:`are_token_lists_equal`, ignoring the token being edited."""
    if focused_token_id:
        prev = [t for t in prev if t.id != focused_token_id]
        nxt = [t for t in nxt if t.id != focused_token_id]
    return are_token_lists_equal(prev, nxt)
