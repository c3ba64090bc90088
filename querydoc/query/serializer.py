"""Convert between query strings and documents."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from querydoc.document import (
    Document,
    FilterToken,
    FreeTextToken,
    PlainText,
    Segment,
    Spacer,
    is_text,
    is_token,
)
from querydoc.fields import DEFAULT_TOKEN_DELIMITER, FieldDefinition, FreeTextMode, find_field
from querydoc.query.free_text import get_free_text_strategy
from querydoc.query.parser import ParsedFilter, ParsedItem, parse_query_string
from querydoc.query.quoting import escape_for_quotes, quote_if_needed


def create_filter_token(
    key: str,
    operator: str,
    value: str = "",
    fields: Sequence[FieldDefinition] = (),
    token_id: str | None = None,
) -> FilterToken:
    """Build a filter token the way every creation path should.

    The token is immutable only when its field is immutable and it already
    has a value; an empty token must stay editable.
    """
    field_def = find_field(fields, key)
    immutable = bool(field_def is not None and field_def.immutable and value)
    if token_id:
        return FilterToken(key=key, operator=operator, value=value, id=token_id, immutable=immutable)
    return FilterToken(key=key, operator=operator, value=value, immutable=immutable)


def build_item_content(
    item: ParsedItem,
    fields: Sequence[FieldDefinition],
    free_text_mode: FreeTextMode,
) -> Segment | None:
    """Document segment for one parsed item, or None when it is dropped."""
    if isinstance(item, ParsedFilter):
        return create_filter_token(item.key, item.operator, item.value, fields)
    if not item.value.strip():
        return None
    return get_free_text_strategy(free_text_mode).to_doc_content(item)


def build_content_from_items(
    items: Iterable[ParsedItem],
    fields: Sequence[FieldDefinition],
    free_text_mode: FreeTextMode,
) -> list[Segment]:
    content: list[Segment] = []
    for item in items:
        segment = build_item_content(item, fields, free_text_mode)
        if segment is not None:
            content.append(segment)
    return content


def wrap_with_spacers(content: Iterable[Segment]) -> list[Segment]:
    """Surround every token with its own pair of spacers.

    Two tokens in a row end up as ``[sp][t1][sp][sp][t2][sp]``. Consecutive
    text items are joined into one run with a single space between them.
    """
    wrapped: list[Segment] = []
    last_was_text = False
    for segment in content:
        if is_token(segment):
            wrapped.extend((Spacer(), segment, Spacer()))
            last_was_text = False
        elif is_text(segment):
            if last_was_text:
                wrapped[-1] = PlainText(f"{wrapped[-1].value} {segment.value}")  # type: ignore[union-attr]
            else:
                wrapped.append(segment)
            last_was_text = True
        else:
            wrapped.append(segment)
            last_was_text = False
    return wrapped


def parse_query_to_doc(
    query: str,
    fields: Sequence[FieldDefinition],
    *,
    free_text_mode: FreeTextMode = "plain",
    allow_unknown_fields: bool = False,
    unknown_field_operators: Sequence[str] | None = None,
    delimiter: str = DEFAULT_TOKEN_DELIMITER,
) -> Document:
    """Build a document from a query string.

    Filters become filter tokens; free text follows ``free_text_mode``.
    The result satisfies the spacer invariant.
    """
    items = parse_query_string(
        query,
        fields,
        allow_unknown_fields=allow_unknown_fields,
        unknown_field_operators=unknown_field_operators,
        delimiter=delimiter,
    )
    return Document(wrap_with_spacers(build_content_from_items(items, fields, free_text_mode)))


def serialize_doc_to_query(doc: Document, delimiter: str = DEFAULT_TOKEN_DELIMITER) -> str:
    """Serialize ``doc`` to its canonical query string.

    Filters without a value and blank free text are left out.
    """
    parts: list[str] = []
    for segment in doc.segments:
        if isinstance(segment, FilterToken):
            if segment.value:
                value = quote_if_needed(segment.value)
                parts.append(f"{segment.key}{delimiter}{segment.operator}{delimiter}{value}")
        elif isinstance(segment, FreeTextToken):
            if segment.value:
                parts.append(f'"{escape_for_quotes(segment.value)}"' if segment.quoted else segment.value)
        elif isinstance(segment, PlainText):
            text = segment.value.strip()
            if text:
                parts.append(text)
    return " ".join(parts).strip()
