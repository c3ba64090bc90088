"""Parse query strings into filter and free-text items."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Union

from lark import Lark, Token, Transformer, UnexpectedInput

from querydoc.exceptions import QueryParseError
from querydoc.fields import (
    ALL_OPERATORS,
    DEFAULT_TOKEN_DELIMITER,
    FieldDefinition,
    find_field,
    resolve_enum_value,
    validate_delimiter,
)
from querydoc.query.quoting import parse_quoted_string


@dataclass(frozen=True)
class ParsedFilter:
    """A ``key:operator:value`` item."""

    key: str
    operator: str
    value: str
    type: str = "filter"


@dataclass(frozen=True)
class ParsedFreeText:
    """A bare word or quoted phrase.

    ``raw_text`` keeps a quoted phrase as typed, quotes and escapes included.
    """

    value: str
    quoted: bool = False
    raw_text: str | None = None
    type: str = "freeText"


ParsedItem = Union[ParsedFilter, ParsedFreeText]


@dataclass
class ParseResult:
    """Items of a query plus whether it ended inside an open quote."""

    items: list[ParsedItem] = field(default_factory=list)
    has_incomplete_quote: bool = False
    incomplete_quote_value: str | None = None


def _load_grammar() -> str:
    """Load the Lark grammar from the package resources."""
    return resources.files("querydoc.query").joinpath("grammar.lark").read_text()


_GRAMMAR_TEXT = _load_grammar()

_parser = Lark(
    _GRAMMAR_TEXT,
    parser="lalr",
    lexer="basic",
)


def _unescape_phrase(body: str) -> str:
    """Decode a quoted phrase body.

    Only ``\\"`` and ``\\\\`` are escapes; any other backslash pair is kept
    as written. A lone trailing backslash (open quote) is dropped.
    """
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\":
            if i + 1 >= len(body):
                break
            nxt = body[i + 1]
            out.append(nxt if nxt in ('"', "\\") else "\\" + nxt)
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


class _Phrase:
    """Intermediate result for a quoted phrase."""

    def __init__(self, raw: str, closed: bool) -> None:
        self.raw = raw
        self.closed = closed
        body = raw[1:-1] if closed else raw[1:]
        self.value = _unescape_phrase(body)


class _QueryTransformer(Transformer):
    """Transform the Lark parse tree into raw words and phrases."""

    def start(self, items: list[Any]) -> list[Any]:
        return items

    def quoted(self, items: list[Any]) -> _Phrase:
        return _Phrase(str(items[0]), closed=True)

    def open_quoted(self, items: list[Any]) -> _Phrase:
        return _Phrase(str(items[0]), closed=False)

    def word(self, items: list[Any]) -> str:
        return str(items[0])

    def WORD(self, token: Token) -> str:
        return str(token)


_transformer = _QueryTransformer()


def _split_query(query: str) -> list[Any]:
    if not query.strip(" "):
        return []
    try:
        tree = _parser.parse(query)
        return _transformer.transform(tree)
    except UnexpectedInput as e:
        raise QueryParseError(query, str(e)) from e


def _unquote_value(raw_value: str) -> str:
    parsed = parse_quoted_string(raw_value)
    return parsed.value if parsed.was_quoted else raw_value


def parse_token_text(
    text: str,
    fields: Sequence[FieldDefinition],
    *,
    allow_unknown_fields: bool = False,
    unknown_field_operators: Sequence[str] | None = None,
    delimiter: str = DEFAULT_TOKEN_DELIMITER,
) -> ParsedFilter | None:
    """Interpret a single word as a filter.

    ``key:value`` uses the field's default operator; ``key:op:value`` is
    accepted when ``op`` is allowed for the field. Enum values are resolved
    to their internal value.

    Args:
        text: The word, without surrounding spaces.
        fields: Known field definitions.
        allow_unknown_fields: Also accept keys not in ``fields``.
        unknown_field_operators: Operators allowed on unknown fields; the
            first is their default. All operators when None.
        delimiter: Separator between key, operator and value.

    Returns:
        The parsed filter (value possibly empty), or None when the word is
        not a filter.
    """
    if not text:
        return None
    if text.startswith('"') and text.endswith('"'):
        return None

    parts = text.split(delimiter)
    if len(parts) < 2:
        return None

    key, rest = parts[0], parts[1:]
    field_def = find_field(fields, key)

    if field_def is not None:
        if len(rest) >= 2 and rest[0] in field_def.operators:
            operator = rest[0]
            value = _unquote_value(delimiter.join(rest[1:]))
        else:
            operator = field_def.default_operator
            value = _unquote_value(delimiter.join(rest))
        if field_def.type == "enum" and field_def.enum_values:
            value = resolve_enum_value(
                field_def.enum_values, value, resolver=field_def.value_resolver
            )
        return ParsedFilter(key=key, operator=operator, value=value)

    if not allow_unknown_fields:
        return None

    allowed = tuple(unknown_field_operators) if unknown_field_operators is not None else ALL_OPERATORS
    default_operator = allowed[0] if allowed else "is"
    if len(rest) >= 2 and rest[0] in allowed:
        return ParsedFilter(key=key, operator=rest[0], value=_unquote_value(delimiter.join(rest[1:])))
    return ParsedFilter(key=key, operator=default_operator, value=_unquote_value(delimiter.join(rest)))


def parse_query_string_with_info(
    query: str,
    fields: Sequence[FieldDefinition],
    *,
    allow_unknown_fields: bool = False,
    unknown_field_operators: Sequence[str] | None = None,
    delimiter: str = DEFAULT_TOKEN_DELIMITER,
) -> ParseResult:
    """Parse ``query`` into filter and free-text items.

    Words that parse as a filter with a value become :class:`ParsedFilter`;
    everything else is free text. Quoted phrases are always free text.

    Raises:
        DelimiterConfigError: If ``delimiter`` is not a single character.
        QueryParseError: If the query cannot be split into items.
    """
    validate_delimiter(delimiter)
    result = ParseResult()
    for raw in _split_query(query):
        if isinstance(raw, _Phrase):
            if not raw.closed:
                result.has_incomplete_quote = True
                result.incomplete_quote_value = raw.value
            result.items.append(ParsedFreeText(raw.value, quoted=True, raw_text=raw.raw))
            continue

        parsed = parse_token_text(
            raw,
            fields,
            allow_unknown_fields=allow_unknown_fields,
            unknown_field_operators=unknown_field_operators,
            delimiter=delimiter,
        )
        if parsed is not None and parsed.value:
            result.items.append(parsed)
        else:
            result.items.append(ParsedFreeText(raw, quoted=False))
    return result


def parse_query_string(
    query: str,
    fields: Sequence[FieldDefinition],
    **options: Any,
) -> list[ParsedItem]:
    """Parse ``query`` and return its items only."""
    return parse_query_string_with_info(query, fields, **options).items
