"""Tests for query string parsing and quoting helpers."""

from __future__ import annotations

import pytest

from querydoc.document import LEAF_TEXT
from querydoc.exceptions import DelimiterConfigError
from querydoc.fields import FieldDefinition
from querydoc.query import (
    ParsedFilter,
    ParsedFreeText,
    find_last_word_boundary,
    is_inside_quotes,
    parse_query_string,
    parse_query_string_with_info,
    parse_quoted_string,
    parse_token_text,
    quote_if_needed,
)

# ---------------------------------------------------------------------------
# Token text
# ---------------------------------------------------------------------------


class TestParseTokenText:
    def test_full_filter(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("status:is_not:inactive", fields) == ParsedFilter("status", "is_not", "inactive")

    def test_default_operator(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("email:a@b.c", fields) == ParsedFilter("email", "is", "a@b.c")

    def test_enum_label_resolves_to_value(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("status:Active", fields).value == "active"
        assert parse_token_text("status:is:INACTIVE", fields).value == "inactive"

    def test_unmatched_enum_value_kept(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("status:pending", fields).value == "pending"

    def test_unknown_operator_is_part_of_value(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("tag:foo:bar", fields) == ParsedFilter("tag", "is", "foo:bar")

    def test_key_without_value(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("status:", fields) == ParsedFilter("status", "is", "")

    def test_quoted_value(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text('tag:contains:"a b"', fields) == ParsedFilter("tag", "contains", "a b")

    @pytest.mark.parametrize("text", ["", "hello", '"status:active"', "unknown:x"])
    def test_not_a_filter(self, fields: list[FieldDefinition], text: str) -> None:
        assert parse_token_text(text, fields) is None

    def test_unknown_fields_allowed(self, fields: list[FieldDefinition]) -> None:
        result = parse_token_text("color:gt:3", fields, allow_unknown_fields=True)
        assert result == ParsedFilter("color", "gt", "3")

    def test_unknown_field_operators_restrict(self, fields: list[FieldDefinition]) -> None:
        options = {"allow_unknown_fields": True, "unknown_field_operators": ["contains", "is"]}
        assert parse_token_text("color:red", fields, **options) == ParsedFilter("color", "contains", "red")
        assert parse_token_text("color:gt:3", fields, **options) == ParsedFilter("color", "contains", "gt:3")

    def test_custom_delimiter(self, fields: list[FieldDefinition]) -> None:
        assert parse_token_text("status=is=active", fields, delimiter="=") == ParsedFilter("status", "is", "active")
        assert parse_token_text("status:active", fields, delimiter="=") is None


# ---------------------------------------------------------------------------
# Query strings
# ---------------------------------------------------------------------------


class TestParseQueryString:
    def test_filters_and_free_text(self, fields: list[FieldDefinition]) -> None:
        items = parse_query_string("status:is:active hello tag:x", fields)
        assert items == [
            ParsedFilter("status", "is", "active"),
            ParsedFreeText("hello"),
            ParsedFilter("tag", "is", "x"),
        ]

    def test_empty_query(self, fields: list[FieldDefinition]) -> None:
        assert parse_query_string("", fields) == []
        assert parse_query_string("   ", fields) == []

    def test_repeated_spaces(self, fields: list[FieldDefinition]) -> None:
        assert parse_query_string("a   b", fields) == [ParsedFreeText("a"), ParsedFreeText("b")]

    def test_filter_without_value_is_free_text(self, fields: list[FieldDefinition]) -> None:
        assert parse_query_string("status:", fields) == [ParsedFreeText("status:")]

    def test_quoted_phrase(self, fields: list[FieldDefinition]) -> None:
        (item,) = parse_query_string('"two words"', fields)
        assert item == ParsedFreeText("two words", quoted=True, raw_text='"two words"')

    def test_quoted_phrase_escapes(self, fields: list[FieldDefinition]) -> None:
        (item,) = parse_query_string(r'"say \"hi\" \\ now"', fields)
        assert item.value == 'say "hi" \\ now'

    def test_quoted_phrase_looking_like_filter_stays_free_text(self, fields: list[FieldDefinition]) -> None:
        (item,) = parse_query_string('"status:active"', fields)
        assert isinstance(item, ParsedFreeText)
        assert item.quoted

    def test_filter_with_quoted_value(self, fields: list[FieldDefinition]) -> None:
        items = parse_query_string('tag:"two words" end', fields)
        assert items == [ParsedFilter("tag", "is", "two words"), ParsedFreeText("end")]

    def test_incomplete_quote(self, fields: list[FieldDefinition]) -> None:
        result = parse_query_string_with_info('status:active "unfinished phrase', fields)
        assert result.has_incomplete_quote
        assert result.incomplete_quote_value == "unfinished phrase"
        assert result.items[-1] == ParsedFreeText(
            "unfinished phrase", quoted=True, raw_text='"unfinished phrase'
        )

    def test_complete_quotes(self, fields: list[FieldDefinition]) -> None:
        result = parse_query_string_with_info('"done"', fields)
        assert not result.has_incomplete_quote
        assert result.incomplete_quote_value is None

    @pytest.mark.parametrize("delimiter", ["", "::", " ", '"', "\\"])
    def test_invalid_delimiter(self, fields: list[FieldDefinition], delimiter: str) -> None:
        with pytest.raises(DelimiterConfigError):
            parse_query_string("status:active", fields, delimiter=delimiter)


# ---------------------------------------------------------------------------
# Quoting helpers
# ---------------------------------------------------------------------------


class TestQuoting:
    def test_is_inside_quotes(self) -> None:
        assert is_inside_quotes('a "b')
        assert not is_inside_quotes('a "b"')
        assert not is_inside_quotes("")

    def test_escaped_quote_does_not_close(self) -> None:
        assert is_inside_quotes(r'"a \" b')

    def test_leaf_placeholder_resets_quote_state(self) -> None:
        assert not is_inside_quotes('"a' + LEAF_TEXT + "b")

    def test_find_last_word_boundary(self) -> None:
        assert find_last_word_boundary('a "b c" d') == 7
        assert find_last_word_boundary("abc") == -1
        assert find_last_word_boundary('a"b c') == -1
        assert find_last_word_boundary("ab" + LEAF_TEXT + "c") == 2

    def test_parse_quoted_string(self) -> None:
        closed = parse_quoted_string('"hello world"')
        assert (closed.value, closed.is_open, closed.was_quoted) == ("hello world", False, True)
        assert parse_quoted_string('"hello').is_open
        assert not parse_quoted_string("plain").was_quoted

    def test_parse_quoted_string_escapes(self) -> None:
        assert parse_quoted_string(r'"a\"b"').value == 'a"b'
        assert parse_quoted_string(r'"a\nb"').value == "a\nb"
        assert parse_quoted_string(r'"a\xb"').value == "a\\xb"

    def test_quote_if_needed(self) -> None:
        assert quote_if_needed("plain") == "plain"
        assert quote_if_needed("a b") == '"a b"'
        assert quote_if_needed('say "hi"') == r'"say \"hi\""'
