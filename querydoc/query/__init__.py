"""Query string parsing, serialization and snapshots."""

from querydoc.query.free_text import (
    FREE_TEXT_STRATEGIES,
    FreeTextStrategy,
    get_free_text_strategy,
)
from querydoc.query.parser import (
    ParsedFilter,
    ParsedFreeText,
    ParsedItem,
    ParseResult,
    parse_query_string,
    parse_query_string_with_info,
    parse_token_text,
)
from querydoc.query.quoting import (
    escape_for_quotes,
    find_last_word_boundary,
    is_inside_quotes,
    parse_quoted_string,
    quote_if_needed,
)
from querydoc.query.serializer import (
    build_content_from_items,
    create_filter_token,
    parse_query_to_doc,
    serialize_doc_to_query,
    wrap_with_spacers,
)
from querydoc.query.snapshot import (
    EMPTY_SNAPSHOT,
    QuerySnapshot,
    SnapshotFilter,
    SnapshotFreeText,
    SnapshotPlainText,
    are_token_lists_equal,
    are_token_lists_equal_excluding_focused,
    create_query_snapshot,
    get_all_tokens,
    get_filter_tokens,
    get_free_text_tokens,
    get_plain_text,
)

__all__ = [
    "EMPTY_SNAPSHOT",
    "FREE_TEXT_STRATEGIES",
    "FreeTextStrategy",
    "ParseResult",
    "ParsedFilter",
    "ParsedFreeText",
    "ParsedItem",
    "QuerySnapshot",
    "SnapshotFilter",
    "SnapshotFreeText",
    "SnapshotPlainText",
    "are_token_lists_equal",
    "are_token_lists_equal_excluding_focused",
    "build_content_from_items",
    "create_filter_token",
    "create_query_snapshot",
    "escape_for_quotes",
    "find_last_word_boundary",
    "get_all_tokens",
    "get_filter_tokens",
    "get_free_text_strategy",
    "get_free_text_tokens",
    "get_plain_text",
    "is_inside_quotes",
    "parse_query_string",
    "parse_query_string_with_info",
    "parse_query_to_doc",
    "parse_quoted_string",
    "parse_token_text",
    "quote_if_needed",
    "serialize_doc_to_query",
    "wrap_with_spacers",
]
