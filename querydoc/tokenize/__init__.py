"""Auto-tokenization of typed and pasted text."""

from querydoc.query.free_text import FREE_TEXT_STRATEGIES, FreeTextStrategy, get_free_text_strategy
from querydoc.tokenize.auto import (
    can_auto_tokenize,
    finalize_input,
    get_current_word,
    get_text_before_cursor,
    handle_delimiter,
    handle_enter_tokenize,
    handle_quote,
    handle_space,
    handle_tab,
    insert_filter_token,
    tokenize_current_word_as_free_text,
    try_auto_tokenize,
)
from querydoc.tokenize.content import (
    AUTO_TOKENIZE_META,
    TextNodeInfo,
    TokenizeContext,
    collect_tokenizable_text_nodes,
    tokenize_all_text_nodes,
)
from querydoc.tokenize.debounce import DEBOUNCE_MS, Debouncer
from querydoc.tokenize.stages import (
    BULK_INSERT_STRATEGY,
    FREE_TEXT_SANITIZER_META,
    SINGLE_CHAR_STRATEGY,
    AutoTokenizeStage,
    FreeTextSanitizerStage,
    TokenizeEvent,
    TokenizeStrategy,
    get_tokenize_strategy,
)

__all__ = [
    "AUTO_TOKENIZE_META",
    "BULK_INSERT_STRATEGY",
    "DEBOUNCE_MS",
    "FREE_TEXT_SANITIZER_META",
    "FREE_TEXT_STRATEGIES",
    "SINGLE_CHAR_STRATEGY",
    "AutoTokenizeStage",
    "Debouncer",
    "FreeTextSanitizerStage",
    "FreeTextStrategy",
    "TextNodeInfo",
    "TokenizeContext",
    "TokenizeEvent",
    "TokenizeStrategy",
    "can_auto_tokenize",
    "collect_tokenizable_text_nodes",
    "finalize_input",
    "get_current_word",
    "get_free_text_strategy",
    "get_text_before_cursor",
    "get_tokenize_strategy",
    "handle_delimiter",
    "handle_enter_tokenize",
    "handle_quote",
    "handle_space",
    "handle_tab",
    "insert_filter_token",
    "tokenize_all_text_nodes",
    "tokenize_current_word_as_free_text",
    "try_auto_tokenize",
]
