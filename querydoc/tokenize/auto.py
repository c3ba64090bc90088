"""Key-triggered tokenization of the word before the cursor.

Every handler returns the transaction to dispatch, or None when the key
should fall through to the next handler or the host default.
"""

from __future__ import annotations

from querydoc.document import (
    ADD_TO_HISTORY,
    LEAF_TEXT,
    SPACER_SIZE,
    FreeTextToken,
    Segment,
    Spacer,
    Transaction,
    is_text,
)
from querydoc.fields import find_field
from querydoc.focus import set_token_focus
from querydoc.query import (
    create_filter_token,
    find_last_word_boundary,
    get_free_text_strategy,
    is_inside_quotes,
    parse_token_text,
)
from querydoc.state import EditorState
from querydoc.tokenize.content import TokenizeContext

ENTER_TRIGGER = "Enter"
TAB_TRIGGER = "Tab"
SPACE_TRIGGER = " "


def get_text_before_cursor(state: EditorState) -> str:
    """Document text up to the cursor; spacers and tokens read as ``LEAF_TEXT``."""
    return state.doc.text_before(state.selection.start)


def get_query_from_text(text: str) -> str:
    boundary = find_last_word_boundary(text)
    return text if boundary == -1 else text[boundary + 1 :]


def get_current_word(state: EditorState) -> tuple[str, int, int]:
    """The word ending at the cursor, with its start and end positions."""
    word = get_query_from_text(get_text_before_cursor(state))
    end = state.selection.start
    return word, end - len(word), end


def can_auto_tokenize(state: EditorState) -> bool:
    return not state.focus.is_focused and state.selection.empty


def _wrapped(token: Segment) -> list[Segment]:
    return [Spacer(), token, Spacer()]


def insert_filter_token(
    state: EditorState,
    start: int,
    end: int,
    key: str,
    operator: str,
    value: str,
    context: TokenizeContext,
) -> Transaction:
    """Replace ``[start, end)`` with a spaced filter token.

    An empty token stays out of undo history and is focused for editing; if
    the user leaves it empty, repair removes it again (also outside history).
    """
    tr = state.transaction()
    tr.delete(start, end)
    tr.insert(start, _wrapped(create_filter_token(key, operator, value, context.fields)))
    if not value:
        tr.set_meta(ADD_TO_HISTORY, False)
        set_token_focus(tr, start + SPACER_SIZE, "end")
    return tr


def try_auto_tokenize(state: EditorState, trigger: str, context: TokenizeContext) -> Transaction | None:
    """Turn the word before the cursor into a filter token.

    With the delimiter as trigger, a known field key (or any key, when
    unknown fields are allowed) becomes an empty token for that field. Any
    other trigger needs a complete ``key{d}operator{d}value`` word.
    """
    if is_inside_quotes(get_text_before_cursor(state)):
        return None

    word, start, end = get_current_word(state)
    if not word:
        return None

    if trigger == context.delimiter:
        field_def = find_field(context.fields, word)
        if field_def is None:
            if not context.allow_unknown_fields:
                return None
            operators = context.unknown_field_operators
            operator = operators[0] if operators else "is"
            return insert_filter_token(state, start, end, word, operator, "", context)
        return insert_filter_token(state, start, end, field_def.key, field_def.default_operator, "", context)

    parsed = parse_token_text(
        word,
        context.fields,
        allow_unknown_fields=context.allow_unknown_fields,
        unknown_field_operators=context.unknown_field_operators,
        delimiter=context.delimiter,
    )
    if parsed is None:
        return None
    return insert_filter_token(state, start, end, parsed.key, parsed.operator, parsed.value, context)


def tokenize_current_word_as_free_text(state: EditorState) -> Transaction | None:
    word, start, end = get_current_word(state)
    value = word.strip()
    if not value or start >= end:
        return None
    tr = state.transaction()
    tr.delete(start, end)
    tr.insert(start, _wrapped(FreeTextToken(value=value)))
    return tr


def handle_delimiter(state: EditorState, context: TokenizeContext) -> Transaction | None:
    if not can_auto_tokenize(state):
        return None
    return try_auto_tokenize(state, context.delimiter, context)


def handle_space(state: EditorState, context: TokenizeContext) -> Transaction | None:
    """A complete filter word becomes a token; in tokenize mode any word does."""
    if not can_auto_tokenize(state):
        return None
    tr = try_auto_tokenize(state, SPACE_TRIGGER, context)
    if tr is not None:
        return tr
    if get_free_text_strategy(context.free_text_mode).tokenize_on_space:
        return tokenize_current_word_as_free_text(state)
    return None


def handle_tab(state: EditorState, context: TokenizeContext, suggestion_open: bool = False) -> Transaction | None:
    # Tab belongs to suggestion navigation while the list is open.
    if not can_auto_tokenize(state) or suggestion_open:
        return None
    tr = try_auto_tokenize(state, TAB_TRIGGER, context)
    if tr is not None:
        return tr
    if get_free_text_strategy(context.free_text_mode).tokenize_on_space:
        return tokenize_current_word_as_free_text(state)
    return None


def handle_quote(state: EditorState, context: TokenizeContext) -> Transaction | None:
    """Open an empty quoted free-text token at a word boundary."""
    if not can_auto_tokenize(state):
        return None
    if not get_free_text_strategy(context.free_text_mode).create_quoted_tokens:
        return None

    text_before = get_text_before_cursor(state)
    if text_before and not text_before.endswith((" ", LEAF_TEXT)):
        return None

    pos = state.selection.start
    tr = state.transaction()
    tr.insert(pos, _wrapped(FreeTextToken(value="", quoted=True)))
    tr.set_meta(ADD_TO_HISTORY, False)
    return set_token_focus(tr, pos + SPACER_SIZE, "end")


def handle_enter_tokenize(state: EditorState, context: TokenizeContext) -> Transaction | None:
    if not can_auto_tokenize(state):
        return None
    return try_auto_tokenize(state, ENTER_TRIGGER, context)


def finalize_input(state: EditorState, context: TokenizeContext) -> Transaction | None:
    """Deal with leftover text on submit or blur, per free-text mode.

    ``tokenize`` turns the word before the cursor into a free-text token,
    ``none`` removes every text run and ``plain`` leaves text alone.
    """
    action = get_free_text_strategy(context.free_text_mode).finalize_action
    if action == "tokenize":
        return tokenize_current_word_as_free_text(state)
    if action == "remove":
        runs = [(pos, seg) for pos, seg in state.doc.walk() if is_text(seg)]
        if not runs:
            return None
        tr = state.transaction()
        for pos, seg in reversed(runs):
            tr.delete(pos, pos + seg.size)
        return tr
    return None
