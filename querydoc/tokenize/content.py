"""Turn plain-text runs into tokens."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from querydoc.document import Document, FreeTextToken, PlainText, Transaction, is_text
from querydoc.fields import DEFAULT_TOKEN_DELIMITER, FieldDefinition, FreeTextMode
from querydoc.focus import set_token_focus
from querydoc.query import (
    ParsedItem,
    ParseResult,
    build_content_from_items,
    parse_query_string_with_info,
    wrap_with_spacers,
)
from querydoc.state import EditorState

AUTO_TOKENIZE_META = "autoTokenize"

# Returns parsed items for a text run, or None to use the default parser.
DeserializeTextFn = Callable[[str], "list[ParsedItem] | None"]


@dataclass(frozen=True)
class TokenizeContext:
    """Settings auto-tokenization reads on every call."""

    fields: tuple[FieldDefinition, ...] = ()
    free_text_mode: FreeTextMode = "plain"
    allow_unknown_fields: bool = False
    unknown_field_operators: tuple[str, ...] | None = None
    delimiter: str = DEFAULT_TOKEN_DELIMITER
    deserialize_text: DeserializeTextFn | None = field(default=None, compare=False)


@dataclass(frozen=True)
class TextNodeInfo:
    pos: int
    end: int
    text: str
    contains_cursor: bool


def collect_tokenizable_text_nodes(
    doc: Document,
    cursor_pos: int,
    force_cursor_text: bool,
) -> list[TextNodeInfo]:
    """Text runs with visible content, in document order.

    The run holding the cursor is left alone unless ``force_cursor_text``
    is set, so a word being typed is not tokenized under the user.
    """
    nodes: list[TextNodeInfo] = []
    for pos, segment in doc.walk():
        if not is_text(segment) or not segment.value.strip():  # type: ignore[union-attr]
            continue
        end = pos + segment.size
        contains_cursor = pos < cursor_pos <= end
        if contains_cursor and not force_cursor_text:
            continue
        nodes.append(TextNodeInfo(pos, end, segment.value, contains_cursor))  # type: ignore[union-attr]
    return nodes


def _parse_text(text: str, context: TokenizeContext) -> ParseResult:
    if context.deserialize_text is not None:
        custom = context.deserialize_text(text)
        if custom is not None:
            return ParseResult(items=list(custom))
    return parse_query_string_with_info(
        text,
        context.fields,
        allow_unknown_fields=context.allow_unknown_fields,
        unknown_field_operators=context.unknown_field_operators,
        delimiter=context.delimiter,
    )


def _last_quoted_free_text(doc: Document) -> int | None:
    last = None
    for pos, token in doc.tokens():
        if isinstance(token, FreeTextToken) and token.quoted:
            last = pos
    return last


def tokenize_all_text_nodes(
    state: EditorState,
    context: TokenizeContext,
    force_cursor_text: bool,
) -> Transaction | None:
    """Parse every eligible text run and replace it with its content.

    Runs are processed from the end so earlier positions stay valid. When
    the run under the cursor ends in an unclosed quote (tokenize mode), the
    resulting quoted free-text token is focused so typing continues in it.

    Returns:
        The transaction, or None if no run changed.
    """
    nodes = collect_tokenizable_text_nodes(state.doc, state.selection.start, force_cursor_text)
    if not nodes:
        return None

    tr = state.transaction()
    changed = False
    focus_quoted = False

    for node in reversed(nodes):
        current = tr.doc.node_at(node.pos)
        if not isinstance(current, PlainText) or current.value != node.text:
            continue

        result = _parse_text(node.text, context)
        content = wrap_with_spacers(
            build_content_from_items(result.items, context.fields, context.free_text_mode)
        )
        if not content or content == [current]:
            continue

        tr.replace_with(node.pos, node.end, content)
        changed = True
        if result.has_incomplete_quote and node.contains_cursor and context.free_text_mode == "tokenize":
            focus_quoted = True

    if not changed:
        return None

    if focus_quoted:
        quoted_pos = _last_quoted_free_text(tr.doc)
        if quoted_pos is not None:
            set_token_focus(tr, quoted_pos, "end")

    return tr.set_meta(AUTO_TOKENIZE_META, True)
