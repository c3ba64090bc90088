"""Post-transaction stages for auto-tokenization and the free-text sanitizer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from querydoc.document import FORCE_VALIDATION_CHECK, HISTORY, Transaction, is_text
from querydoc.state import EditorState
from querydoc.tokenize.content import AUTO_TOKENIZE_META, TokenizeContext, tokenize_all_text_nodes
from querydoc.tokenize.debounce import Debouncer

logger = logging.getLogger(__name__)

FREE_TEXT_SANITIZER_META = "freeTextSanitizer"


@dataclass(frozen=True)
class TokenizeEvent:
    size_change: int
    is_history_operation: bool


@dataclass(frozen=True)
class TokenizeStrategy:
    """How one kind of edit gets tokenized.

    Attributes:
        name: ``bulk`` or ``single-char``.
        force_cursor_text: Also tokenize the run holding the cursor.
        trigger_validation: Request a forced validation check.
        debounce: Wait for a quiet period before tokenizing.
    """

    name: str
    force_cursor_text: bool
    trigger_validation: bool
    debounce: bool


BULK_INSERT_STRATEGY = TokenizeStrategy("bulk", force_cursor_text=True, trigger_validation=True, debounce=False)
SINGLE_CHAR_STRATEGY = TokenizeStrategy(
    "single-char", force_cursor_text=False, trigger_validation=False, debounce=True
)


def get_tokenize_strategy(event: TokenizeEvent, free_text_mode: str) -> TokenizeStrategy | None:
    """Paste or programmatic inserts (more than one unit at once) tokenize
    immediately; single keystrokes only in tokenize mode, debounced.
    """
    if event.is_history_operation:
        return None
    if event.size_change > 1:
        return BULK_INSERT_STRATEGY
    if free_text_mode == "tokenize":
        return SINGLE_CHAR_STRATEGY
    return None


class AutoTokenizeStage:
    """Tokenize text after bulk inserts, or schedule it after typing.

    Args:
        get_context: Returns the current tokenize settings.
        debouncer: Debouncer owned by the editor.
        on_debounced: Called when the quiet period ends; the editor
            dispatches the tokenization from there.
    """

    name = "auto_tokenize"

    def __init__(
        self,
        get_context: Callable[[], TokenizeContext],
        debouncer: Debouncer,
        on_debounced: Callable[[], None],
    ) -> None:
        self.get_context = get_context
        self.debouncer = debouncer
        self.on_debounced = on_debounced

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None:
        if any(tr.has_meta(AUTO_TOKENIZE_META) for tr in transactions):
            return None
        if not any(tr.doc_changed for tr in transactions):
            return None
        if any(tr.is_composing for tr in transactions):
            return None

        context = self.get_context()
        event = TokenizeEvent(
            size_change=new_state.doc.size - old_state.doc.size,
            is_history_operation=any(tr.has_meta(HISTORY) for tr in transactions),
        )
        strategy = get_tokenize_strategy(event, context.free_text_mode)
        if strategy is None:
            return None

        if strategy.debounce:
            self.debouncer.schedule(self.on_debounced)
            return None

        self.debouncer.cancel()
        tr = tokenize_all_text_nodes(new_state, context, strategy.force_cursor_text)
        if tr is not None and strategy.trigger_validation:
            tr.set_meta(FORCE_VALIDATION_CHECK, True)
            logger.debug("Tokenized bulk insert of %d unit(s)", event.size_change)
        return tr


class FreeTextSanitizerStage:
    """Remove top-level text in ``none`` mode whenever tokens were added.

    Submit and blur catch the remaining cases through ``finalize_input``.
    """

    name = "free_text_sanitizer"

    def __init__(self, get_free_text_mode: Callable[[], str]) -> None:
        self.get_free_text_mode = get_free_text_mode

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None:
        if any(tr.has_meta(FREE_TEXT_SANITIZER_META) for tr in transactions):
            return None
        if self.get_free_text_mode() != "none":
            return None
        if not any(tr.doc_changed for tr in transactions):
            return None
        if new_state.doc.count_tokens() <= old_state.doc.count_tokens():
            return None

        runs = [(pos, seg) for pos, seg in new_state.doc.walk() if is_text(seg)]
        if not runs:
            return None

        tr = new_state.transaction()
        for pos, seg in reversed(runs):
            tr.delete(pos, pos + seg.size)
        if not tr.doc_changed:
            return None
        return tr.set_meta(FREE_TEXT_SANITIZER_META, True)
