"""Editor state and the post-transaction stage loop.

A dispatched transaction is applied, then every stage gets a chance to
append a correcting transaction. Stages only see transactions they have
not inspected yet, and rounds repeat until a full round appends nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from querydoc.document import (
    APPENDED_TRANSACTION,
    DRAGGING,
    Document,
    Selection,
    Transaction,
)
from querydoc.focus import UNFOCUSED, TokenFocusState, apply_token_focus

logger = logging.getLogger(__name__)

MAX_STAGE_ROUNDS = 8


@dataclass(frozen=True)
class EditorState:
    """Immutable snapshot of the editor.

    Attributes:
        doc: Current document.
        selection: Current selection, always within ``doc``.
        focus: Which token, if any, is being edited.
        dragging: A pointer drag selection is in progress.
    """

    doc: Document = field(default_factory=Document)
    selection: Selection = field(default_factory=lambda: Selection.cursor(0))
    focus: TokenFocusState = UNFOCUSED
    dragging: bool = False

    @classmethod
    def create(cls, doc: Document | None = None, selection: Selection | None = None) -> EditorState:
        doc = doc if doc is not None else Document()
        selection = (selection or Selection.cursor(doc.size)).clamp(doc)
        return cls(doc=doc, selection=selection)

    def transaction(self) -> Transaction:
        return Transaction(self.doc, self.selection)

    def apply(self, tr: Transaction) -> EditorState:
        """Return the state after ``tr``.

        Raises:
            ValueError: If ``tr`` was not started from this state's document.
        """
        if tr.before != self.doc:
            raise ValueError("Transaction does not start from this state's document")
        selection = (tr.selection or self.selection).clamp(tr.doc)
        dragging = bool(tr.get_meta(DRAGGING)) if tr.has_meta(DRAGGING) else self.dragging
        return EditorState(
            doc=tr.doc,
            selection=selection,
            focus=apply_token_focus(tr, self.focus),
            dragging=dragging,
        )


class Stage(Protocol):
    """A post-transaction correction pass."""

    name: str

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None: ...


@dataclass
class _Seen:
    count: int
    state: EditorState


def apply_transaction(
    state: EditorState,
    root: Transaction,
    stages: Sequence[Stage],
    max_rounds: int = MAX_STAGE_ROUNDS,
) -> tuple[EditorState, list[Transaction]]:
    """Apply ``root`` and let ``stages`` append corrections.

    Args:
        state: State the root transaction was built from.
        root: Transaction to apply.
        stages: Stages in the order they run.
        max_rounds: Upper bound on stage rounds.

    Returns:
        The final state and every applied transaction, root first.
    """
    transactions = [root]
    new_state = state.apply(root)
    seen = [_Seen(0, state) for _ in stages]

    for _ in range(max_rounds):
        appended = False
        for i, stage in enumerate(stages):
            if seen[i].count < len(transactions):
                tr = stage.append_transaction(transactions[seen[i].count :], seen[i].state, new_state)
                if tr is not None:
                    tr.set_meta(APPENDED_TRANSACTION, root)
                    new_state = new_state.apply(tr)
                    transactions.append(tr)
                    appended = True
                    logger.debug("Stage %s appended a transaction", stage.name)
            seen[i] = _Seen(len(transactions), new_state)
        if not appended:
            return new_state, transactions

    logger.warning("Stages still appending after %d rounds, stopping", max_rounds)
    return new_state, transactions
