"""Validation as the last post-transaction stage."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from querydoc.document import Transaction
from querydoc.state import EditorState
from querydoc.validation.executor import apply_plan, clear_invalid_marks_if_needed
from querydoc.validation.planner import build_plan
from querydoc.validation.snapshot import ValidationConfig, build_snapshot, should_run

logger = logging.getLogger(__name__)


class ValidationStage:
    """Snapshot, plan and apply, once per batch of unseen transactions."""

    name = "validation"

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self.config = config or ValidationConfig()

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None:
        decision = should_run(transactions)
        if not decision.run:
            return None
        if any(tr.is_composing for tr in transactions):
            return None

        snap = build_snapshot(
            old_state,
            new_state,
            self.config,
            decision.force_check,
            decision.is_history_operation,
            transactions,
        )
        if snap is None:
            return clear_invalid_marks_if_needed(new_state)

        plan = build_plan(snap, new_state.doc)
        if not plan.actions:
            return None
        if snap.violations:
            logger.debug("%d validation violation(s)", len(snap.violations))
        return apply_plan(new_state, plan, snap)
