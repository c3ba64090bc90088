"""Run the repair phases as a post-transaction stage."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from querydoc.document import ADD_TO_HISTORY, HISTORY, Transaction
from querydoc.repair.phases import REPAIR_PHASES, RepairContext, RepairPhase
from querydoc.state import EditorState

logger = logging.getLogger(__name__)

REPAIR_META = "documentRepair"


def run_repair_pipeline(
    tr: Transaction,
    context: RepairContext,
    phases: Sequence[RepairPhase] = REPAIR_PHASES,
) -> bool:
    """Run ``phases`` in order against ``tr``.

    Once a phase modifies the document, later phases see ``doc_changed``
    as True even if the incoming transactions did not change it.

    Returns:
        True if any phase modified ``tr``.
    """
    doc_changed = context.doc_changed
    modified = False
    for phase in phases:
        phase_context = replace(context, doc=tr.doc, doc_changed=doc_changed)
        if not phase.should_run(phase_context):
            continue
        if phase.execute(tr, phase_context):
            logger.debug("Repair phase %s modified the document", phase.name)
            modified = True
            doc_changed = True
    return modified


def map_through(transactions: Sequence[Transaction], pos: int | None) -> int | None:
    """Map ``pos`` through ``transactions``; None if it was deleted."""
    for tr in transactions:
        if pos is None:
            return None
        mapped, deleted = tr.mapping.map_result(pos)
        pos = None if deleted else mapped
    return pos


class RepairStage:
    """Keep the spacer invariant after every transaction.

    The stage skips its own output and transactions that are part of an
    IME composition. Its corrections never enter undo history.
    """

    name = "repair"

    def __init__(self, phases: Sequence[RepairPhase] = REPAIR_PHASES) -> None:
        self.phases = tuple(phases)

    def append_transaction(
        self,
        transactions: Sequence[Transaction],
        old_state: EditorState,
        new_state: EditorState,
    ) -> Transaction | None:
        if any(tr.has_meta(REPAIR_META) for tr in transactions):
            return None
        if any(tr.is_composing for tr in transactions):
            return None

        old_focused_pos = old_state.focus.focused_pos
        new_focused_pos = new_state.focus.focused_pos
        doc_changed = any(tr.doc_changed for tr in transactions)
        focus_changed = old_focused_pos != new_focused_pos
        if not doc_changed and not focus_changed:
            return None

        tr = new_state.transaction()
        context = RepairContext(
            doc=new_state.doc,
            old_focused_pos=map_through(transactions, old_focused_pos),
            new_focused_pos=new_focused_pos,
            doc_changed=doc_changed,
            focus_changed=focus_changed,
            is_history_operation=any(t.has_meta(HISTORY) for t in transactions),
        )
        if not run_repair_pipeline(tr, context, self.phases):
            return None

        tr.set_meta(REPAIR_META, True)
        tr.set_meta(ADD_TO_HISTORY, False)
        return tr
