"""Document repair phases.

Each phase restores one part of the spacer invariant. Phases run in the
order of :data:`REPAIR_PHASES`; the history focus phase must come first so
a restored empty token is focused before cleanup looks at it.
"""

from __future__ import annotations

from dataclasses import dataclass

from querydoc.document import (
    Document,
    PlainText,
    Transaction,
    is_empty_token,
    is_spacer,
    is_token,
)
from querydoc.focus import set_token_focus
from querydoc.spacer import (
    SpacerRange,
    apply_spacer_deletion,
    check_boundary_needs_space,
    expand_with_spacers,
    insert_spacer,
)


@dataclass(frozen=True)
class RepairContext:
    """What the repair phases know about the transactions being repaired.

    Attributes:
        doc: Document as seen by the current phase.
        old_focused_pos: Focused token before the transactions, mapped
            into the new document (None if unfocused or deleted).
        new_focused_pos: Focused token after the transactions.
        doc_changed: The document changed, either in the transactions or
            in an earlier phase.
        focus_changed: The focused token changed.
        is_history_operation: The transactions include an undo or redo.
    """

    doc: Document
    old_focused_pos: int | None = None
    new_focused_pos: int | None = None
    doc_changed: bool = False
    focus_changed: bool = False
    is_history_operation: bool = False


# Finders


def find_first_empty_token(doc: Document) -> int | None:
    for pos, token in doc.tokens():
        if not token.value:
            return pos
    return None


def find_orphaned_spacers(doc: Document) -> list[int]:
    """Positions of spacers with no token on either side."""
    orphaned: list[int] = []
    segments = doc.segments
    for index, (pos, segment) in enumerate(doc.walk()):
        if not is_spacer(segment):
            continue
        before = segments[index - 1] if index > 0 else None
        after = segments[index + 1] if index + 1 < len(segments) else None
        if not (is_token(before) or is_token(after)):
            orphaned.append(pos)
    return orphaned


def find_missing_spacers(doc: Document) -> list[int]:
    """Positions where a token lacks its leading or trailing spacer."""
    missing: list[int] = []
    segments = doc.segments
    for index, (pos, segment) in enumerate(doc.walk()):
        if not is_token(segment):
            continue
        before = segments[index - 1] if index > 0 else None
        after = segments[index + 1] if index + 1 < len(segments) else None
        if not is_spacer(before):
            missing.append(pos)
        if not is_spacer(after):
            missing.append(pos + segment.size)
    return missing


def find_adjacent_text_seams(doc: Document) -> list[int]:
    """Positions between touching text runs that need a separating space."""
    seams: list[int] = []
    previous: PlainText | None = None
    for pos, segment in doc.walk():
        if isinstance(segment, PlainText):
            if previous is not None and not (
                previous.value.endswith(" ") or segment.value.startswith(" ")
            ):
                seams.append(pos)
            previous = segment
        else:
            previous = None
    return seams


# Phases


class RepairPhase:
    """Base class for a repair phase."""

    name = "repair"

    def should_run(self, context: RepairContext) -> bool:
        return context.doc_changed

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        """Repair ``tr.doc`` in place. Returns True if anything changed."""
        raise NotImplementedError


class HistoryEmptyTokenFocus(RepairPhase):
    """Focus the first empty token an undo or redo brought back."""

    name = "history_empty_token_focus"

    def should_run(self, context: RepairContext) -> bool:
        return context.is_history_operation and context.doc_changed

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        pos = find_first_empty_token(tr.doc)
        if pos is None:
            return False
        set_token_focus(tr, pos, "end")
        return True


class EmptyTokenCleanup(RepairPhase):
    """Delete a blank token once focus leaves it."""

    name = "empty_token_cleanup"

    def should_run(self, context: RepairContext) -> bool:
        return context.focus_changed and context.old_focused_pos is not None

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        pos = context.old_focused_pos
        node = tr.doc.node_at(pos) if pos is not None else None
        if pos is None or not is_empty_token(node):
            return False
        apply_spacer_deletion(tr, expand_with_spacers(tr.doc, pos, node.size))  # type: ignore[union-attr]
        return True


class OrphanedSpacerCleanup(RepairPhase):
    name = "orphaned_spacer_cleanup"

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        modified = False
        for pos in reversed(find_orphaned_spacers(tr.doc)):
            node = tr.doc.node_at(pos)
            if not is_spacer(node):
                continue
            end = pos + node.size  # type: ignore[union-attr]
            needs_space = check_boundary_needs_space(tr.doc, pos, end)
            apply_spacer_deletion(tr, SpacerRange(pos, end, needs_space))
            modified = True
        return modified


class MissingSpacerRepair(RepairPhase):
    name = "missing_spacer_repair"

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        missing = find_missing_spacers(tr.doc)
        for pos in reversed(missing):
            insert_spacer(tr, pos)
        return bool(missing)


class AdjacentTextRepair(RepairPhase):
    name = "adjacent_text_repair"

    def execute(self, tr: Transaction, context: RepairContext) -> bool:
        seams = find_adjacent_text_seams(tr.doc)
        for pos in reversed(seams):
            tr.insert_text(" ", pos)
        return bool(seams)


REPAIR_PHASES: tuple[RepairPhase, ...] = (
    HistoryEmptyTokenFocus(),
    EmptyTokenCleanup(),
    OrphanedSpacerCleanup(),
    MissingSpacerRepair(),
    AdjacentTextRepair(),
)
