"""Apply a validation plan as one transaction."""

from __future__ import annotations

from dataclasses import replace

from querydoc.document import ADD_TO_HISTORY, Transaction, is_token
from querydoc.spacer import (
    apply_spacer_deletion,
    check_boundary_needs_space,
    expand_with_spacers,
    merge_overlapping_ranges,
)
from querydoc.state import EditorState
from querydoc.validation.planner import build_plan
from querydoc.validation.runner import run_validation
from querydoc.validation.snapshot import VALIDATION_META, collect_tokens
from querydoc.validation.types import (
    ClearAction,
    FocusTransition,
    MarkAction,
    ValidationPlan,
    ValidationSnapshot,
)


def _finish(tr: Transaction, *, add_to_history: bool) -> Transaction | None:
    if not tr.doc_changed:
        return None
    tr.set_meta(VALIDATION_META, True)
    if not add_to_history:
        tr.set_meta(ADD_TO_HISTORY, False)
    return tr


def apply_plan(
    state: EditorState,
    plan: ValidationPlan,
    snap: ValidationSnapshot,
) -> Transaction | None:
    """Apply ``plan`` against ``state``.

    Deletions go first, expanded over their spacers, merged and applied
    from the end of the document backwards. If anything was deleted the
    surviving tokens are revalidated with nobody editing, and marks are
    recomputed against the new positions.

    Returns:
        The transaction, or None if it would not change the document. It
        enters undo history only when a rule deleted tokens outside an
        undo or redo.
    """
    tr = state.transaction()
    deletions = plan.deletions

    if deletions:
        ranges = [expand_with_spacers(state.doc, d.pos, d.size) for d in deletions]
        merged = merge_overlapping_ranges(ranges)
        for rng in merged:
            rng.needs_space_separator = check_boundary_needs_space(state.doc, rng.start, rng.end)
        for rng in sorted(merged, key=lambda r: r.start, reverse=True):
            apply_spacer_deletion(tr, rng)

        tokens = collect_tokens(tr.doc)
        violations = snap.violations
        if tokens:
            violations = tuple(run_validation(tokens, snap.fields, snap.rules, frozenset()))
        remaining = build_plan(
            replace(
                snap,
                tokens=tuple(tokens),
                violations=violations,
                focus=FocusTransition(),
                force_check=False,
                is_history_operation=False,
                new_token_ids=frozenset(),
                modified_token_ids=frozenset(),
            ),
            tr.doc,
        )
    else:
        remaining = plan

    for action in remaining.actions:
        if isinstance(action, MarkAction):
            if is_token(tr.doc.node_at(action.pos)):
                tr.set_token_attrs(action.pos, invalid=True, invalid_reason=action.reason)
        elif isinstance(action, ClearAction):
            if is_token(tr.doc.node_at(action.pos)):
                tr.set_token_attrs(action.pos, invalid=False, invalid_reason=None)

    rule_deletions = [d for d in deletions if not d.is_orphaned_empty]
    return _finish(tr, add_to_history=bool(rule_deletions) and not snap.is_history_operation)


def clear_invalid_marks_if_needed(state: EditorState) -> Transaction | None:
    """Drop every invalid mark; used when no rules are configured."""
    tr = state.transaction()
    for pos, token in state.doc.tokens():
        if token.invalid:
            tr.set_token_attrs(pos, invalid=False, invalid_reason=None)
    return _finish(tr, add_to_history=False)


def delete_empty_tokens_on_history(state: EditorState) -> Transaction | None:
    """Remove empty tokens an undo or redo brought back.

    Public helper for hosts that would rather drop such tokens than have
    them refocused; the editor itself refocuses them during repair and
    never calls this.
    """
    tr = state.transaction()
    empty = [(pos, token) for pos, token in state.doc.tokens() if not token.value]
    for pos, token in sorted(empty, key=lambda item: item[0], reverse=True):
        apply_spacer_deletion(tr, expand_with_spacers(tr.doc, pos, token.size))
    return _finish(tr, add_to_history=False)
