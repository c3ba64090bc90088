"""Turn a validation snapshot into mark, clear and delete actions.

Rule deletions wait until the user has confirmed a value: blurring the
token, or a freshly created focused token that already carries a value
(paste, programmatic insert). While a token is still being typed into it
is only ever marked.
"""

from __future__ import annotations

from querydoc.document import Document
from querydoc.validation.types import (
    ClearAction,
    DeleteAction,
    DeletionContext,
    MarkAction,
    TokenAction,
    ValidationPlan,
    ValidationSnapshot,
    ValidationToken,
    Violation,
)


def is_creation_in_progress(snap: ValidationSnapshot) -> bool:
    if snap.focus.current_pos is not None:
        return True
    if snap.focus.previous_pos is None:
        return any(not t.value for t in snap.tokens)
    return False


def is_value_confirmed(snap: ValidationSnapshot) -> bool:
    current = snap.focus.current_pos
    if snap.focus.previous_pos is not None and current is None:
        return True
    if current is not None:
        for token in snap.tokens:
            if token.pos == current:
                return token.id in snap.new_token_ids and bool(token.value)
    return False


def should_delete_now(snap: ValidationSnapshot) -> bool:
    """Whether rule deletions may be applied in this pass."""
    if snap.is_history_operation:
        return False
    if snap.force_check:
        return not is_creation_in_progress(snap)
    return is_value_confirmed(snap)


def compute_token_positions_by_key(
    snap: ValidationSnapshot,
) -> tuple[dict[str, int], dict[str, int]]:
    """First occurrence and most likely "new" token position, per key.

    The new token of a key is the focused one, else the just-blurred one,
    else the first empty one, else (on a forced check) the last one.

    Returns:
        ``(new_token_by_key, first_occurrence_by_key)``.
    """
    by_key: dict[str, list[ValidationToken]] = {}
    for token in snap.tokens:
        by_key.setdefault(token.key, []).append(token)

    new_token_by_key: dict[str, int] = {}
    first_occurrence_by_key: dict[str, int] = {}
    current, previous = snap.focus.current_pos, snap.focus.previous_pos

    for key, tokens in by_key.items():
        first_occurrence_by_key[key] = tokens[0].pos

        new_pos: int | None = None
        if current is not None:
            new_pos = next((t.pos for t in tokens if t.pos == current), None)
        elif previous is not None:
            new_pos = next((t.pos for t in tokens if t.pos == previous), None)

        if new_pos is None:
            new_pos = next((t.pos for t in tokens if not t.value), None)
        if new_pos is None and snap.force_check:
            new_pos = tokens[-1].pos

        if new_pos is not None:
            new_token_by_key[key] = new_pos

    return new_token_by_key, first_occurrence_by_key


def build_deletion_context(snap: ValidationSnapshot) -> DeletionContext:
    """Bundle the new-versus-existing view of ``snap``.

    Public helper for host stages that inspect a
    :class:`ValidationSnapshot`; :func:`build_plan` does not call it.
    """
    new_token_by_key, first_occurrence_by_key = compute_token_positions_by_key(snap)
    return DeletionContext(
        creation_in_progress=is_creation_in_progress(snap),
        new_token_by_key=new_token_by_key,
        first_occurrence_by_key=first_occurrence_by_key,
    )


def is_new_token(snap: ValidationSnapshot, token: ValidationToken) -> bool:
    """Whether ``token`` is the one being created or just confirmed.

    Public helper for host stages, with the same precedence as
    :func:`compute_token_positions_by_key`: the focused token, else the
    just-blurred one, else any empty token.
    """
    if snap.focus.current_pos is not None:
        return token.pos == snap.focus.current_pos
    if snap.focus.previous_pos is not None:
        return token.pos == snap.focus.previous_pos
    return not token.value


def _violation_for(violations: tuple[Violation, ...], pos: int) -> Violation | None:
    for violation in violations:
        if any(t.pos == pos for t in violation.targets):
            return violation
    return None


def build_plan(snap: ValidationSnapshot, doc: Document) -> ValidationPlan:
    """Derive the actions for one validation pass.

    Args:
        snap: Snapshot of the pass.
        doc: Document the snapshot was taken from.

    Returns:
        Deletions first, then marks and clears for the surviving tokens.
    """
    actions: list[TokenAction] = []
    pending: set[int] = set()
    delete_now = should_delete_now(snap)
    focus = snap.focus

    # Empty tokens nobody is editing are leftovers of undo or an
    # abandoned creation.
    if not snap.is_history_operation:
        for token in snap.tokens:
            if token.value:
                continue
            if token.pos in (focus.current_pos, focus.previous_pos):
                continue
            if token.id in snap.new_token_ids:
                continue
            node = doc.node_at(token.pos)
            if node is not None:
                actions.append(DeleteAction(token.pos, node.size, is_orphaned_empty=True))
                pending.add(token.pos)

    if delete_now:
        for violation in snap.violations:
            if violation.action != "delete":
                continue
            for target in violation.targets:
                if target.pos in pending or target.pos == focus.current_pos:
                    continue
                node = doc.node_at(target.pos)
                if node is not None:
                    actions.append(DeleteAction(target.pos, node.size))
                    pending.add(target.pos)

    invalid_positions = {t.pos for v in snap.violations for t in v.targets}

    for token in snap.tokens:
        if token.pos in pending:
            continue
        if token.pos in invalid_positions:
            violation = _violation_for(snap.violations, token.pos)
            reason = None
            if violation is not None:
                reason = violation.message or violation.reason
            actions.append(MarkAction(token.pos, reason))
        elif getattr(doc.node_at(token.pos), "invalid", False):
            actions.append(ClearAction(token.pos))

    return ValidationPlan(actions)
