"""Collect tokens and build the per-pass validation snapshot."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from querydoc.document import (
    FORCE_VALIDATION_CHECK,
    HISTORY,
    Document,
    FilterToken,
    Transaction,
    ensure_token_id,
)
from querydoc.fields import FieldDefinition
from querydoc.focus import TOKEN_FOCUS
from querydoc.repair import map_through
from querydoc.state import EditorState
from querydoc.validation.runner import run_validation
from querydoc.validation.types import (
    FocusTransition,
    ShouldRunResult,
    ValidationRule,
    ValidationSnapshot,
    ValidationToken,
)

VALIDATION_META = "validation"


@dataclass(frozen=True)
class ValidationConfig:
    """Fields and rules the engine validates against."""

    fields: tuple[FieldDefinition, ...] = ()
    rules: tuple[ValidationRule, ...] = field(default_factory=tuple)

    @property
    def enabled(self) -> bool:
        return bool(self.rules)


def collect_tokens(doc: Document) -> list[ValidationToken]:
    """Tokens of ``doc`` in document order, as rules see them."""
    tokens: list[ValidationToken] = []
    for pos, token in doc.tokens():
        if isinstance(token, FilterToken):
            tokens.append(
                ValidationToken(
                    id=ensure_token_id(token.id),
                    type="filter",
                    pos=pos,
                    key=token.key or "",
                    operator=token.operator or "is",
                    value=token.value,
                    raw_value=token.value,
                )
            )
        else:
            tokens.append(
                ValidationToken(
                    id=ensure_token_id(token.id),
                    type="freeText",
                    pos=pos,
                    key="",
                    operator="",
                    value=token.value,
                    raw_value=token.value,
                )
            )
    return tokens


def should_run(transactions: Sequence[Transaction]) -> ShouldRunResult:
    """Decide whether a validation pass is needed for ``transactions``.

    Validation runs when the document changed, focus moved or a forced
    check was requested, and never on its own output.
    """
    if any(tr.has_meta(VALIDATION_META) for tr in transactions):
        return ShouldRunResult(run=False)

    force_check = any(tr.get_meta(FORCE_VALIDATION_CHECK) for tr in transactions)
    is_history = any(tr.has_meta(HISTORY) for tr in transactions)
    focus_changed = any(tr.has_meta(TOKEN_FOCUS) for tr in transactions)
    doc_changed = any(tr.doc_changed for tr in transactions)

    return ShouldRunResult(
        run=force_check or focus_changed or doc_changed,
        force_check=force_check,
        is_history_operation=is_history,
    )


def _token_at(tokens: Sequence[ValidationToken], pos: int | None) -> ValidationToken | None:
    if pos is None:
        return None
    for token in tokens:
        if token.pos == pos:
            return token
    return None


def build_snapshot(
    old_state: EditorState,
    new_state: EditorState,
    config: ValidationConfig,
    force_check: bool,
    is_history_operation: bool,
    transactions: Sequence[Transaction] = (),
) -> ValidationSnapshot | None:
    """Diff old and new tokens and run the rules.

    The previously focused position is mapped through ``transactions`` so
    it addresses the new document.

    Returns:
        The snapshot, or None when there are no rules or no tokens.
    """
    if not config.enabled:
        return None

    tokens = collect_tokens(new_state.doc)
    if not tokens:
        return None

    old_by_id = {t.id: t for t in collect_tokens(old_state.doc)}

    if is_history_operation:
        new_ids: frozenset[str] = frozenset()
        modified_ids: frozenset[str] = frozenset()
    else:
        new_ids = frozenset(t.id for t in tokens if t.id not in old_by_id)
        modified_ids = frozenset(
            t.id
            for t in tokens
            if t.id in old_by_id
            and (
                old_by_id[t.id].key != t.key
                or old_by_id[t.id].operator != t.operator
                or old_by_id[t.id].value != t.value
            )
        )

    focus = FocusTransition(
        previous_pos=map_through(transactions, old_state.focus.focused_pos),
        current_pos=new_state.focus.focused_pos,
    )

    if force_check and not new_ids and not modified_ids:
        editing_ids = frozenset(t.id for t in tokens)
    else:
        editing = set(new_ids) | set(modified_ids)
        for pos in (focus.current_pos, focus.previous_pos):
            token = _token_at(tokens, pos)
            if token is not None:
                editing.add(token.id)
        editing_ids = frozenset(editing)

    violations = run_validation(tokens, config.fields, config.rules, editing_ids)

    return ValidationSnapshot(
        tokens=tuple(tokens),
        focus=focus,
        new_token_ids=new_ids,
        modified_token_ids=modified_ids,
        editing_token_ids=editing_ids,
        violations=tuple(violations),
        force_check=force_check,
        is_history_operation=is_history_operation,
        fields=tuple(config.fields),
        rules=tuple(config.rules),
    )
