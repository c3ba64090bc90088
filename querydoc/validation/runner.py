"""Run validation rules and apply per-field overrides."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from querydoc.fields import FieldDefinition, find_field
from querydoc.validation.types import (
    Err,
    Ok,
    RuleResult,
    ValidationContext,
    ValidationRule,
    ValidationToken,
    Violation,
)

logger = logging.getLogger(__name__)


def _sorted_by_priority(rules: Iterable[ValidationRule]) -> list[ValidationRule]:
    # Stable sort keeps declaration order among equal priorities.
    return sorted(rules, key=lambda r: r.priority or 0, reverse=True)


def _run_rule(rule: ValidationRule, context: ValidationContext) -> RuleResult:
    try:
        return Ok(list(rule.validate(context)))
    except Exception as e:
        return Err(rule.id, e)


def _apply_field_overrides(
    violation: Violation,
    tokens_by_id: dict[str, ValidationToken],
    fields: Sequence[FieldDefinition],
) -> Violation | None:
    kept = []
    for target in violation.targets:
        token = tokens_by_id.get(target.token_id)
        field = find_field(fields, token.key) if token is not None else None
        if field is not None and field.is_rule_disabled(violation.rule_id):
            continue
        kept.append(target)

    if not kept:
        return None
    if len(kept) == len(violation.targets):
        return violation
    return replace(violation, targets=tuple(kept))


def run_validation(
    tokens: Sequence[ValidationToken],
    fields: Sequence[FieldDefinition],
    rules: Sequence[ValidationRule],
    editing_token_ids: Iterable[str] = (),
) -> list[Violation]:
    """Run every rule and collect its violations.

    A rule that raises is logged and skipped; the other rules still run.
    Targets on tokens whose field disables the rule are dropped.

    Args:
        tokens: Tokens in document order.
        fields: Field definitions.
        rules: Rules to run, highest priority first.
        editing_token_ids: Ids of tokens considered "being edited".

    Returns:
        All violations, in rule order.
    """
    context = ValidationContext(
        tokens=tuple(tokens),
        fields=tuple(fields),
        editing_token_ids=frozenset(editing_token_ids),
    )
    tokens_by_id = {t.id: t for t in context.tokens}

    violations: list[Violation] = []
    for rule in _sorted_by_priority(rules):
        result = _run_rule(rule, context)
        if isinstance(result, Err):
            logger.warning(
                'Validation rule "%s" threw an error and was skipped: %s',
                result.rule_id,
                result.error,
            )
            continue
        for violation in result.value:
            kept = _apply_field_overrides(violation, tokens_by_id, context.fields)
            if kept is not None:
                violations.append(kept)
    return violations
