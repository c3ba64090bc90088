"""Ready-made validation rules and helpers for writing custom ones.

Example:
    rules = [
        Unique.rule("key", Unique.replace),
        MaxCount.rule("tag", 3, MaxCount.reject),
        RequirePattern.rule("email", r"^[^@]+@[^@]+$"),
        RequireEnum.rule(),
    ]
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from querydoc.fields import find_field, resolve_enum_value
from querydoc.validation.types import (
    ValidationContext,
    ValidationRule,
    ValidationToken,
    Violation,
    ViolationTarget,
)

UniqueConstraint = Literal["key", "key-operator", "exact"]
UNIQUE_CONSTRAINTS: tuple[str, ...] = ("key", "key-operator", "exact")


# ------------------------------------------------------------------
# Strategy helpers
# ------------------------------------------------------------------


def split_by_edit_state(
    tokens: Sequence[ValidationToken], ctx: ValidationContext
) -> tuple[list[ValidationToken], list[ValidationToken]]:
    """Split ``tokens`` into ``(new_or_editing, untouched)``."""
    editing = [t for t in tokens if ctx.is_editing(t)]
    untouched = [t for t in tokens if not ctx.is_editing(t)]
    return editing, untouched


def build_targets(tokens: Sequence[ValidationToken]) -> tuple[ViolationTarget, ...]:
    return tuple(ViolationTarget(t.id, t.pos) for t in tokens)


def create_delete_violation(
    targets: Sequence[ValidationToken],
    rule_id: str,
    reason: str = "custom",
    message: str | None = None,
) -> Violation | None:
    """Delete violation for ``targets``; None when there are none."""
    if not targets:
        return None
    return Violation(rule_id, reason, "delete", build_targets(targets), message)


def create_mark_violation(
    targets: Sequence[ValidationToken],
    rule_id: str,
    reason: str = "custom",
    message: str | None = None,
) -> Violation | None:
    """Mark violation for ``targets``; None when there are none."""
    if not targets:
        return None
    return Violation(rule_id, reason, "mark", build_targets(targets), message)


@dataclass
class StrategyResult:
    delete: list[ValidationToken] = field(default_factory=list)
    mark: list[ValidationToken] = field(default_factory=list)

    def violations(self, rule_id: str, reason: str, message: str | None) -> list[Violation]:
        found = [
            create_delete_violation(self.delete, rule_id, reason, message),
            create_mark_violation(self.mark, rule_id, reason, message),
        ]
        return [v for v in found if v is not None]


# ------------------------------------------------------------------
# Uniqueness
# ------------------------------------------------------------------


@dataclass
class DuplicateGroup:
    signature: str
    key: str
    tokens: list[ValidationToken] = field(default_factory=list)


UniqueStrategy = Callable[[DuplicateGroup, ValidationContext], StrategyResult]


def _signature(token: ValidationToken, constraint: str) -> str:
    # All free text shares one key, so "key" uniqueness allows a single
    # free-text token.
    if token.type == "freeText":
        return f"freetext:{token.value}" if constraint == "exact" else "freetext:"
    if constraint == "key":
        return f"filter:{token.key}"
    if constraint == "key-operator":
        return f"filter:{token.key}:{token.operator}"
    return f"filter:{token.key}:{token.operator}:{token.value}"


def _duplicate_message(constraint: str, key: str) -> str:
    if constraint == "key":
        return f'Only one "{key}" filter is allowed'
    if constraint == "key-operator":
        return f'Duplicate "{key}" filter with same operator'
    return "Duplicate filter"


def _build_duplicate_groups(
    tokens: Sequence[ValidationToken], constraint: str
) -> dict[str, DuplicateGroup]:
    groups: dict[str, DuplicateGroup] = {}
    for token in tokens:
        sig = _signature(token, constraint)
        groups.setdefault(sig, DuplicateGroup(sig, token.key)).tokens.append(token)
    return groups


def _unique_mark(group: DuplicateGroup, ctx: ValidationContext) -> StrategyResult:
    return StrategyResult(mark=group.tokens[1:])


def _unique_replace(group: DuplicateGroup, ctx: ValidationContext) -> StrategyResult:
    editing, untouched = split_by_edit_state(group.tokens, ctx)
    # Nothing being edited (undo/redo): the last one wins.
    if not editing:
        return StrategyResult(delete=group.tokens[:-1])
    return StrategyResult(delete=untouched + editing[:-1])


def _unique_reject(group: DuplicateGroup, ctx: ValidationContext) -> StrategyResult:
    editing, _ = split_by_edit_state(group.tokens, ctx)
    # All new (paste): the first one wins.
    if len(editing) == len(group.tokens):
        return StrategyResult(delete=editing[1:])
    if not editing:
        return StrategyResult(mark=group.tokens[1:])
    return StrategyResult(delete=editing)


class Unique:
    """Allow a key (or key and operator, or exact filter) only once.

    Strategies:
        mark: Keep all, mark every duplicate after the first.
        replace: The newest token replaces the existing ones.
        reject: The newest token is removed again.
    """

    mark: UniqueStrategy = staticmethod(_unique_mark)
    replace: UniqueStrategy = staticmethod(_unique_replace)
    reject: UniqueStrategy = staticmethod(_unique_reject)

    @staticmethod
    def rule(
        constraint: UniqueConstraint,
        strategy: UniqueStrategy = _unique_mark,
        priority: int | None = None,
    ) -> ValidationRule:
        if constraint not in UNIQUE_CONSTRAINTS:
            raise ValueError(f"Unknown uniqueness constraint: {constraint!r}")
        rule_id = f"unique-{constraint}"

        def validate(ctx: ValidationContext) -> list[Violation]:
            violations: list[Violation] = []
            for group in _build_duplicate_groups(ctx.tokens, constraint).values():
                if len(group.tokens) <= 1:
                    continue
                result = strategy(group, ctx)
                message = _duplicate_message(constraint, group.key)
                violations.extend(result.violations(rule_id, "duplicate", message))
            return violations

        return ValidationRule(rule_id, validate, priority)


# ------------------------------------------------------------------
# Counts
# ------------------------------------------------------------------

MaxCountStrategy = Callable[[list[ValidationToken], int, ValidationContext], StrategyResult]


def _max_count_mark(tokens: list[ValidationToken], excess: int, ctx: ValidationContext) -> StrategyResult:
    return StrategyResult(mark=tokens[-excess:])


def _max_count_reject(tokens: list[ValidationToken], excess: int, ctx: ValidationContext) -> StrategyResult:
    editing, untouched = split_by_edit_state(tokens, ctx)
    if len(editing) >= excess:
        return StrategyResult(delete=editing[:excess])
    remaining = excess - len(editing)
    return StrategyResult(delete=editing + untouched[-remaining:])


class MaxCount:
    """Cap the number of tokens of a key, or of all tokens with ``"*"``."""

    mark: MaxCountStrategy = staticmethod(_max_count_mark)
    reject: MaxCountStrategy = staticmethod(_max_count_reject)

    @staticmethod
    def rule(
        field_key: str,
        max: int,
        strategy: MaxCountStrategy = _max_count_mark,
        priority: int | None = None,
        message: str | None = None,
    ) -> ValidationRule:
        rule_id = "max-count-total" if field_key == "*" else f"max-count-{field_key}"
        effective_max = max if max > 0 else 0

        if field_key == "*":
            default_message = f"Maximum {effective_max} filters allowed"
        else:
            default_message = f'Maximum {effective_max} "{field_key}" filters allowed'

        def validate(ctx: ValidationContext) -> list[Violation]:
            relevant = [t for t in ctx.tokens if field_key == "*" or t.key == field_key]
            if len(relevant) <= effective_max:
                return []
            excess = len(relevant) - effective_max
            result = strategy(relevant, excess, ctx)
            return result.violations(rule_id, "max-exceeded", message or default_message)

        return ValidationRule(rule_id, validate, priority)


# ------------------------------------------------------------------
# Values
# ------------------------------------------------------------------

InvalidValueStrategy = Callable[[ValidationToken, ValidationContext], str]


def _invalid_value_mark(token: ValidationToken, ctx: ValidationContext) -> str:
    return "mark"


def _invalid_value_reject(token: ValidationToken, ctx: ValidationContext) -> str:
    return "delete" if ctx.is_editing(token) else "mark"


class RequirePattern:
    """Values of a key must match a regular expression."""

    mark: InvalidValueStrategy = staticmethod(_invalid_value_mark)
    reject: InvalidValueStrategy = staticmethod(_invalid_value_reject)

    @staticmethod
    def rule(
        field_key: str,
        regex: str | re.Pattern[str],
        strategy: InvalidValueStrategy = _invalid_value_mark,
        priority: int | None = None,
        message: str | None = None,
    ) -> ValidationRule:
        rule_id = f"pattern-{field_key}"
        pattern = re.compile(regex) if isinstance(regex, str) else regex

        def validate(ctx: ValidationContext) -> list[Violation]:
            violations: list[Violation] = []
            for token in ctx.tokens:
                if token.key != field_key or not token.value:
                    continue
                if pattern.search(token.value) is None:
                    violations.append(
                        Violation(
                            rule_id=rule_id,
                            reason="pattern",
                            action=strategy(token, ctx),  # type: ignore[arg-type]
                            targets=build_targets([token]),
                            message=message or f'Invalid format for "{field_key}"',
                        )
                    )
            return violations

        return ValidationRule(rule_id, validate, priority)


class RequireEnum:
    """Values of enum fields must be one of their enum values."""

    mark: InvalidValueStrategy = staticmethod(_invalid_value_mark)
    reject: InvalidValueStrategy = staticmethod(_invalid_value_reject)

    @staticmethod
    def rule(
        strategy: InvalidValueStrategy = _invalid_value_mark,
        priority: int | None = None,
        message: str | None = None,
    ) -> ValidationRule:
        rule_id = "enum-value"

        def validate(ctx: ValidationContext) -> list[Violation]:
            violations: list[Violation] = []
            for token in ctx.tokens:
                field_def = find_field(ctx.fields, token.key)
                if field_def is None or field_def.type != "enum" or not field_def.enum_values:
                    continue
                if not token.value:
                    continue
                resolved = resolve_enum_value(
                    field_def.enum_values, token.value, field_def.value_resolver
                )
                # An unmatched value resolves to itself.
                valid = resolved != token.value or any(
                    ev.value == token.value for ev in field_def.enum_values
                )
                if not valid:
                    violations.append(
                        Violation(
                            rule_id=rule_id,
                            reason="invalid-enum-value",
                            action=strategy(token, ctx),  # type: ignore[arg-type]
                            targets=build_targets([token]),
                            message=message or f'Invalid value for "{field_def.label}"',
                        )
                    )
            return violations

        return ValidationRule(rule_id, validate, priority)


# ------------------------------------------------------------------
# Custom rules
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SimpleToken:
    key: str
    operator: str
    value: str


@dataclass(frozen=True)
class RuleOutcome:
    """Richer result for :func:`create_rule` callbacks.

    Attributes:
        message: Message shown on the affected tokens.
        delete_target_indices: Indices into ``all_tokens`` to delete.
    """

    message: str | None = None
    delete_target_indices: Sequence[int] = ()


SimpleReturn = Union[str, RuleOutcome, dict[str, Any], None]
SimpleRuleFn = Callable[[SimpleToken, list[SimpleToken], int], SimpleReturn]


def _as_outcome(result: RuleOutcome | dict[str, Any]) -> RuleOutcome:
    if isinstance(result, RuleOutcome):
        return result
    return RuleOutcome(
        message=result.get("message"),
        delete_target_indices=result.get("delete_target_indices") or (),
    )


def create_rule(
    fn: SimpleRuleFn,
    id: str = "custom-rule",
    priority: int | None = None,
) -> ValidationRule:
    """Build a rule from a per-token callback.

    ``fn(token, all_tokens, index)`` returns None when the token is fine,
    a message string to mark it, or a :class:`RuleOutcome` (or a dict with
    the same keys) naming tokens to delete.
    """

    def validate(ctx: ValidationContext) -> list[Violation]:
        simple = [SimpleToken(t.key, t.operator, t.value) for t in ctx.tokens]
        violations: list[Violation] = []
        for index, token in enumerate(ctx.tokens):
            result = fn(simple[index], simple, index)
            if result is None:
                continue
            if isinstance(result, str):
                violations.append(Violation(id, "custom", "mark", build_targets([token]), result))
                continue

            outcome = _as_outcome(result)
            if outcome.delete_target_indices:
                targets = [
                    ctx.tokens[i] for i in outcome.delete_target_indices if 0 <= i < len(ctx.tokens)
                ]
                if targets:
                    violations.append(
                        Violation(id, "custom", "delete", build_targets(targets), outcome.message)
                    )
            elif outcome.message:
                violations.append(
                    Violation(id, "custom", "mark", build_targets([token]), outcome.message)
                )
        return violations

    return ValidationRule(id, validate, priority)


def create_field_rule(
    field_key: str,
    fn: Callable[[str, list[SimpleToken], str], SimpleReturn],
    id: str | None = None,
    priority: int | None = None,
) -> ValidationRule:
    """Like :func:`create_rule`, for the values of one key only.

    ``fn(value, all_tokens, operator)`` follows the same return contract.
    """

    def check(token: SimpleToken, all_tokens: list[SimpleToken], index: int) -> SimpleReturn:
        if token.key != field_key:
            return None
        return fn(token.value, all_tokens, token.operator)

    return create_rule(check, id=id or f"field-rule-{field_key}", priority=priority)


class ValidationRules:
    """All preset builders in one place."""

    unique = staticmethod(Unique.rule)
    max_count = staticmethod(MaxCount.rule)
    pattern = staticmethod(RequirePattern.rule)
    enum_value = staticmethod(RequireEnum.rule)
    create_rule = staticmethod(create_rule)
    create_field_rule = staticmethod(create_field_rule)
