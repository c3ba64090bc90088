"""Tests for the rule runner and the preset rules."""

from __future__ import annotations

import logging

import pytest

from querydoc.fields import FieldDefinition
from querydoc.validation import (
    MaxCount,
    RequireEnum,
    RequirePattern,
    RuleOutcome,
    Unique,
    ValidationContext,
    ValidationRule,
    ValidationRules,
    ValidationToken,
    Violation,
    ViolationTarget,
    create_field_rule,
    create_rule,
    run_validation,
)


def vt(token_id: str, key: str, value: str, pos: int, operator: str = "is") -> ValidationToken:
    token_type = "filter" if key else "freeText"
    return ValidationToken(token_id, token_type, pos, key, operator if key else "", value, value)


def ctx(tokens: list[ValidationToken], editing: tuple[str, ...] = (), fields=()) -> ValidationContext:
    return ValidationContext(tuple(tokens), tuple(fields), frozenset(editing))


def ids(violations: list[Violation], action: str) -> list[str]:
    return [t.token_id for v in violations if v.action == action for t in v.targets]


STATUS_PAIR = [vt("t1", "status", "active", 1), vt("t2", "status", "inactive", 5)]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _static_rule(rule_id: str, priority: int | None = None) -> ValidationRule:
    violation = Violation(rule_id, "custom", "mark", (ViolationTarget("t1", 1),))
    return ValidationRule(rule_id, lambda c: [violation], priority)


class TestRunValidation:
    def test_higher_priority_first(self) -> None:
        rules = [_static_rule("low"), _static_rule("high", priority=5), _static_rule("mid", priority=1)]
        violations = run_validation(STATUS_PAIR, [], rules)
        assert [v.rule_id for v in violations] == ["high", "mid", "low"]

    def test_failing_rule_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        def boom(c: ValidationContext) -> list[Violation]:
            raise RuntimeError("boom")

        rules = [ValidationRule("broken", boom), _static_rule("ok")]
        with caplog.at_level(logging.WARNING, logger="querydoc.validation.runner"):
            violations = run_validation(STATUS_PAIR, [], rules)
        assert [v.rule_id for v in violations] == ["ok"]
        assert 'Validation rule "broken" threw an error' in caplog.text

    def test_field_override_drops_targets(self) -> None:
        fields = [FieldDefinition(key="tag", validation={"unique-key": False})]
        tokens = [vt("t1", "tag", "a", 1), vt("t2", "tag", "b", 5)]
        assert run_validation(tokens, fields, [Unique.rule("key")]) == []

    def test_field_override_keeps_other_targets(self) -> None:
        fields = [FieldDefinition(key="tag", validation={"max-count-total": False})]
        tokens = [vt("t1", "tag", "a", 1), vt("t2", "status", "b", 5)]
        violations = run_validation(tokens, fields, [MaxCount.rule("*", 0)])
        assert ids(violations, "mark") == ["t2"]

    def test_editing_ids_reach_rules(self) -> None:
        seen: list[frozenset[str]] = []
        rule = ValidationRule("spy", lambda c: seen.append(c.editing_token_ids) or [])
        run_validation(STATUS_PAIR, [], [rule], ["t2"])
        assert seen == [frozenset({"t2"})]


# ---------------------------------------------------------------------------
# Unique
# ---------------------------------------------------------------------------


class TestUnique:
    def test_mark_keeps_first(self) -> None:
        violations = list(Unique.rule("key").validate(ctx(STATUS_PAIR)))
        assert ids(violations, "mark") == ["t2"]
        assert violations[0].rule_id == "unique-key"
        assert violations[0].message == 'Only one "status" filter is allowed'

    def test_replace_deletes_older(self) -> None:
        violations = Unique.rule("key", Unique.replace).validate(ctx(STATUS_PAIR, ("t2",)))
        assert ids(violations, "delete") == ["t1"]

    def test_replace_without_editing_keeps_last(self) -> None:
        tokens = STATUS_PAIR + [vt("t3", "status", "x", 9)]
        violations = Unique.rule("key", Unique.replace).validate(ctx(tokens))
        assert ids(violations, "delete") == ["t1", "t2"]

    def test_reject_deletes_new(self) -> None:
        violations = Unique.rule("key", Unique.reject).validate(ctx(STATUS_PAIR, ("t2",)))
        assert ids(violations, "delete") == ["t2"]

    def test_reject_all_new_keeps_first(self) -> None:
        violations = Unique.rule("key", Unique.reject).validate(ctx(STATUS_PAIR, ("t1", "t2")))
        assert ids(violations, "delete") == ["t2"]

    def test_reject_without_editing_marks(self) -> None:
        violations = Unique.rule("key", Unique.reject).validate(ctx(STATUS_PAIR))
        assert ids(violations, "mark") == ["t2"]

    def test_key_operator_constraint(self) -> None:
        tokens = [vt("t1", "status", "a", 1), vt("t2", "status", "b", 5, operator="is_not")]
        assert Unique.rule("key-operator").validate(ctx(tokens)) == []
        tokens.append(vt("t3", "status", "c", 9))
        violations = Unique.rule("key-operator").validate(ctx(tokens))
        assert ids(violations, "mark") == ["t3"]
        assert violations[0].message == 'Duplicate "status" filter with same operator'

    def test_exact_constraint(self) -> None:
        tokens = [vt("t1", "tag", "a", 1), vt("t2", "tag", "b", 5), vt("t3", "tag", "a", 9)]
        violations = Unique.rule("exact").validate(ctx(tokens))
        assert ids(violations, "mark") == ["t3"]
        assert violations[0].rule_id == "unique-exact"

    def test_free_text_shares_one_key(self) -> None:
        tokens = [vt("f1", "", "a", 1), vt("f2", "", "b", 5)]
        assert ids(Unique.rule("key").validate(ctx(tokens)), "mark") == ["f2"]
        assert Unique.rule("exact").validate(ctx(tokens)) == []

    def test_unknown_constraint(self) -> None:
        with pytest.raises(ValueError):
            Unique.rule("bogus")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# MaxCount
# ---------------------------------------------------------------------------


TAGS = [vt("t1", "tag", "a", 1), vt("t2", "tag", "b", 5), vt("t3", "tag", "c", 9)]


class TestMaxCount:
    def test_within_limit(self) -> None:
        assert MaxCount.rule("tag", 3).validate(ctx(TAGS)) == []

    def test_mark_excess(self) -> None:
        violations = MaxCount.rule("tag", 2).validate(ctx(TAGS))
        assert ids(violations, "mark") == ["t3"]
        assert violations[0].rule_id == "max-count-tag"
        assert violations[0].message == 'Maximum 2 "tag" filters allowed'

    def test_reject_removes_editing_first(self) -> None:
        violations = MaxCount.rule("tag", 2, MaxCount.reject).validate(ctx(TAGS, ("t1",)))
        assert ids(violations, "delete") == ["t1"]

    def test_reject_falls_back_to_last_untouched(self) -> None:
        violations = MaxCount.rule("tag", 1, MaxCount.reject).validate(ctx(TAGS, ("t1",)))
        assert ids(violations, "delete") == ["t1", "t3"]

    def test_total(self) -> None:
        tokens = TAGS + [vt("t4", "status", "x", 13)]
        violations = MaxCount.rule("*", 3, message="Too many").validate(ctx(tokens))
        assert violations[0].rule_id == "max-count-total"
        assert violations[0].message == "Too many"
        assert ids(violations, "mark") == ["t4"]

    def test_negative_max_means_zero(self) -> None:
        violations = MaxCount.rule("tag", -1).validate(ctx(TAGS))
        assert ids(violations, "mark") == ["t1", "t2", "t3"]


# ---------------------------------------------------------------------------
# Value rules
# ---------------------------------------------------------------------------


class TestRequirePattern:
    def test_marks_mismatch(self) -> None:
        tokens = [vt("t1", "email", "a@b.c", 1), vt("t2", "email", "nope", 5), vt("t3", "email", "", 9)]
        violations = RequirePattern.rule("email", r"@").validate(ctx(tokens))
        assert ids(violations, "mark") == ["t2"]
        assert violations[0].message == 'Invalid format for "email"'

    def test_reject_deletes_while_editing(self) -> None:
        tokens = [vt("t1", "email", "nope", 1), vt("t2", "email", "also-nope", 5)]
        violations = RequirePattern.rule("email", r"@", RequirePattern.reject).validate(ctx(tokens, ("t2",)))
        assert ids(violations, "mark") == ["t1"]
        assert ids(violations, "delete") == ["t2"]


class TestRequireEnum:
    def test_unknown_value(self, fields: list[FieldDefinition]) -> None:
        tokens = [vt("t1", "status", "active", 1), vt("t2", "status", "pending", 5), vt("t3", "tag", "x", 9)]
        violations = RequireEnum.rule().validate(ctx(tokens, fields=fields))
        assert ids(violations, "mark") == ["t2"]
        assert violations[0].message == 'Invalid value for "Status"'

    def test_label_spelling_is_valid(self, fields: list[FieldDefinition]) -> None:
        tokens = [vt("t1", "status", "Inactive", 1)]
        assert RequireEnum.rule().validate(ctx(tokens, fields=fields)) == []


# ---------------------------------------------------------------------------
# Custom rules
# ---------------------------------------------------------------------------


class TestCreateRule:
    def test_message_marks_token(self) -> None:
        rule = create_rule(lambda token, all_tokens, i: "bad" if token.value == "inactive" else None)
        violations = rule.validate(ctx(STATUS_PAIR))
        assert ids(violations, "mark") == ["t2"]
        assert violations[0].message == "bad"
        assert rule.id == "custom-rule"

    def test_outcome_deletes_targets(self) -> None:
        def only_first(token, all_tokens, index):
            return RuleOutcome(message="dup", delete_target_indices=[0]) if index == 1 else None

        violations = create_rule(only_first, id="first-wins").validate(ctx(STATUS_PAIR))
        assert ids(violations, "delete") == ["t1"]
        assert violations[0].rule_id == "first-wins"

    def test_dict_outcome(self) -> None:
        rule = create_rule(lambda token, all_tokens, index: {"message": "note"} if index == 0 else None)
        assert ids(rule.validate(ctx(STATUS_PAIR)), "mark") == ["t1"]

    def test_out_of_range_indices_ignored(self) -> None:
        rule = create_rule(lambda token, all_tokens, index: RuleOutcome(delete_target_indices=[7]))
        assert rule.validate(ctx(STATUS_PAIR)) == []

    def test_field_rule(self) -> None:
        tokens = [vt("t1", "tag", "x", 1), vt("t2", "status", "x", 5)]
        rule = create_field_rule("tag", lambda value, all_tokens, operator: f"no {value}")
        violations = rule.validate(ctx(tokens))
        assert ids(violations, "mark") == ["t1"]
        assert rule.id == "field-rule-tag"

    def test_builder_namespace(self) -> None:
        assert ValidationRules.unique("key").id == "unique-key"
        assert ValidationRules.max_count("tag", 1).id == "max-count-tag"
        assert ValidationRules.pattern("email", "@").id == "pattern-email"
        assert ValidationRules.enum_value().id == "enum-value"
