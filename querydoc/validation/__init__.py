"""Rule-based validation: snapshot, plan, apply."""

from querydoc.validation.executor import (
    apply_plan,
    clear_invalid_marks_if_needed,
    delete_empty_tokens_on_history,
)
from querydoc.validation.planner import (
    build_deletion_context,
    build_plan,
    is_new_token,
    should_delete_now,
)
from querydoc.validation.presets import (
    DuplicateGroup,
    MaxCount,
    RequireEnum,
    RequirePattern,
    RuleOutcome,
    SimpleToken,
    StrategyResult,
    Unique,
    ValidationRules,
    build_targets,
    create_delete_violation,
    create_field_rule,
    create_mark_violation,
    create_rule,
    split_by_edit_state,
)
from querydoc.validation.runner import run_validation
from querydoc.validation.snapshot import (
    VALIDATION_META,
    ValidationConfig,
    build_snapshot,
    collect_tokens,
    should_run,
)
from querydoc.validation.stage import ValidationStage
from querydoc.validation.types import (
    ClearAction,
    DeleteAction,
    DeletionContext,
    FocusTransition,
    MarkAction,
    ShouldRunResult,
    ValidationContext,
    ValidationPlan,
    ValidationRule,
    ValidationSnapshot,
    ValidationToken,
    Violation,
    ViolationTarget,
)

__all__ = [
    "VALIDATION_META",
    "ClearAction",
    "DeleteAction",
    "DeletionContext",
    "DuplicateGroup",
    "FocusTransition",
    "MarkAction",
    "MaxCount",
    "RequireEnum",
    "RequirePattern",
    "RuleOutcome",
    "ShouldRunResult",
    "SimpleToken",
    "StrategyResult",
    "Unique",
    "ValidationConfig",
    "ValidationContext",
    "ValidationPlan",
    "ValidationRule",
    "ValidationRules",
    "ValidationSnapshot",
    "ValidationStage",
    "ValidationToken",
    "Violation",
    "ViolationTarget",
    "apply_plan",
    "build_deletion_context",
    "build_plan",
    "build_snapshot",
    "build_targets",
    "clear_invalid_marks_if_needed",
    "collect_tokens",
    "create_delete_violation",
    "create_field_rule",
    "create_mark_violation",
    "create_rule",
    "delete_empty_tokens_on_history",
    "is_new_token",
    "run_validation",
    "should_delete_now",
    "should_run",
    "split_by_edit_state",
]
