"""Value types shared by the validation pipeline and its rules."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal, Union

from querydoc.fields import FieldDefinition

TokenType = Literal["filter", "freeText"]
ValidationAction = Literal["mark", "delete"]


@dataclass(frozen=True)
class ValidationToken:
    """A token as rules see it, collected fresh on every pass.

    Attributes:
        id: Stable token id.
        type: ``filter`` or ``freeText``.
        pos: Start position in the current document.
        key: Field key; empty for free text.
        operator: Operator; empty for free text.
        value: Token value.
        raw_value: Value as stored, before any rule-side normalization.
    """

    id: str
    type: TokenType
    pos: int
    key: str
    operator: str
    value: str
    raw_value: str


@dataclass(frozen=True)
class ViolationTarget:
    token_id: str
    pos: int


@dataclass(frozen=True)
class Violation:
    """A rule finding with the tokens it applies to."""

    rule_id: str
    reason: str
    action: ValidationAction
    targets: tuple[ViolationTarget, ...]
    message: str | None = None


@dataclass(frozen=True)
class ValidationContext:
    """What a rule receives.

    Attributes:
        tokens: All tokens in document order.
        fields: Field definitions.
        editing_token_ids: Tokens added, modified or involved in the
            current focus transition.
    """

    tokens: tuple[ValidationToken, ...]
    fields: tuple[FieldDefinition, ...]
    editing_token_ids: frozenset[str] = frozenset()

    def is_editing(self, token: ValidationToken) -> bool:
        return token.id in self.editing_token_ids


RuleFn = Callable[[ValidationContext], Sequence[Violation]]


@dataclass(frozen=True)
class ValidationRule:
    """A named rule; higher ``priority`` runs first."""

    id: str
    validate: RuleFn
    priority: int | None = None


@dataclass(frozen=True)
class Ok:
    value: list[Violation]


@dataclass(frozen=True)
class Err:
    rule_id: str
    error: Exception


RuleResult = Union[Ok, Err]


@dataclass(frozen=True)
class FocusTransition:
    """Focused token position before and after the transactions."""

    previous_pos: int | None = None
    current_pos: int | None = None


@dataclass(frozen=True)
class ValidationSnapshot:
    """Everything the planner needs about one validation pass."""

    tokens: tuple[ValidationToken, ...]
    focus: FocusTransition
    new_token_ids: frozenset[str]
    modified_token_ids: frozenset[str]
    editing_token_ids: frozenset[str]
    violations: tuple[Violation, ...]
    force_check: bool
    is_history_operation: bool
    fields: tuple[FieldDefinition, ...]
    rules: tuple[ValidationRule, ...]


@dataclass(frozen=True)
class MarkAction:
    pos: int
    reason: str | None = None


@dataclass(frozen=True)
class ClearAction:
    pos: int


@dataclass(frozen=True)
class DeleteAction:
    pos: int
    size: int
    is_orphaned_empty: bool = False


TokenAction = Union[MarkAction, ClearAction, DeleteAction]


@dataclass
class ValidationPlan:
    actions: list[TokenAction] = field(default_factory=list)

    @property
    def deletions(self) -> list[DeleteAction]:
        return [a for a in self.actions if isinstance(a, DeleteAction)]


@dataclass(frozen=True)
class ShouldRunResult:
    run: bool
    force_check: bool = False
    is_history_operation: bool = False


@dataclass(frozen=True)
class DeletionContext:
    """Per-key token positions used to tell new tokens from old ones."""

    creation_in_progress: bool
    new_token_by_key: dict[str, int]
    first_occurrence_by_key: dict[str, int]
