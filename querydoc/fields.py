"""Field definitions, operators and enum value resolution."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from querydoc.exceptions import DelimiterConfigError, ValidationError

DEFAULT_TOKEN_DELIMITER = ":"

ALL_OPERATORS: tuple[str, ...] = (
    "is",
    "is_not",
    "contains",
    "not_contains",
    "starts_with",
    "ends_with",
    "gt",
    "lt",
    "gte",
    "lte",
)

FieldType = Literal["string", "enum", "date", "datetime"]
FIELD_TYPES: tuple[str, ...] = ("string", "enum", "date", "datetime")
FreeTextMode = Literal["tokenize", "plain", "none"]
FREE_TEXT_MODES: tuple[str, ...] = ("tokenize", "plain", "none")


@dataclass(frozen=True)
class EnumValue:
    """One allowed value of an enum field."""

    value: str
    label: str | None = None

    @property
    def display(self) -> str:
        return self.label if self.label is not None else self.value


# Resolver receives (query, value, label) and returns the resolved value or None.
EnumValueResolver = Callable[[str, str, str], "str | None"]


def _case_insensitive(query: str, value: str, label: str) -> str | None:
    lowered = query.lower()
    if lowered == value.lower() or lowered == label.lower():
        return value
    return None


def _exact(query: str, value: str, label: str) -> str | None:
    if query == value or query == label:
        return value
    return None


ENUM_RESOLVERS: dict[str, EnumValueResolver] = {
    "case_insensitive": _case_insensitive,
    "exact": _exact,
}


@dataclass
class FieldDefinition:
    """Definition of a filterable field.

    Attributes:
        key: Field key used in the query string (``status`` in ``status:is:active``).
        label: Human readable label, used in validation messages.
        type: Value type of the field.
        operators: Allowed operators; the first one is the default.
        enum_values: Allowed values for ``enum`` fields.
        immutable: Tokens with a value cannot be edited in place.
        validation: Per-rule overrides; ``{"unique-key": False}`` disables that
            rule for tokens of this field.
        value_resolver: Resolver used to normalize enum input.

    Raises:
        ValidationError: If the key is empty or the type is unknown.
    """

    key: str
    label: str = ""
    type: FieldType = "string"
    operators: list[str] = field(default_factory=lambda: ["is"])
    enum_values: list[EnumValue] = field(default_factory=list)
    immutable: bool = False
    validation: dict[str, bool] = field(default_factory=dict)
    value_resolver: EnumValueResolver | None = None

    def __post_init__(self) -> None:
        if not self.key:
            raise ValidationError("field key", self.key, "must not be empty")
        if self.type not in FIELD_TYPES:
            raise ValidationError("field type", self.type, f"must be one of {', '.join(FIELD_TYPES)}")
        if not self.label:
            self.label = self.key
        if not self.operators:
            self.operators = ["is"]
        self.enum_values = [
            ev if isinstance(ev, EnumValue) else EnumValue(str(ev)) for ev in self.enum_values
        ]

    @property
    def default_operator(self) -> str:
        return self.operators[0]

    def is_rule_disabled(self, rule_id: str) -> bool:
        return self.validation.get(rule_id) is False


def find_field(fields: Sequence[FieldDefinition], key: str) -> FieldDefinition | None:
    """Return the field with the given key, or None."""
    for f in fields:
        if f.key == key:
            return f
    return None


def resolve_enum_value(
    enum_values: Sequence[EnumValue],
    value: str,
    resolver: EnumValueResolver | None = None,
) -> str:
    """Resolve user input to an internal enum value.

    Matching is a lookup, not a fuzzy search: ``"Active"`` resolves to
    ``"active"`` when a value or label matches, otherwise the input is
    returned unchanged.

    Args:
        enum_values: Allowed values.
        value: Raw user input.
        resolver: Match function; case-insensitive by default.

    Returns:
        The resolved internal value, or ``value`` if nothing matched.
    """
    if not value or not enum_values:
        return value

    resolve = resolver or _case_insensitive
    for ev in enum_values:
        resolved = resolve(value, ev.value, ev.display)
        if resolved is not None:
            return resolved
    return value


def validate_delimiter(delimiter: object) -> str:
    """Check that the token delimiter is a single character.

    Raises:
        DelimiterConfigError: If the delimiter is not a one-character string.
    """
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise DelimiterConfigError(delimiter)
    if delimiter in (" ", '"', "\\"):
        raise DelimiterConfigError(delimiter, "conflicts with query quoting or word separation")
    return delimiter
