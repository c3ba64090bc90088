"""Configuration management for querydoc."""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w

from querydoc.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)
from querydoc.fields import (
    ALL_OPERATORS,
    DEFAULT_TOKEN_DELIMITER,
    ENUM_RESOLVERS,
    FIELD_TYPES,
    FREE_TEXT_MODES,
    EnumValue,
    FieldDefinition,
    validate_delimiter,
)
from querydoc.validation import MaxCount, RequireEnum, RequirePattern, Unique, ValidationRule

if TYPE_CHECKING:
    from querydoc.editor import Editor

logger = logging.getLogger(__name__)

RULE_TYPES: tuple[str, ...] = ("unique", "max_count", "pattern", "enum")

_RULE_STRATEGIES: dict[str, dict[str, Any]] = {
    "unique": {"mark": Unique.mark, "replace": Unique.replace, "reject": Unique.reject},
    "max_count": {"mark": MaxCount.mark, "reject": MaxCount.reject},
    "pattern": {"mark": RequirePattern.mark, "reject": RequirePattern.reject},
    "enum": {"mark": RequireEnum.mark, "reject": RequireEnum.reject},
}


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "querydoc" / "config.toml"


@dataclass
class RuleConfig:
    """One ``[[rules]]`` table.

    Attributes:
        type: Preset name: ``unique``, ``max_count``, ``pattern`` or ``enum``.
        strategy: ``mark``, ``reject`` or (``unique`` only) ``replace``.
        constraint: Uniqueness constraint for ``unique``.
        field: Field key for ``max_count`` (``*`` for all) and ``pattern``.
        max: Limit for ``max_count``.
        regex: Expression for ``pattern``.
        priority: Rule priority; higher runs first.
        message: Message shown on affected tokens.
    """

    type: str
    strategy: str = "mark"
    constraint: str = "key"
    field: str | None = None
    max: int = 0
    regex: str | None = None
    priority: int | None = None
    message: str | None = None

    def to_rule(self) -> ValidationRule:
        """Build the validation rule this table describes."""
        strategy = _RULE_STRATEGIES[self.type][self.strategy]
        if self.type == "unique":
            return Unique.rule(self.constraint, strategy, self.priority)  # type: ignore[arg-type]
        if self.type == "max_count":
            return MaxCount.rule(self.field or "*", self.max, strategy, self.priority, self.message)
        if self.type == "pattern":
            return RequirePattern.rule(self.field or "", self.regex or "", strategy, self.priority, self.message)
        return RequireEnum.rule(strategy, self.priority, self.message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.strategy != "mark":
            data["strategy"] = self.strategy
        if self.type == "unique":
            data["constraint"] = self.constraint
        if self.field is not None:
            data["field"] = self.field
        if self.type == "max_count":
            data["max"] = self.max
        if self.regex is not None:
            data["regex"] = self.regex
        if self.priority is not None:
            data["priority"] = self.priority
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class Config:
    """Application configuration.

    Attributes:
        delimiter: Character between key, operator and value.
        free_text_mode: How loose text is handled: tokenize, plain or none.
        allow_unknown_fields: Accept filter keys that have no definition.
        unknown_field_operators: Operators offered for unknown fields.
        colored_output: Whether to use colored terminal output.
        fields: Field definitions from ``[[fields]]``.
        rules: Validation rules from ``[[rules]]``.
        config_path: Path where config was loaded from (None if defaults).
    """

    delimiter: str = DEFAULT_TOKEN_DELIMITER
    free_text_mode: str = "plain"
    allow_unknown_fields: bool = False
    unknown_field_operators: list[str] | None = None
    colored_output: bool = True
    fields: list[FieldDefinition] = field(default_factory=list)
    rules: list[RuleConfig] = field(default_factory=list)
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
            DelimiterConfigError: If the delimiter is unusable.
        """
        warnings: list[str] = []

        validate_delimiter(self.delimiter)
        if self.free_text_mode not in FREE_TEXT_MODES:
            raise ConfigValidationError(
                "editor.free_text_mode",
                self.free_text_mode,
                f"must be one of {', '.join(FREE_TEXT_MODES)}",
            )

        seen: set[str] = set()
        for field_def in self.fields:
            if field_def.key in seen:
                warnings.append(f"Field '{field_def.key}' is defined more than once; the first one wins")
            seen.add(field_def.key)
            if self.delimiter in field_def.key:
                warnings.append(f"Field key '{field_def.key}' contains the delimiter '{self.delimiter}'")
            unknown_ops = [op for op in field_def.operators if op not in ALL_OPERATORS]
            if unknown_ops:
                warnings.append(f"Field '{field_def.key}' uses unknown operators: {', '.join(unknown_ops)}")
            if field_def.type == "enum" and not field_def.enum_values:
                warnings.append(f"Enum field '{field_def.key}' has no enum_values")

        for rule in self.rules:
            if rule.field and rule.field != "*" and rule.field not in seen and not self.allow_unknown_fields:
                warnings.append(f"Rule '{rule.type}' refers to undefined field '{rule.field}'")

        if self.unknown_field_operators and not self.allow_unknown_fields:
            warnings.append("editor.unknown_field_operators is set but allow_unknown_fields is false")

        return warnings

    def build_rules(self) -> list[ValidationRule]:
        return [rule.to_rule() for rule in self.rules]

    def create_editor(self, value: str = "", **kwargs: Any) -> Editor:
        """Create an editor configured from this config."""
        from querydoc.editor import Editor

        return Editor(
            self.fields,
            rules=self.build_rules(),
            free_text_mode=self.free_text_mode,  # type: ignore[arg-type]
            allow_unknown_fields=self.allow_unknown_fields,
            unknown_field_operators=self.unknown_field_operators,
            delimiter=self.delimiter,
            value=value,
            **kwargs,
        )


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        # Use defaults
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: querydoc init-config"
        )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = parse_config_dict(data, config_path)
    config_warnings = config.validate()
    logger.debug("Loaded %d field(s) and %d rule(s) from %s", len(config.fields), len(config.rules), config_path)

    return config, warnings + config_warnings


def _expect(key: str, value: Any, kind: type | tuple[type, ...], reason: str) -> Any:
    # bool is an int subclass; integer options must reject it.
    if isinstance(value, bool) and kind is int:
        raise ConfigValidationError(key, value, reason)
    if not isinstance(value, kind):
        raise ConfigValidationError(key, value, reason)
    return value


def _string_list(key: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigValidationError(key, value, "must be a list of strings")
    return list(value)


def _parse_enum_values(key: str, value: Any) -> list[EnumValue]:
    if not isinstance(value, list):
        raise ConfigValidationError(key, value, "must be a list")
    result: list[EnumValue] = []
    for item in value:
        if isinstance(item, str):
            result.append(EnumValue(item))
        elif isinstance(item, dict) and isinstance(item.get("value"), str):
            label = item.get("label")
            if label is not None and not isinstance(label, str):
                raise ConfigValidationError(f"{key}.label", label, "must be a string")
            result.append(EnumValue(item["value"], label))
        else:
            raise ConfigValidationError(key, item, "entries must be strings or {value, label} tables")
    return result


def _parse_field(index: int, data: Any) -> FieldDefinition:
    prefix = f"fields[{index}]"
    if not isinstance(data, dict):
        raise ConfigValidationError(prefix, data, "must be a table")
    if not isinstance(data.get("key"), str) or not data["key"]:
        raise ConfigValidationError(f"{prefix}.key", data.get("key"), "must be a non-empty string")

    field_def = FieldDefinition(key=data["key"])

    if "label" in data:
        field_def.label = _expect(f"{prefix}.label", data["label"], str, "must be a string")

    if "type" in data:
        value = data["type"]
        if value not in FIELD_TYPES:
            raise ConfigValidationError(f"{prefix}.type", value, f"must be one of {', '.join(FIELD_TYPES)}")
        field_def.type = value

    if "operators" in data:
        operators = _string_list(f"{prefix}.operators", data["operators"])
        field_def.operators = operators or ["is"]

    if "enum_values" in data:
        field_def.enum_values = _parse_enum_values(f"{prefix}.enum_values", data["enum_values"])

    if "immutable" in data:
        field_def.immutable = _expect(f"{prefix}.immutable", data["immutable"], bool, "must be a boolean")

    if "validation" in data:
        value = data["validation"]
        if not isinstance(value, dict) or not all(isinstance(v, bool) for v in value.values()):
            raise ConfigValidationError(f"{prefix}.validation", value, "must be a table of booleans")
        field_def.validation = dict(value)

    if "enum_match" in data:
        value = data["enum_match"]
        if value not in ENUM_RESOLVERS:
            raise ConfigValidationError(
                f"{prefix}.enum_match", value, f"must be one of {', '.join(ENUM_RESOLVERS)}"
            )
        field_def.value_resolver = ENUM_RESOLVERS[value]

    return field_def


def _parse_rule(index: int, data: Any) -> RuleConfig:
    prefix = f"rules[{index}]"
    if not isinstance(data, dict):
        raise ConfigValidationError(prefix, data, "must be a table")

    rule_type = data.get("type")
    if rule_type not in RULE_TYPES:
        raise ConfigValidationError(f"{prefix}.type", rule_type, f"must be one of {', '.join(RULE_TYPES)}")
    rule = RuleConfig(type=rule_type)

    if "strategy" in data:
        value = data["strategy"]
        allowed = _RULE_STRATEGIES[rule_type]
        if value not in allowed:
            raise ConfigValidationError(f"{prefix}.strategy", value, f"must be one of {', '.join(allowed)}")
        rule.strategy = value

    if "constraint" in data:
        value = data["constraint"]
        if value not in ("key", "key-operator", "exact"):
            raise ConfigValidationError(f"{prefix}.constraint", value, "must be key, key-operator or exact")
        rule.constraint = value

    if "field" in data:
        rule.field = _expect(f"{prefix}.field", data["field"], str, "must be a string")

    if "max" in data:
        rule.max = _expect(f"{prefix}.max", data["max"], int, "must be an integer")

    if "regex" in data:
        value = _expect(f"{prefix}.regex", data["regex"], str, "must be a string")
        try:
            re.compile(value)
        except re.error as e:
            raise ConfigValidationError(f"{prefix}.regex", value, f"invalid regular expression: {e}") from e
        rule.regex = value

    if "priority" in data:
        rule.priority = _expect(f"{prefix}.priority", data["priority"], int, "must be an integer")

    if "message" in data:
        rule.message = _expect(f"{prefix}.message", data["message"], str, "must be a string")

    if rule_type == "max_count" and "max" not in data:
        raise ConfigValidationError(f"{prefix}.max", None, "is required for max_count rules")
    if rule_type == "pattern" and (rule.field is None or rule.regex is None):
        raise ConfigValidationError(prefix, data, "pattern rules need both field and regex")

    return rule


def parse_config_dict(data: dict[str, Any], config_path: Path | None = None) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [editor] section
    editor = data.get("editor", {})
    if "delimiter" in editor:
        config.delimiter = _expect("editor.delimiter", editor["delimiter"], str, "must be a string")

    if "free_text_mode" in editor:
        config.free_text_mode = _expect(
            "editor.free_text_mode", editor["free_text_mode"], str, "must be a string"
        )

    if "allow_unknown_fields" in editor:
        config.allow_unknown_fields = _expect(
            "editor.allow_unknown_fields", editor["allow_unknown_fields"], bool, "must be a boolean"
        )

    if "unknown_field_operators" in editor:
        config.unknown_field_operators = _string_list(
            "editor.unknown_field_operators", editor["unknown_field_operators"]
        )

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        config.colored_output = _expect(
            "display.colored_output", display["colored_output"], bool, "must be a boolean"
        )

    # Parse [[fields]] and [[rules]] arrays
    fields = data.get("fields", [])
    if not isinstance(fields, list):
        raise ConfigValidationError("fields", fields, "must be an array of tables")
    config.fields = [_parse_field(i, item) for i, item in enumerate(fields)]

    rules = data.get("rules", [])
    if not isinstance(rules, list):
        raise ConfigValidationError("rules", rules, "must be an array of tables")
    config.rules = [_parse_rule(i, item) for i, item in enumerate(rules)]

    return config


def _field_to_dict(field_def: FieldDefinition) -> dict[str, Any]:
    data: dict[str, Any] = {"key": field_def.key}
    if field_def.label != field_def.key:
        data["label"] = field_def.label
    if field_def.type != "string":
        data["type"] = field_def.type
    if field_def.operators != ["is"]:
        data["operators"] = list(field_def.operators)
    if field_def.enum_values:
        data["enum_values"] = [
            ev.value if ev.label is None else {"value": ev.value, "label": ev.label}
            for ev in field_def.enum_values
        ]
    if field_def.immutable:
        data["immutable"] = True
    if field_def.validation:
        data["validation"] = dict(field_def.validation)
    for name, resolver in ENUM_RESOLVERS.items():
        if field_def.value_resolver is resolver and name != "case_insensitive":
            data["enum_match"] = name
    return data


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()

    # Ensure directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "editor": {
            "delimiter": config.delimiter,
            "free_text_mode": config.free_text_mode,
            "allow_unknown_fields": config.allow_unknown_fields,
        },
        "display": {
            "colored_output": config.colored_output,
        },
    }

    if config.unknown_field_operators is not None:
        data["editor"]["unknown_field_operators"] = list(config.unknown_field_operators)

    if config.fields:
        data["fields"] = [_field_to_dict(f) for f in config.fields]

    if config.rules:
        data["rules"] = [r.to_dict() for r in config.rules]

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
