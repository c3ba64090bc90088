"""Errors raised by querydoc.

Structural problems in a document are repaired, not raised, and rule
violations end up as token marks. What remains are setup errors (bad
config, bad delimiter, bad field definitions) and misuse of positions by
callers.
"""

from pathlib import Path


class QueryDocError(Exception):
    """Root of every querydoc error; catch this to handle them all."""


class ConfigError(QueryDocError):
    """The configuration cannot be used."""


class ConfigParseError(ConfigError):
    """The config file is not valid TOML."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """A config value has the wrong type or an unknown setting.

    ``key`` is the dotted location in the file, e.g. ``rules[0].max``.
    """

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


class DelimiterConfigError(ConfigError):
    """Token delimiter is not exactly one usable character.

    Raised when an editor or parser is constructed, never at edit time.
    """

    def __init__(self, delimiter: object, reason: str = "must be a single character") -> None:
        self.delimiter = delimiter
        self.reason = reason
        super().__init__(f"Invalid token delimiter {delimiter!r}: {reason}")


class ValidationError(QueryDocError):
    """A field definition built in code is unusable."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class QueryParseError(QueryDocError):
    """The grammar could not split a query string into items."""

    def __init__(self, query: str, message: str) -> None:
        self.query = query
        super().__init__(f"Failed to parse query '{query}': {message}")


class PositionError(QueryDocError):
    """A caller passed a position or range the document cannot resolve."""

    def __init__(self, pos: int, reason: str) -> None:
        self.pos = pos
        self.reason = reason
        super().__init__(f"Cannot resolve position {pos}: {reason}")
