"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from querydoc.document import Document, FilterToken, FreeTextToken, PlainText, Spacer
from querydoc.fields import EnumValue, FieldDefinition

if TYPE_CHECKING:
    from querydoc.editor import Editor


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Scratch directory for config files, unique per test."""
    return tmp_path


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Config with two fields, a replacing unique rule and a tag limit."""
    path = temp_dir / "querydoc.toml"
    path.write_text("""[editor]
delimiter = ":"
free_text_mode = "tokenize"

[display]
colored_output = false

[[fields]]
key = "status"
type = "enum"
operators = ["is", "is_not"]
enum_values = ["active", { value = "inactive", label = "Inactive" }]

[[fields]]
key = "tag"
operators = ["is", "contains"]
validation = { "unique-key" = false }

[[rules]]
type = "unique"
constraint = "key"
strategy = "replace"

[[rules]]
type = "max_count"
field = "tag"
max = 2
""")
    return path


@pytest.fixture
def fields() -> list[FieldDefinition]:
    """Field definitions used across the engine tests."""
    return [
        FieldDefinition(
            key="status",
            label="Status",
            type="enum",
            operators=["is", "is_not"],
            enum_values=[EnumValue("active", "Active"), EnumValue("inactive", "Inactive")],
        ),
        FieldDefinition(key="tag", label="Tag", operators=["is", "contains"]),
        FieldDefinition(key="email", label="Email", operators=["is", "ends_with"]),
        FieldDefinition(key="owner", label="Owner", immutable=True),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_editor(fields: list[FieldDefinition], clock: FakeClock) -> Callable[..., Editor]:
    """Build an editor over the shared fields with the fake clock."""
    from querydoc.editor import Editor

    def factory(value: str = "", **kwargs: Any) -> Editor:
        kwargs.setdefault("clock", clock)
        editor = Editor(fields, value=value, **kwargs)
        editor.focus()
        return editor

    return factory


def spaced(*items: Any) -> Document:
    """Document from tokens and strings, each token wrapped in its own spacers."""
    segments: list[Any] = []
    for item in items:
        if isinstance(item, str):
            segments.append(PlainText(item))
        elif isinstance(item, (FilterToken, FreeTextToken)):
            segments.extend((Spacer(), item, Spacer()))
        else:
            segments.append(item)
    return Document(segments)


@pytest.fixture
def build_doc() -> Callable[..., Document]:
    return spaced
