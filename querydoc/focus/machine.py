"""Focus state machine for a single token component.

The document-level state in :mod:`querydoc.focus.state` says *which* token
is focused. This reducer tracks how focus travels *inside* that token::

    inactive -> pending-entry -> active -> exiting -> inactive

A host renders one machine per token and feeds it actions as focus events
arrive.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Union

from querydoc.focus.state import CursorEntry, CursorPosition

FocusType = Literal["first", "last", "entry-first", "entry-last"]
ExitDirection = Literal["left", "right"]
EntryDirection = Literal["from-left", "from-right", None]


@dataclass(frozen=True)
class ClickEntry:
    """Token entered with the pointer."""


TokenEntry = Union[CursorEntry, ClickEntry]


@dataclass(frozen=True)
class Inactive:
    status: str = "inactive"


@dataclass(frozen=True)
class PendingEntry:
    focus_type: FocusType
    position: CursorPosition
    direction: EntryDirection
    status: str = "pending-entry"


@dataclass(frozen=True)
class Active:
    focus_id: str
    direction: EntryDirection
    status: str = "active"


@dataclass(frozen=True)
class Exiting:
    exit_direction: ExitDirection
    status: str = "exiting"


ComponentState = Union[Inactive, PendingEntry, Active, Exiting]


# Actions


@dataclass(frozen=True)
class PluginFocusGained:
    entry: TokenEntry


@dataclass(frozen=True)
class PendingFocusExecuted:
    focus_id: str


@dataclass(frozen=True)
class ChildFocused:
    id: str


@dataclass(frozen=True)
class PluginFocusLost:
    pass


@dataclass(frozen=True)
class ExitRequested:
    direction: ExitDirection


@dataclass(frozen=True)
class ExitCompleted:
    pass


@dataclass(frozen=True)
class EditorDisabled:
    pass


FocusAction = Union[
    PluginFocusGained,
    PendingFocusExecuted,
    ChildFocused,
    PluginFocusLost,
    ExitRequested,
    ExitCompleted,
    EditorDisabled,
]


def create_initial_state() -> ComponentState:
    return Inactive()


def _focus_from_entry(entry: TokenEntry) -> PendingEntry:
    if not isinstance(entry, CursorEntry):
        return PendingEntry(focus_type="entry-first", position="end", direction=None)
    if entry.direction == "from-left":
        return PendingEntry(
            focus_type="entry-first" if entry.policy == "entry" else "first",
            position="start",
            direction="from-left",
        )
    return PendingEntry(
        focus_type="entry-last" if entry.policy == "entry" else "last",
        position="end",
        direction="from-right",
    )


def token_focus_reducer(state: ComponentState, action: FocusAction) -> ComponentState:
    """Apply ``action`` to ``state``. Invalid transitions return ``state`` unchanged."""
    if isinstance(action, PluginFocusGained):
        if not isinstance(state, Inactive):
            return state
        return _focus_from_entry(action.entry)

    if isinstance(action, PendingFocusExecuted):
        if not isinstance(state, PendingEntry):
            return state
        return Active(focus_id=action.focus_id, direction=state.direction)

    if isinstance(action, ChildFocused):
        if isinstance(state, PendingEntry):
            return Active(focus_id=action.id, direction=state.direction)
        if isinstance(state, Active):
            return replace(state, focus_id=action.id)
        return state

    if isinstance(action, PluginFocusLost):
        # An exit in progress finishes on its own.
        if isinstance(state, Exiting):
            return state
        return Inactive()

    if isinstance(action, ExitRequested):
        if isinstance(state, (Active, PendingEntry)):
            return Exiting(exit_direction=action.direction)
        return state

    if isinstance(action, ExitCompleted):
        if not isinstance(state, Exiting):
            return state
        return Inactive()

    if isinstance(action, EditorDisabled):
        return Inactive()

    raise TypeError(f"Unknown focus action: {action!r}")


def is_focused(state: ComponentState) -> bool:
    return isinstance(state, (Active, PendingEntry))


def get_current_focus_id(state: ComponentState) -> str | None:
    return state.focus_id if isinstance(state, Active) else None


def get_entry_direction(state: ComponentState) -> EntryDirection:
    if isinstance(state, (Active, PendingEntry)):
        return state.direction
    return None


def get_pending_focus(state: ComponentState) -> tuple[FocusType, CursorPosition] | None:
    if isinstance(state, PendingEntry):
        return state.focus_type, state.position
    return None


def get_exit_direction(state: ComponentState) -> ExitDirection | None:
    return state.exit_direction if isinstance(state, Exiting) else None


@dataclass
class EscapeHandler:
    """Two-stage Escape inside a focused token.

    The first press closes an open suggestion list; the next one leaves the
    token.
    """

    suggestion_open: bool = False

    def press(self) -> Literal["close-suggestion", "exit-token"]:
        if self.suggestion_open:
            self.suggestion_open = False
            return "close-suggestion"
        return "exit-token"
