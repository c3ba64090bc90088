"""Token focus: document-level focus state and the per-token component machine."""

from querydoc.focus.machine import (
    Active,
    ChildFocused,
    ClickEntry,
    EditorDisabled,
    EscapeHandler,
    ExitCompleted,
    Exiting,
    ExitRequested,
    Inactive,
    PendingEntry,
    PendingFocusExecuted,
    PluginFocusGained,
    PluginFocusLost,
    create_initial_state,
    get_current_focus_id,
    get_entry_direction,
    get_exit_direction,
    get_pending_focus,
    is_focused,
    token_focus_reducer,
)
from querydoc.focus.state import (
    EXITING_TOKEN,
    TOKEN_FOCUS,
    TOKEN_FOCUS_CHANGED,
    TOKEN_FOCUS_STEP,
    UNFOCUSED,
    CursorEntry,
    CursorPosition,
    TokenFocusState,
    apply_token_focus,
    get_token_focus_meta,
    is_cursor_entry,
    set_token_focus,
)

__all__ = [
    "Active",
    "ChildFocused",
    "ClickEntry",
    "CursorEntry",
    "CursorPosition",
    "EXITING_TOKEN",
    "EditorDisabled",
    "EscapeHandler",
    "ExitCompleted",
    "ExitRequested",
    "Exiting",
    "Inactive",
    "PendingEntry",
    "PendingFocusExecuted",
    "PluginFocusGained",
    "PluginFocusLost",
    "TOKEN_FOCUS",
    "TOKEN_FOCUS_CHANGED",
    "TOKEN_FOCUS_STEP",
    "TokenFocusState",
    "UNFOCUSED",
    "apply_token_focus",
    "create_initial_state",
    "get_current_focus_id",
    "get_entry_direction",
    "get_exit_direction",
    "get_pending_focus",
    "get_token_focus_meta",
    "is_cursor_entry",
    "is_focused",
    "set_token_focus",
    "token_focus_reducer",
]
