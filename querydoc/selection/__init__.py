"""Cursor and selection rules around tokens and spacers."""

from querydoc.selection.clicks import (
    SpacerClickResolution,
    calculate_shift_click_head,
    normalize_cursor_position,
    resolve_spacer_click_target,
)
from querydoc.selection.drag import DEFAULT_DRAG_THRESHOLD, DragCallbacks, DragTracker
from querydoc.selection.guard import (
    SELECTION_GUARD_KEY_SPECS,
    SELECTION_GUARD_META,
    KeyPress,
    KeySpec,
    collapse_on_blur,
    exit_token_left,
    exit_token_right,
    expand_selection_for_deletion,
    find_next_selectable_position,
    handle_key,
    handle_token_entry,
)
from querydoc.selection.invariant import (
    SELECTION_INVARIANT_META,
    FocusAction,
    InsideTokenInfo,
    MoveAction,
    SelectAction,
    SelectionInvariantStage,
    enforce_selection_invariant,
    find_spacer_after,
    find_spacer_before,
    get_cursor_inside_token,
)

__all__ = [
    "DEFAULT_DRAG_THRESHOLD",
    "SELECTION_GUARD_KEY_SPECS",
    "SELECTION_GUARD_META",
    "SELECTION_INVARIANT_META",
    "DragCallbacks",
    "DragTracker",
    "FocusAction",
    "InsideTokenInfo",
    "KeyPress",
    "KeySpec",
    "MoveAction",
    "SelectAction",
    "SelectionInvariantStage",
    "SpacerClickResolution",
    "calculate_shift_click_head",
    "collapse_on_blur",
    "enforce_selection_invariant",
    "exit_token_left",
    "exit_token_right",
    "expand_selection_for_deletion",
    "find_next_selectable_position",
    "find_spacer_after",
    "find_spacer_before",
    "get_cursor_inside_token",
    "handle_key",
    "handle_token_entry",
    "normalize_cursor_position",
    "resolve_spacer_click_target",
]
