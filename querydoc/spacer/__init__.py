"""Spacer boundary primitives used by repair, validation and key handling."""

from querydoc.spacer.deletion import (
    SpacerRange,
    apply_spacer_deletion,
    check_boundary_needs_space,
    expand_with_spacers,
    find_spacer_violations,
    insert_spacer,
    merge_overlapping_ranges,
)

__all__ = [
    "SpacerRange",
    "apply_spacer_deletion",
    "check_boundary_needs_space",
    "expand_with_spacers",
    "find_spacer_violations",
    "insert_spacer",
    "merge_overlapping_ranges",
]
