"""Deletion ranges that include or exclude the spacers around tokens."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from querydoc.document import (
    Document,
    PlainText,
    Spacer,
    Transaction,
    is_spacer,
    is_text,
)


@dataclass
class SpacerRange:
    """A deletion range expanded over a token's spacers."""

    start: int
    end: int
    needs_space_separator: bool = False


def expand_with_spacers(doc: Document, pos: int, size: int) -> SpacerRange:
    """Extend a token span to swallow its adjacent spacers.

    ``needs_space_separator`` is set when both spacers were swallowed and
    words sit directly outside them, so removing the range would otherwise
    fuse the two. Text that already ends or starts with whitespace needs no
    separator.

    Args:
        doc: Document containing the token.
        pos: Token start position.
        size: Token size.

    Returns:
        The expanded range. Missing spacers are simply not included.
    """
    start = pos
    end = pos + size
    text_before = False
    text_after = False
    has_leading = False
    has_trailing = False

    rp_before = doc.safe_resolve(pos)
    if rp_before is not None and is_spacer(rp_before.node_before):
        has_leading = True
        start = pos - rp_before.node_before.size  # type: ignore[union-attr]
        outer = doc.safe_resolve(start)
        text_before = outer is not None and _ends_word(outer.node_before)

    rp_after = doc.safe_resolve(pos + size)
    if rp_after is not None and is_spacer(rp_after.node_after):
        has_trailing = True
        end = pos + size + rp_after.node_after.size  # type: ignore[union-attr]
        outer = doc.safe_resolve(end)
        text_after = outer is not None and _starts_word(outer.node_after)

    return SpacerRange(
        start=start,
        end=end,
        needs_space_separator=has_leading and has_trailing and text_before and text_after,
    )


def check_boundary_needs_space(doc: Document, start: int, end: int) -> bool:
    """True if words touch both ends of ``[start, end)``.

    Used on merged ranges, where adjacency may differ from the inputs.
    """
    rp_start = doc.safe_resolve(start)
    rp_end = doc.safe_resolve(end)
    if rp_start is None or rp_end is None:
        return False
    return _ends_word(rp_start.node_before) and _starts_word(rp_end.node_after)


def _ends_word(node: object) -> bool:
    return is_text(node) and not node.value[-1:].isspace()  # type: ignore[union-attr]


def _starts_word(node: object) -> bool:
    return is_text(node) and not node.value[:1].isspace()  # type: ignore[union-attr]


def apply_spacer_deletion(tr: Transaction, spacer_range: SpacerRange) -> None:
    """Delete ``spacer_range``, leaving a single space if words would fuse."""
    if spacer_range.start == spacer_range.end:
        return
    if spacer_range.needs_space_separator:
        tr.replace_with(spacer_range.start, spacer_range.end, [PlainText(" ")])
    else:
        tr.delete(spacer_range.start, spacer_range.end)


def merge_overlapping_ranges(ranges: Iterable[SpacerRange]) -> list[SpacerRange]:
    """Union of ranges sorted by start.

    Touching ranges are merged too. The separator flag of a merged range is
    only a hint; callers must recompute it with
    :func:`check_boundary_needs_space`.
    """
    ordered = sorted(ranges, key=lambda r: r.start)
    merged: list[SpacerRange] = []
    for rng in ordered:
        if merged and rng.start <= merged[-1].end:
            last = merged[-1]
            last.end = max(last.end, rng.end)
            last.needs_space_separator = last.needs_space_separator or rng.needs_space_separator
        else:
            merged.append(SpacerRange(rng.start, rng.end, rng.needs_space_separator))
    return merged


def insert_spacer(tr: Transaction, pos: int) -> None:
    tr.insert(pos, Spacer())


def find_spacer_violations(doc: Document) -> list[str]:
    """Describe every breach of the spacer invariant in ``doc``.

    Returns:
        Human readable problems; empty when the document is well formed.
    """
    problems: list[str] = []
    segments = doc.segments
    positions = [pos for pos, _ in doc.walk()]
    for i, seg in enumerate(segments):
        before = segments[i - 1] if i > 0 else None
        after = segments[i + 1] if i + 1 < len(segments) else None
        pos = positions[i]
        if is_spacer(seg):
            if not (_is_token_like(before) or _is_token_like(after)):
                problems.append(f"orphaned spacer at {pos}")
            continue
        if is_text(seg):
            if is_text(after) and not (
                seg.value.endswith(" ") or after.value.startswith(" ")  # type: ignore[union-attr]
            ):
                problems.append(f"text runs touching at {pos + seg.size}")
            continue
        if not is_spacer(before):
            problems.append(f"token at {pos} has no spacer before it")
        if not is_spacer(after):
            problems.append(f"token at {pos} has no spacer after it")
    return problems


def _is_token_like(segment: object) -> bool:
    return segment is not None and not is_spacer(segment) and not is_text(segment)
