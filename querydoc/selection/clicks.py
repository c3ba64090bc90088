"""Pointer positions: spacer clicks, shift-click heads and cursor normalization."""

from __future__ import annotations

from dataclasses import dataclass

from querydoc.document import Document, Segment, Transaction, is_spacer, is_text, is_token
from querydoc.spacer import insert_spacer


@dataclass(frozen=True)
class SpacerClickResolution:
    target_pos: int
    spacer_inserted: bool = False


def resolve_spacer_click_target(
    doc: Document,
    pos: int,
    tr: Transaction | None = None,
    *,
    allow_spacer_insertion: bool = False,
) -> SpacerClickResolution | None:
    """Where the cursor goes for a click next to a spacer.

    Between two spacers the click position is kept. Next to a single spacer
    the cursor moves to a neighbouring valid position. When the click lands
    between a token and a spacer that fronts another token, a missing
    spacer is inserted into ``tr`` (if allowed) so the cursor has somewhere
    to rest.

    Returns:
        The resolution, or None when ``pos`` does not touch a spacer.
    """
    rp = doc.safe_resolve(pos)
    if rp is None:
        return None
    before, after = rp.node_before, rp.node_after
    before_is_spacer = is_spacer(before)
    after_is_spacer = is_spacer(after)
    if not before_is_spacer and not after_is_spacer:
        return None

    if before_is_spacer and after_is_spacer:
        return SpacerClickResolution(pos)
    if before_is_spacer:
        return _resolve_spacer_before(doc, pos, tr, before, after, allow_spacer_insertion)  # type: ignore[arg-type]
    return _resolve_spacer_after(doc, pos, tr, before, after, allow_spacer_insertion)  # type: ignore[arg-type]


def _resolve_spacer_before(
    doc: Document,
    pos: int,
    tr: Transaction | None,
    spacer: Segment,
    after: Segment | None,
    allow_insertion: bool,
) -> SpacerClickResolution:
    before_spacer = pos - spacer.size
    rp = doc.safe_resolve(before_spacer)
    if rp is None:
        return SpacerClickResolution(pos)
    outer = rp.node_before

    if is_token(outer):
        if is_spacer(after):
            return SpacerClickResolution(pos)
        if after is None:
            return SpacerClickResolution(doc.size)
        if is_token(after) and allow_insertion and tr is not None:
            insert_spacer(tr, pos)
            return SpacerClickResolution(pos, spacer_inserted=True)
        if is_text(after):
            return SpacerClickResolution(pos)
        return SpacerClickResolution(doc.size)

    if outer is None:
        return SpacerClickResolution(0)
    if is_text(outer):
        return SpacerClickResolution(pos)
    return SpacerClickResolution(before_spacer)


def _resolve_spacer_after(
    doc: Document,
    pos: int,
    tr: Transaction | None,
    before: Segment | None,
    spacer: Segment,
    allow_insertion: bool,
) -> SpacerClickResolution:
    after_spacer = pos + spacer.size
    rp = doc.safe_resolve(after_spacer)
    if rp is None:
        return SpacerClickResolution(pos)
    outer = rp.node_after

    if is_token(outer):
        if is_spacer(before):
            return SpacerClickResolution(pos)
        if before is None:
            return SpacerClickResolution(0)
        if is_token(before) and allow_insertion and tr is not None:
            insert_spacer(tr, pos)
            return SpacerClickResolution(pos, spacer_inserted=True)
        if is_text(before):
            return SpacerClickResolution(pos)
        return SpacerClickResolution(0)

    if outer is None:
        return SpacerClickResolution(doc.size)
    if is_text(outer):
        return SpacerClickResolution(pos)
    return SpacerClickResolution(after_spacer)


def calculate_shift_click_head(
    doc: Document,
    click_pos: int,
    anchor: int,
    clicked_on_token: bool,
) -> int | None:
    """Selection head for a shift-click at a spacer or token boundary.

    A click on a token pulls the whole token into the selection: its end for
    a forward selection, its start for a backward one.

    Returns:
        The new head, or None when the click is in plain text and the host
        should extend the selection itself.
    """
    rp = doc.safe_resolve(click_pos)
    if rp is None:
        return None
    before, after = rp.node_before, rp.node_after
    if not (is_spacer(before) or is_spacer(after) or is_token(before) or is_token(after)):
        return None

    if clicked_on_token:
        if anchor <= click_pos and is_token(after):
            return click_pos + after.size  # type: ignore[union-attr]
        if anchor > click_pos and is_token(before):
            return click_pos - before.size  # type: ignore[union-attr]
    return click_pos


def normalize_cursor_position(doc: Document, pos: int) -> int:
    """Move an externally computed position to a valid cursor spot.

    Valid spots are between two spacers, before the first spacer, after the
    last one, or anywhere in plain text. Positions inside a token go to the
    nearer side (ties to the start).
    """
    rp = doc.safe_resolve(pos)
    if rp is None:
        return pos

    if rp.parent_token is not None and rp.token_pos is not None:
        token_pos = rp.token_pos
        token_end = token_pos + rp.parent_token.size
        if pos - token_pos <= token_end - pos:
            return _valid_position_before(doc, token_pos)
        return _valid_position_after(doc, token_end)

    before, after = rp.node_before, rp.node_after
    if is_spacer(before) and is_spacer(after):
        return pos
    if before is None and is_spacer(after):
        return pos
    if is_spacer(before) and after is None:
        return pos
    if is_token(before) and is_spacer(after):
        return pos + after.size  # type: ignore[union-attr]
    if is_spacer(before) and is_token(after):
        return pos - before.size  # type: ignore[union-attr]
    if is_token(after):
        return _valid_position_before(doc, pos)
    if is_token(before):
        return _valid_position_after(doc, pos)
    return pos


def _valid_position_before(doc: Document, pos: int) -> int:
    rp = doc.safe_resolve(pos)
    if rp is None:
        return pos
    if is_spacer(rp.node_before):
        return pos - rp.node_before.size  # type: ignore[union-attr]
    return 0


def _valid_position_after(doc: Document, pos: int) -> int:
    rp = doc.safe_resolve(pos)
    if rp is None:
        return pos
    if is_spacer(rp.node_after):
        return pos + rp.node_after.size  # type: ignore[union-attr]
    return doc.size
