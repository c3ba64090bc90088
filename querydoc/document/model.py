"""Immutable document of segments with position resolution."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from querydoc.document.segments import (
    PlainText,
    Segment,
    Token,
    is_spacer,
    is_text,
    is_token,
)
from querydoc.exceptions import PositionError

# Placeholder for spacers and tokens when a document is read as text.
LEAF_TEXT = "\ufffc"


@dataclass(frozen=True)
class ResolvedPos:
    """A position resolved against a document.

    ``node_before``/``node_after`` are the segments touching the position.
    Inside a text run they are the partial runs on either side, like a
    text editor would report them. Strictly inside a token both are None and
    ``parent_token`` holds the enclosing token.
    """

    pos: int
    index: int
    offset: int
    node_before: Segment | None
    node_after: Segment | None
    parent_token: Token | None = None
    token_pos: int | None = None

    @property
    def inside_token(self) -> bool:
        return self.parent_token is not None


class Document:
    """Ordered segments inside a single container.

    Documents are values: every edit produces a new instance. Adjacent text
    runs are kept as given; only text edits join them.
    """

    __slots__ = ("_segments", "_starts", "_size")

    def __init__(self, segments: Iterable[Segment] = ()) -> None:
        self._segments: tuple[Segment, ...] = tuple(
            s for s in segments if not (is_text(s) and not s.value)  # type: ignore[union-attr]
        )
        starts: list[int] = []
        offset = 0
        for seg in self._segments:
            starts.append(offset)
            offset += seg.size
        self._starts = starts
        self._size = offset

    # ------------------------------------------------------------------
    # Basic accessors
    # ------------------------------------------------------------------

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return len(self._segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)

    def __repr__(self) -> str:
        return f"Document({list(self._segments)!r})"

    def walk(self) -> Iterator[tuple[int, Segment]]:
        """Yield ``(pos, segment)`` pairs in document order."""
        yield from zip(self._starts, self._segments)

    def tokens(self) -> list[tuple[int, Token]]:
        return [(pos, seg) for pos, seg in self.walk() if is_token(seg)]  # type: ignore[misc]

    def spacers(self) -> list[int]:
        return [pos for pos, seg in self.walk() if is_spacer(seg)]

    def count_tokens(self) -> int:
        return sum(1 for seg in self._segments if is_token(seg))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _locate(self, pos: int) -> tuple[int, int]:
        """Return ``(index, offset)`` for ``pos``.

        ``offset`` is 0 when ``pos`` is a segment boundary, in which case
        ``index`` is the segment starting there (or ``len`` at the end).
        """
        if pos < 0 or pos > self._size:
            raise PositionError(pos, f"outside document of size {self._size}")
        index = bisect.bisect_right(self._starts, pos) - 1
        if index < 0:
            return 0, 0
        start = self._starts[index]
        if pos == start:
            return index, 0
        seg = self._segments[index]
        if pos < start + seg.size:
            return index, pos - start
        return index + 1, 0

    def resolve(self, pos: int) -> ResolvedPos:
        """Resolve ``pos``.

        Raises:
            PositionError: If ``pos`` lies outside the document.
        """
        index, offset = self._locate(pos)
        if offset:
            seg = self._segments[index]
            if is_token(seg):
                return ResolvedPos(
                    pos=pos,
                    index=index,
                    offset=offset,
                    node_before=None,
                    node_after=None,
                    parent_token=seg,  # type: ignore[arg-type]
                    token_pos=self._starts[index],
                )
            value = seg.value  # type: ignore[union-attr]
            return ResolvedPos(
                pos=pos,
                index=index,
                offset=offset,
                node_before=PlainText(value[:offset]),
                node_after=PlainText(value[offset:]),
            )
        before = self._segments[index - 1] if index > 0 else None
        after = self._segments[index] if index < len(self._segments) else None
        return ResolvedPos(pos=pos, index=index, offset=0, node_before=before, node_after=after)

    def safe_resolve(self, pos: int) -> ResolvedPos | None:
        """Resolve ``pos``, returning None instead of raising for stale positions."""
        try:
            return self.resolve(pos)
        except PositionError:
            return None

    def node_at(self, pos: int) -> Segment | None:
        """Return the segment starting at ``pos`` or the text run containing it."""
        rp = self.safe_resolve(pos)
        if rp is None:
            return None
        if rp.offset:
            seg = self._segments[rp.index]
            return seg if is_text(seg) else None
        return rp.node_after

    def segment_range(self, index: int) -> tuple[int, int]:
        start = self._starts[index]
        return start, start + self._segments[index].size

    def text_before(self, pos: int) -> str:
        """Text content from the start up to ``pos``.

        Spacers and tokens read as ``LEAF_TEXT``.
        """
        return self.text_between(0, pos)

    def text_between(self, start: int, end: int, leaf_text: str = LEAF_TEXT) -> str:
        parts: list[str] = []
        for seg_pos, seg in self.walk():
            seg_end = seg_pos + seg.size
            if seg_end <= start:
                continue
            if seg_pos >= end:
                break
            if is_text(seg):
                lo = max(start, seg_pos) - seg_pos
                hi = min(end, seg_end) - seg_pos
                parts.append(seg.value[lo:hi])  # type: ignore[union-attr]
            else:
                parts.append(leaf_text)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def replace(
        self,
        start: int,
        end: int,
        content: Iterable[Segment] = (),
        *,
        join_text: bool = False,
    ) -> Document:
        """Return a new document with ``[start, end)`` replaced by ``content``.

        Text runs split by the range are rejoined with adjacent text content.
        With ``join_text`` the inserted text also joins whole neighbouring
        text runs, the way typing extends the run under the cursor.

        Raises:
            PositionError: If the range is out of bounds, inverted, or cuts
                through a token.
        """
        if start > end:
            raise PositionError(start, f"range start is after end {end}")
        i_start, off_start = self._locate(start)
        i_end, off_end = self._locate(end)
        for index, offset, pos in ((i_start, off_start, start), (i_end, off_end, end)):
            if offset and not is_text(self._segments[index]):
                raise PositionError(pos, "range boundary inside a token")

        parts: list[Segment] = list(self._segments[:i_start])
        seams: set[int] = set()
        if join_text:
            seams.add(len(parts))
        if off_start:
            parts.append(PlainText(self._segments[i_start].value[:off_start]))  # type: ignore[union-attr]
            seams.add(len(parts))
        parts.extend(content)
        if off_end:
            seams.add(len(parts))
            parts.append(PlainText(self._segments[i_end].value[off_end:]))  # type: ignore[union-attr]
            rest = self._segments[i_end + 1 :]
        else:
            if join_text:
                seams.add(len(parts))
            rest = self._segments[i_end:]
        parts.extend(rest)

        for k in sorted(seams, reverse=True):
            if 0 < k < len(parts) and is_text(parts[k - 1]) and is_text(parts[k]):
                parts[k - 1] = PlainText(parts[k - 1].value + parts[k].value)  # type: ignore[union-attr]
                del parts[k]
        return Document(parts)

    def set_segment(self, pos: int, segment: Segment) -> Document:
        """Swap the segment starting at ``pos`` for one of the same size."""
        index, offset = self._locate(pos)
        if offset or index >= len(self._segments):
            raise PositionError(pos, "no segment starts here")
        if self._segments[index].size != segment.size:
            raise PositionError(pos, "replacement changes segment size")
        parts = list(self._segments)
        parts[index] = segment
        return Document(parts)
