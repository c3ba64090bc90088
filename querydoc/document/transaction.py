"""Transactions: batched document edits with position mapping and meta."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from querydoc.document.model import Document
from querydoc.document.segments import PlainText, Segment, Token, is_token
from querydoc.exceptions import PositionError

# Meta keys understood across the engine.
ADD_TO_HISTORY = "addToHistory"
HISTORY = "history"
COMPOSITION = "composition"
FORCE_VALIDATION_CHECK = "forceValidationCheck"
APPENDED_TRANSACTION = "appendedTransaction"
DRAGGING = "dragging"


@dataclass(frozen=True)
class StepMap:
    """Position map for one replace step: ``size`` units at ``start`` became ``new_size``."""

    start: int
    size: int
    new_size: int

    def map(self, pos: int, assoc: int = 1) -> tuple[int, bool]:
        """Map ``pos`` through this step.

        Returns:
            The mapped position and whether the position was deleted.
        """
        end = self.start + self.size
        if pos < self.start:
            return pos, False
        if pos > end:
            return pos - self.size + self.new_size, False
        if self.size == 0:
            side = assoc
        elif pos == self.start:
            side = -1
        elif pos == end:
            side = 1
        else:
            side = assoc
        deleted = self.start < pos < end
        return (self.start if side < 0 else self.start + self.new_size), deleted


@dataclass
class Mapping:
    """Sequence of step maps accumulated by a transaction."""

    maps: list[StepMap] = field(default_factory=list)

    def append(self, step_map: StepMap) -> None:
        self.maps.append(step_map)

    def map(self, pos: int, assoc: int = 1) -> int:
        return self.map_result(pos, assoc)[0]

    def map_result(self, pos: int, assoc: int = 1) -> tuple[int, bool]:
        deleted = False
        for step_map in self.maps:
            pos, was_deleted = step_map.map(pos, assoc)
            deleted = deleted or was_deleted
        return pos, deleted

    def slice(self, start: int) -> Mapping:
        """Mapping of the steps from index ``start`` on."""
        return Mapping(self.maps[start:])


@dataclass(frozen=True)
class Selection:
    """Text selection; ``anchor`` stays put while ``head`` moves."""

    anchor: int
    head: int

    @classmethod
    def cursor(cls, pos: int) -> Selection:
        return cls(pos, pos)

    @property
    def start(self) -> int:
        return min(self.anchor, self.head)

    @property
    def end(self) -> int:
        return max(self.anchor, self.head)

    @property
    def empty(self) -> bool:
        return self.anchor == self.head

    def map(self, mapping: Mapping) -> Selection:
        return Selection(mapping.map(self.anchor), mapping.map(self.head))

    def clamp(self, doc: Document) -> Selection:
        return Selection(
            min(max(self.anchor, 0), doc.size),
            min(max(self.head, 0), doc.size),
        )


class Transaction:
    """A batch of edits against a starting document.

    Steps apply immediately to ``doc``; ``mapping`` records how positions in
    the starting document move. The selection is mapped through every step
    unless it was set explicitly.
    """

    def __init__(self, doc: Document, selection: Selection | None = None) -> None:
        self.before = doc
        self.doc = doc
        self.mapping = Mapping()
        self._selection = selection
        self._selection_set = False
        self._meta: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------

    def set_meta(self, key: str, value: Any) -> Transaction:
        self._meta[key] = value
        return self

    def get_meta(self, key: str) -> Any:
        return self._meta.get(key)

    def has_meta(self, key: str) -> bool:
        return key in self._meta

    @property
    def doc_changed(self) -> bool:
        return bool(self.mapping.maps) and self.doc != self.before

    @property
    def add_to_history(self) -> bool:
        return self._meta.get(ADD_TO_HISTORY, True) is not False

    @property
    def is_history_operation(self) -> bool:
        return self._meta.get(HISTORY) is not None

    @property
    def is_composing(self) -> bool:
        return bool(self._meta.get(COMPOSITION))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selection(self) -> Selection | None:
        """Selection after this transaction (mapped unless explicitly set)."""
        return self._selection

    @property
    def selection_set(self) -> bool:
        return self._selection_set

    def set_selection(self, selection: Selection) -> Transaction:
        self._selection = selection.clamp(self.doc)
        self._selection_set = True
        return self

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _step(self, start: int, end: int, new_doc: Document) -> None:
        new_size = new_doc.size - (self.doc.size - (end - start))
        step_map = StepMap(start, end - start, new_size)
        self.doc = new_doc
        self.mapping.append(step_map)
        if self._selection is not None:
            self._selection = Selection(
                step_map.map(self._selection.anchor)[0],
                step_map.map(self._selection.head)[0],
            )

    def replace_with(self, start: int, end: int, content: Iterable[Segment]) -> Transaction:
        content = list(content)
        self._step(start, end, self.doc.replace(start, end, content))
        return self

    def delete(self, start: int, end: int, *, join_text: bool = False) -> Transaction:
        if start == end:
            return self
        self._step(start, end, self.doc.replace(start, end, (), join_text=join_text))
        return self

    def insert(self, pos: int, content: Segment | Iterable[Segment]) -> Transaction:
        if not isinstance(content, Iterable):
            content = [content]
        return self.replace_with(pos, pos, content)

    def insert_text(self, text: str, start: int, end: int | None = None) -> Transaction:
        """Insert ``text`` at ``start`` (replacing up to ``end``), extending the adjacent text run."""
        end = start if end is None else end
        if not text and start == end:
            return self
        new_doc = self.doc.replace(start, end, [PlainText(text)], join_text=True)
        self._step(start, end, new_doc)
        return self

    def set_token_attrs(self, pos: int, **attrs: Any) -> Transaction:
        """Update attributes of the token at ``pos``.

        Raises:
            PositionError: If no token starts at ``pos``.
        """
        node = self.doc.node_at(pos)
        if not is_token(node):
            raise PositionError(pos, "no token at position")
        updated: Token = replace(node, **attrs)  # type: ignore[type-var]
        if updated == node:
            return self
        self._step(pos, pos + node.size, self.doc.set_segment(pos, updated))  # type: ignore[union-attr]
        return self

    def replace_document(self, doc: Document) -> Transaction:
        """Swap the whole document, as history restores do."""
        self._step(0, self.doc.size, doc)
        return self
