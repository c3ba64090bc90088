"""Pointer drag tracking with a movement threshold."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_DRAG_THRESHOLD = 5
PRIMARY_BUTTON = 1


def _noop(*args: object) -> None:
    return None


@dataclass
class DragCallbacks:
    """Lifecycle hooks.

    Attributes:
        on_drag_start: The pointer moved past the threshold.
        on_drag_move: Called with the document position under the pointer.
        on_drag_end: Called once with whether the gesture was a drag.
        on_cleanup: Called exactly once when the gesture ends.
    """

    on_drag_start: Callable[[], None] = _noop
    on_drag_move: Callable[[int], None] = _noop
    on_drag_end: Callable[[bool], None] = _noop
    on_cleanup: Callable[[], None] = _noop


@dataclass
class DragTracker:
    """Track one pointer gesture from press to release.

    The host feeds pointer events in; the tracker decides whether the
    gesture is a click or a drag. Releasing the button, losing window focus
    or a move with the button already up all end the gesture, and cleanup
    runs only once however many of them arrive.
    """

    start_x: float
    start_y: float
    pos_at_coords: Callable[[float, float], "int | None"]
    callbacks: DragCallbacks = field(default_factory=DragCallbacks)
    threshold: float = DEFAULT_DRAG_THRESHOLD
    is_dragging: bool = field(default=False, init=False)
    cleaned_up: bool = field(default=False, init=False)

    def move(self, x: float, y: float, buttons: int = PRIMARY_BUTTON) -> None:
        if self.cleaned_up or not buttons & PRIMARY_BUTTON:
            self._cleanup(from_mouse_up=False)
            return

        if not self.is_dragging and (
            abs(x - self.start_x) > self.threshold or abs(y - self.start_y) > self.threshold
        ):
            self.is_dragging = True
            logger.debug("Drag threshold exceeded at (%s, %s)", x, y)
            self.callbacks.on_drag_start()

        if self.is_dragging:
            pos = self.pos_at_coords(x, y)
            if pos is not None:
                self.callbacks.on_drag_move(pos)

    def mouse_up(self) -> None:
        if self.cleaned_up:
            return
        was_drag = self.is_dragging
        self._cleanup(from_mouse_up=True)
        self.callbacks.on_drag_end(was_drag)

    def window_blur(self) -> None:
        self._cleanup(from_mouse_up=False)

    def cleanup(self) -> None:
        self._cleanup(from_mouse_up=False)

    def _cleanup(self, from_mouse_up: bool) -> None:
        if self.cleaned_up:
            return
        self.cleaned_up = True
        # No mouseup will follow, so the gesture end is reported here.
        if not from_mouse_up:
            self.callbacks.on_drag_end(self.is_dragging)
        self.callbacks.on_cleanup()
