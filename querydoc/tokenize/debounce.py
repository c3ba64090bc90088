"""Clock-driven debounce for typing-triggered tokenization.

No timers or threads are involved: the owner calls :meth:`Debouncer.poll`
from its event loop (or :meth:`Debouncer.flush` to run early).
"""

from __future__ import annotations

import time
from collections.abc import Callable

DEBOUNCE_MS = 50


class Debouncer:
    """Run the last scheduled callback once things have been quiet long enough.

    Args:
        delay_ms: Quiet period in milliseconds.
        clock: Returns the current time in seconds.
    """

    def __init__(self, delay_ms: int = DEBOUNCE_MS, clock: Callable[[], float] = time.monotonic) -> None:
        self.delay_ms = delay_ms
        self.clock = clock
        self._callback: Callable[[], None] | None = None
        self._deadline: float | None = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """Replace any pending callback and restart the quiet period."""
        self._callback = callback
        self._deadline = self.clock() + self.delay_ms / 1000

    def cancel(self) -> None:
        self._callback = None
        self._deadline = None

    def poll(self) -> bool:
        """Run the pending callback if its deadline has passed.

        Returns:
            True if the callback ran.
        """
        if self._callback is None or self._deadline is None:
            return False
        if self.clock() < self._deadline:
            return False
        return self.flush()

    def flush(self) -> bool:
        """Run the pending callback now, if there is one."""
        callback = self._callback
        self.cancel()
        if callback is None:
            return False
        callback()
        return True
