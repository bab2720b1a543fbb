from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Throttle:
    """Start-to-start request spacing for a single poller.

    wait() blocks until ``delay`` seconds have passed since the last
    mark(), i.e. since the previous request *started*, so a slow response
    does not stretch the polling interval. The first wait never blocks."""

    def __init__(self, delay: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._delay = max(0.0, delay)
        self._clock = clock
        self._last_start: Optional[float] = None

    def remaining(self) -> float:
        if self._last_start is None:
            return 0.0
        return max(0.0, self._last_start + self._delay - self._clock())

    def wait(self, cancel: Optional[threading.Event] = None) -> bool:
        """Sleep out the interval; returns False if ``cancel`` fired meanwhile."""
        remaining = self.remaining()
        if cancel is None:
            if remaining > 0:
                time.sleep(remaining)
            return True
        if remaining > 0:
            return not cancel.wait(remaining)
        return not cancel.is_set()

    def mark(self) -> None:
        """Record the start of a request."""
        self._last_start = self._clock()
