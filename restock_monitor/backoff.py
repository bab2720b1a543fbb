from __future__ import annotations

import random
from typing import Iterator


class Backoff:
    """Exponential retry delays with up to 10% jitter, capped at ``max_seconds``."""

    def __init__(self, base_seconds: float = 1.0, max_seconds: float = 10.0, attempts: int = 3) -> None:
        self.base_seconds = base_seconds
        self.max_seconds = max_seconds
        self.attempts = max(1, attempts)

    def delay(self, attempt: int) -> float:
        """Sleep before retry number ``attempt`` (1-based)."""
        exp = min(self.max_seconds, self.base_seconds * (2 ** max(attempt - 1, 0)))
        return exp + random.uniform(0, exp * 0.1)

    def __iter__(self) -> Iterator[float]:
        """Delays between consecutive attempts (``attempts - 1`` values)."""
        for attempt in range(1, self.attempts):
            yield self.delay(attempt)
