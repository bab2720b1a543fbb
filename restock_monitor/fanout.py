from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional, Protocol, Tuple

from .models import RestockEvent

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_TIMEOUT = 60.0


class Sink(Protocol):
    """Anything with ``queue.Queue.put`` semantics."""

    def put(self, item: Any, block: bool = True, timeout: Optional[float] = None) -> None:
        ...


class Outbox:
    """Leak-safe delivery of events to one subscriber's sink.

    A background thread hands events to the sink in the order they were
    sent. Every event has a deadline of ``timeout`` seconds from send();
    if the sink does not accept it by then it is dropped, so no delivery
    attempt outlives its timeout and a stuck sink never blocks the caller
    or any other subscriber."""

    def __init__(
        self,
        sink: Sink,
        timeout: float = DEFAULT_DELIVERY_TIMEOUT,
        name: str = "outbox",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._timeout = timeout
        self._clock = clock
        self._queue: "queue.Queue[Optional[Tuple[float, RestockEvent]]]" = queue.Queue()
        self._closed = False
        self.delivered = 0
        self.dropped = 0
        self._thread = threading.Thread(target=self._worker, name=name, daemon=True)
        self._thread.start()

    def send(self, event: RestockEvent) -> None:
        """Queue an event for delivery; never blocks."""
        if self._closed:
            return
        self._queue.put((self._clock() + self._timeout, event))

    def close(self) -> None:
        """Stop accepting events; pending ones still get until their deadline."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            deadline, event = item
            remaining = deadline - self._clock()
            if remaining <= 0:
                self._drop(event)
                continue
            try:
                self._sink.put(event, timeout=remaining)
                self.delivered += 1
            except queue.Full:
                self._drop(event)
            except Exception:  # noqa: BLE001
                logger.exception("Sink raised while delivering event for %s", event.path)
                self.dropped += 1

    def _drop(self, event: RestockEvent) -> None:
        self.dropped += 1
        logger.debug("Delivery timed out for %s, event dropped", event.path)
