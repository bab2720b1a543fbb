from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Dict, Optional

from .errors import MalformedPayloadError, MonitorError, TransportError
from .models import RestockEvent, SkuState
from .session import BuildIdCache
from .stock import build_event, diff_sizes, parse_product
from .throttle import Throttle
from .transport import Transport

logger = logging.getLogger(__name__)

EmitFn = Callable[["Poller", RestockEvent], None]


class Poller:
    """Polling loop for one product path, run on its own thread.

    The SKU state map and the HTTP client belong to this poller alone.
    Status handling:
        200 -- diff sizes and emit a RestockEvent if anything restocked
        403 -- the client is blocked: replace it, keep the SKU state
        404 -- the build id expired: ask the cache to refresh, rebuild URL
    Anything else, including transport errors and malformed payloads,
    skips the cycle without touching state.
    """

    def __init__(
        self,
        path: str,
        transport: Transport,
        session: BuildIdCache,
        emit: EmitFn,
        delay: float,
        throttle: Optional[Throttle] = None,
    ) -> None:
        self.path = path
        self._transport = transport
        self._session = session
        self._emit = emit
        self._throttle = throttle or Throttle(delay)
        self._cancel = threading.Event()
        self._state: Dict[str, SkuState] = {}
        self._client: Any = None
        self._url = ""
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> Dict[str, SkuState]:
        return dict(self._state)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self.run, name=f"poller:{self.path}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the loop to exit; it is observed before the next fetch."""
        self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        logger.info("Poller started for %s", self.path)
        self._client = self._transport.new_client()
        self._url = self._session.product_url(self.path)
        try:
            while not self._cancel.is_set():
                if not self._throttle.wait(self._cancel):
                    break
                if self._cancel.is_set():
                    break
                self._throttle.mark()
                try:
                    self.poll_once()
                except Exception:  # noqa: BLE001
                    logger.exception("Unexpected error polling %s", self.path)
        finally:
            self._transport.close_client(self._client)
            logger.info("Poller stopped for %s", self.path)

    def poll_once(self) -> Optional[RestockEvent]:
        """Run a single fetch/diff cycle and return the emitted event, if any."""
        if self._client is None:
            self._client = self._transport.new_client()
        if not self._url:
            self._url = self._session.product_url(self.path)

        try:
            body, status_code = self._transport.get(self._client, self._url)
        except TransportError as exc:
            logger.debug("Fetch failed for %s: %s", self.path, exc)
            return None

        if status_code == 200:
            return self._handle_ok(body)
        if status_code == 403:
            logger.info("403 for %s, rotating client", self.path)
            old = self._client
            self._client = self._transport.new_client()
            self._transport.close_client(old)
        elif status_code == 404:
            self._handle_expired_build_id()
        else:
            logger.debug("Unexpected status %s for %s", status_code, self.path)
        return None

    def _handle_ok(self, body: bytes) -> Optional[RestockEvent]:
        try:
            payload = json.loads(body)
            product = parse_product(payload)
        except (ValueError, RecursionError, MalformedPayloadError) as exc:
            logger.debug("Skipping malformed payload for %s: %s", self.path, exc)
            return None

        sizes, state, had_restock = diff_sizes(product.get("sizes", []), self._state)
        self._state = state
        if not had_restock:
            return None

        event = build_event(self.path, product, sizes)
        if self._cancel.is_set():
            return None
        logger.info(
            "Restock detected for %s (%s): %d sizes, %d restocked",
            self.path, event.name, len(event.sizes), len(event.restocked_sizes),
        )
        self._emit(self, event)
        return event

    def _handle_expired_build_id(self) -> None:
        try:
            if self._session.refresh():
                logger.info("Build id refreshed after 404 on %s", self.path)
        except (MonitorError, RecursionError) as exc:
            logger.warning("Build id refresh failed after 404 on %s: %s", self.path, exc)
        self._url = self._session.product_url(self.path)
