from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from .config import SiteConfig
from .errors import SessionRefreshError
from .transport import Transport

logger = logging.getLogger(__name__)


def extract_build_id(html: str) -> str:
    """Pull ``buildId`` out of the ``#__NEXT_DATA__`` script of a page."""
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None:
        raise SessionRefreshError("__NEXT_DATA__ script not found on landing page")
    try:
        data = json.loads(script.get_text())
    except json.JSONDecodeError as exc:
        raise SessionRefreshError("invalid JSON in __NEXT_DATA__") from exc
    build_id = data.get("buildId") if isinstance(data, dict) else None
    if not isinstance(build_id, str) or not build_id:
        raise SessionRefreshError("buildId missing from __NEXT_DATA__")
    return build_id


class BuildIdCache:
    """Process-wide holder of the site's build id.

    Refreshes are serialized by a lock and throttled: after a successful
    refresh, further calls within ``cooldown`` seconds return False without
    any network activity. That lets every poller that hit a 404 ask for a
    refresh without stampeding the landing page."""

    def __init__(
        self,
        transport: Transport,
        site: Optional[SiteConfig] = None,
        cooldown: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._site = site or SiteConfig()
        self._cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._client: Any = transport.new_client()
        self._build_id = ""
        self._last_refresh: Optional[float] = None

    @property
    def build_id(self) -> str:
        return self._build_id

    def product_url(self, path: str) -> str:
        return self._site.product_url(self._build_id, path)

    def refresh(self) -> bool:
        """Fetch a new build id; returns False if one was fetched recently.

        Raises TransportError or SessionRefreshError on failure, leaving the
        previous build id in place."""
        with self._lock:
            now = self._clock()
            if self._last_refresh is not None and now - self._last_refresh < self._cooldown:
                return False

            body, status_code = self._transport.get(self._client, self._site.landing_url)

            if status_code == 403:
                logger.warning("Landing page returned 403, rotating session client")
                old = self._client
                self._client = self._transport.new_client()
                self._transport.close_client(old)
            if status_code != 200:
                raise SessionRefreshError(f"HTTP status {status_code} getting landing page")

            build_id = extract_build_id(body.decode("utf-8", errors="replace"))
            previous = self._build_id
            self._build_id = build_id
            self._last_refresh = self._clock()
            if build_id != previous:
                logger.info("Build id refreshed: %s", build_id)
            return True

    def close(self) -> None:
        with self._lock:
            self._transport.close_client(self._client)
