from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Tuple

from curl_cffi import requests as curl_requests

from .errors import NoProxiesAvailableError, TransportError
from .proxy import ProxyPool

logger = logging.getLogger(__name__)

# Chrome's navigation header order; dicts keep insertion order on the wire.
HEADER_ORDER = (
    "sec-ch-ua",
    "sec-ch-ua-mobile",
    "sec-ch-ua-platform",
    "dnt",
    "upgrade-insecure-requests",
    "user-agent",
    "accept",
    "sec-fetch-site",
    "sec-fetch-mode",
    "sec-fetch-user",
    "sec-fetch-dest",
    "referer",
    "accept-encoding",
    "accept-language",
    "cookie",
)


class Transport(Protocol):
    """What pollers and the session cache need from an HTTP stack."""

    def new_client(self) -> Any:
        ...

    def get(self, client: Any, url: str) -> Tuple[bytes, int]:
        ...

    def close_client(self, client: Any) -> None:
        ...


def build_headers(user_agent: str, client_hint: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    values = {
        "sec-ch-ua": client_hint,
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "dnt": "1",
        "upgrade-insecure-requests": "1",
        "user-agent": user_agent,
        "accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
            "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.9"
        ),
        "sec-fetch-site": "none",
        "sec-fetch-mode": "navigate",
        "sec-fetch-user": "?1",
        "sec-fetch-dest": "document",
        "accept-encoding": "gzip, deflate, br",
        "accept-language": "pt,pt-PT;q=0.9,en-US;q=0.8,en;q=0.7,es;q=0.6",
    }
    if extra:
        values.update(extra)
    return {name: values[name] for name in HEADER_ORDER if name in values}


def client_hint_for(user_agent: str) -> str:
    """Build a ``sec-ch-ua`` value matching the Chrome major version of the UA."""
    major = "120"
    marker = "Chrome/"
    if marker in user_agent:
        major = user_agent.split(marker, 1)[1].split(".", 1)[0] or major
    return f'"Not_A Brand";v="8", "Chromium";v="{major}", "Google Chrome";v="{major}"'


class CurlTransport:
    """curl_cffi based transport with browser TLS/HTTP2 impersonation.

    Each client is a separate curl session with its own cookie jar, so a
    blocked client can be discarded without touching any other poller."""

    def __init__(
        self,
        user_agent: str,
        proxy_pool: Optional[ProxyPool] = None,
        impersonate: str = "chrome120",
        timeout: float = 20.0,
    ) -> None:
        self._user_agent = user_agent
        self._proxy_pool = proxy_pool or ProxyPool()
        self._impersonate = impersonate
        self._timeout = timeout
        self._headers = build_headers(user_agent, client_hint_for(user_agent))

    def new_client(self) -> curl_requests.Session:
        proxies = None
        try:
            proxy_url = self._proxy_pool.next().url
            proxies = {"http": proxy_url, "https": proxy_url}
        except NoProxiesAvailableError:
            logger.debug("No proxies configured, using a direct connection")
        return curl_requests.Session(
            impersonate=self._impersonate,
            proxies=proxies,
            timeout=self._timeout,
        )

    def get(self, client: curl_requests.Session, url: str) -> Tuple[bytes, int]:
        try:
            response = client.get(url, headers=self._headers, timeout=self._timeout)
        except Exception as exc:  # noqa: BLE001
            raise TransportError(f"GET {url} failed: {type(exc).__name__}: {exc}") from exc
        return response.content, int(response.status_code)

    def close_client(self, client: curl_requests.Session) -> None:
        try:
            client.close()
        except Exception:  # noqa: BLE001
            logger.debug("Error closing HTTP client", exc_info=True)
