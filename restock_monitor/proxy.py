from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import IO, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

from .errors import InvalidProxyError, NoProxiesAvailableError


@dataclass(frozen=True)
class Proxy:
    """A validated ``http://`` proxy endpoint, optionally with credentials."""

    host: str
    port: str
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def url(self) -> str:
        if self.username is not None:
            return f"http://{self.username}:{self.password}@{self.host}:{self.port}"
        return f"http://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.url

    @classmethod
    def from_string(cls, raw: str) -> "Proxy":
        """Parse ``host:port``, ``user:pass:host:port`` or ``user:pass@host:port``."""
        user_info: List[str] = []
        if "@" in raw:
            if raw.count("@") > 1:
                raise InvalidProxyError(f"invalid proxy {raw!r}: more than one '@'")
            credentials, address = raw.split("@")
            user_info = credentials.split(":")
            host_info = address.split(":")
            if len(user_info) != 2 or len(host_info) != 2:
                raise InvalidProxyError(f"invalid proxy {raw!r}")
        else:
            parts = raw.split(":")
            if len(parts) == 4:
                user_info, host_info = parts[:2], parts[2:]
            elif len(parts) == 2:
                host_info = parts
            else:
                raise InvalidProxyError(f"invalid proxy {raw!r}")

        if not host_info[0]:
            raise InvalidProxyError(f"invalid proxy {raw!r}: empty host")

        if user_info:
            candidate = cls(host=host_info[0], port=host_info[1], username=user_info[0], password=user_info[1])
        else:
            candidate = cls(host=host_info[0], port=host_info[1])
        candidate.validate()
        return candidate

    def validate(self) -> None:
        """Reject anything that is not a bare ``http`` host[:port] URL."""
        try:
            parts = urlsplit(self.url)
        except ValueError as exc:
            raise InvalidProxyError(f"invalid proxy {self.url!r}: {exc}") from exc
        if (
            parts.scheme != "http"
            or parts.path
            or parts.query
            or parts.fragment
            or not parts.hostname
        ):
            raise InvalidProxyError(f"invalid proxy {self.url!r}")
        if self.port and not self.port.isdigit():
            raise InvalidProxyError(f"invalid proxy {self.url!r}: bad port")


def load_proxies(source: Union[IO[str], Iterable[str]]) -> List[Proxy]:
    """Parse newline-delimited proxies, failing on the first invalid line.

    The error message carries the 0-based index of the offending line."""
    proxies: List[Proxy] = []
    for idx, line in enumerate(source):
        try:
            proxies.append(Proxy.from_string(line.rstrip("\r\n")))
        except InvalidProxyError as exc:
            raise InvalidProxyError(f"invalid proxy: {idx} ({exc})") from exc
    return proxies


def load_proxy_file(path: str) -> List[Proxy]:
    with open(path, "r", encoding="utf-8") as f:
        return load_proxies(f)


class ProxyPool:
    """Immutable round-robin pool of proxies, safe to share between threads."""

    def __init__(self, proxies: Sequence[Proxy] = ()) -> None:
        self._proxies = tuple(proxies)
        self._lock = threading.Lock()
        self._counter = 0

    @classmethod
    def from_strings(cls, raw: Iterable[str]) -> "ProxyPool":
        return cls(load_proxies(raw))

    def next(self) -> Proxy:
        """Return the next proxy; raises NoProxiesAvailableError on an empty pool."""
        if not self._proxies:
            raise NoProxiesAvailableError("no proxies available")
        with self._lock:
            idx = self._counter
            self._counter += 1
        return self._proxies[idx % len(self._proxies)]

    def __len__(self) -> int:
        return len(self._proxies)
