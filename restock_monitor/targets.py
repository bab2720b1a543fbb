from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit

from .errors import InvalidTargetError

DEFAULT_HOSTS = ("nike.com.br", "www.nike.com.br")


def parse_target_url(url: str, hosts: Iterable[str] = DEFAULT_HOSTS) -> str:
    """Return the product path of ``url`` or raise InvalidTargetError.

    Query string and fragment are dropped, so ``/snkrs/x.html?cor=ND`` and
    ``/snkrs/x.html`` map to the same target."""
    if not url:
        raise InvalidTargetError("empty URL")
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidTargetError(f"invalid URL {url!r}: {exc}") from exc
    if not parts.path:
        raise InvalidTargetError(f"invalid URL {url!r}: no path")
    if parts.netloc not in set(hosts):
        raise InvalidTargetError(f"invalid URL {url!r}: unsupported host {parts.netloc!r}")
    return parts.path
