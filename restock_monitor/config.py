from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Tuple

from .errors import ConfigError
from .proxy import Proxy, load_proxies
from .targets import DEFAULT_HOSTS

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_CHROME_RE = re.compile(r"Chrome/(\d+)[\d.]*")


@dataclass(frozen=True)
class SiteConfig:
    """The one storefront being monitored."""

    base_url: str = "https://www.nike.com.br"
    hosts: Tuple[str, ...] = DEFAULT_HOSTS

    @property
    def landing_url(self) -> str:
        return self.base_url.rstrip("/") + "/"

    def product_url(self, build_id: str, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/_next/data/{build_id}{path}.json"


@dataclass
class MonitorConfig:
    user_agent: str = DEFAULT_USER_AGENT
    delay: float = 8.0
    proxies: List[str] = field(default_factory=list)
    impersonate: str = "chrome120"
    request_timeout: float = 20.0
    delivery_timeout: float = 60.0
    refresh_cooldown: float = 60.0
    site: SiteConfig = field(default_factory=SiteConfig)

    def validate(self) -> None:
        if not self.user_agent:
            raise ConfigError("invalid user-agent")
        if self.delay < 1.0:
            raise ConfigError("delay too low (minimum 1s)")
        if self.request_timeout <= 0 or self.delivery_timeout <= 0:
            raise ConfigError("timeouts must be positive")
        if self.refresh_cooldown < 0:
            raise ConfigError("refresh_cooldown must not be negative")
        self.parsed_proxies()

    def parsed_proxies(self) -> List[Proxy]:
        return load_proxies(self.proxies)


def is_chrome_user_agent(user_agent: str) -> bool:
    """Only Chrome user agents match the impersonated fingerprint."""
    if "Edg/" in user_agent or "OPR/" in user_agent:
        return False
    return _CHROME_RE.search(user_agent) is not None
