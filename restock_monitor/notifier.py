"""Notification channels for restock events.

The CLI drains the monitor's sink queue and hands each event to a
Notifier. DiscordNotifier renders an embed per event and posts it to a
webhook, retrying transient failures (network errors, 429, 5xx).
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from .backoff import Backoff
from .errors import ConfigError
from .models import RestockEvent, SizeInfo

logger = logging.getLogger(__name__)

CHECK_MARK = "✓"
EMBED_COLOR = 65280
FOOTER_TEXT = "Powered by the openMonitors project"


class Notifier(ABC):
    @abstractmethod
    def notify(self, event: RestockEvent) -> bool:
        """Deliver one event; returns False if it could not be sent."""
        raise NotImplementedError


class NoopNotifier(Notifier):
    """Used when no webhook is configured; only logs."""

    def notify(self, event: RestockEvent) -> bool:
        logger.info("Restock: %s (%s) sizes=%s", event.name, event.path,
                    ", ".join(s.description for s in event.sizes))
        return True


def size_line(size: SizeInfo) -> str:
    symbol = CHECK_MARK if size.restocked else "x"
    return f"{size.description} {size.sku} {symbol}"


def build_embed(event: RestockEvent, base_url: str) -> Dict[str, Any]:
    fields: List[Dict[str, Any]] = [
        {"name": "Price", "value": event.price, "inline": True},
        {"name": "Code", "value": event.code, "inline": True},
    ]
    available = [size_line(s) for s in event.available_sizes]
    in_stock = [size_line(s) for s in event.in_stock_sizes]
    if available:
        fields.append({"name": "Available sizes (can be added to cart)", "value": "\n".join(available), "inline": False})
    if in_stock:
        fields.append({"name": "In stock sizes (can't be added to cart)", "value": "\n".join(in_stock), "inline": False})

    return {
        "title": f"{event.name} just restocked!",
        "color": EMBED_COLOR,
        "url": base_url.rstrip("/") + event.path,
        "thumbnail": {"url": event.picture},
        "footer": {"text": FOOTER_TEXT},
        "fields": fields,
    }


def validate_webhook_url(webhook_url: str) -> str:
    """Accept ``https://discord.com/api/webhooks/<id>/<token>``."""
    if not webhook_url:
        raise ConfigError("empty webhook")
    parts = webhook_url.split("/")
    if len(parts) != 7 or not parts[5].isdigit() or not parts[6]:
        raise ConfigError("invalid webhook")
    return webhook_url


class DiscordNotifier(Notifier):
    def __init__(
        self,
        webhook_url: str,
        base_url: str = "https://www.nike.com.br",
        session: Optional[requests.Session] = None,
        backoff: Optional[Backoff] = None,
        timeout: float = 20.0,
    ) -> None:
        self._webhook_url = validate_webhook_url(webhook_url)
        self._base_url = base_url
        self._session = session or requests.Session()
        self._backoff = backoff or Backoff()
        self._timeout = timeout

    def notify(self, event: RestockEvent) -> bool:
        payload = {"embeds": [build_embed(event, self._base_url)]}
        delays = iter(self._backoff)
        while True:
            try:
                resp = self._session.post(self._webhook_url, json=payload, timeout=self._timeout)
                if resp.status_code < 300:
                    return True
                retryable = resp.status_code == 429 or resp.status_code >= 500
                error = f"HTTP {resp.status_code}"
            except requests.RequestException as exc:
                retryable = True
                error = f"{type(exc).__name__}: {exc}"

            sleep_s = next(delays, None) if retryable else None
            if sleep_s is None:
                logger.error("Discord webhook failed for %s: %s", event.path, error)
                return False
            logger.warning("Discord webhook failed for %s (%s), retrying in %.1fs", event.path, error, sleep_s)
            time.sleep(sleep_s)
