from __future__ import annotations

import argparse
import logging
import queue
import signal
import sys
import threading
from typing import List, Optional

from restock_monitor.config import DEFAULT_USER_AGENT, MonitorConfig, is_chrome_user_agent
from restock_monitor.dispatcher import Monitor
from restock_monitor.errors import MonitorError
from restock_monitor.models import RestockEvent
from restock_monitor.notifier import DiscordNotifier, NoopNotifier, Notifier
from restock_monitor.proxy import load_proxy_file
from restock_monitor.targets import parse_target_url

logger = logging.getLogger("restock_monitor.cli")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def _split_values(values: Optional[List[str]]) -> List[str]:
    out: List[str] = []
    for value in values or []:
        out.extend(v.strip() for v in value.split(",") if v.strip())
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restock-monitor",
        description="Configurable monitor for product restocks on nike.com.br",
    )
    parser.add_argument("-u", "--urls", action="append", required=True,
                        help="Product URLs to monitor (repeatable or comma separated)")
    parser.add_argument("-p", "--proxies", action="append",
                        help="HTTP proxies (host:port, user:pass:host:port or user:pass@host:port)")
    parser.add_argument("--proxy-file", help="File with one proxy per line")
    parser.add_argument("-U", "--user-agent", default=DEFAULT_USER_AGENT,
                        help="User agent for monitoring; only Chrome user agents are supported")
    parser.add_argument("-d", "--delay", type=float, default=8.0, help="Seconds between requests (minimum 1)")
    parser.add_argument("-w", "--webhook", default="", help="Discord webhook URL")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def build_config(args: argparse.Namespace) -> MonitorConfig:
    if not is_chrome_user_agent(args.user_agent):
        raise MonitorError("invalid user-agent: only Chrome is supported")

    urls = _split_values(args.urls)
    if not urls:
        raise MonitorError("no urls")

    proxies = _split_values(args.proxies)
    if args.proxy_file:
        proxies.extend(p.url for p in load_proxy_file(args.proxy_file))

    config = MonitorConfig(user_agent=args.user_agent, delay=args.delay, proxies=proxies)
    config.validate()

    for url in urls:
        parse_target_url(url, config.site.hosts)
    return config


def build_notifier(webhook: str, base_url: str) -> Notifier:
    if not webhook:
        return NoopNotifier()
    return DiscordNotifier(webhook, base_url=base_url)


def _consume(events: "queue.Queue[Optional[RestockEvent]]", notifier: Notifier) -> None:
    while True:
        event = events.get()
        if event is None:
            break
        logger.info("Restock found: %s", event.name)
        threading.Thread(target=notifier.notify, args=(event,), daemon=True).start()


def run(args: argparse.Namespace) -> int:
    try:
        config = build_config(args)
        notifier = build_notifier(args.webhook, config.site.base_url)
    except (MonitorError, OSError) as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Starting monitor.")
    monitor = Monitor(config)
    try:
        monitor.start()
    except MonitorError as exc:
        logger.error("Monitor failed to start: %s", exc)
        return 1
    logger.info("Monitor started successfully.")

    events: "queue.Queue[Optional[RestockEvent]]" = queue.Queue()
    consumer = threading.Thread(target=_consume, args=(events, notifier), daemon=True)
    consumer.start()

    logger.info("Adding urls.")
    for url in _split_values(args.urls):
        monitor.add_task(url, events)
        logger.info("Added %s", url)

    stop_requested = threading.Event()

    def _on_signal(signum, frame) -> None:
        stop_requested.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)
    while not stop_requested.wait(1.0):
        pass

    logger.info("Stopping monitor.")
    monitor.stop()
    events.put(None)
    consumer.join(timeout=5)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
