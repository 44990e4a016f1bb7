"""
Client entry point.

Loads configuration, configures logging, and follows one user's
notification feed, logging each new notification as it arrives.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from .api import NotifyHubAPI
from .config import ClientConfig, load_config
from .feed import NotificationFeed
from .listener import PushListener


def configure_logging(level: str = "info", fmt: str = "json", username: str | None = None) -> None:
    """Configure structlog; every line carries the watching user."""
    structlog.contextvars.clear_contextvars()
    if username:
        structlog.contextvars.bind_contextvars(user=username)
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(level)
        ),
    )


async def watch(config: ClientConfig) -> None:
    """Keep the feed reconciled until cancelled."""
    log = structlog.get_logger()
    username = config.user.username

    async with NotifyHubAPI(
        config.server.url,
        verify_tls=config.server.verify_tls,
        request_timeout=config.server.request_timeout_seconds,
    ) as api:
        feed = NotificationFeed(username, api, config.feed.toast_ttl_seconds)
        feed.on_change(
            lambda f: log.info("feed.changed", total=len(f.notifications), unread=f.unread_count)
        )

        listener = PushListener(config.server.push_url, username, config.server.verify_tls)
        listener.on_event(feed.handle_push)
        # Reload after every (re)connect to pick up pushes missed while offline
        listener.on_connect(feed.load)

        await listener.start()
        try:
            await asyncio.Event().wait()
        finally:
            await listener.stop()
            feed.close()


def run() -> None:
    """CLI entry point for the feed watcher."""
    parser = argparse.ArgumentParser(description="NotifyHub notification feed watcher")
    parser.add_argument(
        "-c", "--config",
        default="notifyhub-client.yaml",
        help="Path to configuration file (default: notifyhub-client.yaml)",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format, config.user.username)
    log = structlog.get_logger()
    log.info("client.config_loaded", config_path=args.config)

    try:
        asyncio.run(watch(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
