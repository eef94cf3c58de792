"""Run the poller against the configured feeds: ``python -m rss_live``."""
from __future__ import annotations

import asyncio

import structlog

from .config import Settings
from .core import FeedReconciler
from .exceptions import ConfigError
from .log import configure_logging
from .scheduler import Poller


def main() -> int:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging()
        structlog.get_logger("rss_live").error("invalid configuration", error=str(e))
        return 2

    configure_logging(settings.log_level, json=settings.log_json)
    logger = structlog.get_logger("rss_live")
    logger.info(
        "starting",
        sources=[s.name for s in settings.sources],
        date_policy=settings.date_policy.value,
        local_timezone=settings.local_timezone or "system",
        recency_window=settings.recency_window.total_seconds(),
        json_proxies=len(settings.json_proxies),
        xml_proxies=len(settings.xml_proxies),
    )

    reconciler = FeedReconciler(settings)
    reconciler.subscribe(lambda count: logger.info("new items available", count=count))
    poller = Poller(reconciler, auto_commit=True)
    try:
        asyncio.run(poller.run_forever())
    except KeyboardInterrupt:
        logger.info("interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
