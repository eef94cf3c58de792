from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta, tzinfo
from enum import Enum
from typing import Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .exceptions import ConfigError
from .sources import DEFAULT_SOURCES, FeedSource, load_sources


ENV_PREFIX = "RSS_LIVE_"

DEFAULT_JSON_PROXIES = ("https://api.rss2json.com/v1/api.json?rss_url=",)
DEFAULT_USER_AGENT = "rss-live/0.1"


class DatePolicy(str, Enum):
    """
    How to read a proxy timestamp of the form ``YYYY-MM-DD HH:MM:SS``.

    The token has no offset, so the deployment decides:
    - UTC: the proxy already converted to UTC (rss2json does).
    - LOCAL: the proxy kept the feed's civil time; read it in ``local_timezone``.
    """
    UTC = "utc"
    LOCAL = "local"


@dataclass
class Settings:
    initial_batch_size: int = 20
    poll_interval: timedelta = timedelta(seconds=30)
    recency_window: timedelta = timedelta(minutes=10)
    description_limit: int = 200
    direct_timeout: float = 5.0
    proxy_timeout: float = 8.0
    xml_proxy_timeout: float = 12.0
    json_proxies: Tuple[str, ...] = DEFAULT_JSON_PROXIES
    xml_proxies: Tuple[str, ...] = ()
    date_policy: DatePolicy = DatePolicy.UTC
    local_timezone: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    sources: Sequence[FeedSource] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def tz(self) -> Optional[tzinfo]:
        """Zone for DatePolicy.LOCAL; None means the system zone."""
        if not self.local_timezone:
            return None
        return ZoneInfo(self.local_timezone)

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        """
        Build settings from ``RSS_LIVE_*`` environment variables.

        A ``.env`` file in the working directory is loaded first when present.
        """
        if dotenv:
            load_dotenv()

        s = cls()
        s.initial_batch_size = _int("BATCH_SIZE", s.initial_batch_size)
        s.description_limit = _int("DESCRIPTION_LIMIT", s.description_limit)
        s.poll_interval = timedelta(seconds=_seconds("POLL_INTERVAL", s.poll_interval.total_seconds()))
        s.recency_window = timedelta(seconds=_seconds("RECENCY_WINDOW", s.recency_window.total_seconds()))
        s.direct_timeout = _seconds("DIRECT_TIMEOUT", s.direct_timeout)
        s.proxy_timeout = _seconds("PROXY_TIMEOUT", s.proxy_timeout)
        s.xml_proxy_timeout = _seconds("XML_PROXY_TIMEOUT", s.xml_proxy_timeout)
        s.json_proxies = _list("JSON_PROXIES", s.json_proxies)
        s.xml_proxies = _list("XML_PROXIES", s.xml_proxies)
        s.user_agent = _env("USER_AGENT") or s.user_agent
        s.log_level = (_env("LOG_LEVEL") or s.log_level).upper()
        s.log_json = (_env("LOG_JSON") or "").lower() in {"1", "true", "yes"}

        policy = _env("DATE_POLICY")
        if policy:
            try:
                s.date_policy = DatePolicy(policy.lower())
            except ValueError as e:
                raise ConfigError(f"{ENV_PREFIX}DATE_POLICY must be 'utc' or 'local', got {policy!r}") from e

        zone = _env("LOCAL_TZ")
        if zone:
            try:
                ZoneInfo(zone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ConfigError(f"{ENV_PREFIX}LOCAL_TZ: unknown time zone {zone!r}") from e
            s.local_timezone = zone

        feeds_file = _env("FEEDS_FILE")
        if feeds_file:
            s.sources = load_sources(feeds_file)
        return s


def _env(name: str) -> Optional[str]:
    val = os.getenv(ENV_PREFIX + name)
    if val is None:
        return None
    return val.strip()


def _int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        val = int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e
    if val <= 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must be positive, got {val}")
    return val


def _seconds(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number of seconds, got {raw!r}") from e
    if val <= 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must be positive, got {val}")
    return val


def _list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return default
    # Set but empty disables the tier
    return tuple(p.strip() for p in raw.split(",") if p.strip())
