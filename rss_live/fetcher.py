from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, List, Optional
from urllib.parse import quote

import httpx
import structlog

from .config import Settings
from .exceptions import FormatError, RSSFetchError
from .models import NewsItem, RawRecord
from .normalizer import normalize_records
from .parser import extract_proxy_items, parse_feed_xml, parse_proxy_items, unwrap_xml_payload
from .sources import FeedSource

logger = structlog.get_logger(__name__)

StrategyFn = Callable[[httpx.AsyncClient, FeedSource, Settings], Awaitable[List[NewsItem]]]


class AttemptStatus(str, Enum):
    ITEMS = "items"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one strategy against one source."""
    strategy: str
    status: AttemptStatus
    items: List[NewsItem] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass(frozen=True)
class Strategy:
    name: str
    run: StrategyFn


@dataclass(frozen=True)
class SourceOutcome:
    source: FeedSource
    items: List[NewsItem]
    attempts: List[AttemptResult]

    @property
    def failed(self) -> bool:
        return not self.items


async def _get(client: httpx.AsyncClient, url: str, *, timeout: float, settings: Settings) -> httpx.Response:
    """GET ``url``; any network error, timeout or non-2xx status becomes RSSFetchError."""
    headers = {"User-Agent": settings.user_agent, "Cache-Control": "no-cache"}
    try:
        resp = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise RSSFetchError(f"{type(e).__name__}: {e}", url=url) from e
    return resp


def _normalize(records: List[RawRecord], source: FeedSource, settings: Settings) -> List[NewsItem]:
    return normalize_records(
        records,
        source.name,
        policy=settings.date_policy,
        local_tz=settings.tz,
        description_limit=settings.description_limit,
    )


def proxy_url(base: str, feed_url: str) -> str:
    return base + quote(feed_url, safe="")


async def fetch_direct(client: httpx.AsyncClient, source: FeedSource, settings: Settings) -> List[NewsItem]:
    """Fetch the feed itself, decode with the source's encoding and parse as XML."""
    resp = await _get(client, source.url, timeout=settings.direct_timeout, settings=settings)
    try:
        text = resp.content.decode(source.encoding or "utf-8", errors="replace")
    except LookupError as e:
        raise FormatError(f"Unknown encoding {source.encoding!r} for {source.name}") from e
    return _normalize(parse_feed_xml(text), source, settings)


async def fetch_json_proxy(
    client: httpx.AsyncClient, source: FeedSource, settings: Settings, *, base: str
) -> List[NewsItem]:
    """Fetch through a feed-to-JSON proxy (rss2json style)."""
    resp = await _get(client, proxy_url(base, source.url), timeout=settings.proxy_timeout, settings=settings)
    try:
        payload = resp.json()
    except ValueError as e:
        raise FormatError(f"Proxy returned invalid JSON for {source.name}") from e
    return _normalize(parse_proxy_items(extract_proxy_items(payload)), source, settings)


async def fetch_xml_proxy(
    client: httpx.AsyncClient, source: FeedSource, settings: Settings, *, base: str
) -> List[NewsItem]:
    """Fetch through an XML passthrough proxy (allorigins style)."""
    resp = await _get(client, proxy_url(base, source.url), timeout=settings.xml_proxy_timeout, settings=settings)
    return _normalize(parse_feed_xml(unwrap_xml_payload(resp.text)), source, settings)


def build_strategies(settings: Settings) -> List[Strategy]:
    """Direct first, then every JSON proxy, then every XML proxy."""
    strategies = [Strategy("direct", fetch_direct)]
    strategies += [Strategy(f"json-proxy:{b}", partial(fetch_json_proxy, base=b)) for b in settings.json_proxies]
    strategies += [Strategy(f"xml-proxy:{b}", partial(fetch_xml_proxy, base=b)) for b in settings.xml_proxies]
    return strategies


async def run_attempt(
    strategy: Strategy, client: httpx.AsyncClient, source: FeedSource, settings: Settings
) -> AttemptResult:
    try:
        items = await strategy.run(client, source, settings)
    except (RSSFetchError, FormatError) as e:
        return AttemptResult(strategy.name, AttemptStatus.FAILED, reason=str(e))
    if not items:
        return AttemptResult(strategy.name, AttemptStatus.EMPTY, reason="no usable items")
    return AttemptResult(strategy.name, AttemptStatus.ITEMS, items=items)


async def fetch_source_outcome(
    client: httpx.AsyncClient,
    source: FeedSource,
    settings: Settings,
    strategies: Optional[List[Strategy]] = None,
) -> SourceOutcome:
    """
    Walk the strategy chain for one source until an attempt yields items.

    Never raises for transport or format problems; a source whose every
    attempt failed contributes an empty list.
    """
    attempts: List[AttemptResult] = []
    for strategy in strategies if strategies is not None else build_strategies(settings):
        res = await run_attempt(strategy, client, source, settings)
        attempts.append(res)
        if res.status is AttemptStatus.ITEMS:
            if len(attempts) > 1:
                logger.debug("fallback used", source=source.name, strategy=res.strategy, items=len(res.items))
            return SourceOutcome(source, res.items, attempts)
        logger.debug("attempt yielded nothing", source=source.name, strategy=res.strategy, reason=res.reason)

    logger.warning(
        "source failed",
        source=source.name,
        url=source.url,
        attempts=[f"{a.strategy}: {a.reason}" for a in attempts],
    )
    return SourceOutcome(source, [], attempts)


async def fetch_source(client: httpx.AsyncClient, source: FeedSource, settings: Settings) -> List[NewsItem]:
    outcome = await fetch_source_outcome(client, source, settings)
    return outcome.items
