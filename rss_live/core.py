from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse

import httpx
import structlog

from .config import Settings
from .dedup import deduplicate, sort_newest_first, within_window
from .fetcher import SourceOutcome, Strategy, fetch_source_outcome
from .models import NewsItem
from .sources import FeedSource
from .store import ItemStore

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
NewItemsListener = Callable[[int], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_source(feed: Union[str, FeedSource]) -> FeedSource:
    """Accept a bare URL where a FeedSource is expected; the host becomes its name."""
    if isinstance(feed, FeedSource):
        return feed
    host = urlparse(feed).netloc
    return FeedSource(url=feed, name=host or feed)


@dataclass
class CycleReport:
    first_load: bool
    started_at: datetime
    per_source: Dict[str, int] = field(default_factory=dict)
    failed_sources: List[str] = field(default_factory=list)
    fetched: int = 0
    kept: int = 0
    new: int = 0
    total: int = 0


async def gather_sources(
    client: httpx.AsyncClient,
    sources: Sequence[FeedSource],
    settings: Settings,
    strategies: Optional[List[Strategy]] = None,
) -> List[SourceOutcome]:
    """
    Run every source's strategy chain concurrently and wait for all of them.

    One source crashing does not cancel the others; it is logged and counted
    as a total failure.
    """
    results = await asyncio.gather(
        *(fetch_source_outcome(client, s, settings, strategies) for s in sources),
        return_exceptions=True,
    )
    outcomes: List[SourceOutcome] = []
    for src, res in zip(sources, results):
        if isinstance(res, SourceOutcome):
            outcomes.append(res)
        elif isinstance(res, Exception):
            logger.error("source crashed", source=src.name, error=repr(res))
            outcomes.append(SourceOutcome(src, [], []))
        else:
            raise res
    return outcomes


def select_fresh(items: Iterable[NewsItem], now: datetime, settings: Settings) -> List[NewsItem]:
    """Window, sort newest first, then dedup keeping the first copy seen."""
    return deduplicate(sort_newest_first(within_window(items, now, settings.recency_window)))


class FeedReconciler:
    """
    Keeps an ItemStore in step with the configured feeds.

    Each refresh fans out to every source, filters to the recency window and
    deduplicates. The first load replaces the collection; later refreshes only
    stage unseen items as pending and notify subscribers with the count.
    ``commit()`` makes pending items visible.

    Refreshes are serialized; a refresh requested while one is running waits
    for it to finish.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        store: Optional[ItemStore] = None,
        strategies: Optional[List[Strategy]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store or ItemStore()
        self._client = client
        self._clock = clock or _utcnow
        self._strategies = strategies
        self._listeners: List[NewItemsListener] = []
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _cycle_lock(self) -> asyncio.Lock:
        # One lock per event loop; the reconciler may outlive an asyncio.run call.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def items(self):
        return self.store.items

    @property
    def pending_count(self) -> int:
        return self.store.pending_count

    def subscribe(self, listener: NewItemsListener) -> Callable[[], None]:
        """Register a "new items available" callback. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, count: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(count)
            except Exception:
                logger.exception("new-items listener failed", count=count)

    async def _fetch_all(self) -> List[SourceOutcome]:
        sources = list(self.settings.sources)
        if self._client is not None:
            return await gather_sources(self._client, sources, self.settings, self._strategies)
        async with httpx.AsyncClient() as client:
            return await gather_sources(client, sources, self.settings, self._strategies)

    async def refresh(self, first_load: bool = False) -> CycleReport:
        async with self._cycle_lock():
            return await self._cycle(first_load)

    async def refresh_now(self) -> CycleReport:
        """Run a cycle immediately; the very first one loads, later ones stage."""
        async with self._cycle_lock():
            return await self._cycle(not self.store.loaded)

    async def _cycle(self, first_load: bool) -> CycleReport:
        now = self._clock()
        report = CycleReport(first_load=first_load, started_at=now)

        outcomes = await self._fetch_all()
        fetched: List[NewsItem] = []
        for o in outcomes:
            report.per_source[o.source.name] = len(o.items)
            if o.failed:
                report.failed_sources.append(o.source.name)
            fetched.extend(o.items)
        report.fetched = len(fetched)

        fresh = select_fresh(fetched, now, self.settings)
        report.kept = len(fresh)

        if first_load:
            self.store.replace(fresh)
            report.new = len(fresh)
        else:
            existing = self.store.ids()
            new_items = [it for it in fresh if it.id not in existing]
            report.new = len(new_items)
            if new_items:
                self.store.stage(new_items)
                self._notify(len(new_items))

        report.total = len(self.store)
        logger.info(
            "cycle complete",
            first_load=first_load,
            sources=len(outcomes),
            failed=report.failed_sources or None,
            fetched=report.fetched,
            kept=report.kept,
            new=report.new,
            pending=self.store.pending_count,
            total=report.total,
        )
        if first_load and self.store.is_empty:
            logger.info("no items in window")
        return report

    def commit(self) -> List[NewsItem]:
        """Make pending items visible. Returns the newly visible items, newest first."""
        added = self.store.commit()
        if added:
            logger.info("pending committed", added=len(added), total=len(self.store))
        return added


class NewsFetcher:
    """
    High-level API: fetch feeds once and return a list of normalized NewsItem.

    Pipeline: fetch (with fallbacks) → parse → normalize → window → sort (newest first) → deduplicate
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        limit: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.limit = limit
        self._client = client
        self._clock = clock or _utcnow

    async def fetch_async(self, feeds: Optional[Iterable[Union[str, FeedSource]]] = None) -> List[NewsItem]:
        sources = [as_source(f) for f in feeds] if feeds is not None else list(self.settings.sources)
        now = self._clock()
        if self._client is not None:
            outcomes = await gather_sources(self._client, sources, self.settings)
        else:
            async with httpx.AsyncClient() as client:
                outcomes = await gather_sources(client, sources, self.settings)

        items = select_fresh((it for o in outcomes for it in o.items), now, self.settings)
        if self.limit and self.limit > 0:
            items = items[: self.limit]
        return items

    def fetch(self, feeds: Optional[Iterable[Union[str, FeedSource]]] = None) -> List[NewsItem]:
        return asyncio.run(self.fetch_async(feeds))
