"""
rss_live

Keeps a live, newest-first collection of news items from a fixed set of RSS/Atom feeds.

Core ideas:
- Input: feed sources (address, name, optional label and byte encoding)
- Process: fetch (direct → JSON proxy → XML proxy) → parse → normalize → recency window → sort → deduplicate
- Output: an ItemStore refreshed on a fixed interval; new arrivals wait as "pending" until committed

Example
-------
import asyncio
from rss_live import FeedReconciler, Settings

reconciler = FeedReconciler(Settings.from_env())
reconciler.subscribe(lambda n: print(f"{n} new items"))

async def main():
    await reconciler.refresh(first_load=True)
    await reconciler.refresh()
    for item in reconciler.commit():
        print(item.published_at, item.source, item.title)

asyncio.run(main())

Proxy timestamps without an offset ("2024-06-10 16:00:00") are read as UTC by
default; set RSS_LIVE_DATE_POLICY=local (and RSS_LIVE_LOCAL_TZ) for proxies that
keep the feed's local time.
"""
from .models import NewsItem
from .sources import FeedSource
from .config import DatePolicy, Settings
from .store import ItemStore
from .core import FeedReconciler, NewsFetcher
from .scheduler import Poller

__all__ = [
    "NewsItem",
    "FeedSource",
    "DatePolicy",
    "Settings",
    "ItemStore",
    "FeedReconciler",
    "NewsFetcher",
    "Poller",
]
