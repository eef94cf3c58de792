from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Callable, Dict, Iterable, Optional, Tuple

import httpx
import pytest

from rss_live.config import Settings
from rss_live.models import NewsItem
from rss_live.sources import FeedSource

NOW = datetime(2024, 6, 10, 16, 5, 0, tzinfo=timezone.utc)

SOURCES = (
    FeedSource(url="https://a.example/rss", name="alpha"),
    FeedSource(url="https://b.example/rss", name="beta"),
    FeedSource(url="https://c.example/rss", name="gamma"),
)


def rss_document(entries: Iterable[Tuple[str, str, datetime]]) -> str:
    """Build an RSS 2.0 document from (title, link, published) triples."""
    items = "".join(
        f"""
    <item>
      <title>{title}</title>
      <link>{link}</link>
      <description>Summary of {title}</description>
      <pubDate>{format_datetime(published)}</pubDate>
    </item>"""
        for title, link, published in entries
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test feed</title>{items}
  </channel>
</rss>
"""


def minutes_ago(n: int) -> datetime:
    return NOW - timedelta(minutes=n)


def make_item(link: str, minutes: int = 1, *, title: Optional[str] = None, source: str = "alpha") -> NewsItem:
    return NewsItem(
        title=title or f"Title {link}",
        link=link,
        published_at=minutes_ago(minutes),
        source=source,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(sources=list(SOURCES), json_proxies=(), xml_proxies=())


@pytest.fixture
def feeds() -> Dict[str, str]:
    """URL -> XML body served by the mock transport. Missing URLs answer 404."""
    return {}


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def client_factory(feeds):
    def _make(handler=None) -> httpx.AsyncClient:
        def _serve(request: httpx.Request) -> httpx.Response:
            body = feeds.get(str(request.url))
            if body is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, text=body, headers={"content-type": "application/rss+xml"})

        return httpx.AsyncClient(transport=httpx.MockTransport(handler or _serve))

    return _make
