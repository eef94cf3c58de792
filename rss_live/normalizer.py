from __future__ import annotations

import re
from datetime import tzinfo
from typing import Iterable, List, Optional

import structlog
from bs4 import BeautifulSoup

from .config import DatePolicy
from .dates import parse_date
from .exceptions import ParseError
from .models import NewsItem, RawRecord

logger = structlog.get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def strip_html(markup: str) -> str:
    """Reduce an HTML fragment to collapsed plain text."""
    if not markup:
        return ""
    if "<" in markup or "&" in markup:
        markup = BeautifulSoup(markup, "html.parser").get_text(" ")
    return _WHITESPACE_RE.sub(" ", markup).strip()


def truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit]


def to_news_item(
    record: RawRecord,
    source: str,
    *,
    policy: DatePolicy = DatePolicy.UTC,
    local_tz: Optional[tzinfo] = None,
    description_limit: int = 200,
) -> NewsItem:
    """
    Convert a raw record into a NewsItem.
    Requires:
    - title (non-empty after markup is stripped)
    - link (non-empty)
    - date token that resolves to an absolute instant
    The media URL is kept as found; image-shape checks belong to the consumer.
    """
    title = strip_html(record.title)
    if not title:
        raise ParseError("missing title")
    link = (record.link or "").strip()
    if not link:
        raise ParseError("missing link")
    if not record.date:
        raise ParseError("missing date")

    published_at = parse_date(record.date, policy=policy, local_tz=local_tz)
    if published_at is None:
        raise ParseError(f"unparseable date: {record.date!r}")

    return NewsItem(
        title=title,
        link=link,
        published_at=published_at,
        source=source,
        description=truncate(strip_html(record.summary), description_limit),
        media=record.media or None,
    )


def normalize_records(
    records: Iterable[RawRecord],
    source: str,
    *,
    policy: DatePolicy = DatePolicy.UTC,
    local_tz: Optional[tzinfo] = None,
    description_limit: int = 200,
) -> List[NewsItem]:
    """Normalize a batch, dropping rejected records without affecting the rest."""
    items: List[NewsItem] = []
    for rec in records:
        try:
            items.append(
                to_news_item(
                    rec,
                    source,
                    policy=policy,
                    local_tz=local_tz,
                    description_limit=description_limit,
                )
            )
        except ParseError as e:
            logger.debug("record rejected", source=source, reason=e.reason, link=rec.link or None)
    return items
