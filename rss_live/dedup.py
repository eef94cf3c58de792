from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Set

from .models import NewsItem


def deduplicate(items: Iterable[NewsItem]) -> List[NewsItem]:
    """
    Remove duplicates by id (the item's link).
    Keeps the first occurrence and preserves original order.
    """
    seen: Set[str] = set()
    out: List[NewsItem] = []
    for it in items:
        if it.id in seen:
            continue
        seen.add(it.id)
        out.append(it)
    return out


def sort_newest_first(items: Iterable[NewsItem]) -> List[NewsItem]:
    """Sort by publication time descending; equal times fall back to id ascending."""
    return sorted(items, key=lambda it: (-it.published_at.timestamp(), it.id))


def within_window(items: Iterable[NewsItem], now: datetime, window: timedelta) -> List[NewsItem]:
    """Keep items published at or after ``now - window``."""
    cutoff = now - window
    return [it for it in items if it.published_at >= cutoff]
