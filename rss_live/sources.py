from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .exceptions import ConfigError


@dataclass(frozen=True)
class FeedSource:
    """A single feed: where to get it and how to label its items."""
    url: str
    name: str
    label: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name


DEFAULT_SOURCES: Tuple[FeedSource, ...] = (
    FeedSource(url="https://storage.googleapis.com/mako-sitemaps/rssHomepage.xml", name="mako", label="מאקו"),
    FeedSource(url="https://www.ynet.co.il/Integration/StoryRss1854.xml", name="ynet", label="ynet"),
    FeedSource(url="https://rss.walla.co.il/feed/22", name="walla", label="וואלה"),
)


def load_sources(path: Union[str, Path]) -> List[FeedSource]:
    """
    Read a JSON array of ``{"url", "name", "label"?, "encoding"?}`` objects.

    Raises ConfigError if the file is missing or malformed, or if two
    entries share a name.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Feeds file not found: {p}") from e
    except ValueError as e:
        raise ConfigError(f"Feeds file is not valid JSON: {p} ({e})") from e

    if not isinstance(data, list):
        raise ConfigError(f"Feeds file must contain a JSON array: {p}")

    sources: List[FeedSource] = []
    seen = set()
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise ConfigError(f"Feed #{i} must be an object")
        url = str(row.get("url") or "").strip()
        name = str(row.get("name") or "").strip()
        if not url or not name:
            raise ConfigError(f"Feed #{i} requires both 'url' and 'name'")
        if name in seen:
            raise ConfigError(f"Duplicate feed name: {name}")
        seen.add(name)
        sources.append(
            FeedSource(
                url=url,
                name=name,
                label=row.get("label") or None,
                encoding=row.get("encoding") or None,
            )
        )
    return sources
