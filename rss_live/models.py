from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class NewsItem:
    """
    Stable public model representing a normalized news item.

    The link doubles as the identity: two records with the same link are the
    same item, whichever source or cycle delivered them.

    WARNING: Do not change fields lightly. This is the library's contract.
    """
    title: str
    link: str
    published_at: datetime
    source: str
    description: str = ""
    media: Optional[str] = None

    @property
    def id(self) -> str:
        return self.link


@dataclass(frozen=True)
class RawRecord:
    """Structural extraction of one feed entry, before validation."""
    title: str = ""
    link: str = ""
    date: str = ""
    summary: str = ""
    media: Optional[str] = None
