from __future__ import annotations

from typing import Iterable, List, Tuple

from .dedup import deduplicate, sort_newest_first
from .models import NewsItem


class ItemStore:
    """
    Owner of the visible collection and the pending set.

    The collection is always sorted newest first with unique ids. Readers get
    tuples; only replace/stage/commit change state.
    """

    def __init__(self) -> None:
        self._items: List[NewsItem] = []
        self._pending: List[NewsItem] = []
        self._loaded = False

    @property
    def items(self) -> Tuple[NewsItem, ...]:
        return tuple(self._items)

    @property
    def pending(self) -> Tuple[NewsItem, ...]:
        return tuple(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def ids(self) -> set:
        return {it.id for it in self._items}

    def page(self, offset: int, count: int) -> Tuple[NewsItem, ...]:
        """A slice of the collection, for consumers that reveal it in batches."""
        if offset < 0 or count < 0:
            raise ValueError("offset and count must be non-negative")
        return tuple(self._items[offset:offset + count])

    def replace(self, items: Iterable[NewsItem]) -> None:
        """Swap in a whole new collection (first load)."""
        self._items = deduplicate(sort_newest_first(items))
        self._pending = []
        self._loaded = True

    def stage(self, items: Iterable[NewsItem]) -> None:
        """Set the pending set, replacing any uncommitted one."""
        self._pending = list(items)

    def commit(self) -> List[NewsItem]:
        """
        Merge pending items into the collection and clear the pending set.

        Returns the items that became visible, newest first. Pending items whose
        id is already in the collection are dropped; the stored copy wins.
        """
        if not self._pending:
            return []
        existing = self.ids()
        added = deduplicate(it for it in self._pending if it.id not in existing)
        self._items = sort_newest_first(added + self._items)
        self._pending = []
        return sort_newest_first(added)
