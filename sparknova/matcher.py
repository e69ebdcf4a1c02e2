import asyncio
import logging
from typing import Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from .types import SearchOptions, SearchResultItem

logger = logging.getLogger(__name__)


@runtime_checkable
class Matcher(Protocol):
    """
    Produces ranked results for a query.

    Implementations must be safe to call repeatedly and concurrently.
    Failures are reported by raising; the store catches them.
    """

    async def match(self, query: str) -> Sequence[SearchResultItem]:
        ...


class NullMatcher:
    """Matcher that waits briefly and never finds anything."""

    def __init__(self, delay: float = 0.1):
        self.delay = delay

    async def match(self, query: str) -> Sequence[SearchResultItem]:
        logger.debug("Searching for: %s", query)
        await asyncio.sleep(self.delay)
        return []


class CatalogMatcher:
    """
    Case-insensitive substring matcher over a fixed list of items.

    Items whose title, description or path contain the query are returned
    in catalog order. Items carrying a ``score`` below ``threshold`` are
    dropped, and at most ``limit`` items are returned.
    """

    def __init__(
        self,
        items: Iterable[SearchResultItem],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ):
        self._items: List[SearchResultItem] = list(items)
        self.limit = limit
        self.threshold = threshold

    def options_for(self, query: str) -> SearchOptions:
        return SearchOptions(query=query, limit=self.limit, threshold=self.threshold)

    async def match(self, query: str) -> Sequence[SearchResultItem]:
        options = self.options_for(query)
        needle = options.query.strip().lower()
        found: List[SearchResultItem] = []

        for item in self._items:
            haystack = " ".join(filter(None, (item.title, item.description, item.path))).lower()
            if needle not in haystack:
                continue
            if options.threshold is not None and item.score is not None and item.score < options.threshold:
                continue
            found.append(item)
            if options.limit is not None and len(found) >= options.limit:
                break

        return found
