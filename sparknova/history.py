from typing import Iterable, Iterator, List, Optional

#: Maximum number of queries kept in the history.
HISTORY_LIMIT = 50


class HistoryLog:
    """
    Bounded, deduplicated, most-recent-first list of past queries.

    Entries are trimmed before comparison. Adding an entry that already
    exists moves it to the front; once the log grows past ``limit`` the
    oldest entries are dropped.
    """

    def __init__(self, entries: Optional[Iterable[str]] = None, limit: int = HISTORY_LIMIT):
        self._limit = limit
        self._entries: List[str] = []
        if entries is not None:
            # Replay oldest-first so the newest entry ends up in front.
            for entry in reversed(list(entries)):
                if isinstance(entry, str):
                    self.add(entry)

    @property
    def limit(self) -> int:
        return self._limit

    def add(self, text: str) -> bool:
        """
        Record a query.

        :param text: Raw query text; it is trimmed before being stored.
        :return: ``True`` if the log changed, ``False`` for blank input.
        """
        trimmed = text.strip()
        if not trimmed:
            return False

        self._entries = [item for item in self._entries if item != trimmed]
        self._entries.insert(0, trimmed)
        del self._entries[self._limit:]
        return True

    def clear(self) -> None:
        self._entries = []

    def to_list(self) -> List[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        return item in self._entries

    def __repr__(self) -> str:
        return f"HistoryLog({self._entries!r}, limit={self._limit})"
