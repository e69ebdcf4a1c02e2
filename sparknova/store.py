import logging
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from .history import HISTORY_LIMIT, HistoryLog
from .matcher import Matcher, NullMatcher
from .persist import KeyValueStorage
from .types import SearchResultItem, SearchState

logger = logging.getLogger(__name__)

#: Key under which the whole search state is persisted.
STORE_KEY = "sparknova-search"

Observer = Callable[[SearchState], None]


def _ensure_unique_ids(items: Sequence[SearchResultItem]) -> List[SearchResultItem]:
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"Duplicate result id '{item.id}'")
        seen.add(item.id)
    return list(items)


class SearchStore:
    """
    Query, results and history of the launcher search box.

    Every mutating operation writes the full state to ``storage`` under
    :data:`STORE_KEY` and then notifies observers with a fresh
    :class:`~sparknova.types.SearchState` snapshot.

    Overlapping :meth:`search` calls are not serialized; whichever finishes
    last decides the final ``results`` and ``is_searching``.
    """

    def __init__(
        self,
        matcher: Optional[Matcher] = None,
        storage: Optional[KeyValueStorage] = None,
        state: Optional[SearchState] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.matcher: Matcher = matcher or NullMatcher()
        self.storage = storage
        self._observers: List[Observer] = []

        state = state or SearchState()
        self.query: str = state.query
        self.results: List[SearchResultItem] = []
        try:
            self.results = _ensure_unique_ids(state.results)
        except ValueError as e:
            logger.warning("Dropping persisted results: %s", e)
        self.is_searching: bool = False
        self._history = HistoryLog(state.history, limit=history_limit)

    @classmethod
    def load(
        cls,
        storage: KeyValueStorage,
        matcher: Optional[Matcher] = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> "SearchStore":
        """
        Rehydrate a store from ``storage``.

        Absent or malformed data yields a store with default state. A
        persisted ``is_searching`` flag is always reset, since no search
        survives a restart.
        """
        state = None
        raw = None
        try:
            raw = storage.get(STORE_KEY)
        except Exception as e:
            logger.warning("Could not read persisted search state: %s", e)

        if raw is not None:
            try:
                state = SearchState.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Discarding malformed persisted search state: %s", e)

        return cls(matcher=matcher, storage=storage, state=state, history_limit=history_limit)

    # -- state ------------------------------------------------------------

    @property
    def history(self) -> List[str]:
        return self._history.to_list()

    @property
    def has_query(self) -> bool:
        return bool(self.query.strip())

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0

    @property
    def state(self) -> SearchState:
        return SearchState(
            query=self.query,
            results=list(self.results),
            is_searching=self.is_searching,
            history=self._history.to_list(),
        )

    async def flush(self) -> None:
        """Wait for pending storage writes to complete."""
        if self.storage is not None:
            await self.storage.flush()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register ``observer`` to be called after every mutation.

        :return: A callable removing the observer again; calling it more
            than once is harmless.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _commit(self) -> None:
        snapshot = self.state

        if self.storage is not None:
            try:
                self.storage.set(STORE_KEY, snapshot.model_dump_json())
            except Exception as e:
                logger.error("Failed to persist search state: %s", e)

        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Search state observer failed")

    # -- actions ----------------------------------------------------------

    def set_query(self, value: str) -> None:
        self.query = value
        self._commit()

    def clear_query(self) -> None:
        self.query = ""
        self.results = []
        self._commit()

    async def search(self, query_override: Optional[str] = None) -> None:
        """
        Run the matcher for the effective query.

        The effective query is ``query_override`` when it is non-empty,
        otherwise the current :attr:`query`. A blank effective query only
        clears the results. Matcher failures are logged and leave the
        previous results in place.
        """
        q = query_override or self.query
        if not q.strip():
            self.results = []
            self._commit()
            return

        self.is_searching = True
        self._commit()

        try:
            found = await self.matcher.match(q)
            self.results = _ensure_unique_ids(found)
            self._history.add(q)
        except Exception:
            logger.exception("Search failed for query %r", q)
        finally:
            self.is_searching = False
            self._commit()

    def add_to_history(self, text: str) -> None:
        if self._history.add(text):
            self._commit()

    def clear_history(self) -> None:
        self._history.clear()
        self._commit()
