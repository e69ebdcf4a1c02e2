from typing import List, Literal, Optional

from pydantic import BaseModel, Field

#: Closed set of result kinds the launcher knows how to present.
ResultType = Literal["app", "file", "command", "plugin"]


class SearchResultItem(BaseModel):
    """A single launcher search result."""
    id: str
    title: str
    type: ResultType
    description: Optional[str] = None
    icon: Optional[str] = None
    path: Optional[str] = None
    score: Optional[float] = None


class SearchOptions(BaseModel):
    """Options a matcher may honour when producing results."""
    query: str
    limit: Optional[int] = Field(default=None, ge=1)
    threshold: Optional[float] = None


class WindowControlOptions(BaseModel):
    """
    Options for :class:`~sparknova.bridge.WindowBridge`.

    :param auto_focus_delay: Milliseconds to wait after mounting before the
        one-shot automatic focus of the input.
    """
    auto_focus_delay: float = Field(default=150, ge=0)


class SearchState(BaseModel):
    """Serializable snapshot of the search store."""
    query: str = ""
    results: List[SearchResultItem] = Field(default_factory=list)
    is_searching: bool = False
    history: List[str] = Field(default_factory=list)

    @property
    def has_query(self) -> bool:
        return bool(self.query.strip())

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0
