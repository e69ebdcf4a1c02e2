"""
Public API entry point for the package.

Exports the main building blocks:
  * :class:`SearchStore` → query, results and history state
  * :class:`WindowBridge` → search input focus and window hiding
  * :class:`Window` → native window control interface
  * :func:`launch` → start the launcher backend
"""

from .bridge import BridgeState, InputRef, WindowBridge
from .control.window import Window, WindowController
from .events import EventChannel, listen, on
from .history import HistoryLog
from .matcher import CatalogMatcher, Matcher, NullMatcher
from .persist import JsonFileStorage, MemoryStorage
from .runtime import create_bridge, launch
from .store import SearchStore
from .types import SearchOptions, SearchResultItem, SearchState, WindowControlOptions

__all__ = [
    "BridgeState",
    "CatalogMatcher",
    "EventChannel",
    "HistoryLog",
    "InputRef",
    "JsonFileStorage",
    "Matcher",
    "MemoryStorage",
    "NullMatcher",
    "SearchOptions",
    "SearchResultItem",
    "SearchState",
    "SearchStore",
    "Window",
    "WindowBridge",
    "WindowControlOptions",
    "WindowController",
    "create_bridge",
    "launch",
    "listen",
    "on",
]
