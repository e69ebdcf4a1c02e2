"""Tests for launcher wiring."""

import pytest

from sparknova.bridge import InputRef
from sparknova.config import LauncherConfig
from sparknova.control.window import Window
from sparknova.events import EventChannel, emit, listener_count
from sparknova.matcher import CatalogMatcher
from sparknova.persist import JsonFileStorage
from sparknova.runtime import (
    FOCUS_GAINED_EVENT,
    FOCUS_LOST_EVENT,
    TOGGLE_WINDOW_EVENT,
    bind_window_controller,
    create_bridge,
    create_store,
)
from sparknova.store import STORE_KEY
from sparknova.types import SearchResultItem, SearchState


class RecordingController:
    def __init__(self):
        self.calls = []

    async def toggle(self):
        self.calls.append("toggle")

    async def handle_focus_lost(self):
        self.calls.append("lost")

    async def handle_focus_gained(self):
        self.calls.append("gained")


class TestCreateStore:

    def test_rehydrates_from_state_file(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStorage(path).set(STORE_KEY, SearchState(query="q", history=["q"], is_searching=True).model_dump_json())

        store = create_store(LauncherConfig(state_path=path))

        assert store.query == "q"
        assert store.history == ["q"]
        assert store.is_searching is False

    @pytest.mark.asyncio
    async def test_session_survives_restart(self, tmp_path):
        config = LauncherConfig(state_path=tmp_path / "state.json")
        item = SearchResultItem(id="t", title="Terminal", type="app")
        store = create_store(config, CatalogMatcher([item]))

        await store.search("term")
        await store.flush()

        restored = create_store(config)
        assert restored.history == ["term"]
        assert restored.results == [item]


class TestBindWindowController:

    @pytest.mark.asyncio
    async def test_routes_native_events(self):
        controller = RecordingController()
        unlisteners = bind_window_controller(controller)

        await emit(TOGGLE_WINDOW_EVENT)
        await emit(FOCUS_LOST_EVENT)
        await emit(FOCUS_GAINED_EVENT)

        assert controller.calls == ["toggle", "lost", "gained"]
        for unlisten in unlisteners:
            unlisten()
        assert listener_count(TOGGLE_WINDOW_EVENT) == 0


class TestCreateBridge:

    def test_uses_configured_auto_focus_delay(self, monkeypatch):
        monkeypatch.setenv("SPARKNOVA_AUTO_FOCUS_DELAY", "900")

        bridge = create_bridge(LauncherConfig(), InputRef(), EventChannel(), Window())

        assert bridge.options.auto_focus_delay == 900

    def test_default_delay(self):
        bridge = create_bridge(LauncherConfig(), InputRef(), EventChannel(), Window())
        assert bridge.options.auto_focus_delay == 150
