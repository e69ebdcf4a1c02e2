"""Tests for the native window bridge."""

import asyncio
import time

import pytest
from unittest.mock import AsyncMock, MagicMock

from sparknova import events
from sparknova.bridge import BridgeState, InputRef, WindowBridge
from sparknova.events import FOCUS_INPUT_EVENT, EventChannel
from sparknova.types import WindowControlOptions


class FakeChannel:
    """Platform channel recording subscriptions."""

    def __init__(self, error=None):
        self.error = error
        self.unlisten = MagicMock()
        self.subscriptions = []

    async def subscribe(self, event, callback):
        if self.error:
            raise self.error
        self.subscriptions.append((event, callback))
        return self.unlisten


def make_bridge(element=None, channel=None, window=None, delay=150):
    return WindowBridge(
        InputRef(element),
        channel or FakeChannel(),
        window or AsyncMock(),
        options=WindowControlOptions(auto_focus_delay=delay),
    )


class TestFocusInput:

    @pytest.mark.asyncio
    async def test_focuses_attached_element(self, element):
        bridge = make_bridge(element)
        await bridge.focus_input()
        assert element.focus_count == 1

    @pytest.mark.asyncio
    async def test_detached_element_is_noop(self):
        bridge = make_bridge(None)
        await bridge.focus_input()

    @pytest.mark.asyncio
    async def test_waits_for_next_tick(self, element):
        order = []

        async def next_tick():
            order.append("tick")

        element.focus = lambda: order.append("focus")
        bridge = WindowBridge(InputRef(element), FakeChannel(), AsyncMock(), next_tick=next_tick)
        await bridge.focus_input()
        assert order == ["tick", "focus"]

    @pytest.mark.asyncio
    async def test_element_attached_after_tick(self, element):
        ref = InputRef(None)

        async def next_tick():
            ref.current = element

        bridge = WindowBridge(ref, FakeChannel(), AsyncMock(), next_tick=next_tick)
        await bridge.focus_input()
        assert element.focus_count == 1


class TestHideWindow:

    @pytest.mark.asyncio
    async def test_calls_platform(self):
        window = AsyncMock()
        bridge = make_bridge(window=window)
        await bridge.hide_window()
        window.hide_main_window.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        window = AsyncMock()
        window.hide_main_window.side_effect = RuntimeError("no window")
        bridge = make_bridge(window=window)
        await bridge.hide_window()
        assert "Failed to hide window" in caplog.text


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_mount_subscribes_to_focus_request(self):
        channel = FakeChannel()
        bridge = make_bridge(channel=channel)
        assert bridge.state is BridgeState.UNBOUND

        await bridge.mount()

        assert bridge.state is BridgeState.BOUND
        assert [event for event, _ in channel.subscriptions] == [FOCUS_INPUT_EVENT]
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_state_is_subscribing_during_subscribe(self):
        states = []

        class SlowChannel(FakeChannel):
            async def subscribe(inner, event, callback):
                states.append(bridge.state)
                return await super().subscribe(event, callback)

        bridge = make_bridge(channel=SlowChannel())
        await bridge.mount()
        assert states == [BridgeState.SUBSCRIBING]
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_subscription_failure_is_logged(self, caplog, element):
        bridge = make_bridge(element, channel=FakeChannel(error=OSError("no ipc")), delay=0)

        await bridge.mount()

        assert bridge.state is BridgeState.UNBOUND
        assert "Failed to setup event listeners" in caplog.text
        await bridge.auto_focus_task
        assert element.focus_count == 1
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_auto_focus_after_delay(self, element):
        bridge = make_bridge(element, delay=150)
        started = time.monotonic()
        await bridge.mount()

        await asyncio.sleep(0)
        assert element.focus_count == 0

        await bridge.auto_focus_task
        assert element.focus_count == 1
        assert time.monotonic() - started >= 0.14
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_auto_focus_without_element_is_silent(self):
        bridge = make_bridge(None, delay=0)
        await bridge.mount()
        await bridge.auto_focus_task
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_unmount_twice(self):
        channel = FakeChannel()
        bridge = make_bridge(channel=channel)
        await bridge.mount()

        bridge.unmount()
        bridge.unmount()

        channel.unlisten.assert_called_once_with()
        assert bridge.state is BridgeState.UNBOUND

    def test_unmount_before_mount(self):
        bridge = make_bridge()
        bridge.unmount()
        assert bridge.state is BridgeState.UNBOUND

    @pytest.mark.asyncio
    async def test_unmount_cancels_pending_auto_focus(self, element):
        bridge = make_bridge(element, delay=10_000)
        await bridge.mount()
        task = bridge.auto_focus_task

        bridge.unmount()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert element.focus_count == 0

    @pytest.mark.asyncio
    async def test_unmount_while_subscribing_releases_handle(self):
        channel = FakeChannel()
        gate = asyncio.Event()
        original = channel.subscribe

        async def slow_subscribe(event, callback):
            await gate.wait()
            return await original(event, callback)

        channel.subscribe = slow_subscribe
        bridge = make_bridge(channel=channel)
        mounting = asyncio.create_task(bridge.mount())
        await asyncio.sleep(0)

        bridge.unmount()
        gate.set()
        await mounting

        channel.unlisten.assert_called_once_with()
        assert bridge.state is BridgeState.UNBOUND
        assert bridge.auto_focus_task is None

    @pytest.mark.asyncio
    async def test_mount_twice_keeps_single_subscription(self):
        channel = FakeChannel()
        bridge = make_bridge(channel=channel)
        await bridge.mount()
        await bridge.mount()
        assert len(channel.subscriptions) == 1
        bridge.unmount()


class TestWithEventChannel:

    @pytest.mark.asyncio
    async def test_platform_event_focuses_input(self, element):
        bridge = make_bridge(element, channel=EventChannel(), delay=10_000)
        await bridge.mount()

        delivered = await events.emit(FOCUS_INPUT_EVENT)

        assert delivered == 1
        assert element.focus_count == 1
        bridge.unmount()

    @pytest.mark.asyncio
    async def test_unmount_releases_listener(self, element):
        bridge = make_bridge(element, channel=EventChannel(), delay=10_000)
        await bridge.mount()
        assert events.listener_count(FOCUS_INPUT_EVENT) == 1

        bridge.unmount()
        bridge.unmount()

        assert events.listener_count(FOCUS_INPUT_EVENT) == 0
        await events.emit(FOCUS_INPUT_EVENT)
        assert element.focus_count == 0
