"""
Binding between the search input's lifecycle and native window events.

A :class:`WindowBridge` is created by whatever owns the search input. Its
:meth:`~WindowBridge.mount` and :meth:`~WindowBridge.unmount` must be
called from the input's attach and detach hooks.
"""

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .core import start_tracked_task
from .events import FOCUS_INPUT_EVENT, Listener, Unlisten
from .types import WindowControlOptions

logger = logging.getLogger(__name__)


class Focusable(Protocol):
    def focus(self) -> None:
        ...


class InputRef:
    """Mutable reference to the input element; ``current`` is ``None`` while detached."""

    def __init__(self, current: Optional[Focusable] = None):
        self.current = current


class Subscriber(Protocol):
    async def subscribe(self, event: str, callback: Listener) -> Unlisten:
        ...


class HidesWindow(Protocol):
    async def hide_main_window(self) -> bool:
        ...


class BridgeState(enum.Enum):
    UNBOUND = "unbound"
    SUBSCRIBING = "subscribing"
    BOUND = "bound"


async def _yield_to_loop() -> None:
    await asyncio.sleep(0)


class WindowBridge:
    """
    Focuses the search input on platform request and hides the window on demand.

    :param target: Reference to the input element.
    :param channel: Platform event channel used to subscribe to
        :data:`~sparknova.events.FOCUS_INPUT_EVENT`.
    :param window: Platform window control.
    :param options: Bridge options; ``auto_focus_delay`` is in milliseconds.
    :param next_tick: Awaited before focusing, so pending UI updates land
        first.
    """

    def __init__(
        self,
        target: InputRef,
        channel: Subscriber,
        window: HidesWindow,
        options: Optional[WindowControlOptions] = None,
        next_tick: Callable[[], Awaitable[None]] = _yield_to_loop,
    ):
        self.target = target
        self.channel = channel
        self.window = window
        self.options = options or WindowControlOptions()
        self._next_tick = next_tick
        self._unlisten: Optional[Unlisten] = None
        self._state = BridgeState.UNBOUND
        self._mounted = False
        self.auto_focus_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> BridgeState:
        return self._state

    async def focus_input(self) -> None:
        await self._next_tick()
        element = self.target.current
        if element is not None:
            element.focus()

    async def hide_window(self) -> None:
        """Hide the main window; failures are logged, never raised."""
        try:
            await self.window.hide_main_window()
            logger.info("Window hidden")
        except Exception as e:
            logger.error("Failed to hide window: %s", e)

    async def _on_focus_request(self) -> None:
        await self.focus_input()

    async def _delayed_focus(self) -> None:
        await asyncio.sleep(self.options.auto_focus_delay / 1000)
        await self.focus_input()

    async def mount(self) -> None:
        """
        Subscribe to focus requests and schedule the one-shot auto focus.

        A failed subscription is logged and leaves the bridge unbound.
        """
        if self._mounted:
            logger.warning("Bridge already mounted (%s)", self._state.value)
            return

        self._mounted = True
        self._state = BridgeState.SUBSCRIBING
        try:
            unlisten = await self.channel.subscribe(FOCUS_INPUT_EVENT, self._on_focus_request)
        except Exception as e:
            logger.error("Failed to setup event listeners: %s", e)
            self._state = BridgeState.UNBOUND
        else:
            if self._mounted:
                self._unlisten = unlisten
                self._state = BridgeState.BOUND
            else:
                # Unmounted while the subscription was in flight.
                unlisten()

        if self._mounted:
            self.auto_focus_task = start_tracked_task(self._delayed_focus())

    def unmount(self) -> None:
        """Release the subscription exactly once; later calls do nothing."""
        self._mounted = False
        if self.auto_focus_task is not None and not self.auto_focus_task.done():
            self.auto_focus_task.cancel()
        self.auto_focus_task = None

        if self._unlisten is not None:
            unlisten, self._unlisten = self._unlisten, None
            unlisten()
        self._state = BridgeState.UNBOUND
