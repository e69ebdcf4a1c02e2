import logging
import time
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from ..events import emit
from ..runtime_handle import invoke

logger = logging.getLogger(__name__)

#: Seconds after showing the window during which losing focus does not hide it.
BLUR_HIDE_DELAY = 3.0
#: Window width as a fraction of the screen width.
WINDOW_WIDTH_RATIO = 0.75
MIN_WINDOW_WIDTH = 400.0
MAX_WINDOW_WIDTH = 960.0
WINDOW_HEIGHT = 80

#: Events emitted towards the search UI.
ACTIVATE_INPUT_EVENT = "activate-input"
WINDOW_HIDDEN_EVENT = "window-hidden"
FOCUS_SEARCH_INPUT_EVENT = "focus-search-input"


class MonitorInfo(BaseModel):
    """Monitor description as reported by the native loop."""
    name: Optional[str] = None
    size: Tuple[int, int]
    scale_factor: float = 1.0


def calculate_window_size(screen_width: int, screen_height: int) -> Tuple[int, int]:
    """
    Size of the launcher window for a given screen.

    The width is three quarters of the screen clamped to
    ``[MIN_WINDOW_WIDTH, MAX_WINDOW_WIDTH]``; the height is fixed.
    """
    width = screen_width * WINDOW_WIDTH_RATIO
    width = max(MIN_WINDOW_WIDTH, min(MAX_WINDOW_WIDTH, width))
    logger.debug("Window size %dx%d for screen %dx%d", width, WINDOW_HEIGHT, screen_width, screen_height)
    return int(width), WINDOW_HEIGHT


class Window:
    """
    Asynchronous API for the launcher's native window.

    Each method sends a request to the native loop and returns its result.
    """

    def __init__(self, label: str = "main"):
        self.label: str = label

    def _args(self, **extra: Any) -> Dict[str, Any]:
        return {"label": self.label, **extra}

    async def is_visible(self) -> bool:
        return await invoke("window.isVisible", self._args(), result_type=bool)

    async def is_focused(self) -> bool:
        return await invoke("window.isFocused", self._args(), result_type=bool)

    async def current_monitor(self) -> Optional[MonitorInfo]:
        """Monitor currently displaying the window, if any."""
        raw = await invoke("window.currentMonitor", self._args(), result_type=lambda r: r)
        return MonitorInfo.model_validate(raw) if raw else None

    async def show(self) -> bool:
        return await invoke("window.show", self._args(), result_type=bool)

    async def hide(self) -> bool:
        return await invoke("window.hide", self._args(), result_type=bool)

    async def set_focus(self) -> bool:
        """Bring the window into focus."""
        return await invoke("window.setFocus", self._args(), result_type=bool)

    async def center(self) -> bool:
        """Center the window on its current monitor."""
        return await invoke("window.center", self._args(), result_type=bool)

    async def unminimize(self) -> bool:
        return await invoke("window.unminimize", self._args(), result_type=bool)

    async def set_size(self, width: int, height: int) -> bool:
        """
        Resize the window.

        :param width: Physical width in pixels.
        :param height: Physical height in pixels.
        """
        return await invoke("window.setSize", self._args(width=width, height=height), result_type=bool)

    async def hide_main_window(self) -> bool:
        """Ask the native side to hide the launcher window."""
        return await invoke("hide_main_window", result_type=bool)


class WindowController:
    """
    Show/hide policy for the launcher window.

    Losing focus hides the window, except during a short guard period
    after it was shown, so that the activation shortcut does not
    immediately hide it again.
    """

    def __init__(self, window: Window, blur_hide_delay: float = BLUR_HIDE_DELAY, clock=time.monotonic):
        self.window = window
        self.blur_hide_delay = blur_hide_delay
        self._clock = clock
        self._last_show_time: float = clock()
        self._last_monitor_size: Optional[Tuple[int, int]] = None
        self.focused: bool = False

    def mark_shown(self) -> None:
        self._last_show_time = self._clock()

    def should_hide_on_blur(self) -> bool:
        return self._clock() - self._last_show_time > self.blur_hide_delay

    def needs_resize(self, monitor_size: Tuple[int, int]) -> bool:
        """Record ``monitor_size`` and report whether it changed."""
        if self._last_monitor_size != monitor_size:
            self._last_monitor_size = monitor_size
            return True
        return False

    async def show(self) -> bool:
        """
        Show, center and focus the window, then ask the UI to focus its input.

        :return: ``True`` if the window ended up visible and focused.
        """
        logger.info("Showing main window")
        self.mark_shown()
        await self.window.show()
        await self.window.center()
        await self.window.unminimize()
        await self.window.set_focus()
        await emit(ACTIVATE_INPUT_EVENT)

        visible = await self.window.is_visible()
        focused = await self.window.is_focused()
        logger.debug("After show: visible=%s focused=%s", visible, focused)
        return visible and focused

    async def hide(self) -> bool:
        """:return: ``True`` if the window ended up hidden and unfocused."""
        logger.info("Hiding main window")
        await self.window.hide()
        await emit(WINDOW_HIDDEN_EVENT)

        visible = await self.window.is_visible()
        focused = await self.window.is_focused()
        return not visible and not focused

    async def toggle(self) -> bool:
        """Hide the window if visible, show it otherwise."""
        try:
            visible = await self.window.is_visible()
        except Exception as e:
            logger.warning("Could not query window visibility: %s", e)
            visible = False

        if visible:
            return await self.hide()
        return await self.show()

    async def resize_if_needed(self) -> bool:
        monitor = await self.window.current_monitor()
        if monitor is None:
            logger.warning("Could not determine current monitor")
            return False
        if not self.needs_resize(monitor.size):
            return False
        width, height = calculate_window_size(*monitor.size)
        return await self.window.set_size(width, height)

    async def handle_focus_lost(self) -> None:
        self.focused = False
        if not await self.window.is_visible():
            return
        if self.should_hide_on_blur():
            logger.info("Window lost focus, hiding")
            await self.hide()
        else:
            logger.debug("Window lost focus during guard period, ignoring")

    async def handle_focus_gained(self) -> None:
        self.focused = True
        await self.resize_if_needed()
        await emit(FOCUS_SEARCH_INPUT_EVENT)
