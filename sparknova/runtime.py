import asyncio
import logging
import os
from datetime import datetime
from typing import List, Optional, Sequence

from .bridge import HidesWindow, InputRef, Subscriber, WindowBridge
from .config import LauncherConfig
from .connections import create_websocket_server
from .control.window import Window, WindowController
from .core import install_signal_handlers, shutdown_all_tasks, start_tracked_task
from .events import Unlisten, listen
from .matcher import Matcher
from .persist import JsonFileStorage
from .runtime_handle import NATIVE_PORT_ENV, native_loop_tasks
from .store import SearchStore
from .types import WindowControlOptions
from .utils import find_free_ports_and_set_env, format_time

logger = logging.getLogger(__name__)

#: Events pushed by the native side that drive the window controller.
TOGGLE_WINDOW_EVENT = "toggle-main-window"
FOCUS_LOST_EVENT = "window-focus-lost"
FOCUS_GAINED_EVENT = "window-focus-gained"


class LauncherFormatter(logging.Formatter):
    """Log formatter stamping records with millisecond wall-clock time."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return format_time(datetime.fromtimestamp(record.created))


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(LauncherFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def create_store(config: LauncherConfig, matcher: Optional[Matcher] = None) -> SearchStore:
    """Rehydrate the session's search store from ``config.state_path``."""
    storage = JsonFileStorage(config.state_path)
    store = SearchStore.load(storage, matcher=matcher)
    logger.info("Search store loaded from %s (%d history entries)", config.state_path, len(store.history))
    return store


def create_bridge(
    config: LauncherConfig,
    target: InputRef,
    channel: Subscriber,
    window: HidesWindow,
) -> WindowBridge:
    """Build the search input bridge with the configured auto focus delay."""
    options = WindowControlOptions(auto_focus_delay=config.auto_focus_delay)
    return WindowBridge(target, channel, window, options=options)


def bind_window_controller(controller: WindowController) -> List[Unlisten]:
    """Route native window events to ``controller``."""
    return [
        listen(TOGGLE_WINDOW_EVENT, controller.toggle),
        listen(FOCUS_LOST_EVENT, controller.handle_focus_lost),
        listen(FOCUS_GAINED_EVENT, controller.handle_focus_gained),
    ]


async def launch(
    native_command: Optional[Sequence[str]] = None,
    config: Optional[LauncherConfig] = None,
    matcher: Optional[Matcher] = None,
) -> SearchStore:
    """
    Run the launcher backend.

    This function:
      * Loads the config and rehydrates the search store.
      * Starts the platform event websocket and the native loop forwarder.
      * Spawns ``native_command`` (if given) with ``RUSTADDR`` and
        ``PYTHONADDR`` exported and waits for it to exit; without a command
        it runs until cancelled.
      * Cancels all background tasks on the way out.

    :return: The search store of the session.
    """
    config = config or LauncherConfig()
    configure_logging(config.log_level)

    if NATIVE_PORT_ENV not in os.environ:
        _, event_port = find_free_ports_and_set_env()
        config = config.model_copy(update={"ws_port": event_port})
    else:
        os.environ["PYTHONADDR"] = str(config.ws_port)

    store = create_store(config, matcher)
    install_signal_handlers()
    unlisteners = bind_window_controller(WindowController(Window()))

    start_tracked_task(create_websocket_server(config.ws_host, config.ws_port))
    start_tracked_task(native_loop_tasks())

    try:
        if native_command:
            process = await asyncio.create_subprocess_exec(*native_command, env=os.environ.copy())
            logger.info("Native host started (pid %d)", process.pid)
            try:
                code = await process.wait()
                logger.info("Native host exited with code %d", code)
            except asyncio.CancelledError:
                process.terminate()
                await process.wait()
                raise
        else:
            await asyncio.Future()
    finally:
        for unlisten in unlisteners:
            unlisten()
        await store.flush()
        await shutdown_all_tasks()

    return store
