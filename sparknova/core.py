import asyncio
import logging
import signal
import sys
from typing import Coroutine, Optional, Set

logger = logging.getLogger(__name__)

#: Background tasks started by the launcher.
background_tasks: Set[asyncio.Task] = set()


def start_tracked_task(coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
    """
    Run ``coro`` as a task held in ``background_tasks`` until it finishes.

    Keeping a reference stops a fire-and-forget task from being garbage
    collected mid-flight.
    """
    task = asyncio.create_task(coro, name=name)
    background_tasks.add(task)
    task.add_done_callback(background_tasks.discard)
    return task


async def shutdown_all_tasks() -> None:
    """Cancel every tracked task and wait for all of them to finish."""
    current = asyncio.current_task()
    pending = [task for task in background_tasks if not task.done() and task is not current]
    for task in pending:
        task.cancel()
    if pending:
        logger.info("Cancelling %d background task(s)", len(pending))
    await asyncio.gather(*pending, return_exceptions=True)


def install_signal_handlers() -> None:
    """
    Shut the launcher down on ``SIGINT``/``SIGTERM``.

    .. note::
       The event loop cannot install signal handlers on Windows; there the
       launcher stops on ``KeyboardInterrupt`` instead.
    """
    if sys.platform == "win32":
        logger.warning("Signal handlers are not supported on Windows, shutdown must be manual.")
        return

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: start_tracked_task(shutdown_all_tasks(), name="shutdown"))
