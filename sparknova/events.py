import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union, get_type_hints

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

Listener = Callable[..., Union[None, Awaitable[None]]]
Unlisten = Callable[[], None]

#: Event pushed by the native side when the search input should take focus.
FOCUS_INPUT_EVENT = "spark_focus_input"

_event_listeners: Dict[str, List[Listener]] = {}


def listen(event: str, callback: Listener) -> Unlisten:
    """
    Register ``callback`` for a platform event.

    :param event: Event name.
    :param callback: Sync or async callable. It is invoked with no
        arguments if it takes none, otherwise with the event payload.
    :return: A function removing the registration; repeated calls are a
        no-op.
    """
    _event_listeners.setdefault(event, []).append(callback)
    released = False

    def unlisten() -> None:
        nonlocal released
        if released:
            return
        released = True
        callbacks = _event_listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            _event_listeners.pop(event, None)

    return unlisten


def on(func_or_event: Union[None, str, Callable] = None):
    """
    Decorator form of :func:`listen`.

    Usable bare (``@on``, the event name is the function name) or with
    an explicit event name (``@on("window-hidden")``).
    """
    if callable(func_or_event):
        listen(func_or_event.__name__, func_or_event)
        return func_or_event

    def decorator(func: Callable):
        listen(func_or_event or func.__name__, func)
        return func

    return decorator


def listener_count(event: str) -> int:
    return len(_event_listeners.get(event, []))


def clear_listeners() -> None:
    _event_listeners.clear()


def _build_args(func: Listener, payload: Any) -> list:
    """
    Build the positional arguments for a listener.

    A listener whose first parameter is annotated with a pydantic model
    receives the payload validated into that model.
    """
    params = list(inspect.signature(func).parameters.values())
    if not params:
        return []

    try:
        hint = get_type_hints(func).get(params[0].name, Any)
    except Exception:
        hint = Any

    if inspect.isclass(hint) and issubclass(hint, BaseModel):
        return [hint.model_validate(payload)]
    return [payload]


async def emit(event: str, payload: Optional[Any] = None) -> int:
    """
    Deliver ``event`` to every registered listener.

    Listener failures are logged and do not stop delivery to the others.

    :return: The number of listeners that completed without error.
    """
    delivered = 0
    for func in list(_event_listeners.get(event, [])):
        try:
            args = _build_args(func, payload)
            result = func(*args)
            if inspect.isawaitable(result):
                await result
            delivered += 1
        except ValidationError as e:
            logger.error("Invalid payload for event '%s': %s", event, e)
        except Exception:
            logger.exception("Listener for event '%s' failed", event)
    return delivered


class EventChannel:
    """Asynchronous facade over the module-level listener registry."""

    async def subscribe(self, event: str, callback: Listener) -> Unlisten:
        return listen(event, callback)

    async def emit(self, event: str, payload: Optional[Any] = None) -> int:
        return await emit(event, payload)
