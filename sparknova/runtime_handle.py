import asyncio
import json
import logging
import os
import struct
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: Seconds to wait for the native loop to answer a request.
RESPONSE_TIMEOUT = 10.0

#: Environment variable holding the native loop TCP port.
NATIVE_PORT_ENV = "RUSTADDR"


class NativeRequest(BaseModel):
    """A window command sent to the native loop as ``[id, method, args]``."""
    id: int
    method: str
    args: List[Dict[str, Any]] = []

    def to_frame(self) -> list:
        return [self.id, self.method, self.args]


class NativeResponse(BaseModel):
    """The native loop's answer, received as ``[id, code, msg, result]``."""
    id: int
    code: int
    msg: str
    result: Any

    @classmethod
    def from_frame(cls, frame: Any) -> "NativeResponse":
        """:raises ValueError: If ``frame`` is not a four element list."""
        if not isinstance(frame, list) or len(frame) != 4:
            raise ValueError(f"Invalid native response frame: {frame}")
        return cls(id=frame[0], code=frame[1], msg=frame[2], result=frame[3])


class ApiError(Exception):
    """Raised for errors reported by the native loop."""

    def __init__(self, code: int, msg: str):
        super().__init__(f"[API-{code}] {msg}")
        self.code = code
        self.msg = msg


class RequestIds:
    """
    Request ids in flight and the futures waiting on them.

    Ids wrap around below ``max_id`` and are never reused while in flight.
    """

    def __init__(self, max_id: int = 255):
        self._waiting: Dict[int, asyncio.Future] = {}
        self._last: int = 0
        self._max_id = max_id

    def __len__(self) -> int:
        return len(self._waiting)

    def acquire(self, future: asyncio.Future) -> int:
        """
        Reserve an id for ``future``.

        :raises RuntimeError: If every id is in flight.
        """
        for _ in range(self._max_id):
            self._last = (self._last + 1) % self._max_id
            if self._last not in self._waiting:
                self._waiting[self._last] = future
                return self._last
        raise RuntimeError("No free request IDs available")

    def release(self, req_id: int) -> None:
        self._waiting.pop(req_id, None)

    def fail_all(self, exc: Exception) -> None:
        for future in self._waiting.values():
            if not future.done():
                future.set_exception(exc)
        self._waiting.clear()


_in_flight = RequestIds()
_task_queue: Optional[asyncio.Queue] = None
_task_queue_loop: Optional[asyncio.AbstractEventLoop] = None


def get_task_queue() -> asyncio.Queue:
    """Queue of requests waiting to be forwarded, one per running event loop."""
    global _task_queue, _task_queue_loop
    loop = asyncio.get_running_loop()
    if _task_queue is None or _task_queue_loop is not loop:
        _task_queue = asyncio.Queue()
        _task_queue_loop = loop
    return _task_queue


async def send_frame(frame: list, port: Optional[int] = None) -> Any:
    """
    Send one request frame to the native loop and read its answer.

    Frames are JSON documents prefixed with a 4-byte big-endian length.

    :param port: TCP port; defaults to the ``RUSTADDR`` environment variable.
    """
    if port is None:
        port = int(os.environ.get(NATIVE_PORT_ENV, "9000"))
    reader, writer = await asyncio.open_connection("127.0.0.1", port)

    try:
        payload = json.dumps(frame).encode("utf-8")
        writer.write(struct.pack(">I", len(payload)) + payload)
        await writer.drain()

        (length,) = struct.unpack(">I", await reader.readexactly(4))
        body = await reader.readexactly(length)
    finally:
        writer.close()
        await writer.wait_closed()

    return json.loads(body.decode("utf-8"))


def settle(future: asyncio.Future, frame: Any) -> None:
    """Complete ``future`` from a response frame; a non-zero code becomes :class:`ApiError`."""
    if future.done():
        return
    resp = NativeResponse.from_frame(frame)
    if resp.code != 0:
        future.set_exception(ApiError(resp.code, resp.msg))
    else:
        future.set_result(resp.result)


async def native_loop_tasks(port: Optional[int] = None) -> None:
    """
    Forward queued requests to the native loop until cancelled.

    On exit every request still in flight fails with ``RuntimeError``.
    """
    queue = get_task_queue()
    try:
        while True:
            frame, future = await queue.get()
            try:
                settle(future, await send_frame(frame, port=port))
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            finally:
                queue.task_done()
    except asyncio.CancelledError:
        logger.info("native_loop_tasks() cancelled.")
        raise
    finally:
        _in_flight.fail_all(RuntimeError("Event loop terminated"))


async def invoke(
    method: str,
    args: Optional[Dict[str, Any]] = None,
    result_type: Union[Type[BaseModel], Callable[[Any], T]] = dict,
    timeout: float = RESPONSE_TIMEOUT,
) -> T:
    """
    Call a native loop method and await its typed result.

    :param method: Method name, e.g. ``"window.hide"``.
    :param args: Optional keyword arguments of the method.
    :param result_type: Pydantic model or callable applied to the raw result.
    :param timeout: Seconds to wait for the answer.
    :raises ApiError: If the native loop reports an error.
    :raises asyncio.TimeoutError: If no answer arrives in time.
    """
    future: asyncio.Future = asyncio.get_running_loop().create_future()
    req_id = _in_flight.acquire(future)
    request = NativeRequest(id=req_id, method=method, args=[args] if args is not None else [])

    try:
        await get_task_queue().put((request.to_frame(), future))
        raw_result = await asyncio.wait_for(future, timeout=timeout)
    finally:
        _in_flight.release(req_id)

    if isinstance(result_type, type) and issubclass(result_type, BaseModel):
        return result_type.model_validate(raw_result)
    return result_type(raw_result)
