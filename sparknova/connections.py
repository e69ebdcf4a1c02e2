import asyncio
import json
import logging
from typing import Any, Optional

import websockets
from pydantic import BaseModel, ValidationError
from websockets import ServerConnection

from .events import emit

logger = logging.getLogger(__name__)


class PlatformEvent(BaseModel):
    """An event pushed by the native side."""
    event: str
    payload: Optional[Any] = None


def parse_platform_event(message: str) -> PlatformEvent:
    """
    Decode a websocket message into a :class:`PlatformEvent`.

    Doubly encoded JSON (a JSON string containing JSON) is accepted.

    :raises json.JSONDecodeError: If the message is not JSON.
    :raises ValidationError: If the message is not an event object.
    """
    payload = json.loads(message.strip())
    if isinstance(payload, str):
        payload = json.loads(payload)
    return PlatformEvent.model_validate(payload)


async def handle_platform_connection(websocket: ServerConnection) -> None:
    """
    Receive platform events from one connection and dispatch them.

    Malformed messages are logged and skipped; the connection stays open.
    """
    try:
        async for message in websocket:
            if isinstance(message, bytes):
                message = message.decode("utf-8", errors="replace")
            try:
                event = parse_platform_event(message)
            except json.JSONDecodeError as e:
                logger.error("Malformed JSON from %s: %s", websocket.remote_address, e)
                continue
            except ValidationError as e:
                logger.warning("Ignoring message without event name: %s", e)
                continue

            delivered = await emit(event.event, event.payload)
            logger.debug("Event '%s' delivered to %d listener(s)", event.event, delivered)
    except websockets.ConnectionClosed:
        logger.info("Platform client disconnected: %s", websocket.remote_address)


async def create_websocket_server(host: str = "localhost", port: int = 8765) -> None:
    """
    Serve platform event connections until cancelled.

    :param host: Address to bind. Defaults to ``"localhost"``.
    :param port: Port to bind. Defaults to ``8765``.
    """
    async with websockets.serve(handle_platform_connection, host, port):
        logger.info("Listening for platform events on ws://%s:%d", host, port)
        await asyncio.Future()
