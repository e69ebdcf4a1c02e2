import os
import socket
from datetime import datetime
from typing import Optional, Tuple


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


def find_free_ports_and_set_env() -> Tuple[int, int]:
    """
    Find two distinct free TCP ports and export them.

      * ``RUSTADDR`` → port of the native loop
      * ``PYTHONADDR`` → port of the platform event websocket

    :return: ``(native_port, event_port)``.
    """
    port1 = find_free_port()
    port2 = find_free_port()
    while port1 == port2:
        port2 = find_free_port()

    os.environ["RUSTADDR"] = str(port1)
    os.environ["PYTHONADDR"] = str(port2)
    return port1, port2


def format_time(date: datetime) -> str:
    """Format ``date`` as ``HH:MM:SS.mmm``."""
    return f"{date:%H:%M:%S}.{date.microsecond // 1000:03d}"


def current_formatted_time(now: Optional[datetime] = None) -> str:
    return format_time(now or datetime.now())
