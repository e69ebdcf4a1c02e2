import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Opaque key-value store that survives process restarts."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    async def flush(self) -> None:
        ...


class MemoryStorage:
    """In-process storage, mainly for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def flush(self) -> None:
        pass


class JsonFileStorage:
    """
    Storage backed by a single JSON object on disk.

    The file is read once, on first access. Inside a running event loop,
    :meth:`set` only updates the in-memory copy and schedules a write in
    the default executor; writes issued while one is in progress are
    coalesced into the next one. Without a running loop the file is
    written immediately. The file is always replaced atomically through a
    temporary sibling. An unreadable file is treated as empty.
    """

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)
        self._data: Optional[Dict[str, str]] = None
        self._dirty = False
        self._flush_task: Optional[asyncio.Task] = None

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: top level is not an object", self.path)
            return {}
        return data

    def _loaded(self) -> Dict[str, str]:
        if self._data is None:
            self._data = self._read_all()
        return self._data

    def _write_text(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(self.path)

    def _snapshot(self) -> str:
        return json.dumps(self._loaded(), ensure_ascii=False)

    def get(self, key: str) -> Optional[str]:
        value = self._loaded().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._loaded()[key] = value
        self._dirty = True

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dirty = False
            self._write_text(self._snapshot())
            return

        if self._flush_task is None or self._flush_task.done():
            self._flush_task = loop.create_task(self._write_pending())

    async def _write_pending(self) -> None:
        loop = asyncio.get_running_loop()
        while self._dirty:
            self._dirty = False
            try:
                await loop.run_in_executor(None, self._write_text, self._snapshot())
            except OSError as e:
                logger.error("Failed to write storage file %s: %s", self.path, e)

    async def flush(self) -> None:
        """Wait until every scheduled write has reached the disk."""
        if self._flush_task is not None:
            await self._flush_task
