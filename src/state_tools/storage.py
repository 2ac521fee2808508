"""Storage — the key-value capability persistent notifiers write through.

read() is synchronous and served from memory. Mutations are coroutines,
serialized per storage instance by an asyncio.Lock so interleaved
write/delete/clear/close calls reach the backend in FIFO order.
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger("state_tools.storage")


class Storage(abc.ABC):
    """Interface used to persist and retrieve state."""

    @abc.abstractmethod
    def read(self, key: str) -> Any:
        """Return the value stored under ``key``, or None."""

    @abc.abstractmethod
    async def write(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every key from this storage."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources. The storage is unusable afterwards."""


class MemoryStorage(Storage):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data) if data else {}
        self._lock = asyncio.Lock()
        self._closed = False

    def read(self, key: str) -> Any:
        if self._closed:
            return None
        return self._data.get(key)

    async def write(self, key: str, value: Any) -> None:
        async with self._lock:
            if not self._closed:
                self._data[key] = value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()

    async def close(self) -> None:
        async with self._lock:
            self._closed = True

    def __repr__(self) -> str:
        return f"MemoryStorage({len(self._data)} keys)"


class FileStorage(Storage):
    """Stores every key in one JSON file inside ``directory``.

    The whole file is loaded once; reads come from that cache and each
    mutation rewrites the file atomically in a worker thread.

    Usage:
        storage = await FileStorage.build(Path.home() / ".myapp")
        state_tools.configure(storage=storage)
    """

    FILENAME = "state_tools.json"

    # One shared instance per directory.
    _instances: dict[Path, FileStorage] = {}
    _build_lock = asyncio.Lock()

    def __init__(self, directory: Path, data: dict[str, Any] | None = None) -> None:
        self.directory = Path(directory)
        self.path = self.directory / self.FILENAME
        self._data: dict[str, Any] = data if data is not None else {}
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def build(cls, directory: str | os.PathLike) -> FileStorage:
        """Return the storage for ``directory``, loading it on first use."""
        key = Path(directory).expanduser().resolve()
        async with cls._build_lock:
            instance = cls._instances.get(key)
            if instance is None:
                data = await asyncio.to_thread(cls._load, key)
                instance = cls._instances[key] = cls(key, data)
                logger.debug("Opened %s with %d keys", instance.path, len(data))
            return instance

    @classmethod
    def _load(cls, directory: Path) -> dict[str, Any]:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / cls.FILENAME
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("Could not load %s; starting empty", path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: top-level value is not an object", path)
            return {}
        return data

    @property
    def is_open(self) -> bool:
        return not self._closed

    def read(self, key: str) -> Any:
        if self._closed:
            return None
        return self._data.get(key)

    async def write(self, key: str, value: Any) -> None:
        async with self._lock:
            if self._closed:
                return
            self._data[key] = value
            await self._flush()

    async def delete(self, key: str) -> None:
        async with self._lock:
            if self._closed or key not in self._data:
                return
            del self._data[key]
            await self._flush()

    async def clear(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._data.clear()
            await self._flush()

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._forget()
            self._closed = True

    def _forget(self) -> None:
        if FileStorage._instances.get(self.directory) is self:
            del FileStorage._instances[self.directory]

    async def _flush(self) -> None:
        payload = json.dumps(self._data, ensure_ascii=False, allow_nan=False)
        await asyncio.to_thread(self._replace, payload)

    def _replace(self, payload: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".state_tools.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{len(self._data)} keys"
        return f"FileStorage({str(self.path)!r}, {state})"
