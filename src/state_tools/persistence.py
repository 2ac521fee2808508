"""Persistent notifiers — state that survives process restarts.

A PersistentNotifier recovers its state from Storage while it is being
constructed, before anyone can subscribe, and writes every new state back.

Lifecycle:
    constructing -> recovering -> ready <-> writing ... -> disposed

Storage writes are coroutines. Inside a running event loop they become tasks
owned by the notifier (await flush() to wait for them); outside one they are
driven to completion before write() returns.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Any, Coroutine, TypeVar

from state_tools import context
from state_tools.codec import traverse_read, traverse_write
from state_tools.errors import StorageNotFound
from state_tools.notifier import ValueNotifier
from state_tools.observer import StateObserver
from state_tools.storage import Storage

T = TypeVar("T")

logger = logging.getLogger("state_tools.persistence")


class PersistentNotifier(ValueNotifier[T], abc.ABC):
    """A ValueNotifier whose state is kept in a Storage.

    Subclasses convert between their state and JSON-safe values.

    Usage:
        class Counter(PersistentNotifier[int]):
            def __init__(self):
                super().__init__(0)

            def increment(self):
                self.state += 1

            def from_json(self, json):
                return json["value"]

            def to_json(self, state):
                return {"value": state}

    Several instances of one class share a record unless ``id`` tells them
    apart, either as a class attribute or as ``id=`` at construction.
    """

    id: str = ""

    def __init__(
        self,
        initial: T,
        *,
        storage: Storage | None = None,
        observer: StateObserver | None = None,
        id: str | None = None,
    ) -> None:
        self._storage = storage
        self._pending: set[asyncio.Task] = set()
        if id is not None:
            self.id = id
        super().__init__(initial, observer=observer)
        self.recover()

    @property
    def storage(self) -> Storage:
        storage = self._storage
        if storage is None:
            storage = context.current().storage
        if storage is None:
            raise StorageNotFound()
        return storage

    @property
    def storage_prefix(self) -> str:
        """Namespace for the record. Override to survive class renames."""
        return type(self).__name__

    @property
    def storage_token(self) -> str:
        return f"{self.storage_prefix}{self.id}"

    def recover(self) -> None:
        """Adopt the stored state, if any, then write the current state back."""
        try:
            stored = self.storage.read(self.storage_token)
            if stored is not None:
                self._state = self.from_json(traverse_read(stored))
        except Exception as error:
            self.on_error(error)

        try:
            encoded = self._encode(self._state)
            if encoded is not None:
                self._schedule(self.storage.write(self.storage_token, encoded))
                self._emit("on_recovered", self._state)
        except Exception as error:
            self.on_error(error)
            if isinstance(error, StorageNotFound):
                raise

    def _after_write(self, value: T) -> None:
        if self._state is not value:
            return  # a reentrant write already stored a newer state
        try:
            encoded = self._encode(value)
            if encoded is not None:
                self._schedule(self.storage.write(self.storage_token, encoded))
        except Exception as error:
            self.on_error(error)
            raise

    async def clear(self) -> None:
        """Delete the stored record. The in-memory state is left as is."""
        await self.storage.delete(self.storage_token)

    async def flush(self) -> None:
        """Wait for every storage write this notifier has started."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def on_error(self, error: BaseException) -> None:
        """Called with every recovery and persistence failure. Logs by default."""
        logger.error(
            "%s (%s) persistence failed",
            type(self).__name__,
            self.storage_token,
            exc_info=(type(error), error, error.__traceback__),
        )

    @abc.abstractmethod
    def from_json(self, json: Any) -> T:
        """Build the state from its stored JSON-safe form."""

    @abc.abstractmethod
    def to_json(self, state: T) -> Any:
        """Return the JSON-safe form of ``state``, or None to skip persisting it."""

    def _encode(self, state: T) -> Any:
        json = self.to_json(state)
        if json is None:
            return None
        return traverse_write(json)

    def _schedule(self, write: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(write)
            return
        task = loop.create_task(write)
        self._pending.add(task)
        task.add_done_callback(self._on_written)

    def _on_written(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.on_error(error)
