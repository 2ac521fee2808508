"""Process-wide defaults for notifiers: the observer and the default Storage.

Notifiers take ``observer=`` and ``storage=`` explicitly; when omitted they
resolve the defaults held here at the time of use.

Call configure() once at startup:

    state_tools.configure(storage=await FileStorage.build(path))

The default storage is settable once per process lifetime. Call teardown()
before configuring a different one.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from state_tools.errors import StateToolsError

if TYPE_CHECKING:
    from state_tools.observer import StateObserver
    from state_tools.storage import Storage

_UNSET = object()


class StateContext:
    """Holds the default observer and storage shared by notifiers."""

    __slots__ = ("observer", "storage")

    def __init__(
        self,
        observer: StateObserver | None = None,
        storage: Storage | None = None,
    ) -> None:
        self.observer = observer
        self.storage = storage

    def __repr__(self) -> str:
        return f"StateContext(observer={self.observer!r}, storage={self.storage!r})"


_current = StateContext()


def current() -> StateContext:
    return _current


def configure(*, observer=_UNSET, storage=_UNSET) -> StateContext:
    """Set the process-wide observer and/or default storage."""
    if storage is not _UNSET:
        if _current.storage is not None and storage is not _current.storage:
            raise StateToolsError(
                "Default storage is already configured; call teardown() first"
            )
        _current.storage = storage
    if observer is not _UNSET:
        _current.observer = observer
    return _current


def teardown() -> None:
    """Reset both defaults. Does not close the storage."""
    _current.observer = None
    _current.storage = None


@contextmanager
def scoped(
    observer: StateObserver | None = None,
    storage: Storage | None = None,
) -> Iterator[StateContext]:
    """Swap in a fresh context for the duration of the block."""
    global _current
    previous = _current
    _current = StateContext(observer, storage)
    try:
        yield _current
    finally:
        _current = previous
