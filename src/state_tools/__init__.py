"""state_tools: observable state holders with optional persistence."""

from importlib.metadata import version as _version

__version__ = _version("state-tools")

from state_tools.errors import (
    StateToolsError,
    InvalidStateError,
    StorageNotFound,
    CyclicReferenceError,
    UnsupportedValueError,
)
from state_tools.observer import StateObserver, LoggingObserver
from state_tools.context import StateContext, configure, teardown, scoped
from state_tools.notifier import ValueNotifier, FilteredListNotifier
from state_tools.codec import JsonEncodable, to_encodable, traverse_read, traverse_write
from state_tools.storage import Storage, MemoryStorage, FileStorage
from state_tools.persistence import PersistentNotifier
# textual bridge NOT auto-imported — opt-in only

__all__ = [
    "StateToolsError",
    "InvalidStateError",
    "StorageNotFound",
    "CyclicReferenceError",
    "UnsupportedValueError",
    "StateObserver",
    "LoggingObserver",
    "StateContext",
    "configure",
    "teardown",
    "scoped",
    "ValueNotifier",
    "FilteredListNotifier",
    "JsonEncodable",
    "to_encodable",
    "traverse_read",
    "traverse_write",
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "PersistentNotifier",
]
