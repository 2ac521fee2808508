"""Error taxonomy for notifiers, the JSON codec and persistence."""

from __future__ import annotations


class StateToolsError(Exception):
    """Base class for every error raised by state_tools."""


class InvalidStateError(StateToolsError):
    """A disposed notifier was used. This is a programming error."""


class StorageNotFound(StateToolsError):
    """Persistence was attempted with no Storage configured."""

    def __init__(self) -> None:
        super().__init__(
            "Storage was accessed before it was initialized.\n"
            "Pass storage= to the notifier or configure a default:\n\n"
            "    state_tools.configure(storage=await FileStorage.build(path))"
        )


class CyclicReferenceError(StateToolsError):
    """A value references itself through its own descendants."""

    def __init__(self, value: object) -> None:
        super().__init__("Cyclic reference while traversing state")
        self.value = value


class UnsupportedValueError(StateToolsError):
    """A value could not be reduced to a JSON-safe tree.

    If the value isn't directly encodable, the codec converts it with
    ``to_encodable``. When that call fails, the failure is kept in ``cause``.
    When it returns something that still isn't encodable, ``cause`` is None.
    """

    def __init__(self, value: object, cause: BaseException | None = None) -> None:
        if cause is not None:
            prefix = "Converting object to an encodable object failed:"
        else:
            prefix = "Converting object did not return an encodable object:"
        super().__init__(f"{prefix} {_safe_repr(value)}")
        self.value = value
        self.cause = cause


def _safe_repr(value: object) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<unrepresentable {type(value).__name__}>"
