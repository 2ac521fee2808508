"""JSON traversal — converting state trees to and from JSON-safe values.

A JSON-safe value is None, a bool, a finite int/float, a str, a list of
JSON-safe values, or a dict from str to JSON-safe values.

traverse_write() walks an arbitrary value tree and reduces it to that model:
- atomic values pass through; non-finite floats are unrepresentable
- lists/tuples and mappings are copied element-wise (non-str keys dropped)
- anything else is handed to to_encodable(), and the result traversed

Every container and custom object is pushed onto an identity-based seen-set
while its children are traversed, so a value that contains itself fails with
UnsupportedValueError (caused by CyclicReferenceError) instead of recursing
forever.

Custom types opt in either by defining ``to_json()`` or by registering a
converter:

    @to_encodable.register(datetime)
    def _(value):
        return value.isoformat()
"""

from __future__ import annotations

import enum
import functools
import math
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from state_tools.errors import CyclicReferenceError, UnsupportedValueError

# Marks "not handled by this classification", distinct from a None value.
_NIL = object()


@runtime_checkable
class JsonEncodable(Protocol):
    """Objects that know how to turn themselves into a JSON-safe value."""

    def to_json(self) -> Any: ...


@functools.singledispatch
def to_encodable(value: Any) -> Any:
    """Convert a custom object into something traverse_write() can handle."""
    if isinstance(value, float):
        raise ValueError(f"Out of range float values are not JSON compliant: {value!r}")
    if isinstance(value, JsonEncodable):
        return value.to_json()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON encodable")


class _Outcome(enum.Enum):
    ATOMIC = "atomic"
    COMPLEX = "complex"


def traverse_read(value: Any) -> Any:
    """Return a copy of ``value`` where every mapping key is a str.

    Keys that are not already strings become "". Lists are walked
    element-wise; everything else is returned unchanged.
    """
    if isinstance(value, Mapping):
        return {
            (key if isinstance(key, str) else ""): traverse_read(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [traverse_read(item) for item in value]
    return value


def traverse_write(value: Any) -> Any:
    """Reduce ``value`` to a JSON-safe tree.

    Raises UnsupportedValueError when some part of the tree cannot be
    represented, including cyclic references.
    """
    try:
        return _Traversal().write(value)[1]
    except (CyclicReferenceError, RecursionError) as e:
        raise UnsupportedValueError(value, cause=e) from e


class _Traversal:
    """One top-level traverse_write() call. Owns the seen-set."""

    __slots__ = ("_seen", "_stack")

    def __init__(self) -> None:
        self._seen: set[int] = set()
        self._stack: list[object] = []

    def write(self, value: Any) -> tuple[_Outcome, Any]:
        atomic = _atomic(value)
        if atomic is not _NIL:
            return _Outcome.ATOMIC, atomic

        complex_ = self._complex(value)
        if complex_ is not _NIL:
            return _Outcome.COMPLEX, complex_

        return _Outcome.COMPLEX, self._custom(value)

    def _custom(self, value: Any) -> Any:
        try:
            self._push(value)
            encoded = to_encodable(value)
            if encoded is None:
                self._pop(value)
                return None
            traversed = self._json(encoded)
            if traversed is _NIL:
                raise UnsupportedValueError(value)
            self._pop(value)
            return traversed
        except CyclicReferenceError as e:
            raise UnsupportedValueError(value, cause=e) from e
        except UnsupportedValueError:
            raise
        except Exception as e:
            raise UnsupportedValueError(value, cause=e) from e

    def _json(self, value: Any) -> Any:
        atomic = _atomic(value)
        if atomic is not _NIL:
            return atomic
        return self._complex(value)

    def _complex(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if not value:
                return []
            self._push(value)
            copy = None
            for index, item in enumerate(value):
                outcome, traversed = self.write(item)
                if copy is None and outcome is _Outcome.COMPLEX:
                    copy = list(value[:index])
                if copy is not None:
                    copy.append(traversed)
            self._pop(value)
            # Fast path: every element was atomic, a shallow copy suffices.
            return copy if copy is not None else list(value)

        if isinstance(value, Mapping):
            self._push(value)
            result = {
                key: self.write(item)[1]
                for key, item in value.items()
                if isinstance(key, str)
            }
            self._pop(value)
            return result

        return _NIL

    def _push(self, value: object) -> None:
        if id(value) in self._seen:
            raise CyclicReferenceError(value)
        self._seen.add(id(value))
        self._stack.append(value)

    def _pop(self, value: object) -> None:
        assert self._stack and self._stack[-1] is value, "seen-set out of order"
        self._stack.pop()
        self._seen.discard(id(value))


def _atomic(value: Any) -> Any:
    if value is None or value is True or value is False:
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            return _NIL
        return value
    return _NIL
