"""Tests for the JSON traversal codec."""

import sys

import pytest

from state_tools import (
    CyclicReferenceError,
    UnsupportedValueError,
    to_encodable,
    traverse_read,
    traverse_write,
)


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y

    def to_json(self):
        return {"x": self.x, "y": self.y}


class Broken:
    def to_json(self):
        raise RuntimeError("cannot encode")


class Node:
    def to_json(self):
        return {"next": self}


class Celsius:
    def __init__(self, degrees):
        self.degrees = degrees


@to_encodable.register(Celsius)
def _encode_celsius(value):
    return {"celsius": value.degrees}


class TestTraverseWrite:
    @pytest.mark.parametrize("value", [None, True, False, 0, -3, 1.5, "", "text"])
    def test_atomic_passthrough(self, value):
        assert traverse_write(value) is value

    def test_round_trip(self):
        value = {
            "a": [1, 2, {"b": None}],
            "c": "x",
            "d": {"e": [True, 1.5], "f": []},
        }
        assert traverse_read(traverse_write(value)) == value

    def test_tuples_become_lists(self):
        assert traverse_write({"t": (1, (2, 3))}) == {"t": [1, [2, 3]]}

    def test_non_string_keys_dropped(self):
        assert traverse_write({"a": 1, 2: "two", None: 3}) == {"a": 1}

    def test_atomic_list_is_copied(self):
        items = [1, 2, 3]
        result = traverse_write(items)
        assert result == items
        assert result is not items

    def test_mixed_list(self):
        assert traverse_write([1, Point(0, 1), "z"]) == [1, {"x": 0, "y": 1}, "z"]

    def test_empty_containers(self):
        assert traverse_write([]) == []
        assert traverse_write(()) == []
        assert traverse_write({}) == {}

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers(self, value):
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write({"n": [1, value]})
        assert isinstance(exc_info.value.cause, ValueError)

    def test_custom_object(self):
        assert traverse_write({"p": Point(1, 2)}) == {"p": {"x": 1, "y": 2}}

    def test_registered_converter(self):
        assert traverse_write([Celsius(21.5)]) == [{"celsius": 21.5}]

    def test_object_without_converter(self):
        value = object()
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write({"o": value})
        assert exc_info.value.value is value
        assert isinstance(exc_info.value.cause, TypeError)
        assert "failed" in str(exc_info.value)

    def test_converter_raises(self):
        value = Broken()
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(value)
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_converter_returns_unencodable(self):
        class Opaque:
            def to_json(self):
                return object()

        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(Opaque())
        assert exc_info.value.cause is None
        assert "did not return an encodable object" in str(exc_info.value)

    def test_converter_returns_none(self):
        class Nothing:
            def to_json(self):
                return None

        assert traverse_write({"n": Nothing()}) == {"n": None}

    def test_nested_failure_not_double_wrapped(self):
        inner = object()

        class Wrapper:
            def to_json(self):
                return [inner]

        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(Wrapper())
        assert exc_info.value.value is inner
        assert isinstance(exc_info.value.cause, TypeError)


class TestCycles:
    def test_self_referencing_dict(self):
        value = {}
        value["self"] = value
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(value)
        assert isinstance(exc_info.value.cause, CyclicReferenceError)

    def test_self_referencing_list(self):
        value = [1]
        value.append([value])
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(value)
        assert isinstance(exc_info.value.cause, CyclicReferenceError)

    def test_custom_object_cycle(self):
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write({"head": Node()})
        assert isinstance(exc_info.value.cause, CyclicReferenceError)

    def test_shared_reference_is_not_a_cycle(self):
        shared = [1, 2]
        point = Point(0, 0)
        value = {"a": shared, "b": shared, "c": [point, point]}
        assert traverse_write(value) == {
            "a": [1, 2],
            "b": [1, 2],
            "c": [{"x": 0, "y": 0}, {"x": 0, "y": 0}],
        }

    def test_too_deep_tree(self):
        root = []
        node = root
        for _ in range(sys.getrecursionlimit() * 2):
            child = []
            node.append(child)
            node = child
        with pytest.raises(UnsupportedValueError) as exc_info:
            traverse_write(root)
        assert exc_info.value.value is root
        assert isinstance(exc_info.value.cause, RecursionError)

    def test_traversal_state_not_leaked_after_error(self):
        value = {}
        value["self"] = value
        with pytest.raises(UnsupportedValueError):
            traverse_write(value)
        assert traverse_write({"ok": [1]}) == {"ok": [1]}


class TestTraverseRead:
    def test_primitives_unchanged(self):
        assert traverse_read(3) == 3
        assert traverse_read("s") == "s"
        assert traverse_read(None) is None

    def test_non_string_keys_become_empty(self):
        assert traverse_read({1: "a"}) == {"": "a"}
        assert traverse_read([{2: {"k": 1}}]) == [{"": {"k": 1}}]

    def test_does_not_mutate_input(self):
        value = [{1: "a"}]
        traverse_read(value)
        assert value == [{1: "a"}]
