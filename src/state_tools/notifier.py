"""Value notifiers — state holders that call back their subscribers on change.

A ValueNotifier owns exactly one current value. write() replaces it and then
synchronously calls every subscriber, so by the time a callback runs, read()
already returns the new value. The previous value is only visible to the
observer's on_changed hook.

Subclasses customize writes through two hooks instead of overriding write():
- _accept(value) returns the value to adopt, or REJECT to drop the write.
- _after_write(value) runs once the value is adopted and subscribers notified.

Reentrant writes (a subscriber calling write()) recurse the same protocol.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Iterable, TypeVar

from state_tools import context
from state_tools.errors import InvalidStateError
from state_tools.observer import StateObserver

T = TypeVar("T")
Item = TypeVar("Item")

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]

logger = logging.getLogger("state_tools.notifier")

# Returned by _accept() to discard a write.
REJECT = object()


class ValueNotifier(Generic[T]):
    """Holds one value and notifies subscribers when it is written.

    Usage:
        class Counter(ValueNotifier[int]):
            def __init__(self):
                super().__init__(0)

            def increment(self):
                self.state += 1
    """

    def __init__(self, initial: T, *, observer: StateObserver | None = None) -> None:
        self._state = initial
        self._listeners: list[Listener] = []
        self._disposed = False
        self._observer = observer
        self._emit("on_created", initial)

    @property
    def observer(self) -> StateObserver | None:
        if self._observer is not None:
            return self._observer
        return context.current().observer

    def read(self) -> T:
        return self._state

    def write(self, value: T) -> None:
        """Replace the value, notify subscribers, then run _after_write()."""
        self._ensure_alive("write")
        value = self._accept(value)
        if value is REJECT:
            return
        previous = self._state
        self._state = value
        self._notify()
        self._emit("on_changed", previous, value)
        self._after_write(value)

    @property
    def state(self) -> T:
        return self.read()

    @state.setter
    def state(self, value: T) -> None:
        self.write(value)

    def _accept(self, value: T):
        return value

    def _after_write(self, value: T) -> None:
        pass

    # --- Subscriptions ---

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a zero-argument callback. Returns a function that removes it."""
        self._ensure_alive("subscribe")
        if listener not in self._listeners:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass  # never subscribed, or already removed

    @property
    def has_subscribers(self) -> bool:
        return bool(self._listeners)

    def _notify(self) -> None:
        # Snapshot: listeners may subscribe or unsubscribe while being called.
        for listener in list(self._listeners):
            if listener not in self._listeners:
                continue
            try:
                listener()
            except Exception:
                logger.exception("Subscriber %r of %r raised", listener, self)

    # --- Lifecycle ---

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Drop all subscribers. The notifier can no longer be written."""
        self._ensure_alive("dispose")
        self._listeners.clear()
        self._disposed = True
        self._emit("on_disposed")

    def _ensure_alive(self, operation: str) -> None:
        if self._disposed:
            raise InvalidStateError(
                f"{type(self).__name__}.{operation}() called after dispose()"
            )

    def _emit(self, event: str, *args) -> None:
        """Forward a lifecycle event to the observer, if any. Never raises."""
        observer = self.observer
        if observer is None:
            return
        try:
            getattr(observer, event)(self, *args)
        except Exception:
            logger.exception("Observer %r failed in %s", observer, event)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else repr(self._state)
        return f"{type(self).__name__}({state})"


class FilteredListNotifier(ValueNotifier[list[Item]]):
    """A ValueNotifier over a list whose writes pass through filter().

    Writes keep only the items filter() accepts. A write that filters down to
    an empty list is silently discarded, so it cannot clobber existing state.
    So is a write whose filtered result equals the current list.

    Usage:
        class EvenNumbers(FilteredListNotifier[int]):
            def filter(self, item):
                return item % 2 == 0

        evens = EvenNumbers.filtering([1, 2, 3, 4])
        evens.read()  # [2, 4]
        evens.add(5)  # no-op, nothing notified
        evens.add(6)  # [2, 4, 6]
    """

    def __init__(
        self,
        initial: Iterable[Item] = (),
        *,
        observer: StateObserver | None = None,
    ) -> None:
        super().__init__(list(initial), observer=observer)

    @classmethod
    def filtering(cls, source: Iterable[Item], *args, **kwargs) -> FilteredListNotifier[Item]:
        """Build a notifier whose initial state is ``source`` run through filter().

        Unlike write(), an empty result is accepted here. ``args`` and
        ``kwargs`` go to the constructor, which must accept being called
        without an initial list. The observer's on_created sees that empty
        list, not the filtered one.
        """
        notifier = cls(*args, **kwargs)
        notifier._state = [item for item in source if notifier.filter(item)]
        return notifier

    def filter(self, item: Item) -> bool:
        """Return True to keep ``item``. Accepts everything by default."""
        return True

    def _accept(self, value: Iterable[Item]):
        filtered = [item for item in value if self.filter(item)]
        if not filtered or filtered == self._state:
            return REJECT
        return filtered

    # --- Convenience mutators (all go through write) ---

    def add(self, item: Item) -> None:
        self.write([*self._state, item])

    def add_all(self, items: Iterable[Item]) -> None:
        self.write([*self._state, *items])

    def remove_first(self, item: Item) -> None:
        items = list(self._state)
        try:
            items.remove(item)
        except ValueError:
            pass
        self.write(items)

    def remove_all(self, item: Item) -> None:
        self.write([existing for existing in self._state if existing != item])
