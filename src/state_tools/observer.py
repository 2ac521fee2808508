"""Lifecycle observers — optional hooks on notifier creation, change and disposal.

An observer sees every notifier it is attached to, either explicitly via
``observer=`` or through the process-wide default set with
``state_tools.configure(observer=...)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from state_tools.notifier import ValueNotifier

logger = logging.getLogger("state_tools.observer")


class StateObserver:
    """Base observer. Every callback is a no-op; override the ones you need."""

    def on_created(self, notifier: ValueNotifier, initial: Any) -> None:
        pass

    def on_changed(self, notifier: ValueNotifier, previous: Any, new: Any) -> None:
        pass

    def on_recovered(self, notifier: ValueNotifier, state: Any) -> None:
        pass

    def on_disposed(self, notifier: ValueNotifier) -> None:
        pass


class LoggingObserver(StateObserver):
    """Logs every lifecycle event.

    Usage:
        state_tools.configure(observer=LoggingObserver(level=logging.INFO))
    """

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    def on_created(self, notifier, initial):
        logger.log(self.level, "%s => created with initial state: %r", type(notifier).__name__, initial)

    def on_changed(self, notifier, previous, new):
        logger.log(self.level, "%s: %r => %r", type(notifier).__name__, previous, new)

    def on_recovered(self, notifier, state):
        logger.log(self.level, "%s => recovered state: %r", type(notifier).__name__, state)

    def on_disposed(self, notifier):
        logger.log(self.level, "%s => disposed", type(notifier).__name__)
