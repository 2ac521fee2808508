"""Bind notifiers to a Textual app. Opt-in — requires textual.

Widgets read notifier state; they never own it. listen()/bind() subscribe
a callback that only touches the widget tree while the app can be queried.

// [LAW:single-enforcer] Pause guard, NoMatches and thread hop live here, not in widgets.
// [LAW:no-shared-mutable-globals] _paused_apps is owned by this module (pause/is_safe);
//   an app id is present exactly while its pause() block runs.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend bridged callbacks during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def listen(app, notifier, fn):
    """Call fn(notifier.read()) after every change, when the app is safe.

    Guards against firing during pause/not-running, catches NoMatches
    from widget queries, and marshals cross-thread calls via call_from_thread.
    Returns the unsubscribe function.
    """
    _main = threading.get_ident()

    def _guarded():
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe)
        else:
            _safe()

    def _safe():
        try:
            fn(notifier.read())
        except NoMatches:
            pass

    return notifier.subscribe(_guarded)


def bind(app, notifier, fn):
    """listen(), plus one immediate call with the current value."""
    unsubscribe = listen(app, notifier, fn)
    if is_safe(app):
        try:
            fn(notifier.read())
        except NoMatches:
            pass
    return unsubscribe
