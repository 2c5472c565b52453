"""Textual integration for revalx. Opt-in — requires textual.

follow() keeps a widget in sync with one cache entry: the effect runs when the
entry settles, again whenever its data changes, and after a revalidation it
runs against the freshly loaded replacement entry.

Guard + NoMatches + thread-marshal are enforced here, not at callsites.
Textual coupling stays in this module; the cache core is UI-agnostic.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from revalx.keys import UNDEFINED

# Module-owned pause state, keyed by id(app).
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class Follower:
    """Handle returned by follow(). dispose() stops following."""

    __slots__ = ("_cache", "_props", "_deliver", "_entry", "_unsubscribe", "_disposed")

    def __init__(self, cache, props, deliver) -> None:
        self._cache = cache
        self._props = props
        self._deliver = deliver
        self._entry = None
        self._unsubscribe = None
        self._disposed = False

    @property
    def entry(self):
        return self._entry

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _attach(self) -> None:
        entry = self._cache.entry(self._props)
        self._entry = entry
        self._unsubscribe = entry.on_change(self._on_change)
        entry.on_ready(lambda: self._on_ready(entry))

    def _on_ready(self, entry) -> None:
        if self._disposed or entry is not self._entry:
            return
        self._deliver(entry)

    def _on_change(self) -> None:
        if self._disposed:
            return
        entry = self._entry
        if entry.removed:
            self._attach()
        elif not entry.loading:
            self._deliver(entry)

    def dispose(self) -> None:
        """Release the subscription. The entry may then be idle-disposed."""
        if self._disposed:
            return
        self._disposed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


def follow(app, cache, effect, props=UNDEFINED) -> Follower:
    """Run effect(entry) whenever the cached value for props is (re)loaded.

    Guards against firing during pause/not-running, catches NoMatches
    from widget queries, and marshals cross-thread calls via call_from_thread.

    Usage:
        follower = follow(
            app, user, lambda e: app.query_one("#name").update(e.data["name"]), {"id": 1}
        )
        ...
        follower.dispose()
    """
    _main = threading.get_ident()

    def _guarded(entry):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, entry)
        else:
            _safe(entry)

    def _safe(entry):
        try:
            effect(entry)
        except NoMatches:
            pass

    follower = Follower(cache, props, _guarded)
    follower._attach()
    return follower
