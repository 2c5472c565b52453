"""Loader context — dependency registration during one loader run.

Every loader is called as loader(props, context). Through the context the
loader declares what should invalidate its result:

    use(store[, equal])   revalidate when store.get_state() stops being equal
                          to the snapshot taken now (returned immediately)
    use(channel)          revalidate whenever channel emits
    use(cache[, props])   load another cache; revalidate when it changes

Subscriptions are only opened once the entry settles, and are all closed
when it is disposed. For a synchronous loader that is before the loader call
returns to the registry.

Dependency cycles between caches are not detected; avoiding them is up to
the caller.
"""

from __future__ import annotations

import operator
from typing import TYPE_CHECKING, Any, TypeVar

from revalx.cache import Cache
from revalx.errors import UnsupportedDependencyError
from revalx.keys import UNDEFINED
from revalx.protocols import Channel, Equal, StoreLike

if TYPE_CHECKING:
    from revalx.entry import CacheEntry

T = TypeVar("T")


class LoaderContext:
    """Passed to a loader; wires external change signals to its entry."""

    __slots__ = ("_entry",)

    def __init__(self, entry: CacheEntry) -> None:
        self._entry = entry

    def revalidate(self) -> None:
        """Drop this entry so the next request recomputes it."""
        self._entry.revalidate()

    def use(self, source: Any, *args: Any) -> Any:
        """Register a dependency; dispatches on the kind of source."""
        if isinstance(source, Cache):
            return self.use_cache(source, *args)
        if isinstance(source, StoreLike):
            return self.use_store(source, *args)
        if callable(source):
            return self.use_channel(source, *args)
        raise UnsupportedDependencyError(source)

    def use_store(self, store: StoreLike[T], equal: Equal = operator.is_) -> T:
        """Snapshot store now; revalidate once a later state is not equal to it."""
        entry = self._entry
        current = store.get_state()

        def _activate():
            def _on_store_change() -> None:
                if equal(store.get_state(), current):
                    return
                entry.revalidate()

            return store.subscribe(_on_store_change)

        entry.add_dependency(_activate)
        return current

    def use_channel(self, channel: Channel) -> None:
        """Revalidate whenever channel emits."""
        entry = self._entry
        entry.add_dependency(lambda: channel(entry.revalidate))

    def use_cache(self, dependency: Cache, props: object = UNDEFINED):
        """Load dependency for props and revalidate when its value changes.

        Returns the dependency's get() handle: await it in an async loader,
        or call .result() on it in a synchronous one.
        """
        entry = self._entry
        target = dependency.entry(props)
        handle = target.get()

        def _activate():
            live = target if not target.removed else dependency.find(props)
            if live is None:
                return None
            return live.on_change(entry.revalidate)

        entry.add_dependency(_activate)
        return handle

    def __repr__(self) -> str:
        return f"LoaderContext({self._entry!r})"
