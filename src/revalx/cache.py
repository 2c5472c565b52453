"""Cache handles — a registered loader and the entries derived from it.

cache(loader) registers the loader once and returns a Cache. The handle is
the loader's identity: entries are grouped under its id, so two handles never
share entries even when their inputs serialize identically.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar, overload

from revalx import _anchor, registry
from revalx.entry import CacheEntry
from revalx.keys import UNDEFINED
from revalx.protocols import DisposePolicy, Loader

T = TypeVar("T")


class Cache(Generic[T]):
    """Handle for a registered loader."""

    __slots__ = ("_id",)

    def __init__(self, loader: Loader, *, dispose: DisposePolicy = "unused") -> None:
        self._id = registry.register_loader(loader, dispose)

    @property
    def id(self) -> int:
        return self._id

    @property
    def loader(self) -> Loader:
        return _anchor.loaders[self._id]

    @property
    def dispose_policy(self) -> DisposePolicy:
        return _anchor.dispose_policies[self._id]

    def entry(self, props: object = UNDEFINED) -> CacheEntry[T]:
        """Return the live entry for props, loading it on a miss."""
        return registry.get_or_create(self._id, props)

    def find(self, props: object = UNDEFINED) -> CacheEntry[T] | None:
        """Return the live entry for props without loading anything."""
        return registry.find_entry(self._id, props)

    def load(self, props: object = UNDEFINED):
        """Return the (possibly pending) result handle for props.

        Usage:
            value = await users.load({"id": 1})
        """
        return self.entry(props).get()

    def get(self, props: object = UNDEFINED):
        """Return the result handle for props if it is cached, else None."""
        entry = self.find(props)
        return entry.get() if entry is not None else None

    def set_value(self, value: T, props: object = UNDEFINED) -> bool:
        entry = self.find(props)
        if entry is None:
            return False
        entry.set_value(value)
        return True

    def set_error(self, error: BaseException, props: object = UNDEFINED) -> bool:
        entry = self.find(props)
        if entry is None:
            return False
        entry.set_error(error)
        return True

    def set_with_reducer(self, reducer: Callable[[T | None], T], props: object = UNDEFINED) -> bool:
        entry = self.find(props)
        if entry is None:
            return False
        entry.set_with_reducer(reducer)
        return True

    def revalidate(self) -> None:
        """Revalidate every cached entry of this loader."""
        group = registry.find_group(self._id)
        if group is None:
            return
        for entry in list(group.values()):
            entry.revalidate()

    def clear(self) -> None:
        """Dispose every cached entry of this loader."""
        registry.remove_group(self._id, CacheEntry.dispose)

    def __repr__(self) -> str:
        name = getattr(self.loader, "__name__", "loader")
        group = registry.find_group(self._id)
        return f"Cache({name}, entries={len(group) if group else 0})"


@overload
def cache(loader: Loader, *, dispose: DisposePolicy = "unused") -> Cache: ...


@overload
def cache(*, dispose: DisposePolicy = "unused") -> Callable[[Loader], Cache]: ...


def cache(loader=None, *, dispose="unused"):
    """Decorator/factory to register a loader and get its Cache handle.

    Usage:
        @cache
        async def user(props, ctx):
            ctx.use(tag(f"user:{props['id']}"))
            return await fetch_user(props["id"])

        await user.load({"id": 1})
        revalidate("user:1")  # next load refetches

        @cache(dispose="never")
        def settings(props, ctx):
            return read_settings()
    """
    if loader is None:
        return lambda fn: Cache(fn, dispose=dispose)
    return Cache(loader, dispose=dispose)

