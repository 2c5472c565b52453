"""Cache registry — loader id -> canonical key -> CacheEntry.

The mapping itself lives in _anchor.groups. A loader's group is created on
first use and deleted as soon as its last entry goes away, so the registry
never holds empty groups for long.

Usage:
    loader_id = register_loader(lambda props, ctx: props["n"] * 2)
    entry = get_or_create(loader_id, {"n": 3})
    entry.data   # 6
    clear_all()  # test teardown
"""

from __future__ import annotations

import logging
from typing import Callable

from revalx import _anchor
from revalx.entry import CacheEntry
from revalx.keys import UNDEFINED, derive_key
from revalx.protocols import DISPOSE_POLICIES, DisposePolicy, Loader

logger = logging.getLogger("revalx.registry")


def register_loader(loader: Loader, dispose: DisposePolicy = "unused") -> int:
    """Register a loader function and return its identity handle."""
    if dispose not in DISPOSE_POLICIES:
        raise ValueError(f"dispose must be one of {DISPOSE_POLICIES}, got {dispose!r}")
    loader_id = _anchor.new_id()
    _anchor.loaders[loader_id] = loader
    _anchor.dispose_policies[loader_id] = dispose
    return loader_id


def unregister_loader(loader_id: int) -> None:
    """Dispose every entry of a loader and forget the registration."""
    remove_group(loader_id, CacheEntry.dispose)
    _anchor.groups.pop(loader_id, None)
    _anchor.loaders.pop(loader_id, None)
    _anchor.dispose_policies.pop(loader_id, None)


def get_group(loader_id: int) -> dict[str, CacheEntry]:
    """Return the loader's group, creating it if needed."""
    group = _anchor.groups.get(loader_id)
    if group is None:
        group = {}
        _anchor.groups[loader_id] = group
    return group


def find_group(loader_id: int) -> dict[str, CacheEntry] | None:
    return _anchor.groups.get(loader_id)


def find_entry(loader_id: int, props: object = UNDEFINED) -> CacheEntry | None:
    group = _anchor.groups.get(loader_id)
    if group is None:
        return None
    return group.get(derive_key(props))


def create_entry(
    loader_id: int,
    props: object = UNDEFINED,
    dispose: DisposePolicy | None = None,
) -> CacheEntry:
    """Create a fresh entry for props and run the loader.

    Any live entry already holding the key is disposed first. The new entry
    is linked into the registry before the loader runs.
    """
    loader = _anchor.loaders.get(loader_id)
    if loader is None:
        raise KeyError(f"No loader registered with id {loader_id}")
    policy = dispose if dispose is not None else _anchor.dispose_policies[loader_id]
    key = derive_key(props)

    existing = find_entry(loader_id, props)
    if existing is not None:
        existing.dispose()

    entry = CacheEntry(loader_id, key, policy)
    get_group(loader_id)[key] = entry
    logger.debug("Created %r", entry)
    entry.run(loader, None if props is UNDEFINED else props)
    return entry


def get_or_create(loader_id: int, props: object = UNDEFINED) -> CacheEntry:
    """Return the live entry for props, creating (and loading) it on a miss."""
    entry = find_entry(loader_id, props)
    if entry is not None:
        return entry
    return create_entry(loader_id, props)


def remove_group(loader_id: int, on_each: Callable[[CacheEntry], None] | None = None) -> None:
    """Drop a loader's entries.

    With on_each, call it for every current entry (typically dispose) and
    then empty the group; without it, drop the group wholesale.
    """
    if on_each is None:
        _anchor.groups.pop(loader_id, None)
        return
    group = _anchor.groups.get(loader_id)
    if group is None:
        return
    for entry in list(group.values()):
        on_each(entry)
    group.clear()
    if _anchor.groups.get(loader_id) is group:
        del _anchor.groups[loader_id]


def clear_all() -> None:
    """Forget every entry of every loader. Loader registrations survive."""
    _anchor.groups.clear()
