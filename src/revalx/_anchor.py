"""Data anchor — plain Python structures that hold all cache state.

Registered loaders and the live cache entries are stored here, keyed by the
integer id handed out at registration time. Behavior modules (registry, entry,
cache) read and mutate these structures; nothing else owns them.
"""

import itertools

# Loader registrations
loaders: dict[int, object] = {}  # loader_id -> callable(props, context)
dispose_policies: dict[int, str] = {}  # loader_id -> "never" | "unused"

# Live entries: loader_id -> canonical key -> CacheEntry.
# A group is removed as soon as it becomes empty.
groups: dict[int, dict] = {}

# Ids for registered loaders; itertools.count is atomic under the GIL
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)
