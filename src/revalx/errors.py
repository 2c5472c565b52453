"""Cache error hierarchy.

Hierarchy::

    CacheError
    ├── NotReadyError               get() before any result existed
    └── UnsupportedDependencyError  use() with an unrecognized source

Loader and reducer failures are not wrapped: the original exception is
stored on the entry and re-raised to whoever reads it.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for errors raised by the cache itself."""


class NotReadyError(CacheError, RuntimeError):
    """An entry was read before its loader produced any result."""

    def __init__(self, key: str) -> None:
        super().__init__(f"The cache entry {key!r} is not ready yet")
        self.key = key


class UnsupportedDependencyError(CacheError, TypeError):
    """LoaderContext.use() received something that is not a cache, store or channel."""

    def __init__(self, source: object) -> None:
        super().__init__(
            f"Unsupported dependency use({source!r}): expected a Cache, "
            "a store with get_state()/subscribe(), or a channel callable"
        )
        self.source = source
