"""revalx: reference-counted, self-revalidating cache for loader results."""

from importlib.metadata import version as _version

__version__ = _version("revalx")

from revalx._scheduling import set_scheduler
from revalx.keys import UNDEFINED, FrozenProps, derive_key, freeze
from revalx.errors import CacheError, NotReadyError, UnsupportedDependencyError
from revalx.listenable import Listenable
from revalx.entry import CacheEntry, Failed, Pending, Ready
from revalx.registry import clear_all, create_entry, get_or_create, remove_group
from revalx.cache import Cache, cache
from revalx.context import LoaderContext
from revalx.tags import clear_tags, revalidate, tag, timeout
from revalx.store import Store, select
# textual is not auto-imported; opt-in only

__all__ = [
    "UNDEFINED",
    "FrozenProps",
    "derive_key",
    "freeze",
    "CacheError",
    "NotReadyError",
    "UnsupportedDependencyError",
    "Listenable",
    "CacheEntry",
    "Pending",
    "Ready",
    "Failed",
    "Cache",
    "cache",
    "LoaderContext",
    "clear_all",
    "create_entry",
    "get_or_create",
    "remove_group",
    "revalidate",
    "tag",
    "timeout",
    "clear_tags",
    "Store",
    "select",
    "set_scheduler",
]
