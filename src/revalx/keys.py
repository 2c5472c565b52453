"""Canonical keys — a stable string identity for loader inputs.

derive_key() is total and deterministic: structurally equal inputs give the
same key, mapping key order does not matter, and a mapping entry whose value
is None/UNDEFINED/NaN is treated exactly like a missing entry.

Repeated calls with the same FrozenProps instance reuse the key memoized on
that instance. Anything else is serialized on every call.
"""

from __future__ import annotations

import datetime as _dt
import json
import math
import re
from collections.abc import Mapping
from typing import Iterator


class _Undefined:
    """Marker for "no value given", distinct from None."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

# Sentinels. Never valid JSON output, so they cannot collide with a
# serialized string or number.
_UNDEFINED_KEY = "#U"
_NONE_KEY = "#N"
_EMPTY_KEY = "#E"
_OPAQUE_KEY = "#I"

_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)


class FrozenProps(Mapping):
    """Immutable, hashable mapping that remembers its own canonical key.

    Build one with freeze(). Nested mappings are frozen too and lists become
    tuples, so the memoized key can never go stale.
    """

    __slots__ = ("_data", "_key", "_hash")

    def __init__(self, data: Mapping | None = None, **kwargs: object) -> None:
        items = dict(data or {}, **kwargs)
        self._data = {key: _freeze_value(value) for key, value in items.items()}
        self._key: str | None = None
        self._hash: int | None = None

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self) -> Iterator:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(derive_key(self))
        return self._hash

    def __repr__(self) -> str:
        return f"FrozenProps({self._data!r})"


def freeze(value: Mapping | None = None, **kwargs: object) -> FrozenProps:
    """Return an immutable copy of a mapping, eligible for key memoization."""
    if isinstance(value, FrozenProps) and not kwargs:
        return value
    return FrozenProps(value, **kwargs)


def _freeze_value(value: object) -> object:
    if isinstance(value, FrozenProps):
        return value
    if isinstance(value, Mapping):
        return FrozenProps(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze_value(item) for item in value)
    return value


def _is_nil(value: object) -> bool:
    return (
        value is None
        or value is UNDEFINED
        or (isinstance(value, float) and math.isnan(value))
    )


def _epoch_millis(value: _dt.date) -> int:
    if not isinstance(value, _dt.datetime):
        value = _dt.datetime(value.year, value.month, value.day, tzinfo=_dt.timezone.utc)
    if value.tzinfo is None:
        return int(value.timestamp() * 1000)
    return (value - _EPOCH) // _dt.timedelta(milliseconds=1)


def _serialize_number(value: int | float) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return json.dumps(value)


def _serialize_mapping(value: Mapping) -> str:
    pairs = []
    significant = {str(k): v for k, v in value.items() if not _is_nil(v)}
    for name in sorted(significant):
        serialized = _serialize(significant[name])
        if not serialized:
            continue
        pairs.append(f"{json.dumps(name, ensure_ascii=False)}:{serialized}")
    if not pairs:
        return ""
    return "{" + ",".join(pairs) + "}"


def _serialize(value: object) -> str:
    if value is UNDEFINED:
        return _UNDEFINED_KEY
    if value is None:
        return _NONE_KEY
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _serialize_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False) if value else _EMPTY_KEY
    if isinstance(value, _dt.date):
        return f"D:{_epoch_millis(value)}"
    if isinstance(value, re.Pattern):
        return f"R:/{value.pattern}/{int(value.flags)}"
    if isinstance(value, (list, tuple)):
        return ",".join(_serialize(item) for item in value)
    if isinstance(value, FrozenProps):
        if value._key is None:
            value._key = _serialize_mapping(value)
        return value._key
    if isinstance(value, Mapping):
        return _serialize_mapping(value)
    return _OPAQUE_KEY


def derive_key(value: object = UNDEFINED) -> str:
    """Return the canonical key for a loader input.

    Usage:
        derive_key({"a": 1, "b": 2}) == derive_key({"b": 2, "a": 1})  # True
        derive_key({"a": None}) == derive_key({}) == derive_key()     # True
        derive_key("") == "#E"

    A missing input and an explicit None are distinct keys ("" and "#N"),
    even though the loader is handed None for both. cache.entry() and
    cache.entry(None) therefore hold separate entries.
    """
    if value is UNDEFINED:
        return ""
    try:
        return _serialize(value)
    except (TypeError, ValueError, OverflowError, OSError, RecursionError):
        # Values that fail to serialize (self-referencing containers,
        # out-of-range dates) are opaque.
        return _OPAQUE_KEY
