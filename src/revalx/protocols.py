"""Contracts consumed and produced at the cache boundary."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Literal, Protocol, TypeVar, Union, runtime_checkable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Unsubscribe = Callable[[], None]
Emit = Callable[[], None]

# A channel receives `emit` and may return a function that stops it.
Channel = Callable[[Emit], Union[Unsubscribe, None]]

Equal = Callable[[Any, Any], bool]

# loader(props, context) -> value | awaitable
Loader = Callable[[Any, Any], Union[T, Awaitable[T]]]

DisposePolicy = Literal["never", "unused"]
DISPOSE_POLICIES = ("never", "unused")


@runtime_checkable
class StoreLike(Protocol[T_co]):
    """Anything with a readable snapshot and change notifications."""

    def get_state(self) -> T_co: ...

    def subscribe(self, listener: Callable[[], None]) -> Unsubscribe: ...
