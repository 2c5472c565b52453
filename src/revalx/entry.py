"""Cache entries — one memoized loader computation each.

An entry moves between three states:

    Pending(future)  the loader (or a chained reducer) is still running
    Ready(value)     settled successfully
    Failed(error)    settled with an exception

Ready and Failed double as the handle returned by get(): they can be awaited
and expose result()/exception() like a finished future. While Pending, get()
returns a shielded view of the in-flight future: cancelling one caller's wait
leaves the shared computation running.

Disposal is terminal. A disposed entry is unlinked from the registry, drops its
dependency subscriptions and ignores further mutations; the next request for
the same key builds a new entry.

Idle disposal ("unused" policy): an entry that is settled and has no change
subscribers is disposed after DISPOSE_GRACE seconds. Attaching a subscriber or
setting a value cancels the timer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from revalx import _anchor
from revalx._scheduling import call_later
from revalx.errors import NotReadyError
from revalx.listenable import Listenable, Unsubscribe
from revalx.protocols import DisposePolicy

logger = logging.getLogger("revalx.entry")

T = TypeVar("T")

# Long enough for a consumer to detach and reattach within one turn.
DISPOSE_GRACE = 0.1


@dataclass(frozen=True, slots=True, eq=False)
class Pending:
    future: asyncio.Future


@dataclass(frozen=True, slots=True, eq=False)
class Ready(Generic[T]):
    value: T

    def done(self) -> bool:
        return True

    def result(self) -> T:
        return self.value

    def exception(self) -> BaseException | None:
        return None

    def __await__(self):
        return _resolve(self).__await__()


@dataclass(frozen=True, slots=True, eq=False)
class Failed:
    error: BaseException

    def done(self) -> bool:
        return True

    def result(self):
        raise self.error

    def exception(self) -> BaseException | None:
        return self.error

    def __await__(self):
        return _resolve(self).__await__()


State = Union[Pending, Ready, Failed]


async def _resolve(settled: Ready | Failed):
    return settled.result()


def _changed(old: Ready | Failed, new: Ready | Failed) -> bool:
    if type(old) is not type(new):
        return True
    if isinstance(new, Ready):
        return old.value is not new.value and old.value != new.value
    return old.error is not new.error


def _as_future(awaitable: Awaitable) -> asyncio.Future:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RuntimeError(
            "an asynchronous loader result needs a running event loop"
        ) from None
    return asyncio.ensure_future(awaitable, loop=loop)


class CacheEntry(Generic[T]):
    """One (loader, input) computation and its current state."""

    __slots__ = (
        "key",
        "loader_id",
        "_policy",
        "_state",
        "_settled",
        "_removed",
        "_timer",
        "_ready",
        "_change",
        "_cleanup",
    )

    def __init__(self, loader_id: int, key: str, dispose: DisposePolicy = "unused") -> None:
        self.key = key
        self.loader_id = loader_id
        self._policy = dispose
        self._state: State | None = None
        self._settled: Ready | Failed | None = None
        self._removed = False
        self._timer = None
        self._ready = Listenable()
        self._change = Listenable(
            on_subscribe=self._cancel_idle_dispose,
            on_unsubscribe=self._on_unsubscribe,
        )
        self._cleanup = Listenable()

    # --- Read-only views ---

    @property
    def state(self) -> State | None:
        return self._state

    @property
    def data(self) -> T | None:
        state = self._state
        return state.value if isinstance(state, Ready) else None

    @property
    def error(self) -> BaseException | None:
        state = self._state
        return state.error if isinstance(state, Failed) else None

    @property
    def loading(self) -> bool:
        return isinstance(self._state, Pending)

    @property
    def removed(self) -> bool:
        return self._removed

    @property
    def subscriber_count(self) -> int:
        return self._change.size

    def get(self) -> asyncio.Future | Ready[T] | Failed:
        """Return a shielded pending future, or the settled Ready/Failed handle."""
        state = self._state
        if state is None:
            raise NotReadyError(self.key)
        if isinstance(state, Pending):
            return asyncio.shield(state.future)
        return state

    # --- Listeners ---

    def on_ready(self, listener: Callable[[], None]) -> None:
        """Call listener when the entry next settles (now, if it already has)."""
        if self._removed:
            return
        if self._state is not None and not isinstance(self._state, Pending):
            listener()
            return
        self._ready.subscribe(listener)

    def on_change(self, listener: Callable[[], None]) -> Unsubscribe:
        """Subscribe to data changes and revalidation. Holds a reference."""
        return self._change.subscribe(listener)

    # --- Loading ---

    def run(self, loader: Callable, props: Any) -> None:
        """Invoke the loader once and seed the entry with its outcome."""
        from revalx.context import LoaderContext

        context = LoaderContext(self)
        try:
            result = loader(props, context)
            if inspect.isawaitable(result):
                self._begin_pending(_as_future(result))
            else:
                self._settle(Ready(result))
        except Exception as exc:
            self._settle(Failed(exc))

    def _begin_pending(self, future: asyncio.Future) -> None:
        self._cancel_idle_dispose()
        self._state = Pending(future)
        future.add_done_callback(self._on_future_done)

    def _on_future_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            outcome: Ready | Failed = Failed(asyncio.CancelledError())
        else:
            error = future.exception()  # marks the exception as retrieved
            outcome = Failed(error) if error is not None else Ready(future.result())
        state = self._state
        if not isinstance(state, Pending) or state.future is not future:
            return  # superseded by a later set
        self._settle(outcome)

    def _settle(self, outcome: Ready | Failed) -> None:
        previous = self._settled
        self._state = outcome
        self._settled = outcome
        if self._removed:
            return
        self._ready.notify_and_clear()
        if previous is not None and _changed(previous, outcome):
            self._change.notify()
        self._schedule_idle_dispose()

    # --- Mutation ---

    def set_value(self, value: T) -> None:
        if self._removed:
            return
        self._cancel_idle_dispose()
        self._settle(Ready(value))

    def set_error(self, error: BaseException) -> None:
        if self._removed:
            return
        self._cancel_idle_dispose()
        self._settle(Failed(error))

    def set_with_reducer(self, reducer: Callable[[T | None], T]) -> None:
        """Replace the value with reducer(value).

        While a computation is in flight the reducer is chained onto it, so it
        sees the value that eventually arrives. Reducer exceptions are stored
        as the entry's error.
        """
        if self._removed:
            return
        self._cancel_idle_dispose()
        state = self._state
        if isinstance(state, Pending):
            try:
                self._begin_pending(_as_future(_chain(state.future, reducer)))
            except Exception as exc:
                self._settle(Failed(exc))
            return
        try:
            result = reducer(self.data)
            if inspect.isawaitable(result):
                self._begin_pending(_as_future(result))
            else:
                self._settle(Ready(result))
        except Exception as exc:
            self._settle(Failed(exc))

    # --- Dependencies ---

    def add_dependency(self, activate: Callable[[], Unsubscribe | None]) -> None:
        """Run activate() once the entry settles; release its result on dispose."""

        def _activate() -> None:
            if self._removed:
                return
            try:
                unsubscribe = activate()
            except Exception:
                logger.exception("Failed to activate a dependency of %r", self)
                return
            if not callable(unsubscribe):
                return
            if self._removed:
                unsubscribe()
            else:
                self._cleanup.subscribe(unsubscribe)

        self.on_ready(_activate)

    # --- Teardown ---

    def dispose(self) -> None:
        """Remove the entry from the registry and release its dependencies."""
        if self._removed:
            return
        self._removed = True
        self._cancel_idle_dispose()
        group = _anchor.groups.get(self.loader_id)
        if group is not None:
            if group.get(self.key) is self:
                del group[self.key]
            if not group:
                del _anchor.groups[self.loader_id]
        logger.debug("Disposed %r", self)
        self._ready.clear()
        self._cleanup.notify_and_clear()

    def revalidate(self) -> None:
        """Dispose, then tell every change subscriber to fetch again."""
        if not self._removed:
            logger.debug("Revalidating %r", self)
        self.dispose()
        self._change.notify_and_clear()

    def _on_unsubscribe(self) -> None:
        if not self._change.size:
            self._schedule_idle_dispose()

    def _schedule_idle_dispose(self) -> None:
        self._cancel_idle_dispose()
        if self._policy != "unused" or self._removed:
            return
        if self._change.size or self._state is None or self.loading:
            return
        self._timer = call_later(DISPOSE_GRACE, self._dispose_if_idle)

    def _cancel_idle_dispose(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _dispose_if_idle(self) -> None:
        self._timer = None
        if self._removed or self._change.size:
            return
        logger.debug("Idle timeout for %r", self)
        self.dispose()

    def __repr__(self) -> str:
        if self._removed:
            status = "removed"
        elif self._state is None:
            status = "new"
        else:
            status = type(self._state).__name__.lower()
        name = getattr(_anchor.loaders.get(self.loader_id), "__name__", self.loader_id)
        return f"CacheEntry({name}, {self.key!r}, {status})"


async def _chain(previous: asyncio.Future, reducer: Callable):
    result = reducer(await previous)
    if inspect.isawaitable(result):
        result = await result
    return result
