"""Store — a minimal state container that satisfies the store contract.

Loaders depend on stores through LoaderContext.use(store). Any object with
get_state() and subscribe(listener) -> unsubscribe works; Store is the
in-package implementation, and select() derives a narrower store from one.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from revalx.listenable import Listenable, Unsubscribe

T = TypeVar("T")
U = TypeVar("U")


class Store(Generic[T]):
    """Holds one state value and notifies subscribers when it changes."""

    __slots__ = ("_state", "_listeners")

    def __init__(self, initial: T) -> None:
        self._state = initial
        self._listeners = Listenable()

    def get_state(self) -> T:
        return self._state

    def subscribe(self, listener: Callable[[], None]) -> Unsubscribe:
        return self._listeners.subscribe(listener)

    def set_state(self, value: T) -> None:
        """Replace the state. Equal values do not notify."""
        old = self._state
        if old is not value and old != value:
            self._state = value
            self._listeners.notify()

    def update(self, reducer: Callable[[T], T]) -> None:
        self.set_state(reducer(self._state))

    def __repr__(self) -> str:
        return f"Store({self._state!r})"


class _Selection(Generic[T, U]):
    __slots__ = ("_source", "_selector")

    def __init__(self, source, selector: Callable[[T], U]) -> None:
        self._source = source
        self._selector = selector

    def get_state(self) -> U:
        return self._selector(self._source.get_state())

    def subscribe(self, listener: Callable[[], None]) -> Unsubscribe:
        return self._source.subscribe(listener)

    def __repr__(self) -> str:
        return f"select({self._source!r})"


def select(source, selector: Callable[[T], U]):
    """Derive a store whose state is selector(source.get_state()).

    Usage:
        settings = Store({"theme": "dark", "lang": "en"})
        theme = select(settings, lambda s: s["theme"])

        def styles(props, ctx):
            return build_styles(ctx.use(theme, operator.eq))  # only a theme change revalidates
    """
    return _Selection(source, selector)
