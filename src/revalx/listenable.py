"""Listenable — a minimal observer list.

Listeners fire synchronously in subscription order. Every notification runs
over a snapshot, so a listener that subscribes or unsubscribes while firing
does not affect the current round.

The subscriber count is explicit (`size`). Optional hooks fire once per net
subscribe/unsubscribe; owners use them to react to the count changing.
"""

from __future__ import annotations

from typing import Callable

Listener = Callable[..., None]
Unsubscribe = Callable[[], None]


class Listenable:
    """Observer list with subscribe/unsubscribe hooks."""

    __slots__ = ("_listeners", "_on_subscribe", "_on_unsubscribe")

    def __init__(
        self,
        on_subscribe: Callable[[], None] | None = None,
        on_unsubscribe: Callable[[], None] | None = None,
    ) -> None:
        self._listeners: list[Listener] = []
        self._on_subscribe = on_subscribe
        self._on_unsubscribe = on_unsubscribe

    @property
    def size(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a listener. Returns a function that removes it."""
        # Wrapped so the same callable can be subscribed twice and removed
        # one registration at a time.
        registration = _Registration(listener)
        self._listeners.append(registration)
        if self._on_subscribe is not None:
            self._on_subscribe()

        def _unsubscribe() -> None:
            if registration.inactive:
                return
            registration.inactive = True
            try:
                self._listeners.remove(registration)
            except ValueError:
                return  # cleared while subscribed
            if self._on_unsubscribe is not None:
                self._on_unsubscribe()

        return _unsubscribe

    def notify(self, *args) -> None:
        """Call every current listener with args."""
        for listener in list(self._listeners):
            listener(*args)

    def notify_and_clear(self, *args) -> None:
        """Detach every listener, then call each of them once with args."""
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(*args)

    def clear(self) -> None:
        self._listeners.clear()

    def __repr__(self) -> str:
        return f"Listenable(size={len(self._listeners)})"


class _Registration:
    __slots__ = ("listener", "inactive")

    def __init__(self, listener: Listener) -> None:
        self.listener = listener
        self.inactive = False

    def __call__(self, *args) -> None:
        self.listener(*args)
