"""Tag bus — broadcast invalidation by string tag, plus timer channels.

A loader opts into tag invalidation with a tag channel:

    def todos(props, ctx):
        ctx.use(tag(["todos", f"list:{props['list']}"]))
        ...

    revalidate("todos")  # every entry that used a matching tag is dropped

Matching is a linear scan over live subscriptions; their number is bounded by
the number of live entries.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from revalx._scheduling import call_later
from revalx.listenable import Listenable
from revalx.protocols import Channel, Emit

logger = logging.getLogger("revalx.tags")

_bus = Listenable()

TagMatcher = str | Iterable[str] | Callable[[str], bool]


def _matcher(match: TagMatcher) -> Callable[[str], bool]:
    if isinstance(match, str):
        return lambda candidate: candidate == match
    if callable(match):
        return match
    accepted = frozenset(match)
    return lambda candidate: candidate in accepted


def tag(match: TagMatcher) -> Channel:
    """Channel that emits whenever a broadcast carries a matching tag.

    match is a tag, a collection of tags, or a predicate over a tag.
    """
    matches = _matcher(match)

    def _channel(emit: Emit):
        def _on_broadcast(tags: list[str]) -> None:
            if any(matches(t) for t in tags):
                emit()

        return _bus.subscribe(_on_broadcast)

    return _channel


def revalidate(tags: str | Iterable[str]) -> None:
    """Broadcast tags; every matching tag channel emits."""
    broadcast = [tags] if isinstance(tags, str) else list(tags)
    logger.debug("Revalidating tags %s (%d subscribers)", broadcast, _bus.size)
    _bus.notify(broadcast)


def timeout(seconds: float) -> Channel:
    """Channel that emits once, `seconds` after it is activated."""

    def _channel(emit: Emit):
        handle = call_later(seconds, emit)
        return handle.cancel

    return _channel


def subscription_count() -> int:
    return _bus.size


def clear_tags() -> None:
    """Drop every tag subscription. Intended for test teardown."""
    _bus.clear()
