"""Timer scheduling for deferred disposal and timeout channels.

Inside a running asyncio loop, timers are loop callbacks and fire on the loop
thread. Without one, a daemon threading.Timer is used; its callback is
marshaled through the scheduler installed with set_scheduler() so that cache
state is still only mutated from one thread.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, Protocol

_scheduler = None
_scheduler_thread = None


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for timers that fire off-loop.

    Call once from the main/UI thread:
        revalx.set_scheduler(app.call_from_thread)

    After this, dispose timers and timeout channels started outside an
    asyncio loop run their callback through the scheduler instead of on the
    timer thread.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread()


def _marshal(callback: Callable[[], None]) -> None:
    if _scheduler is not None and threading.current_thread() != _scheduler_thread:
        _scheduler(callback)
    else:
        callback()


def call_later(seconds: float, callback: Callable[[], None]) -> TimerHandle:
    """Run callback after `seconds`. Returns a handle with cancel()."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(seconds, _marshal, args=[callback])
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(seconds, callback)
