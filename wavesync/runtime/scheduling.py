"""
Deterministic scheduling and environment signals.

The controller never touches ambient timers or a global window object.  It is
handed a :class:`Scheduler` for delayed work and a :class:`ResizeSignal` for
container resizes, both of which tests can drive by hand.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol, Tuple

LOG = logging.getLogger(__name__)

RESIZE_THROTTLE_SECONDS = 0.066


class ScheduledCall(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def schedule_after(self, delay: float, fn: Callable[[], None]) -> ScheduledCall:
        ...


class _ManualCall:
    def __init__(self, due: float, fn: Callable[[], None]) -> None:
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by an explicit virtual clock.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._counter = itertools.count()
        self._queue: List[Tuple[float, int, _ManualCall]] = []

    def schedule_after(self, delay: float, fn: Callable[[], None]) -> _ManualCall:
        call = _ManualCall(self.now + max(0.0, float(delay)), fn)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward and run every call that became due.

        Returns the number of calls executed.
        """

        target = self.now + max(0.0, float(seconds))
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = due
            call.fn()
            executed += 1
        self.now = target
        return executed


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Without an explicit ``loop`` the scheduler binds to the running loop the
    first time it is used.  Binding outside a running loop raises
    :class:`RuntimeError`; synchronous callers should pass a loop or use
    another :class:`Scheduler`.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def bind(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "AsyncioScheduler needs a running event loop; pass a loop or another scheduler"
                ) from exc
        return self._loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self.bind()

    def schedule_after(self, delay: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, float(delay)), fn)


class Throttle:
    """
    Trailing-edge throttle with at most one pending invocation.

    Calls made while an invocation is pending are dropped; the pending one runs
    once the window elapses.
    """

    def __init__(self, scheduler: Scheduler, delay: float, fn: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self._delay = float(delay)
        self._fn = fn
        self._pending: Optional[ScheduledCall] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __call__(self) -> None:
        if self._pending is not None:
            return
        self._pending = self._scheduler.schedule_after(self._delay, self._fire)

    def cancel(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()

    def _fire(self) -> None:
        self._pending = None
        self._fn()


class ResizeSignal:
    """
    Observable stand-in for the host's resize notifications.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._observer_counter = 0
        self._observers: Dict[int, Callable[[], None]] = {}

    def subscribe(self, callback: Callable[[], None]) -> int:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._observer_counter += 1
            token = self._observer_counter
            self._observers[token] = callback
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def emit(self) -> None:
        with self._lock:
            observers = dict(self._observers)
        for token, callback in observers.items():
            try:
                callback()
            except Exception:  # pragma: no cover - observer failures should not stop the signal
                LOG.exception("Resize observer %s failed.", token)


__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "RESIZE_THROTTLE_SECONDS",
    "ResizeSignal",
    "ScheduledCall",
    "Scheduler",
    "Throttle",
]
