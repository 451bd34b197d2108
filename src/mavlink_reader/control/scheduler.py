"""
Timer Scheduling
================

Injectable timer service for the client's periodic work.

The client never sleeps or polls on its own. Every periodic action (rate
window, stream-health check, heartbeat) and every one-shot delay goes
through a Scheduler, so the whole state machine can be driven
deterministically in tests.

Implementations:
    - AsyncioScheduler: timers on an asyncio event loop
    - ManualScheduler: virtual clock advanced explicitly (tests, replay)
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    """Handle to a scheduled timer."""

    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once."""
        ...


class Scheduler(Protocol):
    """
    Protocol for timer services.

    call_later runs a callback once after ``delay`` seconds;
    call_every runs it every ``interval`` seconds, first after one
    interval.
    """

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        ...

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        ...


def _run_guarded(callback: Callback) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Timer callback failed")


# =============================================================================
# Asyncio
# =============================================================================

class _RepeatingTimer:
    """Re-arms itself on the loop at fixed-rate deadlines."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callback,
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._next_due = loop.time() + interval
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_at(self._next_due, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._next_due += self._interval
        # Fell behind (loop stalled): skip missed deadlines instead of bursting
        now = self._loop.time()
        if self._next_due <= now:
            self._next_due = now + self._interval
        self._handle = self._loop.call_at(self._next_due, self._fire)
        _run_guarded(self._callback)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Callbacks run on the loop thread. Must be created (or given a loop)
    from inside a running loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return self._loop.call_later(delay, _run_guarded, callback)

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return _RepeatingTimer(self._loop, interval, callback)


# =============================================================================
# Manual (virtual time)
# =============================================================================

class _ManualTimer:
    __slots__ = ("due", "interval", "callback", "cancelled")

    def __init__(self, due: float, interval: Optional[float], callback: Callback) -> None:
        self.due = due
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Nothing fires until ``advance()`` is called; timers then fire in
    deadline order (ties in scheduling order).

    Example:
        scheduler = ManualScheduler()
        scheduler.call_every(1.0, on_tick)
        scheduler.advance(3.0)   # on_tick called three times
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: List[Tuple[float, int, _ManualTimer]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        timer = _ManualTimer(self.now + delay, None, callback)
        self._push(timer)
        return timer

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _ManualTimer(self.now + interval, interval, callback)
        self._push(timer)
        return timer

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing due timers.

        Returns:
            Number of callbacks run.
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = max(self.now, due)
            if timer.interval is not None:
                timer.due = due + timer.interval
                self._push(timer)
            timer.callback()
            fired += 1
        self.now = target
        return fired

    @property
    def active_timers(self) -> int:
        """Timers scheduled and not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _push(self, timer: _ManualTimer) -> None:
        heapq.heappush(self._queue, (timer.due, next(self._counter), timer))
