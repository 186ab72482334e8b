"""
Time sources for animations and autoplay.

The navigator never sleeps or blocks. Every deferred action (tween
completion, autoplay advance, debounced resize) is registered with a
`Scheduler`, which returns a handle that can be cancelled.

- `AsyncioScheduler` delegates to a running asyncio event loop (live service)
- `VirtualScheduler` keeps a virtual clock advanced explicitly (offline
  rendering, CLI simulation, tests)
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        ...

    @abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    @abstractmethod
    def now(self) -> float:
        ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class _AsyncioTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    Without an explicit loop, the running loop is looked up on every call so
    the scheduler can be created before any loop starts (e.g. at FastAPI
    import time).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        if self._loop is not None:
            return self._loop.time()
        # the default event loop clock
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return _AsyncioTimer(self.loop.call_later(max(0.0, delay), callback, *args))


class _VirtualTimer(TimerHandle):
    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler(Scheduler):
    """Deterministic scheduler driven by an explicit virtual clock.

    Timers due at the same instant fire in registration order. Callbacks may
    register further timers; those fire within the same `advance` call if
    they fall inside the advanced window.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: List[Tuple[float, int, _VirtualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        timer = _VirtualTimer(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, t in self._queue if not t.cancelled())

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live timer, or None when idle."""
        while self._queue and self._queue[0][2].cancelled():
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    def advance(self, dt: float) -> int:
        """Advance the clock by `dt` seconds, firing due timers. Returns the number fired."""
        target = self._now + max(0.0, dt)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = max(self._now, when)
            timer.callback(*timer.args)
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire timers in order until none remain. Guarded against runaway loops."""
        fired = 0
        while self._queue:
            if fired >= limit:
                raise RuntimeError(f"scheduler did not become idle after {limit} callbacks")
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = max(self._now, when)
            timer.callback(*timer.args)
            fired += 1
        return fired
