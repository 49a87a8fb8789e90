"""Deferred, cancellable callbacks on a single worker thread.

Every timed step of the scene engine (the apply phase, manual rate
interpolation ticks, delayed state logging) goes through one scheduler, so
they all run one at a time on one timeline.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable


logger = logging.getLogger(__name__)


class TimerHandle:
    """Handle to one scheduled callback."""

    __slots__ = ("when", "_callback", "_args", "_cancelled")

    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self):
        self._cancelled = True
        self._callback = None
        self._args = ()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self):
        if not self._cancelled:
            self._callback(*self._args)


class TimerScheduler:
    """Heap of deadlines served by one daemon thread (``time.monotonic``)."""

    def __init__(self, name: str = "moodfx-scheduler"):
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._running = True
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self._thread.start()

    def time(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self.time() + max(delay, 0.0), callback, args)
        with self._cond:
            heapq.heappush(self._heap, (handle.when, next(self._seq), handle))
            self._cond.notify()
        return handle

    def stop(self):
        with self._cond:
            self._running = False
            self._heap.clear()
            self._cond.notify()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=1.0)

    @property
    def running(self) -> bool:
        return self._running

    def _loop(self):
        while True:
            with self._cond:
                while self._running:
                    if not self._heap:
                        self._cond.wait()
                        continue
                    wait = self._heap[0][0] - self.time()
                    if wait <= 0:
                        break
                    self._cond.wait(timeout=wait)
                if not self._running:
                    return
                _, _, handle = heapq.heappop(self._heap)
            try:
                handle._run()
            except Exception:
                logger.exception("[Scheduler] callback failed")
