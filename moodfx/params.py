"""Smoothed control values for effect-unit parameters."""

from __future__ import annotations

import threading
from typing import Callable


class SmoothedParam:
    """A float parameter that can glide linearly toward a target.

    The live value is computed from the bound clock on every read, so the
    audio callback and the scene engine always agree on where a ramp is,
    no matter how often either of them looks.
    """

    def __init__(self, value: float, clock: Callable[[], float]):
        self._clock = clock
        self._lock = threading.Lock()
        self._start = float(value)
        self._target = float(value)
        self._t0 = 0.0
        self._t1 = 0.0

    def _at(self, now: float) -> float:
        if now >= self._t1 or self._t1 <= self._t0:
            return self._target
        if now <= self._t0:
            return self._start
        frac = (now - self._t0) / (self._t1 - self._t0)
        return self._start + (self._target - self._start) * frac

    @property
    def value(self) -> float:
        with self._lock:
            return self._at(self._clock())

    @value.setter
    def value(self, value: float):
        with self._lock:
            self._start = self._target = float(value)
            self._t0 = self._t1 = 0.0

    @property
    def target(self) -> float:
        return self._target

    @property
    def ramping(self) -> bool:
        with self._lock:
            return self._clock() < self._t1

    def ramp_to(self, target: float, seconds: float):
        """Glide from the live value to ``target`` over ``seconds``."""
        if not seconds or seconds <= 0:
            self.value = target
            return
        with self._lock:
            now = self._clock()
            self._start = self._at(now)
            self._target = float(target)
            self._t0 = now
            self._t1 = now + seconds

    def __float__(self) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"SmoothedParam({self.value:.4g} -> {self._target:.4g})"
