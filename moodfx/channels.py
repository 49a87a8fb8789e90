"""Parameter channels: one set / ramp contract over heterogeneous parameters.

A unit may model a parameter as a smoothed control signal, a plain number,
or a string token (note durations).  ``bind_channel`` inspects the parameter
once and returns the matching channel variant, so callers never inspect
attributes themselves.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Optional

from moodfx.models import ParamValue


logger = logging.getLogger(__name__)


class ParameterChannel:
    """Set or ramp a single (unit, parameter) pair."""

    def __init__(self, unit, name: str):
        self.unit = unit
        self.name = name

    @property
    def value(self):
        return getattr(self.unit, self.name)

    def set_immediate(self, value: ParamValue):
        raise NotImplementedError

    def ramp_to(self, value: ParamValue, seconds: Optional[float] = None):
        raise NotImplementedError

    def __repr__(self) -> str:
        unit_name = getattr(self.unit, "name", type(self.unit).__name__)
        return f"{type(self).__name__}({unit_name}.{self.name})"


class RampableChannel(ParameterChannel):
    """Parameter backed by an object with native ``ramp_to`` support."""

    def __init__(self, unit, name: str, param):
        super().__init__(unit, name)
        self._param = param

    @property
    def value(self) -> float:
        return self._param.value

    def set_immediate(self, value: ParamValue):
        self._param.value = float(value)

    def ramp_to(self, value: ParamValue, seconds: Optional[float] = None):
        if seconds is None or seconds <= 0:
            self.set_immediate(value)
            return
        self._param.ramp_to(float(value), seconds)


class ImmediateChannel(ParameterChannel):
    """Plain attribute: integers, tokens and anything without smoothing.

    ``ramp_to`` degrades to an immediate set.
    """

    def set_immediate(self, value: ParamValue):
        setattr(self.unit, self.name, value)

    def ramp_to(self, value: ParamValue, seconds: Optional[float] = None):
        self.set_immediate(value)


class _RateRamp:
    __slots__ = ("start", "target", "step", "steps", "count", "handle")

    def __init__(self, start: float, target: float, steps: int):
        self.start = start
        self.target = target
        self.steps = steps
        self.step = (target - start) / steps
        self.count = 0
        self.handle = None


class ManualInterpolatedChannel(ParameterChannel):
    """Linear interpolation driven by scheduler ticks.

    Used for the playback rate, which the source exposes as a plain number.
    Only one interpolation runs at a time; starting another (or setting the
    value directly) replaces it.  The final tick writes the exact target.
    """

    def __init__(self, unit, name: str, scheduler, tick: float = 0.02):
        super().__init__(unit, name)
        self._scheduler = scheduler
        self._tick_seconds = tick
        self._lock = threading.RLock()
        self._ramp: Optional[_RateRamp] = None

    @property
    def active(self) -> bool:
        return self._ramp is not None

    def _write(self, value: float):
        setattr(self.unit, self.name, value)

    def _cancel_locked(self):
        if self._ramp is not None:
            if self._ramp.handle is not None:
                self._ramp.handle.cancel()
            self._ramp = None

    def cancel(self):
        """Stop any running interpolation, leaving the current value."""
        with self._lock:
            self._cancel_locked()

    def set_immediate(self, value: ParamValue):
        with self._lock:
            self._cancel_locked()
            self._write(float(value))

    def ramp_to(self, value: ParamValue, seconds: Optional[float] = None):
        if seconds is None or seconds <= 0:
            self.set_immediate(value)
            return
        with self._lock:
            if self._ramp is None and float(self.value) == float(value):
                return
            self._cancel_locked()
            steps = max(1, math.ceil(round(seconds / self._tick_seconds, 6)))
            ramp = _RateRamp(float(self.value), float(value), steps)
            self._ramp = ramp
            ramp.handle = self._scheduler.call_later(
                self._tick_seconds, self._tick, ramp)
        logger.debug("%r: %.4f -> %.4f over %d ticks",
                     self, ramp.start, ramp.target, steps)

    def _tick(self, ramp: _RateRamp):
        with self._lock:
            if self._ramp is not ramp:
                return
            ramp.count += 1
            if ramp.count >= ramp.steps:
                self._ramp = None
                self._write(ramp.target)
                return
            self._write(ramp.start + ramp.step * ramp.count)
            ramp.handle = self._scheduler.call_later(
                self._tick_seconds, self._tick, ramp)


def bind_channel(unit, name: str) -> Optional[ParameterChannel]:
    """Bind a channel to ``unit.name``, or return ``None`` if there is none.

    Only names listed in the unit's ``parameters`` schema are bindable.
    """
    if unit is None or name not in getattr(unit, "parameters", ()):
        return None
    try:
        current = getattr(unit, name)
    except AttributeError:
        return None
    if callable(getattr(current, "ramp_to", None)):
        return RampableChannel(unit, name, current)
    return ImmediateChannel(unit, name)
