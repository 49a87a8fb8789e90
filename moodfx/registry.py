"""Effect-unit registry and the signal chain built around it.

The registry is rebuilt, never patched, whenever a new source is loaded:
fresh units, a fresh chain and a fresh playback-rate channel replace the
previous ones in one step, and the previous chain is disconnected.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from moodfx.channels import ManualInterpolatedChannel, ParameterChannel, bind_channel
from moodfx.deps import np
from moodfx.models import (
    DEFAULT_TIMING,
    INPUT_GAIN,
    LIMITER_THRESHOLD_DB,
    SAMPLE_RATE,
    EngineTiming,
)
from moodfx.scenes import BASELINE_DEFAULTS, EFFECT_ORDER


logger = logging.getLogger(__name__)


def build_units(clock: Callable[[], float], tempo: Callable[[], float]) -> list:
    """Instantiate every effect unit at its neutral default, in chain order."""
    from moodfx.units import UNIT_TYPES

    units = []
    for name in EFFECT_ORDER:
        cls, extra = UNIT_TYPES[name]
        units.append(cls(name, clock, tempo, **extra, **BASELINE_DEFAULTS[name]))
    return units


def build_limiter():
    from moodfx.units import Limiter

    return Limiter(LIMITER_THRESHOLD_DB)


class SignalChain:
    """source -> input gain -> units (declared order) -> limiter."""

    def __init__(self, source, units: list, limiter=None,
                 input_gain: float = INPUT_GAIN):
        names = [u.name for u in units]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate unit in chain: {names}")
        self.source = source
        self.units = tuple(units)
        self.limiter = limiter
        self.input_gain = input_gain
        self.connected = True

    def render(self, frames: int, sample_rate: int, playing: bool = True):
        channels = getattr(self.source, "channels", 2)
        if playing and self.connected:
            block = self.source.read(frames)
        else:
            block = np.zeros((channels, frames), dtype=np.float32)
        block = block * self.input_gain
        for unit in self.units:
            block = unit.process(block, sample_rate)
        if self.limiter is not None:
            block = self.limiter.process(block, sample_rate)
        return block

    def disconnect(self):
        self.connected = False

    def describe(self) -> str:
        return " -> ".join(["source", "gain"] + [u.name for u in self.units]
                           + (["limiter"] if self.limiter is not None else []))


class EffectRegistry:
    """Owns the effect units of the current source, looked up by name."""

    def __init__(self, scheduler, sample_rate: int = SAMPLE_RATE,
                 tempo: Optional[Callable[[], float]] = None,
                 timing: EngineTiming = DEFAULT_TIMING,
                 unit_factory: Optional[Callable] = None,
                 limiter_factory: Optional[Callable] = build_limiter,
                 input_gain: float = INPUT_GAIN):
        self.scheduler = scheduler
        self.sample_rate = sample_rate
        self.input_gain = input_gain
        self._tempo = tempo or (lambda: 120.0)
        self._timing = timing
        self._unit_factory = unit_factory or build_units
        self._limiter_factory = limiter_factory
        self._lock = threading.Lock()
        self._units: dict[str, object] = {}
        self._chain: Optional[SignalChain] = None
        self._rate: Optional[ManualInterpolatedChannel] = None

    # -- lifecycle -----------------------------------------------------------

    def initialize(self, source) -> SignalChain:
        """Build a fresh chain around ``source``, replacing any previous one."""
        units = self._unit_factory(self.scheduler.time, self._tempo)
        limiter = self._limiter_factory() if self._limiter_factory else None
        chain = SignalChain(source, units, limiter, self.input_gain)
        rate = ManualInterpolatedChannel(source, "playback_rate", self.scheduler,
                                         tick=self._timing.rate_tick)
        with self._lock:
            previous, old_rate = self._chain, self._rate
            self._units = {u.name: u for u in units}
            self._chain = chain
            self._rate = rate
        if old_rate is not None:
            old_rate.cancel()
        if previous is not None:
            previous.disconnect()
        logger.info("[Registry] Chain: %s", chain.describe())
        return chain

    def close(self):
        with self._lock:
            previous, old_rate = self._chain, self._rate
            self._units = {}
            self._chain = None
            self._rate = None
        if old_rate is not None:
            old_rate.cancel()
        if previous is not None:
            previous.disconnect()

    @property
    def loaded(self) -> bool:
        return self._chain is not None

    @property
    def chain(self) -> Optional[SignalChain]:
        return self._chain

    @property
    def source(self):
        return self._chain.source if self._chain else None

    # -- lookup --------------------------------------------------------------

    @property
    def units(self) -> list:
        chain = self._chain
        return list(chain.units) if chain else []

    def lookup(self, name: str):
        """Return the unit called ``name``, or ``None``."""
        return self._units.get(name)

    def resolve(self, unit: str, parameter: str) -> Optional[ParameterChannel]:
        """Bind a channel to ``unit.parameter``, or ``None`` if absent."""
        return bind_channel(self.lookup(unit), parameter)

    @property
    def rate_channel(self) -> Optional[ManualInterpolatedChannel]:
        return self._rate

    # -- inspection ----------------------------------------------------------

    def snapshot(self) -> dict[str, dict]:
        """Live value of every parameter, keyed by unit then parameter."""
        state = {}
        for unit in self.units:
            params = {}
            for name in getattr(unit, "parameters", ()):
                channel = bind_channel(unit, name)
                if channel is not None:
                    params[name] = channel.value
            state[unit.name] = params
        return state

    def active_units(self) -> list[str]:
        """Names of units whose wet mix is currently above zero."""
        active = []
        for unit in self.units:
            channel = bind_channel(unit, "wet")
            if channel is not None and channel.value > 0:
                active.append(unit.name)
        return active

    def describe_state(self) -> list[str]:
        snapshot = self.snapshot()
        lines = []
        for name in self.active_units():
            params = ", ".join(
                f"{k}: {v:.2f}" if isinstance(v, float) else f"{k}: {v}"
                for k, v in snapshot[name].items())
            lines.append(f"[ON] {name.upper()}: {params}")
        if not lines:
            lines.append("all effects bypassed (wet: 0)")
        return lines

    # -- audio ---------------------------------------------------------------

    def render(self, frames: int, playing: bool = True):
        chain = self._chain
        if chain is None:
            return np.zeros((2, frames), dtype=np.float32)
        return chain.render(frames, self.sample_rate, playing)
