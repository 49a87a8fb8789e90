"""Pytest configuration and shared fixtures."""

import heapq
import itertools

import numpy as np
import pytest

from moodfx.models import DEFAULT_TIMING
from moodfx.registry import EffectRegistry
from moodfx.scenes import BASELINE_DEFAULTS, EFFECT_ORDER
from moodfx.scheduler import TimerHandle
from moodfx.source import BufferSource
from moodfx.transitions import SceneTransitionEngine
from moodfx.units import EffectUnit

TEST_SR = 8000


class ManualScheduler:
    """Virtual clock: callbacks only run inside :meth:`advance`."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay, callback, *args):
        handle = TimerHandle(self.now + max(delay, 0.0), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds: float):
        """Move the clock forward, running every callback that falls due."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            self.now = max(self.now, when)
            handle._run()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)


class FakeUnit(EffectUnit):
    """DSP-free unit with the same parameter kinds as the real ones.

    Floats become smoothed control signals; ints and tokens stay plain.
    """

    def __init__(self, name, clock, tempo=None, **defaults):
        super().__init__(name, clock, tempo)
        self.parameters = tuple(defaults)
        for param, value in defaults.items():
            if isinstance(value, float):
                setattr(self, param, self._smoothed(value))
            else:
                setattr(self, param, value)

    def _render(self, audio, sample_rate):
        return audio


def fake_units(clock, tempo):
    return [FakeUnit(name, clock, tempo, **BASELINE_DEFAULTS[name])
            for name in EFFECT_ORDER]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sample_rate() -> int:
    return TEST_SR


@pytest.fixture
def stereo_ramp(sample_rate) -> BufferSource:
    """One second of a slow stereo ramp, easy to check after resampling."""
    frames = sample_rate
    left = np.linspace(0.0, 1.0, frames, dtype=np.float32)
    right = -left
    return BufferSource(np.vstack([left, right]), sample_rate, path="ramp.wav")


@pytest.fixture
def registry(scheduler, sample_rate) -> EffectRegistry:
    return EffectRegistry(scheduler, sample_rate, timing=DEFAULT_TIMING,
                          unit_factory=fake_units, limiter_factory=None)


@pytest.fixture
def loaded_registry(registry, stereo_ramp) -> EffectRegistry:
    registry.initialize(stereo_ramp)
    return registry


@pytest.fixture
def engine(loaded_registry, scheduler) -> SceneTransitionEngine:
    return SceneTransitionEngine(loaded_registry, scheduler)


def param(registry, unit, name):
    """Live value of ``unit.name`` through the registry."""
    return registry.resolve(unit, name).value
