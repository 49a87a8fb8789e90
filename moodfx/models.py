"""Shared data models and constants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

# Value a directive may push: a float, an integer bit depth, or a
# note-duration token such as "8n".
ParamValue = Union[float, int, str]

SAMPLE_RATE = 44100
BUFFER_SIZE = 512
INPUT_GAIN = 0.85  # headroom between the source and the head of the chain
LIMITER_THRESHOLD_DB = -0.1


@dataclass(frozen=True)
class EngineTiming:
    """Timing constants of the scene transition engine (seconds)."""

    reset_ramp: float = 0.5       # every parameter fades back to baseline
    apply_delay: float = 0.12     # gap between reset and scene apply
    rate_reset_ramp: float = 5.0  # playback rate drift back to 1.0
    rate_tick: float = 0.02       # manual rate interpolation step
    reset_log_delay: float = 0.6
    scene_log_delay: float = 1.1


DEFAULT_TIMING = EngineTiming()


@dataclass(frozen=True)
class Directive:
    """Push ``value`` into ``unit.parameter``, ramped when ``ramp`` is set."""

    unit: str
    parameter: str
    value: ParamValue
    ramp: Optional[float] = None


@dataclass(frozen=True)
class Scene:
    """A named mood: an ordered recipe applied on top of the baseline."""

    name: str
    label: str
    directives: tuple[Directive, ...] = ()
    playback_rate: Optional[float] = None
    rate_ramp: Optional[float] = None


@dataclass(eq=False)
class TransitionRequest:
    """One reset -> apply sequence, superseded by any newer request."""

    scene: Scene
    handle: object = None  # scheduler handle of the apply phase

    def cancel(self):
        if self.handle is not None:
            self.handle.cancel()
