"""Effect units: named parameters in front of pedalboard DSP.

Each unit declares its fixed ``parameters`` schema.  Continuous parameters
are :class:`~moodfx.params.SmoothedParam` control signals, integer and token
parameters are plain attributes.  ``process`` takes and returns float32
arrays shaped ``(channels, frames)``.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from moodfx.deps import HAS_PEDALBOARD, pedalboard, np
from moodfx.params import SmoothedParam
from moodfx.transport import note_seconds


logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi
DRIVE_RANGE_DB = 50.0     # distortion 0..1 -> pedalboard drive 0..50 dB
VIBRATO_DELAY_MS = 5.0
MAX_CHORUS_RATE_HZ = 99.0


def _require_pedalboard():
    if not HAS_PEDALBOARD:
        raise RuntimeError("pedalboard not installed")


class EffectUnit:
    """Base unit: a bag of named parameters with a ``process`` method."""

    parameters: tuple[str, ...] = ()

    def __init__(self, name: str, clock: Callable[[], float],
                 tempo: Optional[Callable[[], float]] = None):
        self.name = name
        self._clock = clock
        self._tempo = tempo or (lambda: 120.0)
        self._pushed: dict[tuple[int, str], object] = {}

    def _smoothed(self, value: float) -> SmoothedParam:
        return SmoothedParam(value, self._clock)

    def _push(self, plugin, attr: str, value):
        """Write a plugin attribute only when it changed since last block."""
        key = (id(plugin), attr)
        if self._pushed.get(key) != value:
            setattr(plugin, attr, value)
            self._pushed[key] = value

    def _render(self, audio, sample_rate: int):
        raise NotImplementedError

    def process(self, audio, sample_rate: int):
        return self._render(audio, sample_rate)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class WetEffect(EffectUnit):
    """Unit whose output is blended with the dry signal by ``wet``.

    The wet gain is interpolated across each block, and the unit is
    bypassed while the mix stays at zero.
    """

    def __init__(self, name, clock, tempo=None, wet: float = 0.0):
        super().__init__(name, clock, tempo)
        self.wet = self._smoothed(wet)
        self._last_wet = float(wet)

    @property
    def active(self) -> bool:
        return self.wet.value > 0.0 or self.wet.target > 0.0

    def process(self, audio, sample_rate: int):
        prev, cur = self._last_wet, self.wet.value
        self._last_wet = cur
        if prev <= 0.0 and cur <= 0.0:
            return audio
        processed = self._render(audio, sample_rate)
        frames = audio.shape[-1]
        gain = np.linspace(prev, cur, frames, dtype=np.float32)
        return audio * (1.0 - gain) + processed * gain


class _LfoMixin:
    """Phase-continuous sine LFO shared by tremolo and auto panner."""

    _phase = 0.0

    def _lfo(self, frequency: float, frames: int, sample_rate: int):
        step = TWO_PI * frequency / sample_rate
        phases = self._phase + step * np.arange(frames, dtype=np.float64)
        self._phase = (self._phase + step * frames) % TWO_PI
        return phases


# ---------------------------------------------------------------------------
# Dynamics / tone
# ---------------------------------------------------------------------------

class Compressor(EffectUnit):
    parameters = ("threshold", "ratio", "attack", "release")

    def __init__(self, name, clock, tempo=None, threshold=-24.0, ratio=3.0,
                 attack=0.05, release=0.2):
        super().__init__(name, clock, tempo)
        _require_pedalboard()
        self.threshold = self._smoothed(threshold)
        self.ratio = self._smoothed(ratio)
        self.attack = self._smoothed(attack)
        self.release = self._smoothed(release)
        self._plugin = pedalboard.Compressor()

    def _render(self, audio, sample_rate):
        self._push(self._plugin, "threshold_db", float(self.threshold.value))
        self._push(self._plugin, "ratio", max(1.0, float(self.ratio.value)))
        self._push(self._plugin, "attack_ms", max(0.01, self.attack.value * 1000.0))
        self._push(self._plugin, "release_ms", max(0.01, self.release.value * 1000.0))
        return self._plugin(audio, sample_rate, reset=False)


class EQ3(EffectUnit):
    """Three-band EQ: low shelf, mid peak and high shelf gains in dB."""

    parameters = ("low", "mid", "high", "low_frequency", "high_frequency")

    def __init__(self, name, clock, tempo=None, low=0.0, mid=0.0, high=0.0,
                 low_frequency=400.0, high_frequency=2500.0):
        super().__init__(name, clock, tempo)
        _require_pedalboard()
        self.low = self._smoothed(low)
        self.mid = self._smoothed(mid)
        self.high = self._smoothed(high)
        self.low_frequency = self._smoothed(low_frequency)
        self.high_frequency = self._smoothed(high_frequency)
        self._low = pedalboard.LowShelfFilter()
        self._mid = pedalboard.PeakFilter()
        self._high = pedalboard.HighShelfFilter()

    def _render(self, audio, sample_rate):
        nyquist = 0.45 * sample_rate
        lo_hz = min(max(20.0, self.low_frequency.value), nyquist)
        hi_hz = min(max(lo_hz, self.high_frequency.value), nyquist)
        self._push(self._low, "cutoff_frequency_hz", lo_hz)
        self._push(self._low, "gain_db", float(self.low.value))
        self._push(self._mid, "cutoff_frequency_hz", math.sqrt(lo_hz * hi_hz))
        self._push(self._mid, "gain_db", float(self.mid.value))
        self._push(self._high, "cutoff_frequency_hz", hi_hz)
        self._push(self._high, "gain_db", float(self.high.value))
        out = self._low(audio, sample_rate, reset=False)
        out = self._mid(out, sample_rate, reset=False)
        return self._high(out, sample_rate, reset=False)


class Filter(EffectUnit):
    """Highpass or lowpass filter with a rampable cutoff."""

    parameters = ("frequency",)

    def __init__(self, name, clock, tempo=None, frequency=1000.0,
                 kind: str = "lowpass"):
        super().__init__(name, clock, tempo)
        _require_pedalboard()
        if kind not in ("highpass", "lowpass"):
            raise ValueError(f"unknown filter kind '{kind}'")
        self.kind = kind
        self.frequency = self._smoothed(frequency)
        plugin_cls = (pedalboard.HighpassFilter if kind == "highpass"
                      else pedalboard.LowpassFilter)
        self._plugin = plugin_cls()

    def _render(self, audio, sample_rate):
        hz = min(max(1.0, self.frequency.value), 0.45 * sample_rate)
        self._push(self._plugin, "cutoff_frequency_hz", hz)
        return self._plugin(audio, sample_rate, reset=False)


# ---------------------------------------------------------------------------
# Colour
# ---------------------------------------------------------------------------

class Distortion(WetEffect):
    parameters = ("distortion", "wet")

    def __init__(self, name, clock, tempo=None, distortion=0.4, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.distortion = self._smoothed(distortion)
        self._plugin = pedalboard.Distortion()

    def _render(self, audio, sample_rate):
        drive = min(max(self.distortion.value, 0.0), 1.0) * DRIVE_RANGE_DB
        self._push(self._plugin, "drive_db", drive)
        return self._plugin(audio, sample_rate, reset=False)


class BitCrusher(WetEffect):
    parameters = ("bits", "wet")

    def __init__(self, name, clock, tempo=None, bits=8, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.bits = bits
        self._plugin = pedalboard.Bitcrush()

    @property
    def bits(self) -> int:
        return self._bits

    @bits.setter
    def bits(self, value):
        try:
            bits = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"bits must be an integer, got {value!r}") from None
        if not 1 <= bits <= 32:
            raise ValueError(f"bits must be between 1 and 32, got {bits}")
        self._bits = bits

    def _render(self, audio, sample_rate):
        self._push(self._plugin, "bit_depth", float(self._bits))
        return self._plugin(audio, sample_rate, reset=False)


# ---------------------------------------------------------------------------
# Modulation
# ---------------------------------------------------------------------------

class Tremolo(_LfoMixin, WetEffect):
    parameters = ("frequency", "depth", "wet")

    def __init__(self, name, clock, tempo=None, frequency=10.0, depth=0.5, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        self.frequency = self._smoothed(frequency)
        self.depth = self._smoothed(depth)

    def _render(self, audio, sample_rate):
        frames = audio.shape[-1]
        phases = self._lfo(self.frequency.value, frames, sample_rate)
        depth = min(max(self.depth.value, 0.0), 1.0)
        # channels swing in opposite phase
        left = 1.0 - depth * (0.5 + 0.5 * np.sin(phases))
        right = 1.0 - depth * (0.5 + 0.5 * np.sin(phases + math.pi))
        gains = np.vstack([left, right])[: audio.shape[0]].astype(np.float32)
        return audio * gains


class Vibrato(WetEffect):
    """Pitch wobble: a fully wet, feedback-free chorus voice."""

    parameters = ("frequency", "depth", "wet")

    def __init__(self, name, clock, tempo=None, frequency=5.0, depth=0.1, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.frequency = self._smoothed(frequency)
        self.depth = self._smoothed(depth)
        self._plugin = pedalboard.Chorus(centre_delay_ms=VIBRATO_DELAY_MS,
                                         feedback=0.0, mix=1.0)

    def _render(self, audio, sample_rate):
        rate = min(max(self.frequency.value, 0.0), MAX_CHORUS_RATE_HZ)
        self._push(self._plugin, "rate_hz", rate)
        self._push(self._plugin, "depth", min(max(self.depth.value, 0.0), 1.0))
        return self._plugin(audio, sample_rate, reset=False)


class Chorus(WetEffect):
    """Chorus; ``delay_time`` is in milliseconds, ``spread`` in degrees."""

    parameters = ("frequency", "depth", "delay_time", "spread", "wet")

    def __init__(self, name, clock, tempo=None, frequency=10.0, depth=0.9,
                 delay_time=0.1, spread=180.0, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.frequency = self._smoothed(frequency)
        self.depth = self._smoothed(depth)
        self.delay_time = self._smoothed(delay_time)
        self.spread = self._smoothed(spread)
        self._plugin = pedalboard.Chorus(feedback=0.0, mix=1.0)

    def _render(self, audio, sample_rate):
        rate = min(max(self.frequency.value, 0.0), MAX_CHORUS_RATE_HZ)
        self._push(self._plugin, "rate_hz", rate)
        self._push(self._plugin, "depth", min(max(self.depth.value, 0.0), 1.0))
        self._push(self._plugin, "centre_delay_ms",
                   min(max(self.delay_time.value, 1.0), 100.0))
        out = self._plugin(audio, sample_rate, reset=False)
        if out.shape[0] < 2:
            return out
        width = min(max(self.spread.value, 0.0), 180.0) / 180.0
        mid = 0.5 * (out[0] + out[1])
        side = 0.5 * (out[0] - out[1]) * width
        return np.vstack([mid + side, mid - side]).astype(np.float32)


class FeedbackDelay(WetEffect):
    """Echo; ``delay_time`` is a note token ("8n", "4n.") or seconds."""

    parameters = ("delay_time", "feedback", "wet")

    def __init__(self, name, clock, tempo=None, delay_time="8n", feedback=0.2, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.delay_time = delay_time
        self.feedback = self._smoothed(feedback)
        self._plugin = pedalboard.Delay(mix=1.0)

    @property
    def delay_time(self):
        return self._delay_time

    @delay_time.setter
    def delay_time(self, value):
        try:
            seconds = note_seconds(value, self._tempo())
        except (AttributeError, TypeError):
            raise ValueError(f"unknown note duration {value!r}") from None
        if seconds <= 0:
            raise ValueError(f"delay_time must be positive, got {value!r}")
        self._delay_time = value

    def delay_seconds(self) -> float:
        return note_seconds(self._delay_time, self._tempo())

    def _render(self, audio, sample_rate):
        self._push(self._plugin, "delay_seconds", self.delay_seconds())
        self._push(self._plugin, "feedback", min(max(self.feedback.value, 0.0), 0.99))
        return self._plugin(audio, sample_rate, reset=False)


# ---------------------------------------------------------------------------
# Space
# ---------------------------------------------------------------------------

class AutoPanner(_LfoMixin, WetEffect):
    parameters = ("frequency", "depth", "wet")

    def __init__(self, name, clock, tempo=None, frequency=1.0, depth=1.0, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        self.frequency = self._smoothed(frequency)
        self.depth = self._smoothed(depth)

    def _render(self, audio, sample_rate):
        if audio.shape[0] < 2:
            return audio
        frames = audio.shape[-1]
        phases = self._lfo(self.frequency.value, frames, sample_rate)
        pan = min(max(self.depth.value, 0.0), 1.0) * np.sin(phases)
        angle = (pan + 1.0) * (math.pi / 4.0)
        # equal power, unity at centre
        left = np.cos(angle) * math.sqrt(2.0)
        right = np.sin(angle) * math.sqrt(2.0)
        return (audio[:2] * np.vstack([left, right])).astype(np.float32)


class StereoWidener(WetEffect):
    """Mid/side width: 0 is mono, 0.5 unchanged, 1 sides only."""

    parameters = ("width", "wet")

    def __init__(self, name, clock, tempo=None, width=0.5, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        self.width = self._smoothed(width)

    def _render(self, audio, sample_rate):
        if audio.shape[0] < 2:
            return audio
        width = min(max(self.width.value, 0.0), 1.0)
        mid = 0.5 * (audio[0] + audio[1]) * (2.0 * (1.0 - width))
        side = 0.5 * (audio[0] - audio[1]) * (2.0 * width)
        return np.vstack([mid + side, mid - side]).astype(np.float32)


class Reverb(WetEffect):
    parameters = ("room_size", "wet")

    def __init__(self, name, clock, tempo=None, room_size=0.3, wet=0.0):
        super().__init__(name, clock, tempo, wet)
        _require_pedalboard()
        self.room_size = self._smoothed(room_size)
        self._plugin = pedalboard.Reverb(wet_level=1.0, dry_level=0.0)

    def _render(self, audio, sample_rate):
        self._push(self._plugin, "room_size", min(max(self.room_size.value, 0.0), 1.0))
        return self._plugin(audio, sample_rate, reset=False)


class Limiter:
    """Output safety net at the tail of the chain."""

    def __init__(self, threshold_db: float):
        _require_pedalboard()
        self._plugin = pedalboard.Limiter(threshold_db=threshold_db)

    def process(self, audio, sample_rate: int):
        return self._plugin(audio, sample_rate, reset=False)


# name -> (class, extra constructor kwargs)
UNIT_TYPES: dict[str, tuple[type, dict]] = {
    "compressor": (Compressor, {}),
    "eq3": (EQ3, {}),
    "bit_crusher": (BitCrusher, {}),
    "distortion": (Distortion, {}),
    "highpass": (Filter, {"kind": "highpass"}),
    "lowpass": (Filter, {"kind": "lowpass"}),
    "tremolo": (Tremolo, {}),
    "vibrato": (Vibrato, {}),
    "chorus": (Chorus, {}),
    "feedback_delay": (FeedbackDelay, {}),
    "auto_panner": (AutoPanner, {}),
    "stereo_widener": (StereoWidener, {}),
    "reverb": (Reverb, {}),
}
