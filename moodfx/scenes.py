"""Scene catalog: declarative recipes plus the shared baseline.

Scenes are deltas from ``BASELINE_DEFAULTS``, never from whatever the
previous scene left behind.  Adding a scene only means adding data here.
"""

from __future__ import annotations

from types import MappingProxyType

from moodfx.models import Directive, Scene

RESET_SIGNAL = "reset"

# Chain order; also the order in which the baseline is restored.
EFFECT_ORDER = (
    "compressor",
    "eq3",
    "bit_crusher",
    "distortion",
    "highpass",
    "lowpass",
    "tremolo",
    "vibrato",
    "chorus",
    "feedback_delay",
    "auto_panner",
    "stereo_widener",
    "reverb",
)

BASELINE_DEFAULTS = MappingProxyType({
    "compressor": {"threshold": -24.0, "ratio": 3.0, "attack": 0.05, "release": 0.2},
    "eq3": {"low": 0.0, "mid": 0.0, "high": 0.0,
            "low_frequency": 400.0, "high_frequency": 2500.0},
    "bit_crusher": {"bits": 8, "wet": 0.0},
    "distortion": {"distortion": 0.4, "wet": 0.0},
    "highpass": {"frequency": 10.0},      # fully open
    "lowpass": {"frequency": 20000.0},    # fully open
    "tremolo": {"frequency": 10.0, "depth": 0.5, "wet": 0.0},
    "vibrato": {"frequency": 5.0, "depth": 0.1, "wet": 0.0},
    "chorus": {"frequency": 10.0, "depth": 0.9, "delay_time": 0.1,
               "spread": 180.0, "wet": 0.0},
    "feedback_delay": {"delay_time": "8n", "feedback": 0.2, "wet": 0.0},
    "auto_panner": {"frequency": 1.0, "depth": 1.0, "wet": 0.0},
    "stereo_widener": {"width": 0.5, "wet": 0.0},
    "reverb": {"room_size": 0.3, "wet": 0.0},
})


def baseline_items():
    """Yield every ``(unit, parameter, default)`` in chain order."""
    for unit in EFFECT_ORDER:
        for param, default in BASELINE_DEFAULTS[unit].items():
            yield unit, param, default


def _d(unit, parameter, value, ramp=None) -> Directive:
    return Directive(unit, parameter, value, ramp)


def _scene(name, label, *directives, rate=None, rate_ramp=5.0) -> Scene:
    return Scene(name=name, label=label, directives=tuple(directives),
                 playback_rate=rate, rate_ramp=rate_ramp if rate is not None else None)


_CATALOG = (
    _scene(
        "epic", "Epic Battle",
        # restrained EQ so the low end does not flatten the mix
        _d("eq3", "low", 2, 1), _d("eq3", "mid", 0, 1), _d("eq3", "high", 1, 1),
        _d("reverb", "room_size", 0.5), _d("reverb", "wet", 0.1, 1),
        _d("stereo_widener", "width", 0.8, 1), _d("stereo_widener", "wet", 0.5, 1),
        # chorus as a wide bed, not a feature
        _d("chorus", "frequency", 0.5), _d("chorus", "depth", 0.8),
        _d("chorus", "wet", 0.2, 1),
        rate=0.985,
    ),
    _scene(
        "lofi", "Lo-Fi / Flashback",
        _d("eq3", "low", -12, 1), _d("eq3", "mid", 0, 1), _d("eq3", "high", -12, 1),
        _d("distortion", "distortion", 0.2), _d("distortion", "wet", 0.2, 1),
        _d("chorus", "frequency", 3.0), _d("chorus", "depth", 0.7),
        _d("chorus", "wet", 0.3, 1),
    ),
    _scene(
        "claustro", "Claustrophobic",
        _d("eq3", "low", -5, 1), _d("eq3", "mid", 0, 1), _d("eq3", "high", -40, 1),
        _d("reverb", "room_size", 0.2), _d("reverb", "wet", 0.2, 1),
    ),
    _scene(
        "anxiety", "Anxiety",
        _d("eq3", "low", -1, 0.5), _d("eq3", "mid", 1, 0.5), _d("eq3", "high", -1, 0.5),
        _d("distortion", "distortion", 0.5), _d("distortion", "wet", 0.1, 0.2),
        _d("tremolo", "frequency", 10, 0.5), _d("tremolo", "depth", 0.8, 0.5),
        _d("tremolo", "wet", 0.3, 0.5),
        _d("feedback_delay", "delay_time", "8n"),
        _d("feedback_delay", "feedback", 0.15, 0.5),
        _d("feedback_delay", "wet", 0.2, 0.5),
        rate=1.015,
    ),
    _scene(
        "heroic", "Heroic Moment",
        _d("eq3", "low", 0, 1), _d("eq3", "mid", 2, 1), _d("eq3", "high", 2, 1),
        _d("distortion", "distortion", 0.1), _d("distortion", "wet", 0.05, 1),
        _d("reverb", "room_size", 0.4), _d("reverb", "wet", 0.15, 1),
        rate=1.0, rate_ramp=1.0,
    ),
    _scene(
        "warmth", "Warmth",
        _d("eq3", "low", 2, 1), _d("eq3", "mid", 1, 1), _d("eq3", "high", -2, 1),
        _d("distortion", "distortion", 0.05), _d("distortion", "wet", 0.1, 1),
        _d("chorus", "depth", 0.3), _d("chorus", "wet", 0.1, 1),
        rate=0.99,
    ),
    _scene(
        "intimacy", "Intimacy",
        _d("eq3", "high", -2, 1), _d("eq3", "mid", 3, 1),
        _d("stereo_widener", "width", 0.5, 1), _d("stereo_widener", "wet", 1, 1),
        rate=1.0, rate_ramp=1.0,
    ),
    _scene(
        "cold", "Cold / Digital",
        _d("eq3", "low", -5, 1), _d("eq3", "high", 2, 1),
        _d("bit_crusher", "bits", 12), _d("bit_crusher", "wet", 0.1, 1),
        _d("reverb", "room_size", 0.2), _d("reverb", "wet", 0.1, 1),
        rate=1.0, rate_ramp=1.0,
    ),
    _scene(
        "panic", "Panic",
        _d("auto_panner", "frequency", 10), _d("auto_panner", "depth", 1),
        _d("auto_panner", "wet", 0.2, 0.2),
        _d("distortion", "distortion", 0.2), _d("distortion", "wet", 0.05, 0.2),
        rate=1.008,
    ),
    _scene(
        "suspense", "Suspense",
        _d("eq3", "low", -3, 1), _d("eq3", "high", -5, 1),
        _d("vibrato", "frequency", 2), _d("vibrato", "depth", 0.1),
        _d("vibrato", "wet", 0.3, 1),
        _d("feedback_delay", "delay_time", "4n"),
        _d("feedback_delay", "feedback", 0.3), _d("feedback_delay", "wet", 0.25, 1),
        rate=0.975,
    ),
    _scene(
        "horror", "Horror",
        _d("bit_crusher", "bits", 8), _d("bit_crusher", "wet", 0.08, 2),
        _d("reverb", "room_size", 0.8), _d("reverb", "wet", 0.07, 2),
        _d("tremolo", "frequency", 2), _d("tremolo", "depth", 0.8),
        _d("tremolo", "wet", 0.07, 2),
        rate=0.972,
    ),
    _scene(
        "empty", "Empty / Distant",
        _d("eq3", "low", -6, 1), _d("eq3", "high", -4, 1),
        _d("highpass", "frequency", 250, 2),
        _d("reverb", "room_size", 0.9), _d("reverb", "wet", 0.35, 2),
        _d("stereo_widener", "width", 0.7, 1), _d("stereo_widener", "wet", 0.4, 1),
        rate=0.99,
    ),
    _scene(
        "underwater", "Underwater",
        _d("lowpass", "frequency", 500, 1.5),
        _d("eq3", "low", 3, 1), _d("eq3", "high", -20, 1),
        _d("vibrato", "frequency", 0.8), _d("vibrato", "depth", 0.15),
        _d("vibrato", "wet", 0.3, 1),
        _d("reverb", "room_size", 0.6), _d("reverb", "wet", 0.2, 1),
        rate=0.985,
    ),
    _scene(
        "dreamy", "Dreamy",
        _d("eq3", "high", -3, 1),
        _d("chorus", "frequency", 0.8), _d("chorus", "depth", 0.6),
        _d("chorus", "wet", 0.35, 1.5),
        _d("feedback_delay", "delay_time", "4n."),
        _d("feedback_delay", "feedback", 0.35), _d("feedback_delay", "wet", 0.2, 1.5),
        _d("reverb", "room_size", 0.75), _d("reverb", "wet", 0.3, 1.5),
        rate=0.98,
    ),
    _scene(
        "ethereal", "Ethereal",
        _d("highpass", "frequency", 180, 1.5),
        _d("eq3", "high", 2, 1),
        _d("chorus", "frequency", 0.3), _d("chorus", "depth", 0.5),
        _d("chorus", "wet", 0.25, 2),
        _d("stereo_widener", "width", 0.85, 1), _d("stereo_widener", "wet", 0.5, 1),
        _d("reverb", "room_size", 0.85), _d("reverb", "wet", 0.35, 2),
    ),
    _scene(
        "retro", "Retro 80s",
        _d("eq3", "low", 2, 1), _d("eq3", "high", 2, 1),
        _d("chorus", "frequency", 1.5), _d("chorus", "depth", 0.7),
        _d("chorus", "wet", 0.4, 1),
        _d("feedback_delay", "delay_time", "8n."),
        _d("feedback_delay", "feedback", 0.25), _d("feedback_delay", "wet", 0.2, 1),
        _d("reverb", "room_size", 0.5), _d("reverb", "wet", 0.15, 1),
    ),
    _scene(
        "dirty", "Dirty / Industrial",
        _d("compressor", "threshold", -30, 0.5), _d("compressor", "ratio", 6, 0.5),
        _d("eq3", "low", 3, 0.5), _d("eq3", "mid", 2, 0.5), _d("eq3", "high", -4, 0.5),
        _d("bit_crusher", "bits", 6), _d("bit_crusher", "wet", 0.15, 0.5),
        _d("distortion", "distortion", 0.7), _d("distortion", "wet", 0.35, 0.5),
    ),
    _scene(
        "robotic", "Robotic",
        _d("eq3", "mid", 3, 0.5),
        _d("bit_crusher", "bits", 5), _d("bit_crusher", "wet", 0.25, 0.5),
        _d("highpass", "frequency", 300, 1),
        _d("tremolo", "frequency", 30), _d("tremolo", "depth", 0.6),
        _d("tremolo", "wet", 0.3, 0.5),
    ),
    _scene(
        "glitch", "Glitch",
        _d("bit_crusher", "bits", 4), _d("bit_crusher", "wet", 0.3, 0.2),
        _d("tremolo", "frequency", 16), _d("tremolo", "depth", 1),
        _d("tremolo", "wet", 0.4, 0.2),
        _d("feedback_delay", "delay_time", "16n"),
        _d("feedback_delay", "feedback", 0.4), _d("feedback_delay", "wet", 0.25, 0.2),
        _d("auto_panner", "frequency", 8), _d("auto_panner", "depth", 1),
        _d("auto_panner", "wet", 0.3, 0.2),
        rate=1.01, rate_ramp=1.0,
    ),
    _scene(
        "psychedelic", "Psychedelic",
        _d("vibrato", "frequency", 3), _d("vibrato", "depth", 0.2),
        _d("vibrato", "wet", 0.25, 2),
        _d("chorus", "frequency", 2), _d("chorus", "depth", 0.9),
        _d("chorus", "wet", 0.4, 2),
        _d("feedback_delay", "delay_time", "4n"),
        _d("feedback_delay", "feedback", 0.45), _d("feedback_delay", "wet", 0.25, 2),
        _d("auto_panner", "frequency", 0.5), _d("auto_panner", "depth", 1),
        _d("auto_panner", "wet", 0.5, 2),
        rate=0.99,
    ),
    _scene(
        "memory", "Inner Monologue",
        _d("highpass", "frequency", 150, 1), _d("lowpass", "frequency", 3500, 1),
        _d("eq3", "mid", 3, 1),
        _d("stereo_widener", "width", 0.3, 1), _d("stereo_widener", "wet", 0.6, 1),
        _d("reverb", "room_size", 0.35), _d("reverb", "wet", 0.2, 1),
        rate=0.99,
    ),
)

SCENES = MappingProxyType({scene.name: scene for scene in _CATALOG})


def scene_names() -> list[str]:
    return list(SCENES)
