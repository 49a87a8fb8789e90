"""moodfx - scene-driven adaptive audio effects for games."""

from moodfx.models import Directive, EngineTiming, Scene
from moodfx.scenes import BASELINE_DEFAULTS, RESET_SIGNAL, SCENES
from moodfx.transitions import SceneTransitionEngine
from moodfx.host import MoodCore

__all__ = [
    "MoodCore",
    "SceneTransitionEngine",
    "Scene",
    "Directive",
    "EngineTiming",
    "SCENES",
    "BASELINE_DEFAULTS",
    "RESET_SIGNAL",
]
