"""External scene-signal sources: game link, simulator and MIDI pads."""

from moodfx.controllers.game_link import GameLink
from moodfx.controllers.pads import ScenePadController
from moodfx.controllers.simulator import GameSimulator

__all__ = ["GameLink", "GameSimulator", "ScenePadController"]
