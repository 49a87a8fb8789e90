"""Session persistence: save and restore the host's setup as JSON.

Saved state:
  - the loaded audio file
  - the last applied scene
  - master and input gain, tempo and the game-link address

Live effect parameters are not saved; restoring re-applies the scene,
which rebuilds them from the catalog.  Audio devices and MIDI ports are
not restored either since they depend on the hardware present.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from moodfx.paths import DEFAULT_SESSION_PATH

if TYPE_CHECKING:
    from moodfx.host import MoodCore


logger = logging.getLogger(__name__)

SESSION_VERSION = 1


def snapshot(host: MoodCore) -> dict:
    """Capture the restorable state of ``host`` as a plain dict."""
    source = host.registry.source
    return {
        "version": SESSION_VERSION,
        "sample_rate": host.sample_rate,
        "buffer_size": host.buffer_size,
        "bpm": host.link.bpm,
        "master_gain": host.engine.master_gain,
        "input_gain": host.registry.input_gain,
        "source": getattr(source, "path", None),
        "scene": host.transitions.current_scene,
        "game": host.game_address,
    }


def save(host: MoodCore, path: Optional[Path] = None) -> Path:
    path = Path(path) if path else DEFAULT_SESSION_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(snapshot(host), indent=2) + "\n")
    logger.info("[Session] Saved to %s", path)
    return path


def restore(host: MoodCore, path: Optional[Path] = None) -> list[str]:
    """Restore a session file; returns the list of non-fatal errors.

    Each entry is restored independently, so one missing file or a bad
    value does not prevent the rest from loading.
    """
    path = Path(path) if path else DEFAULT_SESSION_PATH
    if not path.exists():
        logger.info("[Session] No session file at %s", path)
        return []

    data = json.loads(path.read_text())
    version = data.get("version", 0)
    if version != SESSION_VERSION:
        logger.warning("[Session] Unknown session version %s, skipping", version)
        return [f"unknown session version {version}"]

    errors = []

    bpm = data.get("bpm")
    if bpm is not None:
        try:
            host.link.bpm = float(bpm)
        except (TypeError, ValueError) as e:
            errors.append(f"bpm {bpm!r}: {e}")

    gain = data.get("master_gain")
    if gain is not None:
        try:
            host.engine.master_gain = float(gain)
        except (TypeError, ValueError) as e:
            errors.append(f"master gain {gain!r}: {e}")

    input_gain = data.get("input_gain")
    if input_gain is not None:
        try:
            host.set_input_gain(float(input_gain))
        except (TypeError, ValueError) as e:
            errors.append(f"input gain {input_gain!r}: {e}")

    source = data.get("source")
    if source:
        try:
            host.load_audio(source)
        except Exception as e:
            errors.append(f"source '{source}': {e}")

    scene = data.get("scene")
    if scene and host.registry.loaded:
        if not host.request_scene(scene):
            errors.append(f"scene '{scene}' could not be applied")

    game = data.get("game")
    if game:
        try:
            host.connect_game(game)
        except Exception as e:
            errors.append(f"game link '{game}': {e}")

    if errors:
        logger.warning("[Session] Restored with %d error(s):", len(errors))
        for err in errors:
            logger.warning("  - %s", err)
    else:
        logger.info("[Session] Restored from %s", path)
    return errors
