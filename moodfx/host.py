"""moodfx core - the central coordinator for all subsystems."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from moodfx import session
from moodfx.controllers.game_link import GameLink, parse_address
from moodfx.controllers.pads import ScenePadController
from moodfx.engine import AudioEngine
from moodfx.link import LinkSync
from moodfx.models import BUFFER_SIZE, DEFAULT_TIMING, SAMPLE_RATE, EngineTiming
from moodfx.paths import DEFAULT_SESSION_PATH
from moodfx.registry import EffectRegistry, build_limiter
from moodfx.scenes import RESET_SIGNAL, scene_names
from moodfx.scheduler import TimerScheduler
from moodfx.source import load_source
from moodfx.transitions import SceneTransitionEngine
from moodfx.transport import Transport


logger = logging.getLogger(__name__)


class MoodCore:
    """Owns the transport, effect registry, scene engine and signal inputs.

    ``scheduler``, ``unit_factory``, ``limiter_factory`` and ``source_loader``
    default to the real implementations; tests substitute them.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, buffer_size: int = BUFFER_SIZE,
                 session_path: Optional[str] = None, scheduler=None,
                 timing: EngineTiming = DEFAULT_TIMING,
                 unit_factory: Optional[Callable] = None,
                 limiter_factory: Optional[Callable] = build_limiter,
                 source_loader: Callable = load_source):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.session_path = Path(session_path) if session_path else DEFAULT_SESSION_PATH

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or TimerScheduler()
        self._load = source_loader

        self.link = LinkSync()
        self.transport = Transport(self.link)
        self.registry = EffectRegistry(
            self.scheduler, sample_rate, tempo=lambda: self.link.bpm, timing=timing,
            unit_factory=unit_factory, limiter_factory=limiter_factory)
        self.transitions = SceneTransitionEngine(self.registry, self.scheduler,
                                                 timing=timing)
        self.engine = AudioEngine(self.registry, self.transport, buffer_size)

        self.pads = ScenePadController(self.send_signal, scene_names(),
                                       reset_signal=RESET_SIGNAL)
        self._game: Optional[GameLink] = None

    # -- source / transport --------------------------------------------------

    def load_audio(self, path: str):
        """Decode ``path`` and rebuild the chain around it (transport stops)."""
        source = self._load(path, self.sample_rate)
        self.transitions.close()
        self.registry.initialize(source)
        self.transport.attach(source)
        logger.info("[Host] Loaded %s", getattr(source, "path", path))
        return source

    def play(self):
        self.transport.start()

    def pause(self):
        self.transport.pause()

    def stop(self):
        self.transport.stop()

    def toggle(self) -> str:
        return self.transport.toggle()

    # -- scenes --------------------------------------------------------------

    def send_signal(self, tag: str) -> bool:
        return self.transitions.send_signal(tag)

    def request_scene(self, name: str) -> bool:
        return self.transitions.request_scene(name)

    def reset(self) -> bool:
        return self.transitions.reset_to_baseline()

    def set_playback_rate(self, value: float, ramp: Optional[float] = None) -> bool:
        if value <= 0:
            raise ValueError("playback rate must be > 0")
        return self.transitions.set_playback_rate(value, ramp)

    def set_param(self, unit: str, parameter: str, value, ramp: Optional[float] = None):
        """Manually set one unit parameter, outside of any scene."""
        if self.registry.lookup(unit) is None:
            raise ValueError(f"no unit '{unit}'")
        channel = self.registry.resolve(unit, parameter)
        if channel is None:
            raise ValueError(f"unit '{unit}' has no parameter '{parameter}'")
        if ramp:
            channel.ramp_to(value, ramp)
        else:
            channel.set_immediate(value)
        return channel.value

    def set_input_gain(self, gain: float):
        if gain < 0:
            raise ValueError("input gain must be >= 0")
        self.registry.input_gain = gain
        chain = self.registry.chain
        if chain is not None:
            chain.input_gain = gain

    # -- signal inputs -------------------------------------------------------

    @property
    def pads_port_name(self) -> Optional[str]:
        return self.pads.port_name

    def open_pads(self, port: Union[int, str, None] = None) -> str:
        name = self.pads.open(port)
        logger.info("[Pads] Opened: %s", name)
        return name

    def close_pads(self):
        self.pads.close()

    @property
    def game_address(self) -> Optional[str]:
        return self._game.address if self._game is not None else None

    @property
    def game_connected(self) -> bool:
        return self._game is not None and self._game.connected

    def connect_game(self, address: str) -> GameLink:
        host, port = parse_address(address)
        self.disconnect_game()
        self._game = GameLink(self.send_signal, host, port)
        self._game.start()
        logger.info("[Game] Linking to %s", self._game.address)
        return self._game

    def disconnect_game(self):
        if self._game is not None:
            self._game.close()
            self._game = None

    # -- audio / link --------------------------------------------------------

    def start_audio(self, output_device=None):
        self.engine.start(output_device)

    def stop_audio(self):
        self.engine.stop()

    def start_link(self, bpm: Optional[float] = None):
        if bpm is not None:
            self.link.bpm = bpm
        self.link.enable()
        logger.info("[Link] Enabled at %.1f BPM", self.link.bpm)

    def stop_link(self):
        self.link.disable()
        logger.info("[Link] Disabled")

    # -- session persistence -------------------------------------------------

    def save_session(self, path: Optional[str] = None) -> Path:
        return session.save(self, Path(path) if path else self.session_path)

    def restore_session(self, path: Optional[str] = None) -> list[str]:
        return session.restore(self, Path(path) if path else self.session_path)

    # -- shutdown ------------------------------------------------------------

    def shutdown(self, save: bool = True):
        if save:
            try:
                self.save_session()
            except OSError as e:
                logger.warning("[Host] Could not save session: %s", e)
        self.stop_audio()
        self.disconnect_game()
        self.close_pads()
        self.transitions.close()
        self.registry.close()
        self.stop_link()
        if self._owns_scheduler:
            self.scheduler.stop()
        logger.info("[Host] Shutdown complete")
