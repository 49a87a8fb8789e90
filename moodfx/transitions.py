"""Scene transition engine.

Every request runs the same two-phase sequence:

  1. cancel the pending apply, if any (the newest request always wins)
  2. ramp every parameter back to its baseline and the rate back to 1.0
  3. after ``apply_delay``, apply the requested scene's recipe

The delay lets the reset ramps get underway before the new values land, so
two ramps never race toward different targets on the same parameter.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping, Optional

from moodfx.models import DEFAULT_TIMING, EngineTiming, Scene, TransitionRequest
from moodfx.scenes import BASELINE_DEFAULTS, RESET_SIGNAL, SCENES


logger = logging.getLogger(__name__)


class SceneTransitionEngine:
    """Resolves overlapping scene requests into one coherent audio state.

    Public operations never raise; they return ``False`` when the request
    was ignored (unknown scene, nothing loaded) so callers can report it.
    """

    def __init__(self, registry, scheduler,
                 catalog: Mapping[str, Scene] = SCENES,
                 baseline: Mapping[str, Mapping] = BASELINE_DEFAULTS,
                 timing: EngineTiming = DEFAULT_TIMING):
        self._registry = registry
        self._scheduler = scheduler
        self._catalog = catalog
        self._baseline = baseline
        self.timing = timing
        self._lock = threading.RLock()
        self._pending: Optional[TransitionRequest] = None
        self._current: Optional[str] = None
        self._log_handle = None
        self._log_seq = 0
        self._listeners: list[Callable[[str, str], object]] = []

    # -- state ---------------------------------------------------------------

    @property
    def catalog(self) -> Mapping[str, Scene]:
        return self._catalog

    @property
    def pending(self) -> Optional[TransitionRequest]:
        return self._pending

    @property
    def current_scene(self) -> Optional[str]:
        """Last scene whose apply phase landed (``None`` after a reset)."""
        return self._current

    def add_listener(self, callback: Callable[[str, str], object]):
        """Call ``callback(kind, scene)`` on requested, applied, reset and ignored."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str, str], object]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    # -- inbound -------------------------------------------------------------

    def send_signal(self, scene_id: str) -> bool:
        """Entry point for external signal sources (game, simulator, pads)."""
        if scene_id == RESET_SIGNAL:
            return self.reset_to_baseline()
        if scene_id in self._catalog:
            return self.request_scene(scene_id)
        logger.warning("[Signal] Unknown scene tag '%s'", scene_id)
        self._notify("ignored", scene_id)
        return False

    def request_scene(self, scene_id: str) -> bool:
        scene = self._catalog.get(scene_id)
        if scene is None:
            logger.warning("[Scene] Unknown scene '%s'", scene_id)
            self._notify("ignored", scene_id)
            return False
        with self._lock:
            if not self._registry.loaded:
                logger.info("[Scene] No audio loaded, ignoring '%s'", scene_id)
                return False
            self._cancel_pending_locked()
            self._reset_locked()
            request = TransitionRequest(scene)
            self._pending = request
            request.handle = self._scheduler.call_later(
                self.timing.apply_delay, self._apply, request)
        logger.info("[Scene] Switching to %s (%s)", scene.name, scene.label)
        self._notify("requested", scene.name)
        return True

    def reset_to_baseline(self) -> bool:
        """Fade everything back to the neutral mix; nothing is applied after."""
        with self._lock:
            if not self._registry.loaded:
                logger.info("[Scene] No audio loaded, nothing to reset")
                return False
            self._cancel_pending_locked()
            self._reset_locked()
        self._log_state_later(self.timing.reset_log_delay)
        self._notify("reset")
        return True

    def set_playback_rate(self, value: float, ramp: Optional[float] = None) -> bool:
        channel = self._registry.rate_channel
        if channel is None:
            logger.info("[Scene] No audio loaded, ignoring rate %.3f", value)
            return False
        channel.ramp_to(value, ramp)
        return True

    def close(self):
        with self._lock:
            self._cancel_pending_locked()
            if self._log_handle is not None:
                self._log_handle.cancel()
                self._log_handle = None
        channel = self._registry.rate_channel
        if channel is not None:
            channel.cancel()

    # -- internals -----------------------------------------------------------

    def _cancel_pending_locked(self):
        if self._pending is not None:
            logger.debug("[Scene] Superseded pending '%s'", self._pending.scene.name)
            self._pending.cancel()
            self._pending = None

    def _reset_locked(self):
        logger.debug("[Scene] Resetting all effects (including rate)")
        ramp = self.timing.reset_ramp
        for unit, params in self._baseline.items():
            for param, default in params.items():
                channel = self._registry.resolve(unit, param)
                if channel is not None:
                    channel.ramp_to(default, ramp)
        self.set_playback_rate(1.0, self.timing.rate_reset_ramp)
        self._current = None

    def _apply(self, request: TransitionRequest):
        with self._lock:
            if self._pending is not request:
                return
            try:
                self._apply_scene_locked(request.scene)
                self._current = request.scene.name
            finally:
                self._pending = None
        self._log_state_later(self.timing.scene_log_delay)
        self._notify("applied", request.scene.name)

    def _apply_scene_locked(self, scene: Scene):
        if scene.playback_rate is not None:
            self.set_playback_rate(scene.playback_rate, scene.rate_ramp)
        for directive in scene.directives:
            channel = self._registry.resolve(directive.unit, directive.parameter)
            if channel is None:
                continue
            try:
                if directive.ramp:
                    channel.ramp_to(directive.value, directive.ramp)
                else:
                    channel.set_immediate(directive.value)
            except Exception:
                logger.exception("[Scene] %s: could not set %s.%s = %r", scene.name,
                                 directive.unit, directive.parameter, directive.value)

    def _notify(self, kind: str, scene: str = ""):
        for callback in list(self._listeners):
            try:
                callback(kind, scene)
            except Exception:
                logger.exception("[Scene] Listener failed on %s %s", kind, scene)

    def _log_state_later(self, delay: float):
        with self._lock:
            if self._log_handle is not None:
                self._log_handle.cancel()
            self._log_seq += 1
            self._log_handle = self._scheduler.call_later(delay, self._log_state,
                                                          self._log_seq)

    def _log_state(self, seq: int):
        with self._lock:
            if seq != self._log_seq:
                return
            self._log_handle = None
        if not logger.isEnabledFor(logging.INFO) or not self._registry.loaded:
            return
        logger.info("[Scene] --- current effect state ---")
        for line in self._registry.describe_state():
            logger.info("[Scene] %s", line)
