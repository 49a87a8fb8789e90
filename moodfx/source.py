"""Streaming audio source fed into the head of the effect chain."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from moodfx.deps import HAS_PEDALBOARD, AudioFile, np


logger = logging.getLogger(__name__)


class BufferSource:
    """A decoded buffer read block by block at a variable playback rate.

    ``playback_rate`` is a plain number on purpose: it has no smoothing of
    its own, so the scene engine interpolates it manually.
    """

    def __init__(self, audio, sample_rate: int, path: str | None = None):
        audio = np.asarray(audio, dtype=np.float32)
        if audio.ndim == 1:
            audio = audio[np.newaxis, :]
        if audio.shape[0] == 1:
            audio = np.vstack([audio, audio])
        self.audio = audio[:2]
        self.sample_rate = sample_rate
        self.path = path
        self.playback_rate = 1.0
        self._position = 0.0  # in frames, fractional
        self._lock = threading.Lock()

    @property
    def channels(self) -> int:
        return self.audio.shape[0]

    @property
    def frames(self) -> int:
        return self.audio.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)

    @property
    def position(self) -> float:
        """Playhead in seconds."""
        return self._position / float(self.sample_rate)

    @property
    def finished(self) -> bool:
        return self._position >= self.frames - 1

    def seek(self, seconds: float):
        with self._lock:
            self._position = min(max(seconds, 0.0) * self.sample_rate, float(self.frames))

    def read(self, frames: int):
        """Return the next ``frames`` samples as a (channels, frames) array."""
        out = np.zeros((self.channels, frames), dtype=np.float32)
        with self._lock:
            rate = float(self.playback_rate)
            if rate <= 0 or self._position >= self.frames - 1:
                return out
            idx = self._position + rate * np.arange(frames)
            valid = idx < self.frames - 1
            idx = idx[valid]
            lo = idx.astype(np.int64)
            frac = (idx - lo).astype(np.float32)
            n = len(idx)
            out[:, :n] = self.audio[:, lo] * (1.0 - frac) + self.audio[:, lo + 1] * frac
            self._position = min(self._position + rate * frames, float(self.frames))
        return out


def load_source(path: str, sample_rate: int) -> BufferSource:
    """Decode ``path`` into a :class:`BufferSource` at ``sample_rate``."""
    if not HAS_PEDALBOARD:
        raise RuntimeError("pedalboard not installed")
    p = Path(path).expanduser()
    if not p.exists():
        raise ValueError(f"no such file: {p}")
    with AudioFile(str(p)).resampled_to(sample_rate) as f:
        audio = f.read(f.frames)
    logger.info("[Source] Loaded %s (%d ch, %.1fs)", p.name, audio.shape[0],
                audio.shape[1] / float(sample_rate))
    return BufferSource(audio, sample_rate, path=str(p))
