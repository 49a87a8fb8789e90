"""Tempo source for note-valued delay times, optionally shared over Ableton Link."""

from __future__ import annotations

from moodfx.deps import HAS_LINK, aalink

MIN_BPM = 20.0
MAX_BPM = 999.0


class LinkSync:
    """Session tempo; follows the Link session while joined.

    The local tempo is kept while Link is off and picks up the last
    session tempo when leaving, so delay times do not jump.
    """

    def __init__(self, bpm: float = 120.0):
        self._session = None
        self._local_bpm = _checked_bpm(bpm)

    def enable(self):
        if not HAS_LINK:
            raise RuntimeError("aalink not installed")
        if self._session is None:
            session = aalink.Link(self._local_bpm)
            session.enabled = True
            self._session = session

    def disable(self):
        session, self._session = self._session, None
        if session is not None:
            self._local_bpm = session.tempo
            session.enabled = False

    @property
    def enabled(self) -> bool:
        return self._session is not None

    @property
    def bpm(self) -> float:
        if self._session is not None:
            return self._session.tempo
        return self._local_bpm

    @bpm.setter
    def bpm(self, value: float):
        self._local_bpm = _checked_bpm(value)
        if self._session is not None:
            self._session.tempo = self._local_bpm

    @property
    def beat_seconds(self) -> float:
        return 60.0 / self.bpm

    @property
    def num_peers(self) -> int:
        return self._session.num_peers if self._session is not None else 0

    def describe(self) -> str:
        if self.enabled:
            return f"{self.bpm:.1f} BPM  ({self.num_peers} peers)"
        return f"disabled  ({self.bpm:.1f} BPM)"


def _checked_bpm(value: float) -> float:
    bpm = float(value)
    if not MIN_BPM <= bpm <= MAX_BPM:
        raise ValueError(f"bpm must be between {MIN_BPM:g} and {MAX_BPM:g}")
    return bpm
