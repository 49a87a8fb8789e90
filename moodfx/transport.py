"""Playback transport and musical time.

The transport only gates whether the source advances.  Scene transitions
never look at it, so scenes can change while stopped, paused or playing.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Optional, Union

from moodfx.link import LinkSync


logger = logging.getLogger(__name__)

STOPPED = "stopped"
STARTED = "started"
PAUSED = "paused"

BEATS_PER_MEASURE = 4

_TOKEN_RE = re.compile(r"^(\d+)([ntm])(\.?)$")


def note_seconds(token: Union[str, float, int], bpm: float) -> float:
    """Convert a note-duration token to seconds at ``bpm``.

    ``"4n"`` is a quarter note, ``"8t"`` an eighth-note triplet, ``"8n."``
    a dotted eighth and ``"2m"`` two measures of 4/4.  Numbers are taken as
    seconds already.
    """
    if isinstance(token, (int, float)):
        return float(token)
    text = token.strip()
    try:
        return float(text)
    except ValueError:
        pass
    match = _TOKEN_RE.match(text)
    if not match or int(match.group(1)) == 0:
        raise ValueError(f"unknown note duration '{token}'")
    count, kind, dot = int(match.group(1)), match.group(2), match.group(3)
    beat = 60.0 / bpm
    if kind == "m":
        seconds = count * BEATS_PER_MEASURE * beat
    else:
        seconds = BEATS_PER_MEASURE * beat / count
        if kind == "t":
            seconds *= 2.0 / 3.0
    if dot:
        seconds *= 1.5
    return seconds


class Transport:
    """Shared start / pause / stop clock for the loaded source."""

    def __init__(self, link: Optional[LinkSync] = None):
        self.link = link or LinkSync()
        self._state = STOPPED
        self._source = None
        self._lock = threading.Lock()

    def attach(self, source):
        """Attach a new source; the transport stops when the source changes."""
        with self._lock:
            self._source = source
            self._state = STOPPED

    @property
    def source(self):
        return self._source

    @property
    def state(self) -> str:
        return self._state

    @property
    def playing(self) -> bool:
        return self._state == STARTED

    @property
    def bpm(self) -> float:
        return self.link.bpm

    def note_seconds(self, token) -> float:
        return note_seconds(token, self.bpm)

    def start(self):
        with self._lock:
            if self._source is None:
                raise RuntimeError("no audio loaded")
            if self._source.finished:
                self._source.seek(0.0)
            self._state = STARTED
        logger.info("[Transport] started")

    def pause(self):
        with self._lock:
            if self._state == STARTED:
                self._state = PAUSED
                logger.info("[Transport] paused")

    def stop(self):
        with self._lock:
            self._state = STOPPED
            if self._source is not None:
                self._source.seek(0.0)
        logger.info("[Transport] stopped")

    def toggle(self) -> str:
        """Play/pause button semantics: pause when playing, else start."""
        if self.playing:
            self.pause()
        else:
            self.start()
        return self._state
