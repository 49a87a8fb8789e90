"""MIDI pad controller: pads and program changes trigger scenes."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Union

from moodfx.deps import HAS_MIDO, mido
from moodfx.midi import MidiInput


logger = logging.getLogger(__name__)

BASE_NOTE = 36   # lowest pad on most controllers (C1)
RESET_NOTE = 35  # the key just below the pads


class ScenePadController:
    """Map note-on pads and program changes to scene signals.

    Pad ``BASE_NOTE + i`` (and program change ``i``) sends the i-th scene of
    ``scenes``; ``RESET_NOTE`` sends the reset signal.
    """

    def __init__(self, send_signal: Callable[[str], bool], scenes: Sequence[str],
                 reset_signal: str = "reset", base_note: int = BASE_NOTE,
                 reset_note: int = RESET_NOTE):
        self._send = send_signal
        self.scenes = list(scenes)
        self.reset_signal = reset_signal
        self.base_note = base_note
        self.reset_note = reset_note
        self._port = MidiInput()

    @property
    def port_name(self) -> Optional[str]:
        return self._port.name

    def open(self, port: Union[int, str, None] = None) -> str:
        if port is None:
            return self._port.open_virtual("moodfx-Pads", self.on_midi)
        return self._port.open(port, self.on_midi)

    def close(self):
        self._port.close()

    def scene_for_note(self, note: int) -> Optional[str]:
        if note == self.reset_note:
            return self.reset_signal
        index = note - self.base_note
        if 0 <= index < len(self.scenes):
            return self.scenes[index]
        return None

    def scene_for_program(self, program: int) -> Optional[str]:
        if 0 <= program < len(self.scenes):
            return self.scenes[program]
        return None

    def on_midi(self, event, data=None):
        """rtmidi callback for incoming pad events."""
        del data

        raw, _dt = event
        if not raw or not HAS_MIDO:
            return
        try:
            msg = mido.Message.from_bytes(raw)
        except ValueError:
            logger.debug("[Pads] raw=%s unparseable", raw)
            return

        scene = None
        if msg.type == "note_on" and msg.velocity > 0:
            scene = self.scene_for_note(msg.note)
        elif msg.type == "program_change":
            scene = self.scene_for_program(msg.program)

        if scene is None:
            logger.debug("[Pads] %s ignored", msg)
            return
        logger.info("[Pads] %s -> %s", msg.type, scene)
        self._send(scene)
