"""MIDI input port for scene pads (python-rtmidi)."""

from __future__ import annotations

from typing import Callable, Optional, Union

from moodfx.deps import HAS_RTMIDI, rtmidi


def _require_rtmidi():
    if not HAS_RTMIDI:
        raise RuntimeError("python-rtmidi not installed")


def list_input_ports() -> list[str]:
    if not HAS_RTMIDI:
        return []
    midi_in = rtmidi.MidiIn()
    try:
        return [midi_in.get_port_name(i) for i in range(midi_in.get_port_count())]
    finally:
        midi_in.delete()


def find_port(spec: Union[int, str], ports: list[str]) -> int:
    """Resolve a port index or a case-insensitive name fragment to an index."""
    if isinstance(spec, int) or str(spec).isdigit():
        index = int(spec)
        if not 0 <= index < len(ports):
            raise ValueError(f"MIDI port {index} out of range (0-{len(ports) - 1})")
        return index
    needle = str(spec).lower()
    for index, name in enumerate(ports):
        if needle in name.lower():
            return index
    raise ValueError(f"no MIDI input port matching '{spec}'")


class MidiInput:
    """One open hardware or virtual MIDI input with a callback attached.

    Sysex, clock and active-sensing traffic is filtered out at the port;
    pads only ever send notes and program changes.
    """

    def __init__(self):
        self._port = None
        self._name: Optional[str] = None

    def open(self, spec: Union[int, str], callback: Callable) -> str:
        _require_rtmidi()
        self.close()
        port = rtmidi.MidiIn()
        index = find_port(spec, [port.get_port_name(i)
                                 for i in range(port.get_port_count())])
        port.open_port(index)
        port.ignore_types(sysex=True, timing=True, active_sense=True)
        port.set_callback(callback)
        self._port = port
        self._name = port.get_port_name(index)
        return self._name

    def open_virtual(self, name: str, callback: Callable) -> str:
        _require_rtmidi()
        self.close()
        port = rtmidi.MidiIn()
        port.open_virtual_port(name)
        port.ignore_types(sysex=True, timing=True, active_sense=True)
        port.set_callback(callback)
        self._port = port
        self._name = name
        return name

    def close(self):
        if self._port is None:
            return
        self._port.cancel_callback()
        self._port.close_port()
        self._port.delete()
        self._port = None
        self._name = None

    @property
    def is_open(self) -> bool:
        return self._port is not None

    @property
    def name(self) -> Optional[str]:
        return self._name
