"""Interactive command-line interface for moodfx."""

from __future__ import annotations

import cmd

from moodfx.deps import HAS_LINK, HAS_MIDO, HAS_PEDALBOARD, HAS_RTMIDI, HAS_SOUNDDEVICE, sd
from moodfx.host import MoodCore
from moodfx.midi import list_input_ports
from moodfx.scenes import scene_names


def _parse_value(text: str):
    """Numbers become floats (or ints for whole numbers); anything else stays a token."""
    try:
        number = float(text)
    except ValueError:
        return text
    if number.is_integer() and "." not in text:
        return int(number)
    return number


class HostCLI(cmd.Cmd):
    intro = r"""
============================================================
  moodfx  -  scene-driven adaptive audio effects
  game link (WebSocket)  |  MIDI pads  |  Ableton Link
============================================================
Type 'help' for available commands, 'scenes' for the catalog.
"""
    prompt = "moodfx> "

    def __init__(self, host: MoodCore, stdout=None, owns_host: bool = True):
        super().__init__(stdout=stdout)
        self.host = host
        # False behind the socket server, which manages the host lifecycle.
        self._owns_host = owns_host

    def _print(self, *args, **kwargs):
        """Print to self.stdout so output is captured in server mode."""
        kwargs.setdefault("file", self.stdout)
        print(*args, **kwargs)

    def emptyline(self):
        return False

    # -- source / transport --------------------------------------------------

    def do_load(self, arg):
        """Load an audio file: load <path>"""
        path = arg.strip()
        if not path:
            self._print("Usage: load <path>")
            return
        try:
            source = self.host.load_audio(path)
        except Exception as e:
            self._print(f"Error: {e}")
            return
        duration = getattr(source, "duration", 0.0)
        self._print(f"  loaded {path} ({duration:.1f}s), transport stopped")

    def do_play(self, arg):
        """Start playback."""
        try:
            self.host.play()
            self._print("  playing")
        except Exception as e:
            self._print(f"Error: {e}")

    def do_pause(self, arg):
        """Pause playback."""
        self.host.pause()
        self._print(f"  {self.host.transport.state}")

    def do_stop(self, arg):
        """Stop playback and rewind."""
        self.host.stop()
        self._print("  stopped")

    # -- scenes --------------------------------------------------------------

    def do_scene(self, arg):
        """Switch scene: scene <name>"""
        name = arg.strip()
        if not name:
            current = self.host.transitions.current_scene or "(baseline)"
            self._print(f"  current scene: {current}")
            return
        if name not in self.host.transitions.catalog:
            self._print(f"Error: unknown scene '{name}' (see 'scenes')")
            return
        if self.host.request_scene(name):
            self._print(f"  -> {name}")
        else:
            self._print("  ignored: no audio loaded")

    def do_signal(self, arg):
        """Send a raw game signal: signal <tag>"""
        tag = arg.strip()
        if not tag:
            self._print("Usage: signal <tag>")
            return
        accepted = self.host.send_signal(tag)
        self._print(f"  {tag}: {'accepted' if accepted else 'ignored'}")

    def do_reset(self, arg):
        """Fade all effects back to the neutral baseline."""
        if self.host.reset():
            self._print("  -> baseline")
        else:
            self._print("  ignored: no audio loaded")

    def do_scenes(self, arg):
        """List the scene catalog."""
        catalog = self.host.transitions.catalog
        current = self.host.transitions.current_scene
        for i, name in enumerate(scene_names()):
            scene = catalog[name]
            mark = "*" if name == current else " "
            rate = f"  rate={scene.playback_rate}" if scene.playback_rate else ""
            self._print(f"  {mark} [{i:2d}] {name:<12} {scene.label}{rate}")

    # -- units / parameters --------------------------------------------------

    def do_units(self, arg):
        """Show the signal chain and which units are active."""
        chain = self.host.registry.chain
        if chain is None:
            self._print("  No audio loaded.")
            return
        self._print(f"  {chain.describe()}")
        active = set(self.host.registry.active_units())
        for unit in chain.units:
            flag = "ON " if unit.name in active else "   "
            self._print(f"  {flag} {unit.name}")

    def do_params(self, arg):
        """Show live parameter values: params [unit]"""
        snapshot = self.host.registry.snapshot()
        if not snapshot:
            self._print("  No audio loaded.")
            return
        wanted = arg.strip()
        if wanted and wanted not in snapshot:
            self._print(f"Error: no unit '{wanted}'")
            return
        for unit, params in snapshot.items():
            if wanted and unit != wanted:
                continue
            self._print(f"  {unit}:")
            for name, value in params.items():
                shown = f"{value:.3f}" if isinstance(value, float) else value
                self._print(f"    {name} = {shown}")

    def do_set(self, arg):
        """Set a parameter: set <unit> <param> <value> [ramp_seconds]"""
        parts = arg.strip().split()
        if len(parts) < 3:
            self._print("Usage: set <unit> <param> <value> [ramp_seconds]")
            return
        value = _parse_value(parts[2])
        try:
            ramp = float(parts[3]) if len(parts) > 3 else None
            result = self.host.set_param(parts[0], parts[1], value, ramp)
        except Exception as e:
            self._print(f"Error: {e}")
            return
        suffix = f" (ramping over {ramp}s)" if ramp else ""
        self._print(f"  {parts[0]}.{parts[1]} = {result}{suffix}")

    def do_rate(self, arg):
        """Playback rate: rate [value] [ramp_seconds]"""
        parts = arg.strip().split()
        source = self.host.registry.source
        if not parts:
            if source is None:
                self._print("  No audio loaded.")
            else:
                self._print(f"  rate = {source.playback_rate:.4f}")
            return
        try:
            value = float(parts[0])
            ramp = float(parts[1]) if len(parts) > 1 else None
        except ValueError:
            self._print("Error: rate and ramp must be numbers")
            return
        try:
            if not self.host.set_playback_rate(value, ramp):
                self._print("  ignored: no audio loaded")
                return
        except ValueError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"  rate -> {value:.4f}")

    # -- gain ----------------------------------------------------------------

    def do_gain(self, arg):
        """Input gain into the chain: gain [value]"""
        if not arg.strip():
            self._print(f"  input gain = {self.host.registry.input_gain:.2f}")
            return
        try:
            self.host.set_input_gain(float(arg.strip()))
        except ValueError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"  input gain = {self.host.registry.input_gain:.2f}")

    def do_master(self, arg):
        """Master output gain: master [value]"""
        if not arg.strip():
            self._print(f"  master gain = {self.host.engine.master_gain:.2f}")
            return
        try:
            self.host.engine.master_gain = float(arg.strip())
        except ValueError:
            self._print("Error: master gain must be a number")
            return
        self._print(f"  master gain = {self.host.engine.master_gain:.2f}")

    # -- tempo / link --------------------------------------------------------

    def do_tempo(self, arg):
        """Get/set tempo for note-valued times: tempo [bpm]"""
        if arg.strip():
            try:
                self.host.link.bpm = float(arg.strip())
            except ValueError as e:
                self._print(f"Error: {e}")
                return
        self._print(f"  {self.host.link.bpm:.1f} BPM")

    def do_link(self, arg):
        """Enable Ableton Link: link [bpm]"""
        bpm = None
        if arg.strip():
            try:
                bpm = float(arg.strip())
            except ValueError:
                self._print("Error: bpm must be a number")
                return
        try:
            self.host.start_link(bpm)
            self._print(f"  Link enabled at {self.host.link.bpm:.1f} BPM")
        except Exception as e:
            self._print(f"Error: {e}")

    def do_unlink(self, arg):
        """Disable Ableton Link."""
        self.host.stop_link()
        self._print("  Link disabled")

    # -- audio ---------------------------------------------------------------

    def do_audio_start(self, arg):
        """Start audio output: audio_start [device]"""
        dev = arg.strip() or None
        if dev and dev.isdigit():
            dev = int(dev)
        try:
            self.host.start_audio(dev)
        except Exception as e:
            self._print(f"Error: {e}")

    def do_audio_stop(self, arg):
        """Stop audio output."""
        self.host.stop_audio()

    def do_devices(self, arg):
        """List audio devices."""
        if HAS_SOUNDDEVICE:
            self._print(sd.query_devices())
        else:
            self._print("  sounddevice not installed")

    # -- signal inputs -------------------------------------------------------

    def do_midi_ports(self, arg):
        """List MIDI input ports."""
        ports = list_input_ports()
        if not ports:
            self._print("  No MIDI input ports found.")
            return
        for i, name in enumerate(ports):
            self._print(f"  [{i}] {name}")

    def do_pads(self, arg):
        """Open scene pads: pads [port index|name]  (no arg: virtual port)"""
        spec = arg.strip()
        if spec == "close":
            self.host.close_pads()
            self._print("  pads closed")
            return
        try:
            name = self.host.open_pads(spec or None)
            self._print(f"  pads: {name}")
        except Exception as e:
            self._print(f"Error: {e}")

    def do_game(self, arg):
        """Link to a game: game <host[:port]> | game off"""
        target = arg.strip()
        if not target:
            address = self.host.game_address
            if address is None:
                self._print("  game link: off")
            else:
                state = "connected" if self.host.game_connected else "connecting"
                self._print(f"  game link: {address} ({state})")
            return
        if target == "off":
            self.host.disconnect_game()
            self._print("  game link: off")
            return
        try:
            link = self.host.connect_game(target)
            self._print(f"  game link: {link.address}")
        except Exception as e:
            self._print(f"Error: {e}")

    # -- session -------------------------------------------------------------

    def do_save(self, arg):
        """Save session: save [path]"""
        try:
            path = self.host.save_session(arg.strip() or None)
            self._print(f"  saved {path}")
        except Exception as e:
            self._print(f"Error: {e}")

    def do_restore(self, arg):
        """Restore session: restore [path]"""
        try:
            errors = self.host.restore_session(arg.strip() or None)
        except Exception as e:
            self._print(f"Error: {e}")
            return
        for err in errors:
            self._print(f"  warning: {err}")

    # -- status --------------------------------------------------------------

    def do_status(self, arg):
        """Overall status."""
        host = self.host
        source = host.registry.source
        self._print("=== moodfx Status ===")
        self._print(f"  Audio    : {'RUNNING' if host.engine.running else 'STOPPED'}"
                    f"  (sr={host.sample_rate} buf={host.buffer_size})")
        if source is None:
            self._print("  Source   : (none)")
        else:
            self._print(f"  Source   : {getattr(source, 'path', None) or '(buffer)'}"
                        f"  {host.transport.state}  rate={source.playback_rate:.3f}")
        self._print(f"  Scene    : {host.transitions.current_scene or '(baseline)'}")
        self._print(f"  Pads     : {host.pads_port_name or 'closed'}")
        self._print(f"  Game     : {host.game_address or 'off'}")
        self._print(f"  Link     : {host.link.describe()}")
        self._print(f"  Session  : {host.session_path}")
        if host.registry.loaded:
            for line in host.registry.describe_state():
                self._print(f"  {line}")

    def do_deps(self, arg):
        """Check dependencies."""
        for name, ok in [("pedalboard", HAS_PEDALBOARD), ("aalink", HAS_LINK),
                         ("python-rtmidi", HAS_RTMIDI), ("mido", HAS_MIDO),
                         ("sounddevice", HAS_SOUNDDEVICE)]:
            self._print(f"  {name}: {'OK' if ok else 'MISSING'}")

    def do_quit(self, arg):
        """Exit the current CLI session."""
        if self._owns_host:
            self.host.shutdown()
        return True

    do_exit = do_quit
    do_EOF = do_quit
