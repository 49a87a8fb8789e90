"""Tests for external signal sources: pads, game link and simulator."""

import random
import threading
import time

import pytest

from moodfx.controllers import game_link
from moodfx.controllers.game_link import GameLink, parse_address
from moodfx.controllers.pads import ScenePadController
from moodfx.controllers.simulator import GAME_STATES, GameSimulator, pick_state
from moodfx.midi import find_port
from moodfx.scenes import scene_names


class TestScenePads:
    """Pad notes and program changes to scene tags."""

    @pytest.fixture
    def sent(self):
        return []

    @pytest.fixture
    def pads(self, sent):
        return ScenePadController(sent.append, scene_names())

    def test_note_mapping(self, pads):
        names = scene_names()
        assert pads.scene_for_note(36) == names[0]
        assert pads.scene_for_note(36 + 11) == names[11]
        assert pads.scene_for_note(35) == "reset"
        assert pads.scene_for_note(36 + len(names)) is None
        assert pads.scene_for_note(20) is None

    def test_program_mapping(self, pads):
        assert pads.scene_for_program(0) == "epic"
        assert pads.scene_for_program(127) is None

    def test_note_on_sends_scene(self, pads, sent):
        pytest.importorskip("mido")
        pads.on_midi(([0x90, 36, 100], 0.0))
        pads.on_midi(([0x99, 35, 64], 0.0))
        assert sent == ["epic", "reset"]

    def test_note_on_zero_velocity_ignored(self, pads, sent):
        pytest.importorskip("mido")
        pads.on_midi(([0x90, 36, 0], 0.0))
        pads.on_midi(([0x80, 36, 64], 0.0))
        assert sent == []

    def test_program_change_sends_scene(self, pads, sent):
        pytest.importorskip("mido")
        pads.on_midi(([0xC0, 3], 0.0))
        assert sent == ["anxiety"]

    def test_other_messages_ignored(self, pads, sent):
        pytest.importorskip("mido")
        pads.on_midi(([0xB0, 7, 100], 0.0))
        pads.on_midi(([], 0.0))
        assert sent == []

    def test_find_port(self):
        ports = ["Midi Through 14:0", "MPD218 MIDI 1", "Launchpad"]
        assert find_port(1, ports) == 1
        assert find_port("2", ports) == 2
        assert find_port("mpd", ports) == 1
        with pytest.raises(ValueError):
            find_port(5, ports)
        with pytest.raises(ValueError):
            find_port("korg", ports)


class TestGameLink:
    """Frame handling and reconnecting client."""

    def test_parse_address(self):
        assert parse_address("10.0.0.2:9100") == ("10.0.0.2", 9100)
        assert parse_address("gamebox") == ("gamebox", 9002)
        assert parse_address(":9003") == ("127.0.0.1", 9003)
        assert parse_address("ws://gamebox:9002/") == ("gamebox", 9002)
        with pytest.raises(ValueError):
            parse_address("host:abc")

    def test_frames_are_stripped(self):
        got = []
        link = GameLink(got.append)
        assert link.handle_message("  horror \r\n") == "horror"
        assert link.handle_message(b"epic") == "epic"
        assert got == ["horror", "epic"]

    def test_blank_frames_are_skipped(self):
        got = []
        link = GameLink(got.append)
        assert link.handle_message("\n") is None
        assert link.handle_message("   ") is None
        assert got == []

    def test_handler_errors_do_not_escape(self):
        def boom(tag):
            raise RuntimeError(tag)

        link = GameLink(boom)
        assert link.handle_message("epic") == "epic"

    def test_close_during_connect_drops_new_connection(self, monkeypatch):
        class StubConnection:
            closed = False
            iterated = False

            def __iter__(self):
                self.iterated = True
                return iter(())

            def close(self):
                self.closed = True

        conn = StubConnection()
        link = GameLink(lambda tag: None)
        threads = []

        def connect_then_close(url, **kwargs):
            threads.append(threading.current_thread())
            link.close()
            return conn

        monkeypatch.setattr(game_link, "connect", connect_then_close)
        link.start()
        deadline = time.monotonic() + 5.0
        while not threads and time.monotonic() < deadline:
            time.sleep(0.01)
        threads[0].join(timeout=2.0)
        assert not threads[0].is_alive()
        assert conn.closed
        assert not conn.iterated
        assert not link.connected

    def test_simulator_speaks_websocket(self):
        from websockets.sync.client import connect

        sim = GameSimulator(seed=1)
        port = sim.run_server("127.0.0.1", 0)
        try:
            with connect(f"ws://127.0.0.1:{port}", open_timeout=5, proxy=None) as ws:
                deadline = time.monotonic() + 5.0
                while sim.client_count == 0 and time.monotonic() < deadline:
                    time.sleep(0.01)
                sim.publish("horror")
                assert ws.recv(timeout=5) == "horror"
        finally:
            sim.close()

    def test_receives_from_simulator(self):
        received = []
        done = threading.Event()

        def on_signal(tag):
            received.append(tag)
            done.set()

        sim = GameSimulator(seed=1)
        port = sim.run_server("127.0.0.1", 0)
        link = GameLink(on_signal, "127.0.0.1", port)
        link.start()
        try:
            deadline = time.monotonic() + 5.0
            while sim.client_count == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            assert sim.client_count == 1
            sim.publish("underwater")
            assert done.wait(5.0)
            assert received == ["underwater"]
            assert link.connected
        finally:
            link.close()
            sim.close()
        assert not link.running


class FixedRoll:
    def __init__(self, roll):
        self.roll = roll

    def randrange(self, total):
        assert total == 142
        return self.roll


class TestSimulator:
    """Weighted state picking."""

    @pytest.mark.parametrize("roll, key", [
        (0, "reset"), (24, "reset"), (25, "epic"), (35, "lofi"), (141, "memory"),
    ])
    def test_pick_by_cumulative_weight(self, roll, key):
        assert pick_state(FixedRoll(roll)).key == key

    def test_distribution_follows_weights(self):
        rng = random.Random(1234)
        picks = [pick_state(rng).key for _ in range(20000)]
        assert picks.count("reset") / len(picks) == pytest.approx(25 / 142, abs=0.02)
        assert picks.count("glitch") / len(picks) == pytest.approx(3 / 142, abs=0.01)

    def test_step_publishes_to_callback(self):
        got = []
        sim = GameSimulator(on_signal=got.append, seed=5)
        state = sim.step()
        assert got == [state.key]
        assert sim.current is state

    def test_seed_is_reproducible(self):
        a = GameSimulator(seed=9)
        b = GameSimulator(seed=9)
        assert [a.step().key for _ in range(20)] == [b.step().key for _ in range(20)]

    def test_interval_bounds(self):
        sim = GameSimulator(seed=2)
        for _ in range(100):
            assert 5.0 <= sim.next_interval() <= 15.0

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            GameSimulator(min_interval=10.0, max_interval=5.0)

    def test_stop_sends_reset(self):
        got = []
        sim = GameSimulator(on_signal=got.append, seed=3)
        sim.start()
        deadline = time.monotonic() + 5.0
        while not got and time.monotonic() < deadline:
            time.sleep(0.01)
        sim.stop()
        assert len(got) == 2
        assert got[-1] == "reset"
        assert not sim.running

    def test_weights(self):
        weights = {s.key: s.weight for s in GAME_STATES}
        assert weights["reset"] == 25
        assert weights["epic"] == 10
        assert sum(weights.values()) == 142
