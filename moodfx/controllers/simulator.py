"""Game simulator: emits weighted-random scene tags every 5-15 seconds.

Used to exercise the engine without a game. Tags go to an in-process
callback, to every WebSocket client connected to the simulator, or both.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from websockets.exceptions import ConnectionClosed
from websockets.sync.server import Server, ServerConnection, serve

from moodfx.controllers.game_link import DEFAULT_GAME_PORT


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameState:
    key: str
    weight: int
    label: str


# Higher weight means picked more often; plain exploration dominates.
GAME_STATES: tuple[GameState, ...] = (
    GameState("reset", 25, "Normal Exploration (Reset)"),
    GameState("epic", 10, "Epic Battle"),
    GameState("lofi", 8, "Lo-Fi / Flashback"),
    GameState("claustro", 7, "Claustrophobic"),
    GameState("anxiety", 8, "Anxiety"),
    GameState("heroic", 7, "Heroic Moment"),
    GameState("warmth", 7, "Warmth"),
    GameState("intimacy", 6, "Intimacy"),
    GameState("cold", 6, "Cold / Digital"),
    GameState("panic", 5, "Panic"),
    GameState("suspense", 5, "Suspense"),
    GameState("horror", 4, "Horror"),
    GameState("empty", 5, "Empty / Distant"),
    GameState("underwater", 4, "Underwater"),
    GameState("dreamy", 5, "Dreamy"),
    GameState("ethereal", 5, "Ethereal"),
    GameState("retro", 6, "Retro 80s"),
    GameState("dirty", 4, "Dirty / Industrial"),
    GameState("robotic", 4, "Robotic"),
    GameState("glitch", 3, "Glitch"),
    GameState("psychedelic", 4, "Psychedelic"),
    GameState("memory", 4, "Inner Monologue"),
)


def pick_state(rng: random.Random, states: Sequence[GameState] = GAME_STATES) -> GameState:
    """Weighted random pick over ``states``."""
    total = sum(s.weight for s in states)
    roll = rng.randrange(total)
    for state in states:
        if roll < state.weight:
            return state
        roll -= state.weight
    return states[0]


class GameSimulator:
    """Periodically picks a game state and publishes its tag."""

    def __init__(self, on_signal: Optional[Callable[[str], object]] = None,
                 states: Sequence[GameState] = GAME_STATES,
                 min_interval: float = 5.0, max_interval: float = 15.0,
                 seed: Optional[int] = None):
        if not states:
            raise ValueError("simulator needs at least one state")
        if min_interval <= 0 or max_interval < min_interval:
            raise ValueError("invalid simulator interval")
        self._on_signal = on_signal
        self.states = tuple(states)
        self.min_interval = min_interval
        self.max_interval = max_interval
        self._rng = random.Random(seed)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._server: Optional[Server] = None
        self._clients: list[ServerConnection] = []
        self._clients_lock = threading.Lock()
        self.current: Optional[GameState] = None

    # -- picking -------------------------------------------------------------

    def next_interval(self) -> float:
        return self._rng.uniform(self.min_interval, self.max_interval)

    def step(self) -> GameState:
        state = pick_state(self._rng, self.states)
        self.current = state
        logger.info("[Sim] Game state -> %s (%s)", state.key, state.label)
        self.publish(state.key)
        return state

    def publish(self, tag: str):
        if self._on_signal is not None:
            try:
                self._on_signal(tag)
            except Exception:
                logger.exception("[Sim] Signal callback failed for '%s'", tag)
        self._broadcast(tag)

    # -- loop ----------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="moodfx-simulator",
                                        daemon=True)
        self._thread.start()

    def stop(self):
        """Stop picking and send a final reset, like a game returning to idle."""
        was_running = self.running
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        if was_running:
            self.publish("reset")

    def run_forever(self):
        """Blocking loop; returns once :meth:`stop` or :meth:`close` is called."""
        self._loop()

    def _loop(self):
        while not self._stop.is_set():
            self.step()
            if self._stop.wait(self.next_interval()):
                break

    # -- WebSocket broadcast -------------------------------------------------

    def run_server(self, host: str = "127.0.0.1", port: int = DEFAULT_GAME_PORT) -> int:
        """Serve game-link clients over WebSocket; returns the bound port."""
        server = serve(self._handle_client, host, port)
        self._server = server
        bound = server.socket.getsockname()[1]
        threading.Thread(target=server.serve_forever, name="moodfx-sim-server",
                         daemon=True).start()
        logger.info("[Sim] WebSocket server listening on ws://%s:%d", host, bound)
        return bound

    @property
    def client_count(self) -> int:
        with self._clients_lock:
            return len(self._clients)

    def _handle_client(self, conn: ServerConnection):
        with self._clients_lock:
            self._clients.append(conn)
            count = len(self._clients)
        logger.info("[Sim] Client connected (%d active)", count)
        try:
            for message in conn:
                logger.info("[Sim] Received message: %s", message)
        except ConnectionClosed:
            pass
        finally:
            with self._clients_lock:
                if conn in self._clients:
                    self._clients.remove(conn)
                count = len(self._clients)
            logger.info("[Sim] Client disconnected (%d active)", count)

    def _broadcast(self, tag: str):
        with self._clients_lock:
            if not self._clients and self._server is not None:
                logger.debug("[Sim] No clients connected, skipping '%s'", tag)
                return
            alive = []
            for conn in self._clients:
                try:
                    conn.send(tag)
                    alive.append(conn)
                except ConnectionClosed as e:
                    logger.info("[Sim] Dropping client: %s", e)
            self._clients = alive

    def close(self):
        self.stop()
        server, self._server = self._server, None
        if server is not None:
            server.shutdown()
        with self._clients_lock:
            clients, self._clients = self._clients, []
        for conn in clients:
            conn.close()
