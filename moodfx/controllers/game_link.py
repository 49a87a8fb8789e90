"""Game signal link: scene tags from a running game over WebSocket.

The game (or the bundled simulator) sends one scene tag per text frame.
The link keeps reconnecting with exponential backoff until closed, so the
game can be started or restarted at any time.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Union

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect


logger = logging.getLogger(__name__)

DEFAULT_GAME_PORT = 9002
BACKOFF_INITIAL = 0.5
BACKOFF_MAX = 8.0


def parse_address(text: str, default_port: int = DEFAULT_GAME_PORT) -> tuple[str, int]:
    """Parse ``HOST[:PORT]`` (optionally prefixed with ``ws://``) into ``(host, port)``."""
    text = text.strip()
    if text.startswith("ws://"):
        text = text[len("ws://"):].rstrip("/")
    host, sep, port = text.rpartition(":")
    if not sep:
        return text or "127.0.0.1", default_port
    try:
        return host or "127.0.0.1", int(port)
    except ValueError:
        raise ValueError(f"invalid port in '{text}'") from None


class GameLink:
    """Background WebSocket client forwarding each received tag to ``on_signal``."""

    def __init__(self, on_signal: Callable[[str], object], host: str = "127.0.0.1",
                 port: int = DEFAULT_GAME_PORT, connect_timeout: float = 5.0):
        self._on_signal = on_signal
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._ws: Optional[ClientConnection] = None
        self._thread: Optional[threading.Thread] = None
        self._connected = False

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="moodfx-game-link",
                                        daemon=True)
        self._thread.start()

    def close(self):
        self._stop.set()
        with self._lock:
            ws = self._ws
        if ws is not None:
            ws.close()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None

    # ------------------------------------------------------------------

    def handle_message(self, message: Union[str, bytes]) -> Optional[str]:
        """Forward one received frame; empty frames are keep-alives."""
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        tag = message.strip()
        if not tag:
            return None
        logger.info("[Game] Received '%s'", tag)
        try:
            self._on_signal(tag)
        except Exception:
            logger.exception("[Game] Signal handler failed for '%s'", tag)
        return tag

    def _run(self):
        delay = BACKOFF_INITIAL
        while not self._stop.is_set():
            try:
                ws = connect(self.url, open_timeout=self.connect_timeout, proxy=None)
            except (OSError, WebSocketException) as e:
                logger.debug("[Game] Connect to %s failed: %s", self.url, e)
                if self._stop.wait(delay):
                    break
                delay = min(delay * 2, BACKOFF_MAX)
                continue

            with self._lock:
                if self._stop.is_set():
                    ws.close()
                    break
                self._ws = ws
            self._connected = True
            delay = BACKOFF_INITIAL
            logger.info("[Game] Connected to %s", self.url)
            try:
                for message in ws:
                    self.handle_message(message)
            except ConnectionClosed as e:
                if not self._stop.is_set():
                    logger.warning("[Game] Connection lost: %s", e)
            finally:
                self._connected = False
                with self._lock:
                    self._ws = None
                ws.close()
            if not self._stop.is_set():
                logger.info("[Game] Disconnected from %s, retrying", self.url)
                self._stop.wait(delay)
