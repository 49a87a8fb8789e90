"""Unix socket control daemon for a headless moodfx host.

Protocol, UTF-8 text in both directions:

  client -> server:  one CLI command per line, or ``watch``
  server -> client:  the command's output, then a line holding a single NUL

``watch`` turns the connection into a scene event feed. Every accepted
request, applied scene, reset and ignored signal is written as one
``event <kind> [scene]`` line until either side hangs up.
"""

from __future__ import annotations

import io
import logging
import os
import queue
import signal
import socketserver
import sys
import threading
from pathlib import Path
from typing import Optional

from moodfx.cli import HostCLI
from moodfx.host import MoodCore
from moodfx.paths import APP_NAME, DEFAULT_SOCK_PATH


logger = logging.getLogger(__name__)

END_OF_RESPONSE = "\x00"
WATCH_COMMAND = "watch"
WATCH_BACKLOG = 256


class EventFeed:
    """Fans scene events out to every watching connection."""

    def __init__(self):
        self._lock = threading.Lock()
        self._watchers: list[queue.Queue] = []

    def publish(self, kind: str, scene: str = ""):
        line = f"event {kind} {scene}".rstrip()
        with self._lock:
            watchers = list(self._watchers)
        for q in watchers:
            try:
                q.put_nowait(line)
            except queue.Full:
                logger.warning("[Server] Watcher too slow, dropped '%s'", line)

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(WATCH_BACKLOG)
        with self._lock:
            self._watchers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue):
        with self._lock:
            if q in self._watchers:
                self._watchers.remove(q)

    @property
    def watcher_count(self) -> int:
        with self._lock:
            return len(self._watchers)

    def close(self):
        with self._lock:
            watchers, self._watchers = self._watchers, []
        for q in watchers:
            q.put(None)


class _ControlHandler(socketserver.StreamRequestHandler):
    """One control connection: commands until ``quit``, or a watch feed."""

    def handle(self):
        try:
            self._respond((HostCLI.intro or "").lstrip("\n"))
            for raw in self.rfile:
                line = raw.decode("utf-8", errors="replace").strip()
                if line == WATCH_COMMAND:
                    self._respond("  watching scene events (disconnect to stop)")
                    self._watch()
                    return
                output = self.server.run_command(line) if line else ""
                if output is None:
                    self._respond("[Host] Disconnected.")
                    return
                self._respond(output)
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("[Server] Client went away")

    def _respond(self, text: str):
        if text and not text.endswith("\n"):
            text += "\n"
        self.wfile.write((text + END_OF_RESPONSE + "\n").encode("utf-8"))

    def _watch(self):
        feed = self.server.events
        q = feed.subscribe()
        try:
            while True:
                line = q.get()
                if line is None:
                    return
                self.wfile.write((line + "\n").encode("utf-8"))
        finally:
            feed.unsubscribe(q)


class MoodServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    """Headless MoodCore behind a Unix socket; one thread per connection.

    Commands from all connections share one core and run one at a time.
    """

    daemon_threads = True

    def __init__(self, host: MoodCore, sock_path: Path = DEFAULT_SOCK_PATH):
        self.host = host
        self.sock_path = Path(sock_path)
        self.events = EventFeed()
        self._command_lock = threading.Lock()
        super().__init__(str(self.sock_path), _ControlHandler, bind_and_activate=False)
        host.transitions.add_listener(self.events.publish)

    def bind(self):
        if self.sock_path.exists():
            self.sock_path.unlink()
        try:
            self.sock_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            fallback = Path("/tmp") / f"{APP_NAME}-{os.getuid()}" / "control.sock"
            raise PermissionError(
                f"cannot create socket directory '{self.sock_path.parent}'. "
                f"Use --sock with a writable path (for example: {fallback})"
            ) from exc
        self.server_bind()
        self.server_activate()
        os.chmod(str(self.sock_path), 0o770)
        logger.info("[Server] Listening on %s", self.sock_path)

    def start(self):
        """Bind and serve until the process is interrupted or :meth:`close` runs."""
        self.bind()
        try:
            self.serve_forever(poll_interval=0.5)
        finally:
            self.close()

    def close(self):
        self.host.transitions.remove_listener(self.events.publish)
        self.events.close()
        self.server_close()
        try:
            self.sock_path.unlink()
        except FileNotFoundError:
            pass

    def handle_error(self, request, client_address):
        logger.exception("[Server] Control connection failed")

    def run_command(self, line: str) -> Optional[str]:
        """Run one CLI command and return its output.

        ``None`` means the client asked to disconnect; the host keeps
        running until the daemon itself exits.
        """
        buf = io.StringIO()
        cli = HostCLI(self.host, stdout=buf, owns_host=False)
        cli.use_rawinput = False
        with self._command_lock:
            stop = cli.onecmd(line)
        if stop:
            return None
        return buf.getvalue()


def run_server(host: MoodCore, sock_path: Optional[str] = None):
    """Entry point used by ``moodfx serve``."""
    server = MoodServer(host, Path(sock_path) if sock_path else DEFAULT_SOCK_PATH)

    def _shutdown(signum, frame):
        logger.info("[Server] Shutting down (signal %d)", signum)
        server.close()
        host.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    server.start()
