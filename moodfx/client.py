"""Interactive client for a running ``moodfx serve`` daemon."""

from __future__ import annotations

import io
import readline  # noqa: F401  (line editing for input())
import socket
import sys
from pathlib import Path
from typing import Optional, Union

from moodfx.paths import DEFAULT_SOCK_PATH

# Must match server.py
END_OF_RESPONSE = "\x00"


def read_response(rfile, out=None) -> bool:
    """Copy lines to ``out`` until the end-of-response sentinel.

    Returns ``False`` if the server closed the connection first.
    """
    if out is None:
        out = sys.stdout
    while True:
        line = rfile.readline()
        if not line:
            return False
        line = line.rstrip("\n")
        if line == END_OF_RESPONSE:
            return True
        print(line, file=out)


def send_command(sock_path: Union[str, Path, None], command: str) -> str:
    """Run a single command against the daemon and return its output."""
    path = Path(sock_path) if sock_path else DEFAULT_SOCK_PATH
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.connect(str(path))
        rfile = sock.makefile("r", encoding="utf-8", errors="replace")
        wfile = sock.makefile("w", encoding="utf-8")
        banner = io.StringIO()
        read_response(rfile, banner)
        wfile.write(command + "\n")
        wfile.flush()
        result = io.StringIO()
        read_response(rfile, result)
        return result.getvalue()


def connect(sock_path: Optional[Union[str, Path]] = None):
    """Connect to the daemon and run an interactive prompt."""
    path = Path(sock_path) if sock_path else DEFAULT_SOCK_PATH
    if not path.exists():
        print(f"Error: socket {path} not found. Is the server running?",
              file=sys.stderr)
        sys.exit(1)

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(str(path))
    except OSError as e:
        print(f"Error: cannot connect to {path}: {e}", file=sys.stderr)
        sys.exit(1)

    rfile = sock.makefile("r", encoding="utf-8", errors="replace")
    wfile = sock.makefile("w", encoding="utf-8")
    read_response(rfile)

    try:
        while True:
            try:
                line = input("moodfx> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            try:
                wfile.write(line + "\n")
                wfile.flush()
            except OSError:
                break
            if not read_response(rfile):
                break
            if line.strip().lower() in {"quit", "exit"}:
                break
    finally:
        for f in (wfile, rfile, sock):
            try:
                f.close()
            except OSError:
                pass


def watch(sock_path: Union[str, Path, None] = None, out=None):
    """Print scene events from the daemon until it closes the connection."""
    if out is None:
        out = sys.stdout
    path = Path(sock_path) if sock_path else DEFAULT_SOCK_PATH
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.connect(str(path))
        rfile = sock.makefile("r", encoding="utf-8", errors="replace")
        wfile = sock.makefile("w", encoding="utf-8")
        read_response(rfile, io.StringIO())
        wfile.write("watch\n")
        wfile.flush()
        read_response(rfile, out)
        for line in rfile:
            print(line.rstrip("\n"), file=out, flush=True)
