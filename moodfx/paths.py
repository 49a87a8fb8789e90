"""Runtime default locations (control socket, session file)."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "moodfx"


def default_socket_path() -> Path:
    """Per-user control socket path, preferring ``$XDG_RUNTIME_DIR``."""
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / APP_NAME / "control.sock"
    if os.geteuid() == 0:
        return Path("/run") / APP_NAME / "control.sock"
    return Path("/tmp") / f"{APP_NAME}-{os.getuid()}" / "control.sock"


def default_session_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path("~/.config").expanduser()
    return base / APP_NAME / "session.json"


DEFAULT_SOCK_PATH = default_socket_path()
DEFAULT_SESSION_PATH = default_session_path()
