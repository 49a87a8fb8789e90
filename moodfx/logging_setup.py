"""Process-wide logging setup."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(default_level: str = "INFO") -> int:
    """Configure the root logger from ``LOG_LEVEL`` and return the level.

    An unrecognised ``LOG_LEVEL`` falls back to ``default_level`` with a
    warning instead of failing startup.
    """
    requested = os.environ.get("LOG_LEVEL", default_level).strip().upper()
    level = logging.getLevelName(requested)
    bad_level = not isinstance(level, int)
    if bad_level:
        level = logging.getLevelName(default_level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S",
                        stream=sys.stdout, force=True)

    if bad_level:
        logging.getLogger(__name__).warning(
            "LOG_LEVEL=%s not understood, logging at %s",
            requested, logging.getLevelName(level))
    return level
