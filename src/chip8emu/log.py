"""Logging setup shared by the command-line tools."""

from __future__ import annotations

import logging
import sys
from typing import Dict, Optional, TextIO

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

VERBOSITY_LEVELS: Dict[str, int] = {
    "quiet": logging.WARNING,
    "normal": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(verbosity: str = "normal", *, stream: Optional[TextIO] = None) -> int:
    """Install a stderr handler on the ``chip8emu`` logger and return the level used."""

    try:
        level = VERBOSITY_LEVELS[verbosity]
    except KeyError:
        raise ValueError(f"unknown verbosity '{verbosity}'") from None

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("chip8emu")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return level
