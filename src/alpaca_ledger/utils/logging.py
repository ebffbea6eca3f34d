from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)
_CONFIGURED = False


def level_for_verbosity(verbosity: int) -> int:
    """Map the count of ``-v`` flags to a logging level."""
    index = min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)
    return _VERBOSITY_LEVELS[index]


def configure_logging(level: str | int | None = None, *, stream: TextIO | None = None) -> None:
    """Configure the root logger once.

    Log records always go to stderr; stdout carries the ledger text only.
    ``LOG_LEVEL`` is consulted when no explicit level is passed.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved: str | int = level if level is not None else os.getenv("LOG_LEVEL", "WARNING")
    logging.basicConfig(level=resolved, format=_DEFAULT_FORMAT, stream=stream or sys.stderr)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
