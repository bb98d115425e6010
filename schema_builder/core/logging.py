from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(level: str | int = "INFO") -> logging.Handler:
    """ Install a single stream handler on the package logger. Safe to call more than once. """
    global _handler
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    pkg_logger = logging.getLogger("schema_builder")
    pkg_logger.setLevel(level)
    if _handler is None or _handler not in pkg_logger.handlers:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg_logger.addHandler(_handler)
    return _handler
