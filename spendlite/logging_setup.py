"""Logging for the ``spendlite`` package.

Library modules call ``get_logger("spendlite.<module>")`` and never attach
handlers. Until the CLI calls :func:`configure_logging` the package logger
carries a ``NullHandler``, so importing ``spendlite`` from another program
prints nothing.

The level is decided by the caller. The CLI passes
:attr:`spendlite.config.Settings.log_level`, which ``SPENDLITE_LOG_LEVEL`` (or
a ``.env`` entry) sets.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

PACKAGE_LOGGER = "spendlite"
DEFAULT_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def level_from_name(name: str | int | None) -> int | None:
    """``logging`` level for a name (``"debug"``) or number, else ``None``."""

    if name is None:
        return None
    if isinstance(name, int):
        return name
    text = name.strip().upper()
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text)


def configure_logging(
    level: str | int | None = None, *, stream: IO[str] | None = None
) -> logging.Logger:
    """Send package log records to ``stream`` (stderr) at ``level``.

    The handler is attached on the first call; later calls only change the
    level. Unknown or missing levels mean ``INFO``.
    """

    global _handler
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None:
        for h in list(pkg.handlers):
            if isinstance(h, logging.NullHandler):
                pkg.removeHandler(h)
        _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg.addHandler(_handler)
        pkg.propagate = False

    resolved = level_from_name(level)
    pkg.setLevel(DEFAULT_LEVEL if resolved is None else resolved)
    return pkg


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "level_from_name"]
