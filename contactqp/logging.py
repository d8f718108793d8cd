"""Logging utilities for contactqp.

All loggers live under the ``contactqp.`` namespace, write through their own
handler and do not propagate to the root logger. Level, format and stream are
package-wide settings: :func:`configure_logging` applies them to every logger
already handed out *and* to the ones created afterwards, so a simulation
driver can switch on the interior-point trace before the solver modules are
even imported.

The solver modules log as follows:

* ``contactqp.ipm.solver`` -- one summary per solve at INFO, one line per
  iteration at DEBUG, non-convergence at WARNING;
* ``contactqp.ipm.linsolve`` -- non-zero adapter statuses at WARNING;
* ``contactqp.sparse.csr3`` -- storage reallocations at DEBUG;
* ``contactqp.diagnostics.debug_mode`` -- violated storage invariants at ERROR.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from io import StringIO
from typing import IO, Iterator, Optional

ROOT_NAME = "contactqp"
DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_level: int = logging.WARNING
_format: str = DEFAULT_FORMAT
# None means "whatever sys.stderr is when the handler is built"
_stream: Optional[IO[str]] = None

_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _qualified(name: Optional[str]) -> str:
    if not name:
        return ROOT_NAME
    if name == ROOT_NAME or name.startswith(ROOT_NAME + "."):
        return name
    return f"{ROOT_NAME}.{name}"


def _install_handler(logger: logging.Logger) -> None:
    """Replace the handlers of ``logger`` with one built from the current settings."""
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(_stream if _stream is not None else sys.stderr)
    handler.setLevel(_level)
    handler.setFormatter(logging.Formatter(_format))
    logger.addHandler(handler)
    logger.setLevel(_level)
    logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the cached contactqp logger for ``name``.

    Args:
        name: Module name, usually ``__name__``. Names outside the package
            are prefixed with ``contactqp.``; None gives the package logger.

    Returns:
        Logger configured with the current package-wide settings.

    Example:
        >>> from contactqp.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("KKT matrix assembled")
    """
    qualified = _qualified(name)
    logger = _loggers.get(qualified)
    if logger is None:
        logger = logging.getLogger(qualified)
        _install_handler(logger)
        _loggers[qualified] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Change the level of every contactqp logger, keeping streams and formats.

    Args:
        level: Numeric level or its name (``"DEBUG"``, ``"info"``, ...).
            Unknown names fall back to WARNING.
    """
    global _level
    _level = _coerce_level(level)
    for logger in _loggers.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Set level, format and output stream for all contactqp loggers.

    Args:
        level: Logging level (default: WARNING).
        format_string: Record format; defaults to ``[LEVEL] name: message``.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    global _level, _format, _stream
    _level = _coerce_level(level)
    _format = format_string if format_string is not None else DEFAULT_FORMAT
    _stream = stream
    for logger in _loggers.values():
        _install_handler(logger)


@contextmanager
def capture_logs(level: int | str = logging.DEBUG, format_string: Optional[str] = None) -> Iterator[StringIO]:
    """Route all contactqp records into a buffer for the duration of the block.

    The previous level, format and stream are restored on exit.

    Example:
        >>> with capture_logs("INFO") as buffer:
        ...     solver.solve(problem)
        >>> "Converged in" in buffer.getvalue()
        True
    """
    saved = (_level, _format, _stream)
    buffer = StringIO()
    configure_logging(level, format_string, buffer)
    try:
        yield buffer
    finally:
        configure_logging(*saved)


__all__ = [
    "ROOT_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "set_log_level",
    "configure_logging",
    "capture_logs",
]
