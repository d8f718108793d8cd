"""
Debug mode for contactqp.

When enabled, the interior-point solver recomputes and reports its KKT
residuals from scratch after every iteration, and every CSR3 compression
re-verifies the storage invariants through :func:`check_storage`. The initial
state is read from the ``CONTACTQP_DEBUG`` environment variable.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from ..logging import get_logger

logger = get_logger(__name__)

DEBUG_ENV_VAR = "CONTACTQP_DEBUG"
_TRUTHY = ("1", "true", "yes", "on")


def _read_environment() -> bool:
    return os.getenv(DEBUG_ENV_VAR, "0").strip().lower() in _TRUTHY


_debug_enabled: bool = _read_environment()


def is_debug_enabled() -> bool:
    """Return whether debug checks are currently active."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    """
    Globally enable or disable debug mode.

    Parameters
    ----------
    enabled:
        Whether to run the extra checks.
    """
    global _debug_enabled
    _debug_enabled = bool(enabled)


def reload_from_environment() -> bool:
    """
    Re-read ``CONTACTQP_DEBUG`` and adopt its value.

    Returns
    -------
    bool
        The new debug state.
    """
    set_debug_enabled(_read_environment())
    return _debug_enabled


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Temporarily switch debug mode, restoring the previous state on exit.

    Example
    -------
    >>> with debug_context(True):
    ...     result = solver.solve(problem)  # KKT residuals logged per iteration
    """
    global _debug_enabled
    prev = _debug_enabled
    _debug_enabled = bool(enabled)
    try:
        yield
    finally:
        _debug_enabled = prev


def check_storage(matrix, context: str) -> int:
    """
    Verify the storage invariants of ``matrix`` if debug mode is on.

    Parameters
    ----------
    matrix:
        Anything with a ``verify_matrix()`` method returning 0 when valid.
    context:
        Operation that just ran, used in the log message.

    Returns
    -------
    int
        The verification code, or 0 when debug mode is off.
    """
    if not _debug_enabled:
        return 0
    code = matrix.verify_matrix()
    if code != 0:
        logger.error("CSR3 storage invariant violated after %s (code %d)", context, code)
    return code
