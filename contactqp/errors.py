"""
Exception hierarchy for contactqp.

Storage-layer errors terminate the offending call only; solver-layer errors
propagate to the caller unchanged. Non-convergence and the zero-constraint
path are reported through :class:`contactqp.ipm.core.SolverState`, never
through exceptions.
"""

from __future__ import annotations

from typing import Optional

# Status code returned by a linear-solve adapter on success.
STATUS_OK = 0


class ContactQPError(Exception):
    """Base exception for all contactqp errors."""


class ConfigurationError(ContactQPError, ValueError):
    """An option or formulation was selected that cannot be honoured."""


class DimensionMismatchError(ContactQPError, ValueError):
    """Operands of a matrix/vector operation have incompatible shapes."""


class StorageOverflow(ContactQPError):
    """
    No free slot was found within the shift bound of a sparse insertion.

    Raised and handled inside :class:`contactqp.sparse.CSR3Matrix`, which
    reacts by growing its buffers; it never reaches user code.
    """


class LinearSolveError(ContactQPError, RuntimeError):
    """
    A linear-solve adapter reported a non-zero status.

    Attributes:
        status: Backend specific diagnostic code, as returned by the adapter.
        job: Name of the adapter job that failed, if known.
    """

    def __init__(self, status: int, message: Optional[str] = None, job: Optional[str] = None):
        self.status = int(status)
        self.job = job
        if message is None:
            message = "linear solve failed"
        super().__init__(f"{message} (status={self.status})")


def check_status(status: int, context: str = "", job: Optional[str] = None) -> None:
    """
    Raise :class:`LinearSolveError` if ``status`` is not :data:`STATUS_OK`.

    Args:
        status: Integer status returned by ``LinearSolveAdapter.call``.
        context: Optional context prefixed to the message.
        job: Optional job name stored on the exception.
    """
    if status == STATUS_OK:
        return
    message = f"{context}: linear solve failed" if context else None
    raise LinearSolveError(status, message, job=job)


__all__ = [
    "STATUS_OK",
    "ContactQPError",
    "ConfigurationError",
    "DimensionMismatchError",
    "StorageOverflow",
    "LinearSolveError",
    "check_status",
]
