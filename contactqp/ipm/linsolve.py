"""
Linear-solve adapters.

The interior-point solver never factorizes anything itself: it hands the
assembled KKT matrix and right-hand side to an adapter and asks it to run
one or more phases (:class:`~contactqp.ipm.core.SolverJob`). ``call`` returns
an integer status, 0 meaning success; callers turn non-zero statuses into
:class:`~contactqp.errors.LinearSolveError` via
:func:`~contactqp.errors.check_status`.

Two reference backends are provided:

* :class:`SuperLUAdapter` -- sparse LU through ``scipy.sparse.linalg.splu``.
* :class:`TorchDenseAdapter` -- dense LU through ``torch.linalg.lu_factor_ex``
  in float64, convenient for small systems and as a cross-check.
"""

from __future__ import annotations

from typing import Optional, Protocol, Union

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla
import torch

from ..errors import STATUS_OK
from ..logging import get_logger
from ..sparse import CSR3Matrix
from .core import SolverJob

logger = get_logger(__name__)

# Adapter status codes.
STATUS_NOT_READY = -1
STATUS_SINGULAR = -10
STATUS_NON_FINITE = -11

MatrixInput = Union[CSR3Matrix, np.ndarray, sp.spmatrix]


class LinearSolveAdapter(Protocol):
    """Protocol for the factorization/solve backend used by the solvers."""

    def set_problem(self, matrix: MatrixInput, rhs: np.ndarray) -> None:
        """Register the system matrix and right-hand side for the next ``call``."""
        ...

    def call(self, job: SolverJob) -> int:
        """Run ``job``; return 0 on success, a backend diagnostic code otherwise."""
        ...

    def get_solution(self) -> np.ndarray:
        """Return the solution of the last successful solve phase."""
        ...


def _phases(job: SolverJob) -> tuple:
    return {
        SolverJob.ANALYZE: ("analyze",),
        SolverJob.FACTORIZE: ("factorize",),
        SolverJob.SOLVE: ("solve",),
        SolverJob.ANALYZE_FACTORIZE: ("analyze", "factorize"),
        SolverJob.FACTORIZE_SOLVE: ("factorize", "solve"),
        SolverJob.COMPLETE: ("analyze", "factorize", "solve"),
    }[job]


class _AdapterBase:
    """Shared job dispatch; subclasses implement ``_analyze``/``_factorize``/``_solve``."""

    def __init__(self) -> None:
        self._matrix: Optional[MatrixInput] = None
        self._rhs: Optional[np.ndarray] = None
        self._solution: Optional[np.ndarray] = None

    def set_problem(self, matrix: MatrixInput, rhs: np.ndarray) -> None:
        self._matrix = matrix
        self._rhs = np.asarray(rhs, dtype=np.float64).reshape(-1).copy()

    def call(self, job: SolverJob) -> int:
        if self._matrix is None:
            logger.warning("%s: %s requested before set_problem", type(self).__name__, job.name)
            return STATUS_NOT_READY
        for phase in _phases(job):
            status = getattr(self, f"_{phase}")()
            if status != STATUS_OK:
                logger.warning(
                    "%s: %s phase of %s failed with status %d",
                    type(self).__name__,
                    phase,
                    job.name,
                    status,
                )
                return status
        return STATUS_OK

    def get_solution(self) -> np.ndarray:
        if self._solution is None:
            raise RuntimeError("no solution available; run a SOLVE job first")
        return self._solution.copy()

    def _analyze(self) -> int:
        return STATUS_OK


class SuperLUAdapter(_AdapterBase):
    """
    Sparse LU backend on SuperLU (``scipy.sparse.linalg.splu``).

    Args:
        permc_spec: Column ordering passed to ``splu``.
    """

    def __init__(self, permc_spec: str = "COLAMD"):
        super().__init__()
        self.permc_spec = permc_spec
        self._lu = None

    def _factorize(self) -> int:
        matrix = self._matrix
        if isinstance(matrix, CSR3Matrix):
            csc = matrix.to_scipy().tocsc()
        elif sp.issparse(matrix):
            csc = matrix.tocsc()
        else:
            csc = sp.csc_matrix(np.asarray(matrix, dtype=np.float64))
        try:
            self._lu = spla.splu(csc, permc_spec=self.permc_spec)
        except RuntimeError as exc:
            self._lu = None
            logger.debug("SuperLU factorization failed: %s", exc)
            return STATUS_SINGULAR
        return STATUS_OK

    def _solve(self) -> int:
        if self._lu is None:
            return STATUS_NOT_READY
        solution = self._lu.solve(self._rhs)
        if not np.all(np.isfinite(solution)):
            return STATUS_NON_FINITE
        self._solution = solution
        return STATUS_OK


class TorchDenseAdapter(_AdapterBase):
    """
    Dense LU backend on ``torch.linalg`` (float64).

    The status of a failed factorization is the ``info`` code of
    ``torch.linalg.lu_factor_ex`` (index of the first zero pivot, 1-based).

    Args:
        device: Torch device the factorization runs on.
    """

    def __init__(self, device: Union[str, torch.device] = "cpu"):
        super().__init__()
        self.device = torch.device(device)
        self._lu = None
        self._pivots = None

    def _dense(self) -> torch.Tensor:
        matrix = self._matrix
        if isinstance(matrix, CSR3Matrix):
            dense = matrix.to_dense()
        elif sp.issparse(matrix):
            dense = matrix.toarray()
        else:
            dense = np.asarray(matrix, dtype=np.float64)
        return torch.as_tensor(dense, dtype=torch.float64, device=self.device)

    def _factorize(self) -> int:
        lu, pivots, info = torch.linalg.lu_factor_ex(self._dense())
        status = int(info.item())
        if status != 0:
            self._lu = None
            self._pivots = None
            return status
        self._lu = lu
        self._pivots = pivots
        return STATUS_OK

    def _solve(self) -> int:
        if self._lu is None:
            return STATUS_NOT_READY
        rhs = torch.as_tensor(self._rhs, dtype=torch.float64, device=self.device).unsqueeze(-1)
        with torch.no_grad():
            solution = torch.linalg.lu_solve(self._lu, self._pivots, rhs).squeeze(-1)
        if not bool(torch.isfinite(solution).all()):
            return STATUS_NON_FINITE
        self._solution = solution.cpu().numpy().astype(np.float64)
        return STATUS_OK


__all__ = [
    "LinearSolveAdapter",
    "SuperLUAdapter",
    "TorchDenseAdapter",
    "STATUS_NOT_READY",
    "STATUS_SINGULAR",
    "STATUS_NON_FINITE",
]
