"""
Setup-once, solve-many direct solver on top of the CSR3 matrix engine.

``setup`` assembles a square system through a caller supplied routine and
factorizes it; ``solve`` then reuses the factorization for any number of
right-hand sides. On the first setup (or after
:meth:`SparseDirectSolver.force_sparsity_pattern_update`) the routine is first
run against a :class:`~contactqp.sparse.SparsityPatternLearner` so the matrix
is sized exactly and the real assembly never shifts or reallocates.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..errors import DimensionMismatchError, check_status
from ..logging import get_logger
from ..sparse import CSR3Matrix, SparsityPatternLearner
from .core import SolverJob
from .linsolve import LinearSolveAdapter, SuperLUAdapter

logger = get_logger(__name__)

AssembleFn = Callable[[object], None]


class SparseDirectSolver:
    """
    Direct linear solver with sparsity-pattern learning and locking.

    Args:
        adapter: Factorization backend. Defaults to :class:`SuperLUAdapter`.
        learn_sparsity_pattern: Dry-run the assembly to size the matrix.
        lock_sparsity_pattern: Keep the matrix topology between setups.
        nonzeros_hint: Capacity hint used when the pattern is not learned.
    """

    def __init__(
        self,
        adapter: Optional[LinearSolveAdapter] = None,
        learn_sparsity_pattern: bool = True,
        lock_sparsity_pattern: bool = False,
        nonzeros_hint: int = 0,
    ):
        self.adapter = adapter if adapter is not None else SuperLUAdapter()
        self.learn_sparsity_pattern = learn_sparsity_pattern
        self.lock_sparsity_pattern = lock_sparsity_pattern
        self.nonzeros_hint = nonzeros_hint
        self.matrix = CSR3Matrix(1, 1)
        self._force_update = True
        self.setup_calls = 0
        self.solve_calls = 0

    @property
    def dim(self) -> int:
        return self.matrix.num_rows

    def force_sparsity_pattern_update(self) -> None:
        """Re-learn the pattern on the next :meth:`setup`."""
        self._force_update = True

    def setup(self, assemble: AssembleFn, dim: int) -> None:
        """
        Assemble and factorize a ``dim × dim`` system.

        Args:
            assemble: Callable writing the matrix entries through
                ``target.set_element(row, col, value)``.
            dim: System dimension.

        Raises:
            LinearSolveError: If the factorization fails.
        """
        matrix = self.matrix
        matrix.sparsity_locked = self.lock_sparsity_pattern
        reuse = self.lock_sparsity_pattern and not self._force_update and matrix.shape == (dim, dim)
        if self.learn_sparsity_pattern and not reuse:
            learner = SparsityPatternLearner(dim, dim)
            assemble(learner)
            matrix.load_sparsity_pattern(learner)
            self._force_update = False
            logger.debug("Learned sparsity pattern: %d entries for dim %d", learner.nnz, dim)
        else:
            hint = self.nonzeros_hint
            if matrix.shape == (dim, dim):
                hint = max(hint, matrix.trailing_index_length)
            matrix.reset(dim, dim, hint)

        assemble(matrix)
        matrix.compress()

        self.adapter.set_problem(matrix, np.zeros(dim))
        status = self.adapter.call(SolverJob.ANALYZE_FACTORIZE)
        check_status(status, "direct solver setup", job=SolverJob.ANALYZE_FACTORIZE.name)
        self.setup_calls += 1

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        """
        Solve with the factorization of the last :meth:`setup`.

        Raises:
            DimensionMismatchError: ``rhs`` does not match the system size.
            LinearSolveError: If the backend fails.
        """
        rhs = np.asarray(rhs, dtype=np.float64).reshape(-1)
        if rhs.shape[0] != self.dim:
            raise DimensionMismatchError(f"rhs has length {rhs.shape[0]}, expected {self.dim}")
        self.adapter.set_problem(self.matrix, rhs)
        status = self.adapter.call(SolverJob.SOLVE)
        check_status(status, "direct solver", job=SolverJob.SOLVE.name)
        self.solve_calls += 1
        return self.adapter.get_solution()


__all__ = ["SparseDirectSolver"]
