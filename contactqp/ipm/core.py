"""
Enumerations, configuration and result containers for the interior-point solver.

The solver works on quadratic programs in the contact convention

    minimize   ½ xᵀ G x + cᵀ x
    subject to A x ≥ b

with slack ``y = A x − b ≥ 0`` and multipliers ``λ ≥ 0``. An optional
compliance block ``E`` relaxes the primal residual to ``A x − y − b + E λ``.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), Ch. 16.6
    - Mehrotra, *On the implementation of a primal-dual interior point method*
      (1992)
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from ..errors import ConfigurationError


class KKTMethod(Enum):
    """Formulation of the Newton system solved at every step."""

    STANDARD = "standard"
    AUGMENTED = "augmented"
    NORMAL = "normal"


class StartingPoint(Enum):
    """Heuristic used to build the first interior iterate."""

    STP1 = "stp1"
    STP2 = "stp2"
    NOCEDAL = "nocedal"
    NOCEDAL_WARM_START = "nocedal_warm_start"


class SolverState(Enum):
    """Lifecycle state of an :class:`~contactqp.ipm.solver.InteriorPointSolver`."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"
    DEGENERATE = "degenerate"


class SolverJob(Enum):
    """Phases a linear-solve adapter can be asked to run."""

    ANALYZE = "analyze"
    FACTORIZE = "factorize"
    SOLVE = "solve"
    ANALYZE_FACTORIZE = "analyze_factorize"
    FACTORIZE_SOLVE = "factorize_solve"
    COMPLETE = "complete"


@dataclass
class IPConfig:
    """
    Options of the interior-point solver.

    Attributes:
        kkt_method: Newton system formulation. ``NORMAL`` is not supported.
        max_iterations: Upper bound on predictor-corrector iterations.
        rp_tolerance: Bound on ``‖rp‖₂ / m``.
        rd_tolerance: Bound on ``‖rd‖₂ / n``.
        mu_tolerance: Bound on the duality measure ``μ``.
        equal_step_length: Use ``min(α_p, α_d)`` for both primal and dual steps.
        adaptive_eta: Corrector step fraction ``0.9 + 0.1·exp(−μ·m)`` instead
            of the fixed ``0.95``.
        mehrotra_correction: Include the second-order term ``Δy_a∘Δλ_a`` in
            the corrector right-hand side.
        only_predict: Take the affine-scaling predictor step (shortened by the
            same fraction ``η``) and skip the corrector solve.
        starting_point: Starting-point heuristic.
        warm_start: Reuse the previous iterate when dimensions are unchanged.
        skip_tangential: Ask the descriptor for normal contact rows only.
        use_compliance: Load the compliance block ``E``.
        max_shifts: Insertion shift bound of the KKT matrix (None: unbounded).
        lock_sparsity_pattern: Keep the KKT topology across solves.
        learn_sparsity_pattern: Dry-run the KKT assembly once to size the
            matrix exactly.
        fullness: Expected KKT density, used as capacity hint ``d²·fullness``.
        record_history: Append an :class:`IterationRecord` per iteration.
    """

    kkt_method: KKTMethod = KKTMethod.AUGMENTED
    max_iterations: int = 50
    rp_tolerance: float = 1e-7
    rd_tolerance: float = 1e-8
    mu_tolerance: float = 1e-8
    equal_step_length: bool = False
    adaptive_eta: bool = True
    mehrotra_correction: bool = True
    only_predict: bool = False
    starting_point: StartingPoint = StartingPoint.NOCEDAL
    warm_start: bool = False
    skip_tangential: bool = False
    use_compliance: bool = False
    max_shifts: Optional[int] = None
    lock_sparsity_pattern: bool = False
    learn_sparsity_pattern: bool = False
    fullness: float = 0.1
    record_history: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.kkt_method, KKTMethod):
            raise ConfigurationError(f"kkt_method must be a KKTMethod, got {self.kkt_method!r}")
        if not isinstance(self.starting_point, StartingPoint):
            raise ConfigurationError(
                f"starting_point must be a StartingPoint, got {self.starting_point!r}"
            )
        if self.max_iterations < 0:
            raise ConfigurationError(f"max_iterations must be non-negative, got {self.max_iterations}")
        for name in ("rp_tolerance", "rd_tolerance", "mu_tolerance"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_shifts is not None and self.max_shifts < 0:
            raise ConfigurationError(f"max_shifts must be non-negative, got {self.max_shifts}")
        if not (0.0 < self.fullness <= 1.0):
            raise ConfigurationError(f"fullness must be in (0, 1], got {self.fullness}")

    def nonzeros_hint(self, dim: int) -> int:
        """Capacity hint for a ``dim × dim`` KKT matrix."""
        return max(int(dim * dim * self.fullness), dim)


@dataclass
class IterationRecord:
    """Convergence measures logged after one iteration."""

    solve_call: int
    iteration: int
    rp_nnorm: float
    rd_nnorm: float
    mu: float


@dataclass
class IPResult:
    """
    Outcome of :meth:`InteriorPointSolver.solve`.

    Attributes:
        x: Primal solution.
        fun: Objective ``½ xᵀ G x + cᵀ x`` at ``x``.
        status: Final :class:`SolverState`.
        message: Human-readable explanation of ``status``.
        nit: Number of iterations performed.
        primal_residual: ``‖rp‖₂ / m`` at exit.
        dual_residual: ``‖rd‖₂ / n`` at exit.
        slack: Slack vector ``y``.
        multipliers: Multipliers ``λ``.
        mu: Duality measure at exit.
        history: Iteration records of this call.
    """

    x: np.ndarray
    fun: float
    status: SolverState
    message: str
    nit: int
    primal_residual: Optional[float] = None
    dual_residual: Optional[float] = None
    slack: Optional[np.ndarray] = None
    multipliers: Optional[np.ndarray] = None
    mu: Optional[float] = None
    history: List[IterationRecord] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == SolverState.CONVERGED


def write_history_csv(records: List[IterationRecord], path: str) -> None:
    """Write iteration records as CSV with a header row."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["solve_call", "iteration", "rp_nnorm", "rd_nnorm", "mu"])
        for rec in records:
            writer.writerow([rec.solve_call, rec.iteration, rec.rp_nnorm, rec.rd_nnorm, rec.mu])


__all__ = [
    "KKTMethod",
    "StartingPoint",
    "SolverState",
    "SolverJob",
    "IPConfig",
    "IterationRecord",
    "IPResult",
    "write_history_csv",
]
