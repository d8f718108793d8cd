"""
Starting-point heuristics for the interior-point solver.

Every heuristic fills the solver's ``x``, ``y`` and ``lam`` in place and leaves
the residuals ``rp``, ``rd`` and ``mu`` consistent with the new iterate.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), p. 484-485
    - D'Apuzzo, De Simone, di Serafino, *Starting-point strategies for an
      infeasible potential reduction method* (2010)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict

import numpy as np

from ..logging import get_logger
from .core import StartingPoint

if TYPE_CHECKING:
    from .solver import InteriorPointSolver

logger = get_logger(__name__)

# Residual to duality-gap ratio above which STP1 scales the iterate.
INFEAS_DUAL_RATIO = 0.1

# Lower bound of y and lam in the Nocedal and STP2 heuristics.
POSITIVITY_THRESHOLD = 1.0


def stp1(solver: "InteriorPointSolver", reuse_x: bool = False, reuse_lam: bool = False) -> None:
    """All ones, scaled up when the residuals dominate the duality gap."""
    solver.x[:] = 1.0
    solver.y[:] = 1.0
    solver.lam[:] = 1.0
    solver.full_residual_update()

    duality_gap = float(solver.y @ solver.lam)
    res_norm = float(np.sqrt(solver.rp @ solver.rp + solver.rd @ solver.rd))
    if res_norm / duality_gap > INFEAS_DUAL_RATIO:
        coeff = res_norm / (duality_gap * INFEAS_DUAL_RATIO)
        solver.x *= coeff
        solver.y *= coeff
        solver.lam *= coeff
        solver.full_residual_update()


def stp2(solver: "InteriorPointSolver", reuse_x: bool = False, reuse_lam: bool = False) -> None:
    """``y = max(A x − b, 1)`` and ``λ = 1 / y``."""
    if not reuse_x:
        solver.x[:] = 1.0
    solver.y[:] = np.maximum(solver.multiply_A(solver.x) - solver.b, POSITIVITY_THRESHOLD)
    solver.lam[:] = 1.0 / solver.y
    solver.full_residual_update()


def nocedal(solver: "InteriorPointSolver", reuse_x: bool = False, reuse_lam: bool = False) -> None:
    """
    One affine-scaling step from ``y = A x − b``, then push ``y``/``λ`` to ≥ 1.

    ``x`` (and ``λ``) start from ones unless the previous iterate is reused.
    """
    if not reuse_x:
        solver.x[:] = 1.0
    if not reuse_lam:
        solver.lam[:] = 1.0

    # A may have changed since the last call, so y is always recomputed
    solver.y[:] = solver.multiply_A(solver.x) - solver.b
    solver.full_residual_update()

    _, dy, dlam = solver.affine_directions()
    solver.y[:] = np.maximum(np.abs(solver.y + dy), POSITIVITY_THRESHOLD)
    solver.lam[:] = np.maximum(np.abs(solver.lam + dlam), POSITIVITY_THRESHOLD)
    solver.full_residual_update()


def nocedal_warm_start(
    solver: "InteriorPointSolver", reuse_x: bool = False, reuse_lam: bool = False
) -> None:
    """
    :func:`nocedal` from the previous iterate, keeping the previous iterate
    instead when its merit ``rp_nnorm·m + rd_nnorm·n + μ·m`` is lower.
    """
    if not (reuse_x and reuse_lam):
        nocedal(solver, reuse_x, reuse_lam)
        return

    x_bkp = solver.x.copy()
    y_bkp = solver.y.copy()
    lam_bkp = solver.lam.copy()
    solver.full_residual_update()
    merit_bkp = solver.merit()

    nocedal(solver, True, True)
    merit_new = solver.merit()

    if merit_bkp < merit_new:
        solver.x[:] = x_bkp
        solver.y[:] = y_bkp
        solver.lam[:] = lam_bkp
        solver.full_residual_update()
        logger.debug("Warm start kept the previous iterate (merit %.3e < %.3e)", merit_bkp, merit_new)


_STRATEGIES: Dict[StartingPoint, Callable[..., None]] = {
    StartingPoint.STP1: stp1,
    StartingPoint.STP2: stp2,
    StartingPoint.NOCEDAL: nocedal,
    StartingPoint.NOCEDAL_WARM_START: nocedal_warm_start,
}


def initialize_iterate(
    solver: "InteriorPointSolver",
    strategy: StartingPoint,
    reuse_x: bool = False,
    reuse_lam: bool = False,
) -> None:
    """Run the heuristic selected by ``strategy`` on ``solver``."""
    _STRATEGIES[strategy](solver, reuse_x, reuse_lam)


__all__ = [
    "stp1",
    "stp2",
    "nocedal",
    "nocedal_warm_start",
    "initialize_iterate",
]
