"""
Primal-dual interior-point solver for contact quadratic programs.

The subpackage contains the solver itself, its KKT assembly strategies,
starting-point heuristics, the problem-descriptor and linear-solve adapter
protocols with reference implementations, and a setup-once direct solver.
"""

from . import core, descriptor, direct, kkt, linsolve, solver, starting_point, utils
from .core import (
    IPConfig,
    IPResult,
    IterationRecord,
    KKTMethod,
    SolverJob,
    SolverState,
    StartingPoint,
)
from .descriptor import ProblemDescriptor, QPDescriptor
from .direct import SparseDirectSolver
from .kkt import AugmentedKKTAssembler, KKTAssembler, StandardKKTAssembler, make_kkt_assembler
from .linsolve import LinearSolveAdapter, SuperLUAdapter, TorchDenseAdapter
from .solver import InteriorPointSolver
from .utils import find_newton_step_length, normalized_norm

__all__ = [
    "core",
    "descriptor",
    "direct",
    "kkt",
    "linsolve",
    "solver",
    "starting_point",
    "utils",
    # Core types
    "KKTMethod",
    "StartingPoint",
    "SolverState",
    "SolverJob",
    "IPConfig",
    "IPResult",
    "IterationRecord",
    # Collaborators
    "ProblemDescriptor",
    "QPDescriptor",
    "LinearSolveAdapter",
    "SuperLUAdapter",
    "TorchDenseAdapter",
    # Algorithms
    "KKTAssembler",
    "StandardKKTAssembler",
    "AugmentedKKTAssembler",
    "make_kkt_assembler",
    "InteriorPointSolver",
    "SparseDirectSolver",
    "find_newton_step_length",
    "normalized_norm",
]
