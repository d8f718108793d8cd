"""contactqp - interior-point solving of contact QPs on a mutable CSR3 sparse engine."""

__version__ = "0.1.0"

# Diagnostics
from .diagnostics import debug_context, is_debug_enabled, set_debug_enabled

# Errors
from .errors import (
    ConfigurationError,
    ContactQPError,
    DimensionMismatchError,
    LinearSolveError,
    check_status,
)

# Interior-point solver
from .ipm import (
    InteriorPointSolver,
    IPConfig,
    IPResult,
    IterationRecord,
    KKTMethod,
    LinearSolveAdapter,
    ProblemDescriptor,
    QPDescriptor,
    SolverJob,
    SolverState,
    SparseDirectSolver,
    StartingPoint,
    SuperLUAdapter,
    TorchDenseAdapter,
    make_kkt_assembler,
)

# Logging
from .logging import capture_logs, configure_logging, get_logger, set_log_level

# Sparse matrix engine
from .sparse import (
    CSR3Matrix,
    SparsityPatternLearner,
    export_arrays,
    export_triplets,
    import_arrays,
)

__all__ = [
    "__version__",
    # Sparse
    "CSR3Matrix",
    "SparsityPatternLearner",
    "export_triplets",
    "export_arrays",
    "import_arrays",
    # Solver
    "InteriorPointSolver",
    "SparseDirectSolver",
    "IPConfig",
    "IPResult",
    "IterationRecord",
    "KKTMethod",
    "StartingPoint",
    "SolverState",
    "SolverJob",
    "ProblemDescriptor",
    "QPDescriptor",
    "LinearSolveAdapter",
    "SuperLUAdapter",
    "TorchDenseAdapter",
    "make_kkt_assembler",
    # Errors
    "ContactQPError",
    "ConfigurationError",
    "DimensionMismatchError",
    "LinearSolveError",
    "check_status",
    # Logging and diagnostics
    "get_logger",
    "set_log_level",
    "configure_logging",
    "capture_logs",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
]
