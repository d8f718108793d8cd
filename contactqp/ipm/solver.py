"""
Primal-dual predictor-corrector interior-point solver for contact QPs.

Solves

    minimize   ½ xᵀ G x + cᵀ x
    subject to A x ≥ b

using Mehrotra's predictor-corrector scheme on the perturbed KKT conditions

    G x − Aᵀ λ + c = 0
    A x − y − b (+ E λ) = 0
    y ∘ λ = σ μ e,   y, λ ≥ 0

(Nocedal & Wright, Ch. 16.6). The KKT matrix lives in a
:class:`~contactqp.sparse.CSR3Matrix` owned by the solver; only its
iterate-dependent diagonal entries are rewritten between Newton solves, and
its topology can be learned once or locked across calls.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from ..diagnostics import is_debug_enabled
from ..errors import DimensionMismatchError, check_status
from ..logging import get_logger
from ..sparse import CSR3Matrix, SparsityPatternLearner
from .core import (
    IPConfig,
    IPResult,
    IterationRecord,
    SolverJob,
    SolverState,
    StartingPoint,
    write_history_csv,
)
from .descriptor import ProblemDescriptor
from .kkt import KKTAssembler, make_kkt_assembler
from .linsolve import LinearSolveAdapter, SuperLUAdapter
from .starting_point import initialize_iterate
from .utils import find_newton_step_length, normalized_norm, quadratic_objective

logger = get_logger(__name__)


class InteriorPointSolver:
    """
    Interior-point solver with persistent state across calls.

    The instance keeps its iterate, KKT matrix and block matrices between
    :meth:`solve` calls, enabling warm starts and sparsity-pattern reuse.
    Calls must be serialized by the caller.

    Args:
        adapter: Linear-solve backend. Defaults to :class:`SuperLUAdapter`.
        config: Solver options. Keyword arguments build an :class:`IPConfig`
            when ``config`` is omitted.

    Example:
        >>> solver = InteriorPointSolver(max_iterations=30)
        >>> result = solver.solve(QPDescriptor(G, c, A, b))
        >>> result.status
        <SolverState.CONVERGED: 'converged'>
    """

    def __init__(
        self,
        adapter: Optional[LinearSolveAdapter] = None,
        config: Optional[IPConfig] = None,
        **options,
    ):
        if config is None:
            config = IPConfig(**options)
        elif options:
            raise TypeError("pass either config or keyword options, not both")
        self.config = config
        self.adapter = adapter if adapter is not None else SuperLUAdapter()
        self.state = SolverState.UNINITIALIZED

        self.n = 0
        self.m = 0
        self.mu = 0.0
        self._allocate(0, 0)

        self.kkt = CSR3Matrix(1, 1)
        self.G = CSR3Matrix(1, 1)
        self.A = CSR3Matrix(1, 1)
        self.E = CSR3Matrix(1, 1)
        self.E_diag = np.zeros(0)
        self._assembler: Optional[KKTAssembler] = None
        self._use_E = False
        self._pattern_learned = False

        self.solve_call = 0
        self.iteration_count = 0
        self.history: List[IterationRecord] = []
        self._has_iterate = False

    # ------------------------------------------------------------ buffers

    def _allocate(self, n: int, m: int) -> Tuple[bool, bool]:
        """Resize vectors whose dimension changed; return ``(n_kept, m_kept)``."""
        allocated = hasattr(self, "x")
        n_kept = allocated and n == self.n
        m_kept = allocated and m == self.m
        if not n_kept:
            self.x = np.ones(n)
            self.c = np.zeros(n)
            self.rd = np.zeros(n)
            self.dx = np.zeros(n)
        if not m_kept:
            self.y = np.ones(m)
            self.lam = np.ones(m)
            self.b = np.zeros(m)
            self.rp = np.zeros(m)
            self.dy = np.zeros(m)
            self.dlam = np.zeros(m)
            self.y_pred = np.zeros(m)
            self.lam_pred = np.zeros(m)
        self.n = n
        self.m = m
        return n_kept, m_kept

    def force_sparsity_pattern_update(self) -> None:
        """Re-learn the KKT sparsity pattern on the next call."""
        self._pattern_learned = False

    # -------------------------------------------------------- block algebra

    def multiply_A(self, vec: np.ndarray) -> np.ndarray:
        return self._assembler.multiply_A(self.kkt, vec)

    def multiply_G(self, vec: np.ndarray) -> np.ndarray:
        return self._assembler.multiply_G(self.kkt, vec)

    def multiply_neg_AT(self, vec: np.ndarray) -> np.ndarray:
        return self._assembler.multiply_neg_AT(self.kkt, vec)

    def _multiply_E(self, vec: np.ndarray) -> np.ndarray:
        if not self._use_E:
            return np.zeros(self.m)
        return self.E.matmul(vec)

    def full_residual_update(self) -> None:
        """Recompute ``rp``, ``rd`` and ``mu`` from the current iterate."""
        self.rp[:] = self.multiply_A(self.x) - self.y - self.b + self._multiply_E(self.lam)
        self.rd[:] = self.multiply_G(self.x) + self.multiply_neg_AT(self.lam) + self.c
        self.mu = float(self.y @ self.lam) / self.m

    def kkt_measures(self) -> Tuple[float, float, float]:
        """Return ``(‖rp‖/m, ‖rd‖/n, μ)`` from the maintained residuals."""
        return normalized_norm(self.rp, self.m), normalized_norm(self.rd, self.n), self.mu

    def merit(self) -> float:
        """Scalar merit ``rp_nnorm·m + rd_nnorm·n + μ·m`` used by the warm start."""
        rp_nnorm, rd_nnorm, mu = self.kkt_measures()
        return rp_nnorm * self.m + rd_nnorm * self.n + mu * self.m

    def evaluate_objective(self) -> float:
        """Return ``½ xᵀ G x + cᵀ x`` at the current ``x``."""
        return quadratic_objective(self.G, self.c, self.x)

    def verify_kkt_conditions(self, report: bool = False) -> Tuple[float, float, float]:
        """
        Recompute the KKT residuals from the block matrices.

        Unlike the incrementally maintained ``rp``/``rd`` this evaluates the
        residual definitions from scratch, which exposes drift.

        Args:
            report: Log the measures at INFO level.

        Returns:
            ``(rp_nnorm, rd_nnorm, mu)``.
        """
        rp = self.A.matmul(self.x) - self.y - self.b + self._multiply_E(self.lam)
        rd = self.G.matmul(self.x) - self.A.matmul(self.lam, transpose=True) + self.c
        rp_nnorm = normalized_norm(rp, self.m)
        rd_nnorm = normalized_norm(rd, self.n)
        mu = float(self.y @ self.lam) / self.m if self.m else 0.0
        if np.any(self.y < 0) or np.any(self.lam < 0):
            logger.warning("KKT check: negative entries in y or lam")
        if report:
            logger.info(
                "KKT check: rp_nnorm=%.3e rd_nnorm=%.3e mu=%.3e",
                rp_nnorm,
                rd_nnorm,
                mu,
            )
        return rp_nnorm, rd_nnorm, mu

    def is_converged(self) -> bool:
        cfg = self.config
        rp_nnorm, rd_nnorm, mu = self.kkt_measures()
        return mu < cfg.mu_tolerance and rp_nnorm < cfg.rp_tolerance and rd_nnorm < cfg.rd_tolerance

    # -------------------------------------------------------- Newton solves

    def _newton_solve(self, rhs: np.ndarray, factorize: bool = True) -> np.ndarray:
        job = SolverJob.COMPLETE if factorize else SolverJob.SOLVE
        self.adapter.set_problem(self.kkt, rhs)
        status = self.adapter.call(job)
        check_status(status, "KKT system", job=job.name)
        return self.adapter.get_solution()

    def _directions(
        self,
        sigma_mu: float = 0.0,
        dy_a: Optional[np.ndarray] = None,
        dlam_a: Optional[np.ndarray] = None,
        factorize: bool = True,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        assembler = self._assembler
        if factorize:
            assembler.update_diagonal(self.kkt, self.y, self.lam, self.E_diag)
        rhs = assembler.build_rhs(self.rp, self.rd, self.y, self.lam, sigma_mu, dy_a, dlam_a)
        solution = self._newton_solve(rhs, factorize=factorize)
        return assembler.extract(solution, self.kkt, self.rp, self.E if self._use_E else None)

    def affine_directions(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Solve the unperturbed (predictor) Newton system at the current iterate."""
        return self._directions()

    def _step_lengths(self, dy: np.ndarray, dlam: np.ndarray, eta: float) -> Tuple[float, float]:
        alpha_p = find_newton_step_length(self.y, dy, eta)
        alpha_d = find_newton_step_length(self.lam, dlam, eta)
        if self.config.equal_step_length:
            alpha_p = alpha_d = min(alpha_p, alpha_d)
        return alpha_p, alpha_d

    def iterate(self) -> None:
        """
        One predictor-corrector iteration (predictor only with ``only_predict``).

        Updates ``x``, ``y``, ``lam`` and incrementally the residuals and ``mu``.
        """
        cfg = self.config
        m = self.m

        # predictor
        dx_a, dy_a, dlam_a = self._directions()
        eta = 0.9 + 0.1 * np.exp(-self.mu * m) if cfg.adaptive_eta else 0.95

        if cfg.only_predict:
            alpha_p, alpha_d = self._step_lengths(dy_a, dlam_a, eta)
            self._take_step(dx_a, dy_a, dlam_a, alpha_p, alpha_d)
            logger.debug(
                "iteration %d: predictor only alpha_p=%.3e alpha_d=%.3e mu=%.3e",
                self.iteration_count,
                alpha_p,
                alpha_d,
                self.mu,
            )
            return

        alpha_p, alpha_d = self._step_lengths(dy_a, dlam_a, 1.0)
        self.y_pred[:] = self.y + alpha_p * dy_a
        self.lam_pred[:] = self.lam + alpha_d * dlam_a
        mu_pred = float(self.y_pred @ self.lam_pred) / m

        # corrector, reusing the predictor factorization
        sigma = (mu_pred / self.mu) ** 3
        if cfg.mehrotra_correction:
            dx, dy, dlam = self._directions(sigma * self.mu, dy_a, dlam_a, factorize=False)
        else:
            dx, dy, dlam = self._directions(sigma * self.mu, factorize=False)

        alpha_p, alpha_d = self._step_lengths(dy, dlam, eta)
        self._take_step(dx, dy, dlam, alpha_p, alpha_d)

        logger.debug(
            "iteration %d: sigma=%.3e alpha_p=%.3e alpha_d=%.3e mu=%.3e",
            self.iteration_count,
            sigma,
            alpha_p,
            alpha_d,
            self.mu,
        )

    def _take_step(self, dx, dy, dlam, alpha_p: float, alpha_d: float) -> None:
        self.x += alpha_p * dx
        self.y += alpha_p * dy
        self.lam += alpha_d * dlam
        self.dx[:] = dx
        self.dy[:] = dy
        self.dlam[:] = dlam

        self.rp *= 1.0 - alpha_p
        if self._use_E and alpha_d != alpha_p:
            self.rp += (alpha_d - alpha_p) * self.E.matmul(dlam)
        self.rd *= 1.0 - alpha_d
        if alpha_p != alpha_d:
            self.rd += (alpha_p - alpha_d) * self.multiply_G(dx)
        self.mu = float(self.y @ self.lam) / self.m

    # ---------------------------------------------------------- assembly

    def _load_problem(self, descriptor: ProblemDescriptor) -> None:
        cfg = self.config
        m = self.m
        f = np.zeros(self.n)
        b_desc = np.zeros(m)
        E_out = self.E if cfg.use_compliance else None
        descriptor.convert_to_matrix_form(self.G, self.A, E_out, f, b_desc, cfg.skip_tangential)
        self.c[:] = -f
        self.b[:] = -b_desc

        self._use_E = cfg.use_compliance and self.E.nnz > 0
        if self._use_E:
            if self.E.shape != (m, m):
                raise DimensionMismatchError(f"E has shape {self.E.shape}, expected ({m}, {m})")
            self.E_diag = np.array([self.E.get_element(j, j) for j in range(m)])
        else:
            self.E_diag = np.zeros(m)

    def _assemble_kkt(self) -> None:
        cfg = self.config
        assembler = self._assembler
        dim = assembler.dim
        E = self.E if self._use_E else None
        kkt = self.kkt
        kkt.set_max_shifts(cfg.max_shifts)
        kkt.sparsity_locked = cfg.lock_sparsity_pattern

        # an unlocked matrix loses its topology on reset, so only a locked one can
        # keep a previously learned pattern
        reuse = cfg.lock_sparsity_pattern and self._pattern_learned and kkt.shape == (dim, dim)
        if cfg.learn_sparsity_pattern and not reuse:
            learner = SparsityPatternLearner(dim, dim)
            assembler.assemble_constant(learner, self.G, self.A, E)
            kkt.load_sparsity_pattern(learner)
            self._pattern_learned = True
            logger.debug("Learned KKT sparsity pattern: %d entries", learner.nnz)
        else:
            hint = cfg.nonzeros_hint(dim)
            if kkt.shape == (dim, dim):
                hint = max(hint, kkt.trailing_index_length)
            kkt.reset(dim, dim, hint)

        assembler.assemble_constant(kkt, self.G, self.A, E)
        kkt.compress()

    # -------------------------------------------------------------- solve

    def _write_back(self, descriptor: ProblemDescriptor, m_full: int) -> None:
        """Hand ``[x; −λ]`` to the descriptor, zero-filling skipped tangential rows."""
        n, m = self.n, self.m
        out = np.zeros(n + m_full)
        out[:n] = self.x
        if m == m_full:
            out[n:] = -self.lam
        else:
            if m_full != 3 * m:
                raise DimensionMismatchError(
                    f"cannot expand {m} normal multipliers into {m_full} contact rows"
                )
            out[n::3] = -self.lam
        descriptor.from_vector_to_unknowns(out)

    def _solve_unconstrained(self, descriptor: ProblemDescriptor, n: int, m_full: int) -> IPResult:
        """``m == 0``: the optimum solves ``G x = −c`` directly."""
        self._allocate(n, 0)
        f = np.zeros(n)
        descriptor.convert_to_matrix_form(self.G, None, None, f, None, self.config.skip_tangential)
        self.c[:] = -f
        self.G.compress()

        self.adapter.set_problem(self.G, -self.c)
        status = self.adapter.call(SolverJob.COMPLETE)
        check_status(status, "unconstrained system", job=SolverJob.COMPLETE.name)
        self.x[:] = self.adapter.get_solution()

        self.mu = 0.0
        self.state = SolverState.DEGENERATE
        self._has_iterate = False
        logger.info("No active constraints: solved G x = -c directly (n=%d)", n)

        out = np.zeros(n + m_full)
        out[:n] = self.x
        descriptor.from_vector_to_unknowns(out)

        rd = self.G.matmul(self.x) + self.c
        return IPResult(
            x=self.x.copy(),
            fun=self.evaluate_objective(),
            status=self.state,
            message="No constraints; unconstrained minimizer returned",
            nit=0,
            primal_residual=0.0,
            dual_residual=normalized_norm(rd, n),
            slack=np.zeros(0),
            multipliers=np.zeros(0),
            mu=0.0,
        )

    def solve(self, descriptor: ProblemDescriptor) -> IPResult:
        """
        Solve the QP described by ``descriptor`` and write ``[x; −λ]`` back to it.

        Returns:
            :class:`IPResult` with state ``CONVERGED``, ``MAX_ITER_REACHED`` or
            ``DEGENERATE`` (no constraints).

        Raises:
            ConfigurationError: ``KKTMethod.NORMAL`` was configured.
            LinearSolveError: The adapter reported a failure.
        """
        cfg = self.config
        self.solve_call += 1
        n = descriptor.count_active_variables()
        m = descriptor.count_active_constraints(cfg.skip_tangential)
        m_full = descriptor.count_active_constraints(False)

        if m == 0:
            return self._solve_unconstrained(descriptor, n, m_full)

        self._assembler = make_kkt_assembler(cfg.kkt_method, n, m)
        had_iterate = self._has_iterate
        n_kept, m_kept = self._allocate(n, m)
        self._load_problem(descriptor)
        self._assemble_kkt()
        self.state = SolverState.INITIALIZED

        warm = cfg.warm_start or cfg.starting_point == StartingPoint.NOCEDAL_WARM_START
        reuse_x = warm and had_iterate and n_kept
        reuse_lam = warm and had_iterate and m_kept
        initialize_iterate(self, cfg.starting_point, reuse_x, reuse_lam)
        self._has_iterate = True

        first_record = len(self.history)
        self.iteration_count = 0
        self.state = SolverState.ITERATING
        while self.iteration_count < cfg.max_iterations and not self.is_converged():
            self.iterate()
            self.iteration_count += 1
            if cfg.record_history:
                rp_nnorm, rd_nnorm, mu = self.kkt_measures()
                self.history.append(
                    IterationRecord(self.solve_call, self.iteration_count, rp_nnorm, rd_nnorm, mu)
                )
            if is_debug_enabled():
                self.verify_kkt_conditions(report=True)

        rp_nnorm, rd_nnorm, mu = self.kkt_measures()
        if self.is_converged():
            self.state = SolverState.CONVERGED
            message = "Converged"
            logger.info(
                "Converged in %d iterations (rp=%.2e rd=%.2e mu=%.2e)",
                self.iteration_count,
                rp_nnorm,
                rd_nnorm,
                mu,
            )
        else:
            self.state = SolverState.MAX_ITER_REACHED
            message = "Maximum number of iterations reached"
            logger.warning(
                "No convergence after %d iterations (rp=%.2e rd=%.2e mu=%.2e)",
                self.iteration_count,
                rp_nnorm,
                rd_nnorm,
                mu,
            )

        self._write_back(descriptor, m_full)
        return IPResult(
            x=self.x.copy(),
            fun=self.evaluate_objective(),
            status=self.state,
            message=message,
            nit=self.iteration_count,
            primal_residual=rp_nnorm,
            dual_residual=rd_nnorm,
            slack=self.y.copy(),
            multipliers=self.lam.copy(),
            mu=mu,
            history=list(self.history[first_record:]),
        )

    def write_history(self, path: str) -> None:
        """Write every recorded :class:`IterationRecord` to ``path`` as CSV."""
        write_history_csv(self.history, path)

    def __repr__(self) -> str:
        return (
            f"InteriorPointSolver(n={self.n}, m={self.m}, state={self.state.name}, "
            f"method={self.config.kkt_method.name})"
        )


__all__ = ["InteriorPointSolver"]
