"""
Tests for the linear-solve adapters.

Both reference backends must agree with a dense numpy solve, report
failures through integer statuses and never raise from ``call``.
"""

import numpy as np
import pytest
import scipy.sparse as sp

from contactqp.errors import LinearSolveError, check_status
from contactqp.ipm import SolverJob, SuperLUAdapter, TorchDenseAdapter
from contactqp.ipm.linsolve import STATUS_NOT_READY, STATUS_SINGULAR
from contactqp.sparse import CSR3Matrix

ADAPTERS = [SuperLUAdapter, TorchDenseAdapter]


def _system(rng, dim=6):
    dense = rng.standard_normal((dim, dim)) + dim * np.eye(dim)
    dense[np.abs(dense) < 0.3] = 0.0
    rhs = rng.standard_normal(dim)
    return dense, rhs


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
def test_complete_job_matches_numpy(rng, adapter_cls):
    """A COMPLETE job on a CSR3 matrix reproduces ``np.linalg.solve``."""
    dense, rhs = _system(rng)
    adapter = adapter_cls()
    adapter.set_problem(CSR3Matrix.from_dense(dense), rhs)
    assert adapter.call(SolverJob.COMPLETE) == 0
    assert np.allclose(adapter.get_solution(), np.linalg.solve(dense, rhs))


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
def test_factorization_is_reused_for_new_rhs(rng, adapter_cls):
    dense, rhs = _system(rng)
    adapter = adapter_cls()
    matrix = CSR3Matrix.from_dense(dense)
    adapter.set_problem(matrix, rhs)
    assert adapter.call(SolverJob.ANALYZE_FACTORIZE) == 0

    other = rng.standard_normal(dense.shape[0])
    adapter.set_problem(matrix, other)
    assert adapter.call(SolverJob.SOLVE) == 0
    assert np.allclose(adapter.get_solution(), np.linalg.solve(dense, other))


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
def test_accepts_scipy_and_dense_inputs(rng, adapter_cls):
    dense, rhs = _system(rng, dim=4)
    expected = np.linalg.solve(dense, rhs)
    for matrix in (dense, sp.csr_matrix(dense)):
        adapter = adapter_cls()
        adapter.set_problem(matrix, rhs)
        assert adapter.call(SolverJob.COMPLETE) == 0
        assert np.allclose(adapter.get_solution(), expected)


def test_backends_agree(rng):
    dense, rhs = _system(rng, dim=8)
    solutions = []
    for adapter_cls in ADAPTERS:
        adapter = adapter_cls()
        adapter.set_problem(CSR3Matrix.from_dense(dense), rhs)
        assert adapter.call(SolverJob.COMPLETE) == 0
        solutions.append(adapter.get_solution())
    assert np.allclose(solutions[0], solutions[1], atol=1e-10)


def test_superlu_singular_status():
    adapter = SuperLUAdapter()
    adapter.set_problem(np.array([[1.0, 1.0], [1.0, 1.0]]), np.ones(2))
    assert adapter.call(SolverJob.COMPLETE) == STATUS_SINGULAR


def test_torch_singular_status_is_pivot_index():
    adapter = TorchDenseAdapter()
    adapter.set_problem(np.array([[1.0, 1.0], [1.0, 1.0]]), np.ones(2))
    assert adapter.call(SolverJob.COMPLETE) > 0


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
def test_call_before_set_problem(adapter_cls):
    assert adapter_cls().call(SolverJob.COMPLETE) == STATUS_NOT_READY


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
def test_solve_without_factorization(adapter_cls):
    adapter = adapter_cls()
    adapter.set_problem(np.eye(2), np.ones(2))
    assert adapter.call(SolverJob.SOLVE) == STATUS_NOT_READY
    with pytest.raises(RuntimeError):
        adapter.get_solution()


def test_check_status_raises_with_status():
    check_status(0)
    with pytest.raises(LinearSolveError) as excinfo:
        check_status(-3, "KKT system", job="COMPLETE")
    assert excinfo.value.status == -3
    assert excinfo.value.job == "COMPLETE"
    assert "status=-3" in str(excinfo.value)
