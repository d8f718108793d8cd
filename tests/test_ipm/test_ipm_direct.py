"""Tests for the setup-once, solve-many direct solver."""

import numpy as np
import pytest

from contactqp.errors import DimensionMismatchError, LinearSolveError
from contactqp.ipm import SparseDirectSolver, TorchDenseAdapter


def _tridiagonal(dim, diag=4.0):
    calls = []

    def assemble(target):
        calls.append(type(target).__name__)
        for i in range(dim):
            target.set_element(i, i, diag)
            if i > 0:
                target.set_element(i, i - 1, -1.0)
            if i + 1 < dim:
                target.set_element(i, i + 1, -1.0)

    dense = diag * np.eye(dim) - np.eye(dim, k=1) - np.eye(dim, k=-1)
    return assemble, dense, calls


def test_setup_and_solve(rng):
    assemble, dense, calls = _tridiagonal(6)
    solver = SparseDirectSolver()
    solver.setup(assemble, 6)

    for _ in range(3):
        rhs = rng.standard_normal(6)
        assert np.allclose(solver.solve(rhs), np.linalg.solve(dense, rhs))

    assert calls == ["SparsityPatternLearner", "CSR3Matrix"]
    assert solver.matrix.shift_count == 0
    assert solver.matrix.reallocation_count == 0
    assert solver.setup_calls == 1
    assert solver.solve_calls == 3


def test_unlocked_pattern_is_relearned_every_setup():
    assemble, _, calls = _tridiagonal(5)
    solver = SparseDirectSolver()
    solver.setup(assemble, 5)
    solver.setup(assemble, 5)
    assert calls == ["SparsityPatternLearner", "CSR3Matrix"] * 2
    assert solver.matrix.shift_count == 0
    assert solver.matrix.reallocation_count == 0


def test_locked_pattern_is_learned_once():
    assemble, _, calls = _tridiagonal(5)
    solver = SparseDirectSolver(lock_sparsity_pattern=True)
    solver.setup(assemble, 5)
    solver.setup(assemble, 5)
    assert calls == ["SparsityPatternLearner", "CSR3Matrix", "CSR3Matrix"]
    assert solver.matrix.shift_count == 0

    solver.force_sparsity_pattern_update()
    solver.setup(assemble, 5)
    assert calls[-2:] == ["SparsityPatternLearner", "CSR3Matrix"]


def test_dimension_change_relearns():
    assemble4, _, calls = _tridiagonal(4)
    solver = SparseDirectSolver()
    solver.setup(assemble4, 4)
    assemble7, dense7, calls7 = _tridiagonal(7)
    solver.setup(assemble7, 7)
    assert calls7 == ["SparsityPatternLearner", "CSR3Matrix"]
    rhs = np.arange(7.0)
    assert np.allclose(solver.solve(rhs), np.linalg.solve(dense7, rhs))


def test_locked_topology_survives_setups():
    assemble, _, _ = _tridiagonal(5)
    solver = SparseDirectSolver(learn_sparsity_pattern=False, lock_sparsity_pattern=True, nonzeros_hint=13)
    solver.setup(assemble, 5)
    trail = solver.matrix.trail_index.copy()
    shifts = solver.matrix.shift_count
    solver.setup(assemble, 5)
    assert np.array_equal(solver.matrix.trail_index, trail)
    assert solver.matrix.shift_count == shifts


def test_torch_backend(rng):
    assemble, dense, _ = _tridiagonal(4)
    solver = SparseDirectSolver(adapter=TorchDenseAdapter())
    solver.setup(assemble, 4)
    rhs = rng.standard_normal(4)
    assert np.allclose(solver.solve(rhs), np.linalg.solve(dense, rhs))


def test_singular_setup_raises():
    def assemble(target):
        for i in range(2):
            for j in range(2):
                target.set_element(i, j, 1.0)

    solver = SparseDirectSolver()
    with pytest.raises(LinearSolveError):
        solver.setup(assemble, 2)


def test_rhs_length_is_checked():
    assemble, _, _ = _tridiagonal(3)
    solver = SparseDirectSolver()
    solver.setup(assemble, 3)
    with pytest.raises(DimensionMismatchError):
        solver.solve(np.ones(4))
