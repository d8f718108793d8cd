"""Tests for the starting-point heuristics."""

import numpy as np
import pytest

from contactqp.ipm import InteriorPointSolver, SolverState, StartingPoint


def _initial_iterate(descriptor, strategy):
    """Run only the initialization by allowing zero iterations."""
    solver = InteriorPointSolver(starting_point=strategy, max_iterations=0)
    return solver, solver.solve(descriptor)


def test_stp1_scales_when_residual_dominates(active_qp):
    # ones give |rp| = 1 against a duality gap of 1, so everything is scaled by 10
    _, result = _initial_iterate(active_qp, StartingPoint.STP1)
    assert result.status == SolverState.MAX_ITER_REACHED
    assert result.nit == 0
    assert np.allclose(result.x, [10.0, 10.0])
    assert np.allclose(result.slack, [10.0])
    assert np.allclose(result.multipliers, [10.0])


def test_stp2_sets_slack_from_constraints(active_qp):
    _, result = _initial_iterate(active_qp, StartingPoint.STP2)
    assert np.allclose(result.x, [1.0, 1.0])
    assert np.allclose(result.slack, [1.0])
    assert np.allclose(result.multipliers, [1.0])


def test_nocedal_pushes_slack_and_multipliers_to_one(box_qp):
    solver, result = _initial_iterate(box_qp, StartingPoint.NOCEDAL)
    assert np.allclose(result.x, [1.0, 1.0])
    assert np.all(result.slack >= 1.0)
    assert np.all(result.multipliers >= 1.0)
    assert solver.mu == pytest.approx(result.slack @ result.multipliers / 2)


def test_residuals_are_consistent_after_initialization(random_qp):
    solver, _ = _initial_iterate(random_qp(4, 6), StartingPoint.NOCEDAL)
    rp = solver.rp.copy()
    rd = solver.rd.copy()
    solver.full_residual_update()
    assert np.allclose(solver.rp, rp)
    assert np.allclose(solver.rd, rd)


@pytest.mark.parametrize("strategy", list(StartingPoint))
def test_every_strategy_converges(random_qp, strategy):
    desc = random_qp(5, 8)
    result = InteriorPointSolver(starting_point=strategy).solve(desc)
    assert result.converged
    reference = InteriorPointSolver().solve(desc)
    assert np.allclose(result.x, reference.x, atol=1e-6)


def test_warm_start_flag_reuses_iterate(active_qp):
    solver = InteriorPointSolver(warm_start=True, starting_point=StartingPoint.STP2)
    first = solver.solve(active_qp)
    solver.solve(active_qp)
    # STP2 keeps the previous x when reusing
    assert first.converged
    assert np.allclose(solver.x, [1.0, 1.0], atol=1e-6)
