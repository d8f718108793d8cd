import numpy as np
import pytest

from contactqp.sparse import CSR3Matrix, SparsityPatternLearner


def _assemble(target):
    """Tridiagonal 4x4 assembly in scrambled order with repeated writes."""
    for i in (3, 1, 0, 2):
        target.set_element(i, i, 2.0)
        if i + 1 < 4:
            target.set_element(i, i + 1, -1.0)
        if i > 0:
            target.set_element(i, i - 1, -1.0)
    target.set_element(2, 2, 2.0)


def test_learner_collapses_to_sorted_unique_pattern():
    learner = SparsityPatternLearner(4, 4)
    _assemble(learner)

    pattern = learner.get_sparsity_pattern()

    assert pattern == [[0, 1], [0, 1, 2], [1, 2, 3], [2, 3]]
    assert learner.nnz == 10
    assert learner.get_element(0, 0) == 0.0


def test_learner_column_major_records_rows_per_column():
    learner = SparsityPatternLearner(3, 2, row_major=False)
    learner.set_element(2, 0)
    learner.set_element(0, 0)
    learner[1, 1] = 5.0

    assert learner.leading_dimension == 2
    assert learner.get_sparsity_pattern() == [[0, 2], [1]]


def test_learner_reset_forgets_positions():
    learner = SparsityPatternLearner(2, 2)
    learner.set_element(0, 1)
    learner.reset(3, 1)
    assert learner.shape == (3, 1)
    assert learner.nnz == 0
    with pytest.raises(ValueError):
        learner.reset(-1, 2)


def test_learned_pattern_avoids_shifts_and_reallocations():
    learner = SparsityPatternLearner(4, 4)
    _assemble(learner)
    mat = CSR3Matrix()
    mat.load_sparsity_pattern(learner)

    assert mat.trailing_index_capacity == learner.nnz
    _assemble(mat)

    assert mat.shift_count == 0
    assert mat.reallocation_count == 0
    assert mat.nnz == 10
    expected = 2.0 * np.eye(4) - np.eye(4, k=1) - np.eye(4, k=-1)
    assert np.array_equal(mat.to_dense(), expected)


def test_unlearned_assembly_needs_shifts():
    mat = CSR3Matrix(4, 4, nonzeros=4)
    _assemble(mat)
    assert mat.shift_count + mat.reallocation_count > 0


def test_load_pattern_rejects_orientation_mismatch():
    learner = SparsityPatternLearner(2, 2, row_major=False)
    with pytest.raises(ValueError):
        CSR3Matrix(2, 2).load_sparsity_pattern(learner)
