import numpy as np
import pytest

from contactqp.errors import DimensionMismatchError
from contactqp.sparse import CSR3Matrix

A_DENSE = np.array(
    [
        [4.0, 0.0, 1.0, 0.0],
        [0.0, 3.0, 0.0, 0.0],
        [1.0, 0.0, 0.0, 2.0],
    ]
)
B_DENSE = np.array(
    [
        [1.0, 1.0, 0.0, 0.0],
        [0.0, -3.0, 0.0, 0.0],
        [0.0, 0.0, 5.0, 0.0],
    ]
)


def test_from_dense_to_dense_preserves_entries():
    mat = CSR3Matrix.from_dense(A_DENSE)
    assert mat.is_compressed
    assert mat.nnz == 5
    assert np.array_equal(mat.to_dense(), A_DENSE)
    assert np.array_equal(mat.to_scipy().toarray(), A_DENSE)


def test_inplace_add_and_subtract():
    a = CSR3Matrix.from_dense(A_DENSE)
    b = CSR3Matrix.from_dense(B_DENSE)

    a += b
    assert np.allclose(a.to_dense(), A_DENSE + B_DENSE)

    a -= b
    assert np.allclose(a.to_dense(), A_DENSE)


def test_inplace_add_self_doubles():
    a = CSR3Matrix.from_dense(A_DENSE)
    a += a
    assert np.allclose(a.to_dense(), 2.0 * A_DENSE)


def test_inplace_scale():
    a = CSR3Matrix.from_dense(A_DENSE)
    a *= -0.5
    assert np.allclose(a.to_dense(), -0.5 * A_DENSE)


def test_mismatched_dimensions_raise_without_mutation():
    a = CSR3Matrix.from_dense(A_DENSE)
    c = CSR3Matrix(4, 3)
    with pytest.raises(DimensionMismatchError):
        a += c
    with pytest.raises(DimensionMismatchError):
        a -= c
    with pytest.raises(DimensionMismatchError):
        _ = a == c
    assert np.array_equal(a.to_dense(), A_DENSE)


def test_equality_on_uncompressed_matrices():
    a = CSR3Matrix.from_dense(A_DENSE)
    b = CSR3Matrix(3, 4, nonzeros=1)
    for i, j in [(2, 3), (0, 0), (2, 0), (1, 1), (0, 2)]:
        b.set_element(i, j, A_DENSE[i, j])
    assert not b.is_compressed

    assert a == b
    b.set_element(1, 1, 3.5)
    assert not (a == b)


def test_equality_ignores_explicit_zeros():
    a = CSR3Matrix.from_dense(A_DENSE)
    b = a.copy()
    b.sparsity_locked = True
    b.set_element(1, 0, 0.0)
    assert b.nnz == a.nnz + 1
    assert a == b


def test_copy_is_independent():
    a = CSR3Matrix.from_dense(A_DENSE)
    b = a.copy()
    b.set_element(1, 3, 9.0)
    assert a[1, 3] == 0.0
    assert b[1, 3] == 9.0


def test_matmul_matches_dense(rng):
    a = CSR3Matrix.from_dense(A_DENSE)
    x = rng.standard_normal(4)
    z = rng.standard_normal(3)
    assert np.allclose(a.matmul(x), A_DENSE @ x)
    assert np.allclose(a @ x, A_DENSE @ x)
    assert np.allclose(a.matmul(z, transpose=True), A_DENSE.T @ z)
    with pytest.raises(DimensionMismatchError):
        a.matmul(z)


def test_multiply_clipped_block(rng):
    a = CSR3Matrix.from_dense(A_DENSE)
    block = A_DENSE[1:3, 0:3]
    x = rng.standard_normal(3)
    z = rng.standard_normal(2)

    assert np.allclose(a.multiply_clipped(x, (1, 3), (0, 3)), block @ x)
    assert np.allclose(a.multiply_clipped(z, (1, 3), (0, 3), transpose=True), block.T @ z)
    with pytest.raises(DimensionMismatchError):
        a.multiply_clipped(z, (1, 3), (0, 3))


def test_items_yields_live_entries():
    a = CSR3Matrix.from_dense(A_DENSE)
    entries = sorted(a.items())
    assert entries == [
        (0, 0, 4.0),
        (0, 2, 1.0),
        (1, 1, 3.0),
        (2, 0, 1.0),
        (2, 3, 2.0),
    ]


def test_for_each_existent_value_in_range():
    a = CSR3Matrix.from_dense(A_DENSE)
    a.for_each_existent_value(lambda v: 10.0 * v, row_range=(0, 2), col_range=(0, 2))
    expected = A_DENSE.copy()
    expected[0, 0] = 40.0
    expected[1, 1] = 30.0
    assert np.array_equal(a.to_dense(), expected)


def test_for_each_value_that_meets():
    a = CSR3Matrix.from_dense(A_DENSE)
    seen = []
    a.for_each_value_that_meets(
        lambda i, j, v: seen.append((i, j)),
        lambda i, j, v: i == j,
    )
    assert sorted(seen) == [(0, 0), (1, 1)]


def test_column_major_from_dense_round_trip():
    a = CSR3Matrix.from_dense(A_DENSE, row_major=False)
    assert not a.is_row_major
    assert a.leading_dimension == 4
    assert np.array_equal(a.to_dense(), A_DENSE)
    assert a == CSR3Matrix.from_dense(A_DENSE)
