import numpy as np
import pytest

from contactqp.errors import ConfigurationError
from contactqp.ipm import KKTMethod, make_kkt_assembler
from contactqp.ipm.kkt import AugmentedKKTAssembler, StandardKKTAssembler
from contactqp.sparse import CSR3Matrix, SparsityPatternLearner

G = np.eye(2)
A = np.array([[1.0, 1.0]])


def _assembled(method, E=None, y=(2.0,), lam=(4.0,)):
    assembler = make_kkt_assembler(method, 2, 1)
    kkt = CSR3Matrix(assembler.dim, assembler.dim, nonzeros=assembler.dim)
    E_mat = CSR3Matrix.from_dense(E) if E is not None else None
    assembler.assemble_constant(kkt, CSR3Matrix.from_dense(G), CSR3Matrix.from_dense(A), E_mat)
    kkt.compress()
    E_diag = np.diag(E) if E is not None else np.zeros(1)
    assembler.update_diagonal(kkt, np.array(y), np.array(lam), E_diag)
    return assembler, kkt


def test_factory_selects_formulation():
    assert isinstance(make_kkt_assembler(KKTMethod.STANDARD, 3, 2), StandardKKTAssembler)
    assert isinstance(make_kkt_assembler(KKTMethod.AUGMENTED, 3, 2), AugmentedKKTAssembler)
    assert make_kkt_assembler(KKTMethod.STANDARD, 3, 2).dim == 7
    assert make_kkt_assembler(KKTMethod.AUGMENTED, 3, 2).dim == 5


def test_normal_formulation_is_rejected():
    with pytest.raises(ConfigurationError):
        make_kkt_assembler(KKTMethod.NORMAL, 3, 2)


def test_augmented_matrix_layout():
    _, kkt = _assembled(KKTMethod.AUGMENTED)
    expected = np.array(
        [
            [1.0, 0.0, -1.0],
            [0.0, 1.0, -1.0],
            [1.0, 1.0, 0.5],
        ]
    )
    assert np.allclose(kkt.to_dense(), expected)


def test_standard_matrix_layout():
    _, kkt = _assembled(KKTMethod.STANDARD)
    expected = np.array(
        [
            [1.0, 0.0, 0.0, -1.0],
            [0.0, 1.0, 0.0, -1.0],
            [1.0, 1.0, -1.0, 0.0],
            [0.0, 0.0, 4.0, 2.0],
        ]
    )
    assert np.allclose(kkt.to_dense(), expected)


def test_compliance_enters_both_formulations():
    E = np.array([[0.5]])
    _, aug = _assembled(KKTMethod.AUGMENTED, E=E)
    _, std = _assembled(KKTMethod.STANDARD, E=E)
    assert aug[2, 2] == pytest.approx(0.5 + 0.5)
    assert std[2, 3] == pytest.approx(0.5)


def test_update_diagonal_does_not_change_topology():
    assembler, kkt = _assembled(KKTMethod.STANDARD)
    trail = kkt.trail_index.copy()
    assembler.update_diagonal(kkt, np.array([7.0]), np.array([0.25]), np.zeros(1))
    assert np.array_equal(kkt.trail_index, trail)
    assert kkt[3, 2] == 0.25
    assert kkt[3, 3] == 7.0


def test_dry_run_records_every_slot():
    assembler = make_kkt_assembler(KKTMethod.AUGMENTED, 2, 1)
    learner = SparsityPatternLearner(3, 3)
    assembler.assemble_constant(learner, CSR3Matrix.from_dense(G), CSR3Matrix.from_dense(A))
    assert learner.get_sparsity_pattern() == [[0, 2], [1, 2], [0, 1, 2]]


@pytest.mark.parametrize("corrector", [False, True])
def test_formulations_give_identical_directions(rng, corrector):
    n, m = 4, 3
    M = rng.standard_normal((n, n))
    G_dense = M @ M.T + np.eye(n)
    A_dense = rng.standard_normal((m, n))
    y = rng.uniform(0.5, 2.0, m)
    lam = rng.uniform(0.5, 2.0, m)
    rp = rng.standard_normal(m)
    rd = rng.standard_normal(n)
    extra = {}
    if corrector:
        extra = dict(sigma_mu=0.3, dy_a=rng.standard_normal(m), dlam_a=rng.standard_normal(m))

    directions = []
    for method in (KKTMethod.STANDARD, KKTMethod.AUGMENTED):
        assembler = make_kkt_assembler(method, n, m)
        kkt = CSR3Matrix(assembler.dim, assembler.dim, nonzeros=assembler.dim)
        assembler.assemble_constant(kkt, CSR3Matrix.from_dense(G_dense), CSR3Matrix.from_dense(A_dense))
        assembler.update_diagonal(kkt, y, lam, np.zeros(m))
        rhs = assembler.build_rhs(rp, rd, y, lam, **extra)
        solution = np.linalg.solve(kkt.to_dense(), rhs)
        directions.append(assembler.extract(solution, kkt, rp))

    for std_part, aug_part in zip(*directions):
        assert np.allclose(std_part, aug_part, atol=1e-10)


def test_block_products_read_assembled_blocks(rng):
    assembler, kkt = _assembled(KKTMethod.STANDARD)
    x = rng.standard_normal(2)
    lam = rng.standard_normal(1)
    assert np.allclose(assembler.multiply_A(kkt, x), A @ x)
    assert np.allclose(assembler.multiply_G(kkt, x), G @ x)
    assert np.allclose(assembler.multiply_neg_AT(kkt, lam), -A.T @ lam)
