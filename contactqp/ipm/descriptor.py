"""Problem descriptors: where the solver reads G, A, E, f, b from and writes x, λ to."""

from __future__ import annotations

from typing import Optional, Protocol, Union

import numpy as np
import scipy.sparse as sp

from ..errors import DimensionMismatchError
from .utils import symmetrize

MatrixLike = Union[np.ndarray, sp.spmatrix]


class SparseTarget(Protocol):
    """Anything a descriptor can write a sparse block into (matrix or learner)."""

    def reset(self, num_rows: int, num_cols: int, nonzeros_hint: int = 0) -> None:
        ...

    def set_element(self, row: int, col: int, value: float, overwrite: bool = True) -> None:
        ...


class ProblemDescriptor(Protocol):
    """
    Protocol for the source of a contact QP.

    The descriptor stores the linear term as ``f = −c`` and the constraint
    bound as ``b_desc = −b``; the solver flips both signs on load.
    """

    def count_active_variables(self) -> int:
        """Return ``n``, the number of primal unknowns."""
        ...

    def count_active_constraints(self, skip_tangential: bool = False) -> int:
        """Return ``m``; only normal contact rows when ``skip_tangential`` is set."""
        ...

    def convert_to_matrix_form(
        self,
        G_out: Optional[SparseTarget],
        A_out: Optional[SparseTarget],
        E_out: Optional[SparseTarget],
        f_out: Optional[np.ndarray],
        b_out: Optional[np.ndarray],
        skip_tangential: bool = False,
    ) -> None:
        """
        Write the problem blocks into the given targets.

        ``None`` targets are skipped. Sparse targets are reset to the right
        shape first; vectors are filled in place.
        """
        ...

    def from_vector_to_unknowns(self, vector: np.ndarray) -> None:
        """Receive the solution laid out as ``[x; −λ]``."""
        ...


def _as_sparse(matrix: MatrixLike) -> sp.coo_matrix:
    if sp.issparse(matrix):
        return sp.coo_matrix(matrix, dtype=np.float64)
    return sp.coo_matrix(np.atleast_2d(np.asarray(matrix, dtype=np.float64)))


def _write_block(target: SparseTarget, block: sp.coo_matrix) -> None:
    target.reset(block.shape[0], block.shape[1], block.nnz)
    for row, col, value in zip(block.row.tolist(), block.col.tolist(), block.data.tolist()):
        target.set_element(row, col, value)


def _fill_vector(out: np.ndarray, values: np.ndarray, name: str) -> None:
    if out.shape[0] != values.shape[0]:
        raise DimensionMismatchError(
            f"{name} buffer has length {out.shape[0]}, expected {values.shape[0]}"
        )
    out[:] = values


class QPDescriptor:
    """
    In-memory descriptor for ``min ½ xᵀ G x + cᵀ x  s.t.  A x ≥ b``.

    Args:
        G: ``(n, n)`` positive semidefinite Hessian, dense or scipy sparse.
            It is symmetrized on construction.
        c: Linear term of length ``n``.
        A: ``(m, n)`` constraint matrix.
        b: Constraint bound of length ``m``.
        E: Optional ``(m, m)`` compliance block.
        contact_triplets: Constraint rows come in ``(normal, tangent_u,
            tangent_v)`` groups; with ``skip_tangential`` only every third
            row is exposed.

    After a solve the results are available as :attr:`x` and
    :attr:`multipliers` (``λ``, full constraint layout).
    """

    def __init__(
        self,
        G: MatrixLike,
        c: np.ndarray,
        A: MatrixLike,
        b: np.ndarray,
        E: Optional[MatrixLike] = None,
        contact_triplets: bool = False,
    ):
        G = G.tocsr() if sp.issparse(G) else np.atleast_2d(np.asarray(G, dtype=float))
        if G.shape[0] != G.shape[1]:
            raise DimensionMismatchError(f"G must be square, got shape {G.shape}")
        self.G = _as_sparse(symmetrize(G))
        self.A = _as_sparse(A).tocsr()
        self.E = _as_sparse(E).tocsr() if E is not None else None
        self.f = -np.asarray(c, dtype=np.float64).reshape(-1)
        self.b_desc = -np.asarray(b, dtype=np.float64).reshape(-1)
        self.contact_triplets = bool(contact_triplets)

        n = self.G.shape[0]
        m = self.A.shape[0]
        if self.G.shape != (n, n):
            raise DimensionMismatchError(f"G must be square, got shape {self.G.shape}")
        if self.f.shape[0] != n:
            raise DimensionMismatchError(f"c has length {self.f.shape[0]}, expected {n}")
        if m and self.A.shape[1] != n:
            raise DimensionMismatchError(f"A has {self.A.shape[1]} columns, expected {n}")
        if self.b_desc.shape[0] != m:
            raise DimensionMismatchError(f"b has length {self.b_desc.shape[0]}, expected {m}")
        if self.E is not None and self.E.shape != (m, m):
            raise DimensionMismatchError(f"E must have shape ({m}, {m}), got {self.E.shape}")
        if self.contact_triplets and m % 3 != 0:
            raise DimensionMismatchError(
                f"contact triplet layout needs a multiple of 3 constraints, got {m}"
            )

        self.x: Optional[np.ndarray] = None
        self.multipliers: Optional[np.ndarray] = None

    @property
    def num_constraints(self) -> int:
        return self.A.shape[0]

    def _active_rows(self, skip_tangential: bool) -> np.ndarray:
        if skip_tangential and self.contact_triplets:
            return np.arange(0, self.num_constraints, 3)
        return np.arange(self.num_constraints)

    def count_active_variables(self) -> int:
        return self.G.shape[0]

    def count_active_constraints(self, skip_tangential: bool = False) -> int:
        return int(self._active_rows(skip_tangential).size)

    def convert_to_matrix_form(
        self,
        G_out: Optional[SparseTarget],
        A_out: Optional[SparseTarget],
        E_out: Optional[SparseTarget],
        f_out: Optional[np.ndarray],
        b_out: Optional[np.ndarray],
        skip_tangential: bool = False,
    ) -> None:
        rows = self._active_rows(skip_tangential)
        n = self.count_active_variables()
        if G_out is not None:
            _write_block(G_out, self.G)
        if A_out is not None:
            A_active = self.A[rows] if rows.size else sp.csr_matrix((0, n))
            _write_block(A_out, A_active.tocoo())
        if E_out is not None:
            if self.E is not None:
                _write_block(E_out, self.E[rows][:, rows].tocoo())
            else:
                E_out.reset(rows.size, rows.size, 0)
        if f_out is not None:
            _fill_vector(f_out, self.f, "f")
        if b_out is not None:
            _fill_vector(b_out, self.b_desc[rows], "b")

    def from_vector_to_unknowns(self, vector: np.ndarray) -> None:
        vector = np.asarray(vector, dtype=np.float64).reshape(-1)
        n = self.count_active_variables()
        expected = n + self.num_constraints
        if vector.shape[0] != expected:
            raise DimensionMismatchError(
                f"solution vector has length {vector.shape[0]}, expected {expected}"
            )
        self.x = vector[:n].copy()
        self.multipliers = -vector[n:]

    def __repr__(self) -> str:
        return (
            f"QPDescriptor(n={self.count_active_variables()}, m={self.num_constraints}, "
            f"compliance={self.E is not None}, contact_triplets={self.contact_triplets})"
        )


__all__ = ["ProblemDescriptor", "SparseTarget", "QPDescriptor"]
