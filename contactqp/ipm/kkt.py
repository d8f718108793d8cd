"""
KKT system assembly for the primal-dual interior-point method.

Newton steps solve a perturbed KKT system. Two formulations are supported:

STANDARD, over ``(Δx, Δy, Δλ)``, size ``n + 2m``::

    [ G   0  −Aᵀ ] [Δx]   [ −rd  ]
    [ A  −I   E  ] [Δy] = [ −rp  ]
    [ 0   Λ   Y  ] [Δλ]   [ −rpd ]

AUGMENTED, over ``(Δx, Δλ)``, size ``n + m``, obtained by eliminating ``Δy``
through the complementarity rows::

    [ G        −Aᵀ     ] [Δx]   [ −rd                          ]
    [ A   diag(y/λ) + E ] [Δλ] = [ −rp − y + (σμ − Δy_a∘Δλ_a)/λ ]

with ``Δy = A Δx + E Δλ + rp`` recovered afterwards.

The constant blocks (``G``, ``A``, ``E``, ``−I``) are written once per solve
call by :meth:`KKTAssembler.assemble_constant`, which also places
placeholder entries on every iterate-dependent slot so that the per-iteration
:meth:`KKTAssembler.update_diagonal` only overwrites existing slots.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..errors import ConfigurationError
from ..sparse import CSR3Matrix
from .core import KKTMethod

# Value written into iterate-dependent slots during assembly.
_PLACEHOLDER = 1.0


class KKTAssembler:
    """
    Base class of the per-formulation assembly strategies.

    Args:
        n: Number of primal variables.
        m: Number of constraints.
    """

    method: KKTMethod

    def __init__(self, n: int, m: int):
        self.n = int(n)
        self.m = int(m)

    @property
    def dim(self) -> int:
        raise NotImplementedError

    @property
    def _lam_offset(self) -> int:
        raise NotImplementedError

    def assemble_constant(self, target, G: CSR3Matrix, A: CSR3Matrix, E: Optional[CSR3Matrix] = None) -> None:
        """Write the constant blocks and diagonal placeholders into ``target``."""
        raise NotImplementedError

    def update_diagonal(self, matrix: CSR3Matrix, y: np.ndarray, lam: np.ndarray, E_diag: np.ndarray) -> None:
        """Overwrite the iterate-dependent entries for the current ``(y, λ)``."""
        raise NotImplementedError

    def build_rhs(
        self,
        rp: np.ndarray,
        rd: np.ndarray,
        y: np.ndarray,
        lam: np.ndarray,
        sigma_mu: float = 0.0,
        dy_a: Optional[np.ndarray] = None,
        dlam_a: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Right-hand side of the Newton system.

        With ``sigma_mu == 0`` and no affine directions this is the predictor
        (affine-scaling) system; the corrector passes ``σμ`` and, for the
        Mehrotra second-order term, the affine directions ``Δy_a``/``Δλ_a``.
        """
        raise NotImplementedError

    def extract(
        self,
        solution: np.ndarray,
        matrix: CSR3Matrix,
        rp: np.ndarray,
        E: Optional[CSR3Matrix] = None,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Split a Newton solution into ``(Δx, Δy, Δλ)``."""
        raise NotImplementedError

    # Block products on the assembled matrix.

    def multiply_A(self, matrix: CSR3Matrix, x: np.ndarray) -> np.ndarray:
        n, m = self.n, self.m
        return matrix.multiply_clipped(x, (n, n + m), (0, n))

    def multiply_G(self, matrix: CSR3Matrix, x: np.ndarray) -> np.ndarray:
        n = self.n
        return matrix.multiply_clipped(x, (0, n), (0, n))

    def multiply_neg_AT(self, matrix: CSR3Matrix, lam: np.ndarray) -> np.ndarray:
        """Return ``−Aᵀ λ`` read from the upper-right block."""
        off = self._lam_offset
        return matrix.multiply_clipped(lam, (0, self.n), (off, off + self.m))

    def _write_G(self, target, G: CSR3Matrix) -> None:
        for row, col, value in G.items():
            target.set_element(row, col, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n={self.n}, m={self.m})"


class StandardKKTAssembler(KKTAssembler):
    """Full ``(n + 2m)`` system with explicit slack and complementarity rows."""

    method = KKTMethod.STANDARD

    @property
    def dim(self) -> int:
        return self.n + 2 * self.m

    @property
    def _lam_offset(self) -> int:
        return self.n + self.m

    def assemble_constant(self, target, G, A, E=None) -> None:
        n, m = self.n, self.m
        self._write_G(target, G)
        for j, i, value in A.items():
            target.set_element(i, n + m + j, -value)
            target.set_element(n + j, i, value)
        if E is not None:
            for j, k, value in E.items():
                target.set_element(n + j, n + m + k, value)
        for j in range(m):
            target.set_element(n + j, n + j, -1.0)
            target.set_element(n + m + j, n + j, _PLACEHOLDER)
            target.set_element(n + m + j, n + m + j, _PLACEHOLDER)

    def update_diagonal(self, matrix, y, lam, E_diag) -> None:
        n, m = self.n, self.m
        for j in range(m):
            matrix.set_element(n + m + j, n + j, lam[j])
            matrix.set_element(n + m + j, n + m + j, y[j])

    def build_rhs(self, rp, rd, y, lam, sigma_mu=0.0, dy_a=None, dlam_a=None) -> np.ndarray:
        rpd = y * lam
        if dy_a is not None and dlam_a is not None:
            rpd = rpd + dy_a * dlam_a
        rpd = rpd - sigma_mu
        return np.concatenate([-rd, -rp, -rpd])

    def extract(self, solution, matrix, rp, E=None):
        n, m = self.n, self.m
        dx = solution[:n].copy()
        dy = solution[n : n + m].copy()
        dlam = solution[n + m :].copy()
        return dx, dy, dlam


class AugmentedKKTAssembler(KKTAssembler):
    """Reduced ``(n + m)`` system; ``Δy`` is recovered from the second block row."""

    method = KKTMethod.AUGMENTED

    @property
    def dim(self) -> int:
        return self.n + self.m

    @property
    def _lam_offset(self) -> int:
        return self.n

    def assemble_constant(self, target, G, A, E=None) -> None:
        n, m = self.n, self.m
        self._write_G(target, G)
        for j, i, value in A.items():
            target.set_element(i, n + j, -value)
            target.set_element(n + j, i, value)
        if E is not None:
            for j, k, value in E.items():
                target.set_element(n + j, n + k, value)
        for j in range(m):
            target.set_element(n + j, n + j, _PLACEHOLDER)

    def update_diagonal(self, matrix, y, lam, E_diag) -> None:
        n = self.n
        diag = y / lam + E_diag
        for j in range(self.m):
            matrix.set_element(n + j, n + j, diag[j])

    def build_rhs(self, rp, rd, y, lam, sigma_mu=0.0, dy_a=None, dlam_a=None) -> np.ndarray:
        tail = -rp - y
        if sigma_mu != 0.0:
            tail = tail + sigma_mu / lam
        if dy_a is not None and dlam_a is not None:
            tail = tail - dy_a * dlam_a / lam
        return np.concatenate([-rd, tail])

    def extract(self, solution, matrix, rp, E=None):
        n = self.n
        dx = solution[:n].copy()
        dlam = solution[n:].copy()
        dy = self.multiply_A(matrix, dx) + rp
        if E is not None:
            dy += E.matmul(dlam)
        return dx, dy, dlam


def make_kkt_assembler(method: KKTMethod, n: int, m: int) -> KKTAssembler:
    """
    Return the assembler for ``method``.

    Raises:
        ConfigurationError: For ``KKTMethod.NORMAL``, which cannot represent
            the perturbed system.
    """
    if method == KKTMethod.STANDARD:
        return StandardKKTAssembler(n, m)
    if method == KKTMethod.AUGMENTED:
        return AugmentedKKTAssembler(n, m)
    if method == KKTMethod.NORMAL:
        raise ConfigurationError("the perturbed KKT system cannot be solved with the NORMAL method")
    raise ConfigurationError(f"unknown KKT method {method!r}")


__all__ = [
    "KKTAssembler",
    "StandardKKTAssembler",
    "AugmentedKKTAssembler",
    "make_kkt_assembler",
]
