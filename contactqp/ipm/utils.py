"""
Numerical helpers for the interior-point iteration.
"""

from __future__ import annotations

import numpy as np


def find_newton_step_length(vec: np.ndarray, dvec: np.ndarray, eta: float = 1.0) -> float:
    """
    Fraction-to-the-boundary ratio test.

    Returns the largest ``α ≤ 1`` such that ``vec + α·dvec`` stays
    non-negative, scaled by ``eta``: ``min(1, min_{dvec_i < 0} −eta·vec_i / dvec_i)``.
    The result is clamped at zero.
    """
    vec = np.asarray(vec, dtype=float)
    dvec = np.asarray(dvec, dtype=float)
    neg = dvec < 0
    alpha = 1.0
    if np.any(neg):
        alpha = min(alpha, float(np.min(-eta * vec[neg] / dvec[neg])))
    return max(alpha, 0.0)


def normalized_norm(vec: np.ndarray, dim: int) -> float:
    """Return ``‖vec‖₂ / dim`` (zero when ``dim`` is zero)."""
    if dim == 0:
        return 0.0
    return float(np.linalg.norm(vec)) / dim


def quadratic_objective(G, c: np.ndarray, x: np.ndarray) -> float:
    """
    Evaluate ``½ xᵀ G x + cᵀ x``.

    ``G`` may be anything supporting ``G @ x`` (dense array, scipy sparse or
    :class:`~contactqp.sparse.CSR3Matrix`).
    """
    return float(0.5 * x @ (G @ x) + c @ x)


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """
    Return the symmetric part of ``matrix``.

    Hessians read from simulation data may carry small asymmetries from
    floating-point assembly; ``0.5 * (matrix + matrix.T)`` removes them.
    """

    return 0.5 * (matrix + matrix.T)


__all__ = [
    "find_newton_step_length",
    "normalized_norm",
    "quadratic_objective",
    "symmetrize",
]
