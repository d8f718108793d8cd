"""Pytest configuration and shared fixtures for contactqp tests.

This module provides:
- Deterministic RNG fixtures for numpy and torch
- Small quadratic programs with known solutions
"""

import os

import numpy as np
import pytest
import torch

from contactqp.ipm import QPDescriptor


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function")
def torch_rng() -> torch.Generator:
    """Provide a deterministic CPU torch RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).

    Returns:
        A seeded torch.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    generator = torch.Generator(device="cpu")
    generator.manual_seed(seed)
    return generator


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds(rng: np.random.Generator, torch_rng: torch.Generator) -> None:
    """Auto-use fixture to set global random seeds for reproducibility.

    This fixture runs automatically for every test to ensure deterministic behavior.
    """
    # Set numpy global seed (for legacy code that uses np.random directly)
    np.random.seed(int(os.environ.get("TEST_RNG_SEED", "0")))

    # Set torch global seed
    torch.manual_seed(int(os.environ.get("TEST_RNG_SEED", "0")))


@pytest.fixture
def box_qp() -> QPDescriptor:
    """min ½‖x‖² − 2x₀ − 5x₁ s.t. x ≥ 0; optimum x = [2, 5], λ = 0."""
    return QPDescriptor(
        G=np.eye(2),
        c=np.array([-2.0, -5.0]),
        A=np.eye(2),
        b=np.zeros(2),
    )


@pytest.fixture
def active_qp() -> QPDescriptor:
    """min ½‖x‖² s.t. x₀ + x₁ ≥ 2; optimum x = [1, 1], λ = 1."""
    return QPDescriptor(
        G=np.eye(2),
        c=np.zeros(2),
        A=np.array([[1.0, 1.0]]),
        b=np.array([2.0]),
    )


@pytest.fixture
def random_qp(rng: np.random.Generator):
    """Factory of strictly convex QPs whose feasible region contains the origin."""

    def make(n: int, m: int) -> QPDescriptor:
        M = rng.standard_normal((n, n))
        G = M @ M.T + n * np.eye(n)
        c = rng.standard_normal(n)
        A = rng.standard_normal((m, n))
        b = -np.abs(rng.standard_normal(m)) - 0.5
        return QPDescriptor(G=G, c=c, A=A, b=b)

    return make
