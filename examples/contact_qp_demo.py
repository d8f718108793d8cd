"""
Example: Contact Quadratic Programs with contactqp

A stack of point contacts is modelled as a QP in the contact convention

    minimize   ½ xᵀ G x + cᵀ x
    subject to A x ≥ b

where every contact contributes a (normal, tangent_u, tangent_v) row triplet.
The examples solve it with both KKT formulations, with and without the
tangential rows, and then re-solve a perturbed problem with a warm start and
a locked KKT sparsity pattern.
"""

import numpy as np

from contactqp import set_log_level
from contactqp.ipm import (
    InteriorPointSolver,
    KKTMethod,
    QPDescriptor,
    StartingPoint,
)


def build_contact_problem(n_bodies: int = 4, gap: float = 0.1, seed: int = 0) -> QPDescriptor:
    """Chain of bodies, each pushed down onto the ground by gravity."""
    rng = np.random.default_rng(seed)
    n = 3 * n_bodies
    M = rng.standard_normal((n, n))
    G = np.eye(n) + 0.05 * (M @ M.T)
    c = np.tile([0.0, 0.0, 1.0], n_bodies)

    rows = []
    b = []
    for body in range(n_bodies):
        base = 3 * body
        for axis, bound in ((2, -gap), (0, -1.0), (1, -1.0)):
            row = np.zeros(n)
            row[base + axis] = 1.0
            rows.append(row)
            b.append(bound)
    return QPDescriptor(G, c, np.array(rows), np.array(b), contact_triplets=True)


def example_formulations():
    """Example: STANDARD and AUGMENTED KKT systems reach the same optimum."""
    print("=" * 60)
    print("Example 1: KKT formulations")
    print("=" * 60)

    problem = build_contact_problem()
    for method in (KKTMethod.STANDARD, KKTMethod.AUGMENTED):
        result = InteriorPointSolver(kkt_method=method).solve(problem)
        print(f"{method.name:>9}: status={result.status.name} nit={result.nit} fun={result.fun:.6f}")
        print(f"           normal forces: {problem.multipliers[0::3]}")
    print()


def example_skip_tangential():
    """Example: Solve only the normal rows and zero-fill the tangential ones."""
    print("=" * 60)
    print("Example 2: Normal rows only")
    print("=" * 60)

    problem = build_contact_problem()
    solver = InteriorPointSolver(skip_tangential=True)
    result = solver.solve(problem)
    print(f"Status: {result.status.name}, active constraints: {solver.m}")
    print(f"Multipliers (full layout): {problem.multipliers}")
    print()


def example_warm_start():
    """Example: Re-solve a perturbed problem reusing iterate and KKT topology."""
    print("=" * 60)
    print("Example 3: Warm start with a locked sparsity pattern")
    print("=" * 60)

    solver = InteriorPointSolver(
        starting_point=StartingPoint.NOCEDAL_WARM_START,
        learn_sparsity_pattern=True,
        lock_sparsity_pattern=True,
    )
    for step, gap in enumerate((0.1, 0.09, 0.08)):
        result = solver.solve(build_contact_problem(gap=gap))
        print(
            f"Step {step}: nit={result.nit:2d} mu={result.mu:.2e} "
            f"kkt nnz={solver.kkt.nnz} shifts={solver.kkt.shift_count}"
        )
    print()


if __name__ == "__main__":
    set_log_level("WARNING")

    print("\n" + "=" * 60)
    print("contactqp - Contact QP Examples")
    print("=" * 60 + "\n")

    example_formulations()
    example_skip_tangential()
    example_warm_start()

    print("=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
