"""Benchmark random insertion into the CSR3 matrix engine."""

import time
from typing import Dict

import numpy as np

from contactqp.sparse import CSR3Matrix, SparsityPatternLearner


def _positions(dim: int, per_row: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    cols = np.concatenate([rng.choice(dim, size=per_row, replace=False) for _ in range(dim)])
    rows = np.repeat(np.arange(dim), per_row)
    order = rng.permutation(rows.size)
    return np.stack([rows[order], cols[order]], axis=1)


def benchmark_insertion(
    dim: int,
    per_row: int = 8,
    learned: bool = False,
    max_shifts: int = None,
) -> Dict[str, float]:
    """Benchmark inserting ``dim * per_row`` entries in random order.

    Args:
        dim: Matrix dimension.
        per_row: Entries per row.
        learned: Size the matrix from a learned pattern first.
        max_shifts: Insertion shift bound.

    Returns:
        Dictionary with timing results and storage counters.
    """
    positions = _positions(dim, per_row)
    matrix = CSR3Matrix(dim, dim, nonzeros=dim)
    matrix.set_max_shifts(max_shifts)

    if learned:
        learner = SparsityPatternLearner(dim, dim)
        for row, col in positions.tolist():
            learner.set_element(row, col)
        matrix.load_sparsity_pattern(learner)

    start = time.perf_counter()
    for row, col in positions.tolist():
        matrix.set_element(row, col, 1.0)
    matrix.compress()
    end = time.perf_counter()

    total_time = end - start
    return {
        "dim": dim,
        "nnz": matrix.nnz,
        "total_time_sec": total_time,
        "time_per_insert_sec": total_time / len(positions),
        "shifts": matrix.shift_count,
        "reallocations": matrix.reallocation_count,
    }


if __name__ == "__main__":
    print("Benchmarking CSR3 insertion...")

    for learned in (False, True):
        results = benchmark_insertion(dim=2000, per_row=8, learned=learned)
        label = "learned pattern" if learned else "no pattern"
        print(f"Insertion (dim 2000, 8 per row, {label}):")
        print(f"  Time per insert: {results['time_per_insert_sec']*1e6:.2f} μs")
        print(f"  Shifts: {results['shifts']}, reallocations: {results['reallocations']}")
