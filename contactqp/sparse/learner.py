"""
Sparsity-pattern learner.

A value-less shadow of :class:`contactqp.sparse.csr3.CSR3Matrix`: assembly code
runs against it once (a "dry run") and it only records which positions were
touched. :meth:`CSR3Matrix.load_sparsity_pattern` then sizes the real matrix
exactly, so the subsequent real assembly never shifts or reallocates.
"""

from __future__ import annotations

from typing import List


class SparsityPatternLearner:
    """
    Record the ``(row, col)`` positions written by an assembly routine.

    Positions are stored per leading index (rows when row-major, columns
    otherwise) as unordered lists; duplicates are allowed until
    :meth:`get_sparsity_pattern` collapses them.
    """

    def __init__(self, num_rows: int, num_cols: int, row_major: bool = True):
        self._row_major = bool(row_major)
        self._num_rows = 0
        self._num_cols = 0
        self._lead_lists: List[List[int]] = []
        self.reset(num_rows, num_cols)

    @property
    def num_rows(self) -> int:
        return self._num_rows

    @property
    def num_cols(self) -> int:
        return self._num_cols

    @property
    def shape(self) -> tuple[int, int]:
        return self._num_rows, self._num_cols

    @property
    def is_row_major(self) -> bool:
        return self._row_major

    @property
    def leading_dimension(self) -> int:
        return self._num_rows if self._row_major else self._num_cols

    @property
    def trailing_dimension(self) -> int:
        return self._num_cols if self._row_major else self._num_rows

    def set_element(self, row: int, col: int, value: float = 0.0, overwrite: bool = True) -> None:
        """Record that ``(row, col)`` is part of the pattern; ``value`` is ignored."""
        if self._row_major:
            self._lead_lists[row].append(int(col))
        else:
            self._lead_lists[col].append(int(row))

    def get_element(self, row: int, col: int) -> float:
        return 0.0

    def __setitem__(self, key: tuple[int, int], value: float) -> None:
        row, col = key
        self.set_element(row, col, value)

    def reset(self, num_rows: int, num_cols: int, nonzeros_hint: int = 0) -> None:
        """Forget every recorded position and adopt new dimensions."""
        if num_rows < 0 or num_cols < 0:
            raise ValueError(f"dimensions must be non-negative, got ({num_rows}, {num_cols})")
        self._num_rows = int(num_rows)
        self._num_cols = int(num_cols)
        self._lead_lists = [[] for _ in range(self.leading_dimension)]

    def resize(self, num_rows: int, num_cols: int, nonzeros_hint: int = 0) -> bool:
        self.reset(num_rows, num_cols, nonzeros_hint)
        return True

    def get_sparsity_pattern(self) -> List[List[int]]:
        """
        Return the learned pattern as sorted, duplicate-free index lists.

        The internal records are collapsed in place, so repeated calls are
        cheap and later ``set_element`` calls keep accumulating on top.
        """
        self._lead_lists = [sorted(set(indices)) for indices in self._lead_lists]
        return self._lead_lists

    @property
    def nnz(self) -> int:
        """Number of distinct recorded positions."""
        return sum(len(indices) for indices in self.get_sparsity_pattern())

    def __repr__(self) -> str:
        return (
            f"SparsityPatternLearner(shape={self.shape}, row_major={self._row_major}, "
            f"nnz={self.nnz})"
        )


__all__ = ["SparsityPatternLearner"]
