"""
CSR3 sparse matrix with lazy insertion and sparsity-pattern locking.

The matrix is stored in the classic three-array compressed format (leading
offsets, trailing indices, values) plus one ``initialized`` flag per slot.
Unlike an immutable CSR container it can be *built* element by element:
every leading window ``[lead_index[i], lead_index[i+1])`` may carry spare
slots ("holes") at its tail, and an insertion that finds no room shifts
neighbouring entries toward the closest hole instead of rebuilding the whole
structure. When no hole is found within ``max_shifts`` positions the buffers
are rebuilt with spare room proportional to the current fill of each window;
the capacity doubles only once the entries would occupy more than half of it.

Slot states:

* live      -- ``trail_index >= 0`` and initialized
* reserved  -- ``trail_index >= 0`` but not initialized (known topology, the
  value reads as zero); produced by a locked :meth:`CSR3Matrix.reset` and by
  :meth:`CSR3Matrix.load_sparsity_pattern`
* hole      -- ``trail_index == -1``; free slot

Within a window the non-hole slots form a strictly increasing prefix and
holes sit only at its tail.
"""

from __future__ import annotations

import sys
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from ..diagnostics import check_storage
from ..errors import DimensionMismatchError, StorageOverflow
from ..logging import get_logger
from .learner import SparsityPatternLearner

logger = get_logger(__name__)

HOLE = -1
ARRAY_ALIGNMENT = 64

INDEX_DTYPE = np.int64
VALUE_DTYPE = np.float64

Range = Tuple[int, int]


def _aligned_empty(size: int, dtype, alignment: int = ARRAY_ALIGNMENT) -> np.ndarray:
    """Allocate an uninitialized 1D array whose data pointer is ``alignment``-aligned."""
    dtype = np.dtype(dtype)
    nbytes = max(int(size), 1) * dtype.itemsize
    raw = np.empty(nbytes + alignment, dtype=np.uint8)
    offset = (-raw.ctypes.data) % alignment
    return raw[offset : offset + nbytes].view(dtype)[: int(size)]


def _aligned_full(size: int, fill_value, dtype) -> np.ndarray:
    arr = _aligned_empty(size, dtype)
    arr.fill(fill_value)
    return arr


def _distribute_range(lead_dim: int, total: int) -> np.ndarray:
    """Evenly spread ``total`` slots over ``lead_dim`` windows."""
    if lead_dim == 0:
        return np.zeros(1, dtype=INDEX_DTYPE)
    lead = np.floor(np.arange(lead_dim + 1) * (total / lead_dim)).astype(INDEX_DTYPE)
    lead[-1] = total
    return lead


class CSR3Matrix:
    """
    Mutable sparse matrix in CSR3 layout (row-major) or CSC-like layout
    (column-major, ``row_major=False``).

    Index arguments are always ``(row, col)``; the storage orientation only
    changes which of them selects the window.

    Args:
        num_rows: Number of rows.
        num_cols: Number of columns.
        row_major: Store rows as leading windows (CSR) or columns (CSC).
        nonzeros: Initial capacity hint. Overestimating avoids reallocations.
    """

    def __init__(
        self,
        num_rows: int = 1,
        num_cols: int = 1,
        row_major: bool = True,
        nonzeros: int = 1,
    ):
        if num_rows < 0 or num_cols < 0:
            raise ValueError(f"dimensions must be non-negative, got ({num_rows}, {num_cols})")
        self._row_major = bool(row_major)
        self._num_rows = int(num_rows)
        self._num_cols = int(num_cols)
        self._max_shifts = sys.maxsize
        self._sparsity_locked = False
        self._lock_broken = False
        self._is_compressed = False
        self.shift_count = 0
        self.reallocation_count = 0
        self._reset_arrays(nonzeros)

    # ------------------------------------------------------------------ shape

    @property
    def num_rows(self) -> int:
        return self._num_rows

    @property
    def num_cols(self) -> int:
        return self._num_cols

    @property
    def shape(self) -> Tuple[int, int]:
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

    # ------------------------------------------------------------ raw arrays

    @property
    def lead_index(self) -> np.ndarray:
        return self._lead

    @property
    def trail_index(self) -> np.ndarray:
        return self._trail[: self.trailing_index_length]

    @property
    def values(self) -> np.ndarray:
        return self._values[: self.trailing_index_length]

    @property
    def initialized(self) -> np.ndarray:
        return self._initialized[: self.trailing_index_length]

    def get_csr_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(lead_index, trail_index, values)`` trimmed to the used length."""
        return self.lead_index, self.trail_index, self.values

    @property
    def trailing_index_length(self) -> int:
        return int(self._lead[-1])

    @property
    def trailing_index_capacity(self) -> int:
        return int(self._trail.shape[0])

    @property
    def nnz(self) -> int:
        """Number of live (initialized) entries."""
        return int(np.count_nonzero(self.initialized))

    @property
    def is_compressed(self) -> bool:
        return self._is_compressed

    # ------------------------------------------------------------ lock/shift

    @property
    def sparsity_locked(self) -> bool:
        return self._sparsity_locked

    @sparsity_locked.setter
    def sparsity_locked(self, on: bool) -> None:
        self._sparsity_locked = bool(on)

    def set_sparsity_pattern_lock(self, on: bool) -> None:
        """Freeze the topology across :meth:`reset` calls (values are still cleared)."""
        self._sparsity_locked = bool(on)

    @property
    def max_shifts(self) -> int:
        return self._max_shifts

    def set_max_shifts(self, max_shifts: Optional[int] = None) -> None:
        """Bound the distance the insertion search scans for a free slot (None = unbounded)."""
        if max_shifts is None:
            self._max_shifts = sys.maxsize
        elif max_shifts < 0:
            raise ValueError(f"max_shifts must be non-negative, got {max_shifts}")
        else:
            self._max_shifts = int(max_shifts)

    # -------------------------------------------------------------- storage

    def _reset_arrays(self, nonzeros: int) -> None:
        lead_dim = self.leading_dimension
        capacity = max(int(nonzeros), lead_dim, 1)
        self._lead = _distribute_range(lead_dim, capacity)
        self._trail = _aligned_full(capacity, HOLE, INDEX_DTYPE)
        self._values = _aligned_full(capacity, 0.0, VALUE_DTYPE)
        self._initialized = np.zeros(capacity, dtype=bool)
        self._is_compressed = False

    def _window_rows(self) -> np.ndarray:
        """Leading index of every slot in the used length."""
        counts = np.diff(self._lead)
        return np.repeat(np.arange(self.leading_dimension, dtype=INDEX_DTYPE), counts)

    def _to_lead_trail(self, row: int, col: int) -> Tuple[int, int]:
        row = int(row)
        col = int(col)
        if not (0 <= row < self._num_rows and 0 <= col < self._num_cols):
            raise IndexError(f"index ({row}, {col}) out of range for shape {self.shape}")
        return (row, col) if self._row_major else (col, row)

    def _locate(self, lead_sel: int, trail_sel: int) -> Tuple[int, str]:
        """
        Find where ``trail_sel`` lives (or should live) in window ``lead_sel``.

        Returns ``(position, kind)`` with kind ``"hit"`` (slot exists),
        ``"hole"`` (append into the first tail hole) or ``"insert"`` (room
        has to be made at ``position``).
        """
        start = int(self._lead[lead_sel])
        end = int(self._lead[lead_sel + 1])
        window = self._trail[start:end]
        holes = np.flatnonzero(window == HOLE)
        filled = int(holes[0]) if holes.size else end - start
        pos = int(np.searchsorted(window[:filled], trail_sel))
        if pos < filled and window[pos] == trail_sel:
            return start + pos, "hit"
        if pos == filled and filled < end - start:
            return start + pos, "hole"
        return start + pos, "insert"

    def _make_room(self, pos: int, lead_sel: int) -> int:
        """
        Free slot ``pos`` for window ``lead_sel`` by shifting toward the nearest hole.

        Returns the position the new entry must be written to.

        Raises:
            StorageOverflow: No hole within ``max_shifts`` positions.
        """
        capacity = self.trailing_index_capacity
        bound = min(self._max_shifts, capacity)

        forward = self._trail[pos : min(pos + bound + 1, capacity)]
        hits = np.flatnonzero(forward == HOLE)
        dist_fwd = int(hits[0]) if hits.size else None

        back_start = max(pos - bound - 1, 0)
        backward = self._trail[back_start:pos]
        hits = np.flatnonzero(backward == HOLE)
        dist_bwd = pos - 1 - (back_start + int(hits[-1])) if hits.size else None

        if dist_fwd is None and dist_bwd is None:
            raise StorageOverflow(f"no free slot within {self._max_shifts} positions of {pos}")

        lead = self._lead
        if dist_bwd is None or (dist_fwd is not None and dist_fwd <= dist_bwd):
            hole = pos + dist_fwd
            if hole > pos:
                for arr in (self._trail, self._values, self._initialized):
                    arr[pos + 1 : hole + 1] = arr[pos:hole].copy()
                self.shift_count += 1
            tail = lead[lead_sel + 1 :]
            tail[tail <= hole] += 1
            return pos

        hole = pos - 1 - dist_bwd
        if hole < pos - 1:
            for arr in (self._trail, self._values, self._initialized):
                arr[hole : pos - 1] = arr[hole + 1 : pos].copy()
            self.shift_count += 1
        head = lead[1 : lead_sel + 1]
        head[head > hole] -= 1
        return pos - 1

    def _grow(self, pos: int, lead_sel: int) -> int:
        """
        Redistribute the spare room, leaving a gap at ``pos``.

        Each window gets spare room proportional to its current number of
        non-hole slots; window ``lead_sel`` counts one extra for the pending
        entry. The capacity is doubled only when the entries would fill more
        than half of it, so it stays within four times the entry count.
        Returns the new position of the gap.
        """
        lead_dim = self.leading_dimension
        length = self.trailing_index_length
        rows = self._window_rows()
        slots = np.arange(length)
        keep = self._trail[:length] != HOLE
        kept_rows = rows[keep]
        kept_slots = slots[keep]

        counts = np.bincount(kept_rows, minlength=lead_dim).astype(INDEX_DTYPE)
        weights = counts.copy()
        weights[lead_sel] += 1
        total = int(weights.sum())

        old_capacity = self.trailing_index_capacity
        if 2 * total <= old_capacity:
            new_capacity = old_capacity
        else:
            new_capacity = max(2 * old_capacity, total)
        spare = new_capacity - total
        extra = (spare * weights) // total
        extra[lead_sel] += spare - int(extra.sum())

        new_lead = np.zeros(lead_dim + 1, dtype=INDEX_DTYPE)
        np.cumsum(weights + extra, out=new_lead[1:])

        first_of_row = np.cumsum(counts) - counts
        rank = np.arange(kept_slots.size) - first_of_row[kept_rows]
        dest = new_lead[kept_rows] + rank
        dest[(kept_rows == lead_sel) & (kept_slots >= pos)] += 1

        trail = _aligned_full(new_capacity, HOLE, INDEX_DTYPE)
        values = _aligned_full(new_capacity, 0.0, VALUE_DTYPE)
        initialized = np.zeros(new_capacity, dtype=bool)
        trail[dest] = self._trail[kept_slots]
        values[dest] = self._values[kept_slots]
        initialized[dest] = self._initialized[kept_slots]

        before = int(np.count_nonzero((kept_rows == lead_sel) & (kept_slots < pos)))
        self._lead = new_lead
        self._trail = trail
        self._values = values
        self._initialized = initialized
        self.reallocation_count += 1
        logger.debug(
            "CSR3 storage redistributed from %d to %d slots (%d entries)",
            old_capacity,
            new_capacity,
            kept_slots.size,
        )
        return int(new_lead[lead_sel]) + before

    # ------------------------------------------------------------- elements

    def set_element(self, row: int, col: int, value: float, overwrite: bool = True) -> None:
        """
        Write ``value`` at ``(row, col)``.

        Args:
            row: Row index.
            col: Column index.
            value: Value to store.
            overwrite: Replace the stored value if True, accumulate onto it
                otherwise.
        """
        lead_sel, trail_sel = self._to_lead_trail(row, col)
        value = float(value)
        pos, kind = self._locate(lead_sel, trail_sel)

        if kind == "hit":
            if self._initialized[pos] and not overwrite:
                self._values[pos] += value
            else:
                self._values[pos] = value
                self._initialized[pos] = True
            return

        # absent zeros are not stored unless the topology is being frozen
        if value == 0.0 and not self._sparsity_locked:
            return

        if kind == "insert":
            try:
                pos = self._make_room(pos, lead_sel)
            except StorageOverflow:
                pos = self._grow(pos, lead_sel)

        self._trail[pos] = trail_sel
        self._values[pos] = value
        self._initialized[pos] = True
        self._is_compressed = False

    def get_element(self, row: int, col: int) -> float:
        """Return the value at ``(row, col)``; zero when absent. Never mutates."""
        lead_sel, trail_sel = self._to_lead_trail(row, col)
        pos, kind = self._locate(lead_sel, trail_sel)
        if kind == "hit" and self._initialized[pos]:
            return float(self._values[pos])
        return 0.0

    def __getitem__(self, key: Tuple[int, int]) -> float:
        row, col = key
        return self.get_element(row, col)

    def __setitem__(self, key: Tuple[int, int], value: float) -> None:
        row, col = key
        self.set_element(row, col, value)

    # --------------------------------------------------------- bulk editing

    def reset(self, num_rows: int, num_cols: int, nonzeros_hint: int = 0) -> None:
        """
        Clear the matrix and adopt new dimensions.

        With the sparsity pattern locked (and not broken by :meth:`prune`) and
        unchanged dimensions, ``lead_index``/``trail_index`` are kept verbatim
        and only values and flags are cleared. Otherwise the buffers are
        reallocated with ``nonzeros_hint`` slots spread evenly over the rows.
        """
        if num_rows < 0 or num_cols < 0:
            raise ValueError(f"dimensions must be non-negative, got ({num_rows}, {num_cols})")
        same_shape = (int(num_rows), int(num_cols)) == self.shape
        if self._sparsity_locked and not self._lock_broken and same_shape:
            self._values.fill(0.0)
            self._initialized.fill(False)
            self._is_compressed = False
            return

        self._num_rows = int(num_rows)
        self._num_cols = int(num_cols)
        self._lock_broken = False
        self._reset_arrays(nonzeros_hint)

    def resize(self, num_rows: int, num_cols: int, nonzeros_hint: int = 0) -> bool:
        self.reset(num_rows, num_cols, nonzeros_hint)
        return True

    def _rebuild(self, prune_threshold: Optional[float]) -> bool:
        lead_dim = self.leading_dimension
        length = self.trailing_index_length
        rows = self._window_rows()
        trail = self._trail[:length]
        values = self._values[:length]
        initialized = self._initialized[:length]

        topology = trail != HOLE
        if prune_threshold is None:
            keep = topology if self._sparsity_locked else topology & initialized
        else:
            keep = topology & initialized & (np.abs(values) > prune_threshold)

        kept_rows = rows[keep]
        kept_trail = trail[keep]
        kept_values = np.where(initialized[keep], values[keep], 0.0)

        order = np.lexsort((kept_trail, kept_rows))
        kept_rows = kept_rows[order]
        kept_trail = kept_trail[order]
        kept_values = kept_values[order]

        if kept_rows.size:
            first = np.ones(kept_rows.size, dtype=bool)
            first[1:] = (kept_rows[1:] != kept_rows[:-1]) | (kept_trail[1:] != kept_trail[:-1])
            group = np.cumsum(first) - 1
            kept_values = np.bincount(group, weights=kept_values)
            kept_rows = kept_rows[first]
            kept_trail = kept_trail[first]

        used = kept_rows.size
        new_lead = np.zeros(lead_dim + 1, dtype=INDEX_DTYPE)
        np.cumsum(np.bincount(kept_rows, minlength=lead_dim), out=new_lead[1:])

        changed = (
            used != length
            or not np.array_equal(kept_trail, trail)
            or not np.array_equal(kept_values, values)
            or not bool(np.all(initialized))
        )

        if prune_threshold is not None and self._sparsity_locked:
            if used < int(np.count_nonzero(topology)):
                self._lock_broken = True

        self._lead = new_lead
        self._trail[:used] = kept_trail
        self._trail[used:] = HOLE
        self._values[:used] = kept_values
        self._values[used:] = 0.0
        self._initialized[:used] = True
        self._initialized[used:] = False
        self._is_compressed = True

        check_storage(self, "prune" if prune_threshold is not None else "compression")
        return changed

    def compress(self) -> bool:
        """
        Purge holes and bring every window to canonical sorted form.

        Reserved slots are dropped unless the pattern is locked, in which case
        they are kept as explicit zeros so the topology survives. Idempotent.

        Returns:
            True if the stored arrays changed.
        """
        return self._rebuild(None)

    def prune(self, threshold: float = 0.0) -> bool:
        """
        Compress and also drop every entry with ``|value| <= threshold``.

        Removing topology from a locked matrix marks the lock as broken, so the
        next :meth:`reset` reallocates instead of reusing stale positions.
        """
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        return self._rebuild(float(threshold))

    def trim(self) -> None:
        """Shrink the buffers to exactly the used length."""
        length = self.trailing_index_length
        for name in ("_trail", "_values"):
            old = getattr(self, name)
            new = _aligned_empty(length, old.dtype)
            new[:] = old[:length]
            setattr(self, name, new)
        self._initialized = self._initialized[:length].copy()

    def load_sparsity_pattern(self, learner: SparsityPatternLearner) -> None:
        """
        Size the matrix exactly for the pattern recorded by ``learner``.

        Every slot becomes reserved; inserting exactly the learned positions
        afterwards never shifts or reallocates.
        """
        if learner.is_row_major != self._row_major:
            raise ValueError("learner and matrix must use the same storage orientation")
        pattern = learner.get_sparsity_pattern()
        self._num_rows, self._num_cols = learner.shape

        lengths = np.fromiter((len(p) for p in pattern), dtype=INDEX_DTYPE, count=len(pattern))
        self._lead = np.zeros(len(pattern) + 1, dtype=INDEX_DTYPE)
        np.cumsum(lengths, out=self._lead[1:])
        nnz = int(self._lead[-1])

        self._trail = _aligned_empty(nnz, INDEX_DTYPE)
        if nnz:
            self._trail[:] = np.concatenate([np.asarray(p, dtype=INDEX_DTYPE) for p in pattern])
        self._values = _aligned_full(nnz, 0.0, VALUE_DTYPE)
        self._initialized = np.zeros(nnz, dtype=bool)
        self._lock_broken = False
        self._is_compressed = False

    # -------------------------------------------------------- traversal

    def _live_triplets(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(rows, cols, values)`` arrays of the live entries."""
        live = self.initialized
        lead = self._window_rows()[live]
        trail = self.trail_index[live]
        values = self.values[live].copy()
        if self._row_major:
            return lead, trail, values
        return trail, lead, values

    def items(self) -> Iterator[Tuple[int, int, float]]:
        """Yield ``(row, col, value)`` for every live entry in storage order."""
        rows, cols, values = self._live_triplets()
        for r, c, v in zip(rows.tolist(), cols.tolist(), values.tolist()):
            yield r, c, v

    def _slots_in_range(self, row_range: Optional[Range], col_range: Optional[Range]) -> np.ndarray:
        live = np.flatnonzero(self.initialized)
        lead = self._window_rows()[live]
        trail = self._trail[live]
        rows, cols = (lead, trail) if self._row_major else (trail, lead)
        mask = np.ones(live.size, dtype=bool)
        if row_range is not None:
            mask &= (rows >= row_range[0]) & (rows < row_range[1])
        if col_range is not None:
            mask &= (cols >= col_range[0]) & (cols < col_range[1])
        return live[mask]

    def for_each_existent_value(
        self,
        func: Callable[[float], float],
        row_range: Optional[Range] = None,
        col_range: Optional[Range] = None,
    ) -> None:
        """Replace every live value ``v`` in the given half-open ranges by ``func(v)``."""
        for slot in self._slots_in_range(row_range, col_range):
            self._values[slot] = func(float(self._values[slot]))

    def for_each_value_that_meets(
        self,
        func: Callable[[int, int, float], None],
        requirement: Callable[[int, int, float], bool],
    ) -> None:
        """Call ``func(row, col, value)`` on every live entry satisfying ``requirement``."""
        for row, col, value in self.items():
            if requirement(row, col, value):
                func(row, col, value)

    # ------------------------------------------------------------ products

    def matmul(self, vec: np.ndarray, transpose: bool = False) -> np.ndarray:
        """Return ``M @ vec`` (or ``M.T @ vec``) for a 1D ``vec``."""
        vec = np.asarray(vec, dtype=VALUE_DTYPE).reshape(-1)
        n_in, n_out = (self._num_rows, self._num_cols) if transpose else (self._num_cols, self._num_rows)
        if vec.shape[0] != n_in:
            raise DimensionMismatchError(
                f"vector of length {vec.shape[0]} incompatible with matrix of shape {self.shape}"
            )
        rows, cols, values = self._live_triplets()
        if transpose:
            rows, cols = cols, rows
        return np.bincount(rows, weights=values * vec[cols], minlength=n_out)

    def __matmul__(self, other):
        if isinstance(other, np.ndarray) and other.ndim == 1:
            return self.matmul(other)
        return NotImplemented

    def multiply_clipped(
        self,
        vec: np.ndarray,
        row_range: Range,
        col_range: Range,
        transpose: bool = False,
    ) -> np.ndarray:
        """
        Multiply the sub-block ``M[r0:r1, c0:c1]`` (or its transpose) by ``vec``.

        Args:
            vec: Input vector, length ``c1 - c0`` (``r1 - r0`` if transposed).
            row_range: Half-open row range ``(r0, r1)``.
            col_range: Half-open column range ``(c0, c1)``.
            transpose: Multiply by the transposed block instead.

        Returns:
            Output vector of length ``r1 - r0`` (``c1 - c0`` if transposed).
        """
        r0, r1 = row_range
        c0, c1 = col_range
        vec = np.asarray(vec, dtype=VALUE_DTYPE).reshape(-1)
        n_in, n_out = (r1 - r0, c1 - c0) if transpose else (c1 - c0, r1 - r0)
        if vec.shape[0] != n_in:
            raise DimensionMismatchError(
                f"vector of length {vec.shape[0]} incompatible with block "
                f"[{r0}:{r1}, {c0}:{c1}]"
            )
        rows, cols, values = self._live_triplets()
        mask = (rows >= r0) & (rows < r1) & (cols >= c0) & (cols < c1)
        rows = rows[mask] - r0
        cols = cols[mask] - c0
        values = values[mask]
        if transpose:
            rows, cols = cols, rows
        return np.bincount(rows, weights=values * vec[cols], minlength=n_out)

    # ---------------------------------------------------------- arithmetic

    def _check_same_shape(self, other: "CSR3Matrix") -> None:
        if other.shape != self.shape:
            raise DimensionMismatchError(
                f"matrix shapes differ: {self.shape} vs {other.shape}"
            )

    def copy(self) -> "CSR3Matrix":
        """Deep copy, including topology, flags and counters."""
        out = CSR3Matrix.__new__(CSR3Matrix)
        out.__dict__.update(self.__dict__)
        out._lead = self._lead.copy()
        out._trail = _aligned_empty(self._trail.shape[0], INDEX_DTYPE)
        out._trail[:] = self._trail
        out._values = _aligned_empty(self._values.shape[0], VALUE_DTYPE)
        out._values[:] = self._values
        out._initialized = self._initialized.copy()
        return out

    def _accumulate(self, other: "CSR3Matrix", sign: float) -> "CSR3Matrix":
        if not isinstance(other, CSR3Matrix):
            return NotImplemented
        self._check_same_shape(other)
        rows, cols, values = other._live_triplets()
        for r, c, v in zip(rows.tolist(), cols.tolist(), values.tolist()):
            self.set_element(r, c, sign * v, overwrite=False)
        return self

    def __iadd__(self, other: "CSR3Matrix") -> "CSR3Matrix":
        return self._accumulate(other, 1.0)

    def __isub__(self, other: "CSR3Matrix") -> "CSR3Matrix":
        return self._accumulate(other, -1.0)

    def __imul__(self, coeff: float) -> "CSR3Matrix":
        if not isinstance(coeff, (int, float, np.floating, np.integer)):
            return NotImplemented
        length = self.trailing_index_length
        live = self._initialized[:length]
        self._values[:length][live] *= float(coeff)
        return self

    def __eq__(self, other: object) -> bool:
        """
        Compare the represented matrices entry by entry.

        Works on uncompressed matrices; explicit zeros equal absent entries.

        Raises:
            DimensionMismatchError: If the shapes differ.
        """
        if not isinstance(other, CSR3Matrix):
            return NotImplemented
        self._check_same_shape(other)
        diff = (self.to_scipy() - other.to_scipy()).tocoo()
        return not bool(np.any(diff.data != 0.0))

    __hash__ = None

    # ---------------------------------------------------------- conversion

    def to_scipy(self) -> sp.spmatrix:
        """Return an equivalent ``scipy.sparse`` matrix (csr if row-major, csc otherwise)."""
        rows, cols, values = self._live_triplets()
        coo = sp.coo_matrix((values, (rows, cols)), shape=self.shape)
        return coo.tocsr() if self._row_major else coo.tocsc()

    def to_dense(self) -> np.ndarray:
        rows, cols, values = self._live_triplets()
        dense = np.zeros(self.shape, dtype=VALUE_DTYPE)
        np.add.at(dense, (rows, cols), values)
        return dense

    @classmethod
    def from_dense(cls, dense: np.ndarray, row_major: bool = True) -> "CSR3Matrix":
        """Build a compressed matrix holding the nonzeros of ``dense``."""
        dense = np.asarray(dense, dtype=VALUE_DTYPE)
        if dense.ndim != 2:
            raise ValueError(f"dense must be 2D, got shape {dense.shape}")
        out = cls(dense.shape[0], dense.shape[1], row_major=row_major,
                  nonzeros=int(np.count_nonzero(dense)))
        source = dense if row_major else dense.T
        for lead_sel, trail_sel in zip(*np.nonzero(source)):
            row, col = (lead_sel, trail_sel) if row_major else (trail_sel, lead_sel)
            out.set_element(int(row), int(col), dense[row, col])
        out.compress()
        return out

    # --------------------------------------------------------- validation

    def verify_matrix(self) -> int:
        """
        Check the storage invariants.

        Returns:
            0 if consistent, otherwise the first violation found:
            -1 bad ``lead_index`` shape or origin, -2 ``lead_index`` decreasing
            or beyond capacity, -3 trailing index out of range, -4 window not
            strictly increasing, -5 hole followed by an entry within a window,
            -6 initialized hole, -7 uninitialized slot in a compressed matrix.
        """
        lead = self._lead
        if lead.shape[0] != self.leading_dimension + 1 or lead[0] != 0:
            return -1
        if np.any(np.diff(lead) < 0) or lead[-1] > self.trailing_index_capacity:
            return -2
        trail = self.trail_index
        holes = trail == HOLE
        if np.any((trail < HOLE) | (trail >= self.trailing_dimension)):
            return -3
        rows = self._window_rows()
        same = rows[1:] == rows[:-1]
        prev, nxt = trail[:-1], trail[1:]
        if np.any(same & ~holes[:-1] & ~holes[1:] & (nxt <= prev)):
            return -4
        if np.any(same & holes[:-1] & ~holes[1:]):
            return -5
        if np.any(holes & self.initialized):
            return -6
        if self._is_compressed and not np.all(self.initialized):
            return -7
        return 0

    def __repr__(self) -> str:
        return (
            f"CSR3Matrix(shape={self.shape}, row_major={self._row_major}, nnz={self.nnz}, "
            f"capacity={self.trailing_index_capacity}, compressed={self._is_compressed}, "
            f"locked={self._sparsity_locked})"
        )


__all__ = ["CSR3Matrix", "HOLE", "ARRAY_ALIGNMENT"]
