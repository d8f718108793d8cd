"""
Plain-text dumps of CSR3 matrices for offline inspection.

Two layouts are supported:

* triplets -- one ``row col value`` line per live entry;
* arrays -- the three compressed arrays in ``a.dat`` (values), ``ia.dat``
  (leading offsets) and ``ja.dat`` (trailing indices), one number per line.
"""

from __future__ import annotations

import os
from typing import Optional

import numpy as np

from .csr3 import CSR3Matrix

VALUES_FILE = "a.dat"
LEAD_FILE = "ia.dat"
TRAIL_FILE = "ja.dat"


def export_triplets(matrix: CSR3Matrix, path: str, precision: int = 6) -> None:
    """
    Write the live entries of ``matrix`` as ``row col value`` lines.

    Parameters
    ----------
    matrix : CSR3Matrix
        Matrix to dump. It is not modified.
    path : str
        Output file path.
    precision : int
        Number of digits after the decimal point.
    """
    with open(path, "w", encoding="utf-8") as f:
        for row, col, value in matrix.items():
            f.write(f"{row} {col} {value:.{precision}e}\n")


def export_arrays(matrix: CSR3Matrix, directory: str, precision: int = 6) -> None:
    """
    Compress ``matrix`` and write its three arrays into ``directory``.

    Parameters
    ----------
    matrix : CSR3Matrix
        Matrix to dump. It is compressed in place first.
    directory : str
        Target directory; created if missing.
    precision : int
        Number of digits after the decimal point for values.
    """
    os.makedirs(directory, exist_ok=True)
    matrix.compress()
    lead, trail, values = matrix.get_csr_arrays()
    np.savetxt(os.path.join(directory, VALUES_FILE), values, fmt=f"%.{precision}e")
    np.savetxt(os.path.join(directory, LEAD_FILE), lead, fmt="%d")
    np.savetxt(os.path.join(directory, TRAIL_FILE), trail, fmt="%d")


def import_arrays(
    directory: str,
    row_major: bool = True,
    trailing_dimension: Optional[int] = None,
    lock_sparsity_pattern: bool = False,
) -> CSR3Matrix:
    """
    Rebuild a matrix from files written by :func:`export_arrays`.

    Parameters
    ----------
    directory : str
        Directory holding ``a.dat``, ``ia.dat`` and ``ja.dat``.
    row_major : bool
        Orientation the arrays were written in.
    trailing_dimension : int, optional
        Size of the trailing dimension. Defaults to the largest stored
        trailing index plus one.
    lock_sparsity_pattern : bool
        Leave the returned matrix locked. Stored zeros are kept either way.

    Returns
    -------
    CSR3Matrix
        Compressed matrix with every stored entry, explicit zeros included.

    Raises
    ------
    FileNotFoundError
        If one of the array files is missing.
    ValueError
        If the arrays are inconsistent with each other.
    """
    paths = [os.path.join(directory, name) for name in (VALUES_FILE, LEAD_FILE, TRAIL_FILE)]
    for path in paths:
        if not os.path.exists(path):
            raise FileNotFoundError(f"CSR3 array file not found: {path}")

    values = np.atleast_1d(np.loadtxt(paths[0], dtype=np.float64, ndmin=1))
    lead = np.atleast_1d(np.loadtxt(paths[1], dtype=np.int64, ndmin=1))
    trail = np.atleast_1d(np.loadtxt(paths[2], dtype=np.int64, ndmin=1))

    if lead.size == 0 or lead[0] != 0 or lead[-1] != trail.size or trail.size != values.size:
        raise ValueError(f"inconsistent CSR3 arrays in {directory}")

    lead_dim = lead.size - 1
    if trailing_dimension is None:
        trailing_dimension = int(trail.max()) + 1 if trail.size else 0
    shape = (lead_dim, trailing_dimension) if row_major else (trailing_dimension, lead_dim)

    matrix = CSR3Matrix(shape[0], shape[1], row_major=row_major, nonzeros=values.size)
    matrix.sparsity_locked = True
    rows = np.repeat(np.arange(lead_dim), np.diff(lead))
    for lead_sel, trail_sel, value in zip(rows.tolist(), trail.tolist(), values.tolist()):
        row, col = (lead_sel, trail_sel) if row_major else (trail_sel, lead_sel)
        matrix.set_element(row, col, value)
    matrix.compress()
    matrix.sparsity_locked = lock_sparsity_pattern
    return matrix


__all__ = ["export_triplets", "export_arrays", "import_arrays"]
