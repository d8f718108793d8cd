"""
Sparse matrix engine: mutable CSR3 storage and sparsity-pattern learning.
"""

from .csr3 import ARRAY_ALIGNMENT, HOLE, CSR3Matrix
from .io import export_arrays, export_triplets, import_arrays
from .learner import SparsityPatternLearner

__all__ = [
    "CSR3Matrix",
    "SparsityPatternLearner",
    "HOLE",
    "ARRAY_ALIGNMENT",
    "export_triplets",
    "export_arrays",
    "import_arrays",
]
