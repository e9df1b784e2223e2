"""Public ergonomic façade for sparsegrid."""

from .gridder import SparseGridder, sparse_distances
from .runtime import Runtime

__all__ = [
    "SparseGridder",
    "Runtime",
    "sparse_distances",
]
