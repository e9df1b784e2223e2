"""Grid geometry and sparse output containers."""

from .buffers import SparseDistanceEntries, TripletAccumulator, VoxelGroups, entries_from_accumulator
from .grid import GridGeometry, KernelSupport

__all__ = [
    "GridGeometry",
    "KernelSupport",
    "SparseDistanceEntries",
    "TripletAccumulator",
    "VoxelGroups",
    "entries_from_accumulator",
]
