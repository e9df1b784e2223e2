"""sparsegrid: sparse (sample, voxel, distance) enumeration for convolution gridding.

Quick Start
-----------
>>> import numpy as np
>>> from sparsegrid import SparseGridder
>>>
>>> # 3-D samples in normalised coordinates [-0.5, 0.5)
>>> coords = np.random.uniform(-0.5, 0.5, size=(1000, 3))
>>> gridder = SparseGridder(kernel_width=4.0, output_dims=(64, 64, 64))
>>> entries = gridder.distances(coords)
>>> samples, voxels, distances_sq = entries.as_tuple()

One-based indices (MATLAB-style sparse assembly)
------------------------------------------------
>>> from sparsegrid import Runtime
>>> gridder = SparseGridder(4.0, (64, 64, 64), runtime=Runtime(index_base=1))

Classes
-------
SparseGridder : Validated gridding entry point.
Runtime : Overrides for engine, precision, capacity policy and index base.
SparseDistanceEntries : Parallel arrays of emitted triples.
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__ = _pkg_version("sparsegrid")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.1.0"

from .api import Runtime, SparseGridder, sparse_distances
from .core import (
    GridGeometry,
    KernelSupport,
    SparseDistanceEntries,
    TripletAccumulator,
    VoxelGroups,
)
from .errors import (
    CapacityExceededError,
    InvalidCoordinatesError,
    InvalidKernelError,
    InvalidShapeError,
    SparseGridError,
)

__all__ = [
    "__version__",
    "SparseGridder",
    "Runtime",
    "sparse_distances",
    "GridGeometry",
    "KernelSupport",
    "SparseDistanceEntries",
    "TripletAccumulator",
    "VoxelGroups",
    "SparseGridError",
    "InvalidShapeError",
    "InvalidKernelError",
    "InvalidCoordinatesError",
    "CapacityExceededError",
]
