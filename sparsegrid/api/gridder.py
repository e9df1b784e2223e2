from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

from sparsegrid.algo.bounds import reference_capacity
from sparsegrid.algo.gridding import count_sparse_entries, sparse_gridding_distance
from sparsegrid.api.runtime import Runtime
from sparsegrid.core.buffers import SparseDistanceEntries
from sparsegrid.core.grid import GridGeometry, KernelSupport
from sparsegrid.errors import InvalidCoordinatesError, InvalidShapeError

CoordsLayout = Literal["points", "dims"]


def _ensure_coords(geometry: GridGeometry, value: Any, layout: CoordsLayout) -> np.ndarray:
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinatesError("coords must be a real-valued array.") from exc
    ndims = geometry.ndims
    if arr.ndim == 0:
        raise InvalidCoordinatesError("coords must be at least 1-D.")
    if arr.ndim == 1:
        length = int(arr.shape[0])
        if ndims == 1:
            arr = arr.reshape(length, 1)
        elif length == 0:
            arr = arr.reshape(0, ndims)
        elif length == ndims:
            arr = arr.reshape(1, ndims)
        else:
            raise InvalidShapeError(
                f"1-D coords of length {length} do not match a {ndims}-D grid."
            )
    elif arr.ndim == 2:
        if layout == "dims":
            arr = arr.T
        if arr.shape[1] != ndims:
            raise InvalidShapeError(
                f"coords describe {arr.shape[1]}-D samples but the grid is {ndims}-D."
            )
    else:
        raise InvalidCoordinatesError(f"coords must be 1-D or 2-D, got {arr.ndim}-D.")
    if arr.size and not np.all(np.isfinite(arr)):
        raise InvalidCoordinatesError("coords contain NaN or infinite values.")
    return np.ascontiguousarray(arr)


@dataclass(frozen=True)
class SparseGridder:
    """Validated entry point for sparse gridding distance enumeration.

    ``coords_layout="points"`` takes ``(npts, ndims)`` arrays; ``"dims"``
    takes ``(ndims, npts)`` arrays (one row per dimension).
    """

    kernel_width: float
    output_dims: Any
    runtime: Runtime = field(default_factory=Runtime)
    coords_layout: CoordsLayout = "points"
    geometry: GridGeometry = field(init=False, repr=False)
    kernel: KernelSupport = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.coords_layout not in ("points", "dims"):
            raise ValueError(f"coords_layout must be 'points' or 'dims', got {self.coords_layout!r}.")
        object.__setattr__(self, "geometry", GridGeometry.from_shape(self.output_dims))
        object.__setattr__(self, "kernel", KernelSupport.from_width(self.kernel_width))

    @property
    def ndims(self) -> int:
        return self.geometry.ndims

    def distances(self, coords: Any, *, capacity: int | None = None) -> SparseDistanceEntries:
        config = self.runtime.activate()
        samples = _ensure_coords(self.geometry, coords, self.coords_layout)
        entries = sparse_gridding_distance(
            samples,
            self.geometry,
            self.kernel,
            capacity=capacity,
            capacity_policy=config.capacity_policy,
            use_numba=config.enable_numba,
            distance_dtype=config.precision,
        )
        return entries.to_index_base(config.index_base)

    def count(self, coords: Any) -> np.ndarray:
        config = self.runtime.activate()
        samples = _ensure_coords(self.geometry, coords, self.coords_layout)
        return count_sparse_entries(
            samples,
            self.geometry,
            self.kernel,
            use_numba=config.enable_numba,
        )

    def capacity_bound(self, num_samples: int) -> int:
        """Legacy truncated ``width ** ndims`` allocation bound for ``num_samples`` samples."""

        return reference_capacity(int(num_samples), self.kernel.width, self.ndims)


def sparse_distances(
    coords: Any,
    kernel_width: float,
    output_dims: Any,
    *,
    capacity: int | None = None,
    runtime: Runtime | None = None,
    coords_layout: CoordsLayout = "points",
) -> SparseDistanceEntries:
    """One-shot helper: validate inputs and enumerate all sparse triples."""

    gridder = SparseGridder(
        kernel_width=kernel_width,
        output_dims=output_dims,
        runtime=runtime or Runtime(),
        coords_layout=coords_layout,
    )
    return gridder.distances(coords, capacity=capacity)


__all__ = ["SparseGridder", "CoordsLayout", "sparse_distances"]
