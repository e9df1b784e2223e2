from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sparsegrid.core.grid import GridGeometry, KernelSupport

I64 = np.int64


@dataclass(frozen=True)
class SampleBounds:
    """Per-sample voxel-space locations and clamped inclusive search boxes."""

    voxel_loc: np.ndarray
    lower: np.ndarray
    upper: np.ndarray

    @property
    def num_samples(self) -> int:
        return int(self.voxel_loc.shape[0])

    def is_empty(self) -> np.ndarray:
        return np.any(self.lower > self.upper, axis=1)

    def volumes(self) -> np.ndarray:
        return box_volumes(self.lower, self.upper)


def voxel_locations(coords: np.ndarray, geometry: GridGeometry) -> np.ndarray:
    """``coords[p][d] * dims[d] + halfwidth[d]`` for every sample."""

    coords_arr = np.asarray(coords, dtype=np.float64)
    if coords_arr.ndim != 2 or coords_arr.shape[1] != geometry.ndims:
        raise ValueError(
            f"coords must have shape (npts, {geometry.ndims}), got {coords_arr.shape}."
        )
    return geometry.to_voxel_space(coords_arr)


def bounding_boxes(
    voxel_loc: np.ndarray,
    kernel: KernelSupport,
    geometry: GridGeometry,
) -> tuple[np.ndarray, np.ndarray]:
    """Inclusive ``(lower, upper)`` voxel bounds of each sample's cubic support.

    Boxes are clamped to the grid but samples outside the grid are kept; a
    box whose clamp leaves ``lower > upper`` in any dimension is empty.
    """

    halfwidth = kernel.halfwidth
    dims = geometry.dims_array().astype(np.float64)
    # Far-away samples saturate at an empty box instead of overflowing int64.
    lower = np.clip(np.ceil(voxel_loc - halfwidth), 0.0, dims).astype(I64)
    upper = np.clip(np.floor(voxel_loc + halfwidth), -1.0, dims - 1.0).astype(I64)
    return lower, upper


def box_volumes(lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    extents = np.maximum(upper - lower + 1, 0).astype(I64)
    if extents.ndim == 1:
        return np.prod(extents, dtype=I64)
    return np.prod(extents, axis=1, dtype=I64)


def compute_sample_bounds(
    coords: np.ndarray,
    geometry: GridGeometry,
    kernel: KernelSupport,
) -> SampleBounds:
    voxel_loc = voxel_locations(coords, geometry)
    lower, upper = bounding_boxes(voxel_loc, kernel, geometry)
    return SampleBounds(voxel_loc=voxel_loc, lower=lower, upper=upper)


def reference_capacity(num_samples: int, kernel_width: float, ndims: int) -> int:
    """Legacy allocation bound: ``npts`` times ``width`` raised to ``ndims``.

    The per-sample neighbour count is held as an unsigned integer and
    truncated after every multiplication by ``width``, so fractional widths
    give e.g. 5 (not 6.25) for width 2.5 in 2-D. This can be smaller than
    the cubic search volume; use it only with a checked accumulator.
    """

    neighbours = 1
    for _ in range(int(ndims)):
        neighbours = int(neighbours * float(kernel_width))
    return int(num_samples) * neighbours


def box_capacity(bounds: SampleBounds) -> int:
    """Sum of per-sample box volumes, a guaranteed upper bound on the entry count."""

    if bounds.num_samples == 0:
        return 0
    return int(bounds.volumes().sum())


__all__ = [
    "SampleBounds",
    "voxel_locations",
    "bounding_boxes",
    "box_volumes",
    "compute_sample_bounds",
    "reference_capacity",
    "box_capacity",
]
