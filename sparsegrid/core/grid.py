from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import numpy as np

from sparsegrid.errors import InvalidKernelError, InvalidShapeError


def _as_dims(shape: Any) -> Tuple[int, ...]:
    arr = np.asarray(shape)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1 or arr.size == 0:
        raise InvalidShapeError("output_dims must be a non-empty 1-D sequence of voxel counts.")
    dims: list[int] = []
    for value in arr.tolist():
        if isinstance(value, bool) or float(value) != math.floor(float(value)):
            raise InvalidShapeError(f"output_dims entries must be integers, got {value!r}.")
        dims.append(int(value))
    if any(dim < 1 for dim in dims):
        raise InvalidShapeError(f"output_dims entries must be >= 1, got {tuple(dims)}.")
    return tuple(dims)


@dataclass(frozen=True)
class GridGeometry:
    """Shape-derived constants shared by every sample of a gridding pass.

    ``halfwidth[d]`` is the grid-centre offset ``ceil(dims[d] / 2)`` and
    ``strides`` linearise a voxel coordinate with dimension 0 varying fastest.
    """

    output_dims: Tuple[int, ...]
    halfwidth: Tuple[int, ...]
    strides: Tuple[int, ...]

    @classmethod
    def from_shape(cls, shape: Sequence[int] | Any) -> "GridGeometry":
        dims = _as_dims(shape)
        halfwidth = tuple(int(math.ceil(dim * 0.5)) for dim in dims)
        strides = [1]
        for dim in dims[:-1]:
            strides.append(strides[-1] * dim)
        return cls(output_dims=dims, halfwidth=halfwidth, strides=tuple(strides))

    @property
    def ndims(self) -> int:
        return len(self.output_dims)

    @property
    def num_voxels(self) -> int:
        return int(math.prod(self.output_dims))

    def dims_array(self) -> np.ndarray:
        return np.asarray(self.output_dims, dtype=np.int64)

    def halfwidth_array(self) -> np.ndarray:
        return np.asarray(self.halfwidth, dtype=np.float64)

    def strides_array(self) -> np.ndarray:
        return np.asarray(self.strides, dtype=np.int64)

    def to_voxel_space(self, coords: np.ndarray) -> np.ndarray:
        """Map normalised coordinates (grid extent = 1, centre = 0) to voxel-index space."""

        coords_arr = np.asarray(coords, dtype=np.float64)
        return coords_arr * self.dims_array().astype(np.float64) + self.halfwidth_array()

    def linear_index(self, voxels: Any) -> np.ndarray:
        """Linearise integer voxel coordinates (rows of ``voxels``)."""

        voxels_arr = np.asarray(voxels, dtype=np.int64)
        if voxels_arr.shape[-1] != self.ndims:
            raise InvalidShapeError(
                f"Voxel coordinates have {voxels_arr.shape[-1]} dims; grid has {self.ndims}."
            )
        return voxels_arr @ self.strides_array()

    def unravel(self, linear: Any) -> np.ndarray:
        """Decode linear voxel indices back to ``(n, ndims)`` integer coordinates."""

        linear_arr = np.asarray(linear, dtype=np.int64)
        if linear_arr.size and (linear_arr.min() < 0 or linear_arr.max() >= self.num_voxels):
            raise IndexError("Linear voxel index out of range for this grid.")
        coords = np.empty(linear_arr.shape + (self.ndims,), dtype=np.int64)
        remainder = linear_arr.copy()
        for dim in range(self.ndims - 1, -1, -1):
            stride = self.strides[dim]
            coords[..., dim] = remainder // stride
            remainder = remainder - coords[..., dim] * stride
        return coords


@dataclass(frozen=True)
class KernelSupport:
    """Finite kernel support: a cube of side ``width`` searched, a ball of radius ``width/2`` accepted."""

    width: float

    @classmethod
    def from_width(cls, width: Any) -> "KernelSupport":
        try:
            value = float(width)
        except (TypeError, ValueError) as exc:
            raise InvalidKernelError(f"kernel width must be a real scalar, got {width!r}.") from exc
        if not math.isfinite(value) or value <= 0.0:
            raise InvalidKernelError(f"kernel width must be finite and > 0, got {value}.")
        return cls(width=value)

    @property
    def halfwidth(self) -> float:
        return self.width * 0.5

    @property
    def halfwidth_sq(self) -> float:
        halfwidth = self.halfwidth
        return halfwidth * halfwidth


__all__ = ["GridGeometry", "KernelSupport"]
