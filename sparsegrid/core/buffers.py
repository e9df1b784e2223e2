from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

from sparsegrid.errors import CapacityExceededError

I64 = np.int64


@dataclass
class _TripletBuffer:
    data: np.ndarray

    def ensure(self, size: int, keep: int) -> np.ndarray:
        if self.data.size < size:
            grown = np.empty(size, dtype=self.data.dtype)
            grown[:keep] = self.data[:keep]
            self.data = grown
        return self.data

    @property
    def capacity_bytes(self) -> int:
        return int(self.data.nbytes)


class TripletAccumulator:
    """Append-only (sample, voxel, distance_sq) storage with a checked capacity.

    Writes are all-or-nothing: a triple (or a row of triples) that does not
    fit raises :class:`CapacityExceededError` before any buffer is touched,
    unless the accumulator is growable, in which case the buffers double.
    """

    __slots__ = ("_samples", "_voxels", "_distances", "_count", "_capacity", "growable")

    def __init__(self, capacity: int, *, distance_dtype: Any = np.float64, growable: bool = False) -> None:
        capacity = int(capacity)
        if capacity < 0:
            raise ValueError("capacity must be non-negative.")
        self._samples = _TripletBuffer(np.empty(capacity, dtype=I64))
        self._voxels = _TripletBuffer(np.empty(capacity, dtype=I64))
        self._distances = _TripletBuffer(np.empty(capacity, dtype=distance_dtype))
        self._count = 0
        self._capacity = capacity
        self.growable = bool(growable)

    @property
    def count(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total_bytes(self) -> int:
        return (
            self._samples.capacity_bytes
            + self._voxels.capacity_bytes
            + self._distances.capacity_bytes
        )

    def _reserve(self, extra: int) -> int:
        start = self._count
        required = start + extra
        if required <= self._capacity:
            return start
        if not self.growable:
            raise CapacityExceededError(self._capacity, required)
        new_capacity = max(required, 2 * self._capacity, 16)
        self._samples.ensure(new_capacity, start)
        self._voxels.ensure(new_capacity, start)
        self._distances.ensure(new_capacity, start)
        self._capacity = new_capacity
        return start

    def append(self, sample: int, voxel: int, distance_sq: float) -> None:
        pos = self._reserve(1)
        self._samples.data[pos] = sample
        self._voxels.data[pos] = voxel
        self._distances.data[pos] = distance_sq
        self._count = pos + 1

    def extend(self, sample: int, voxels: np.ndarray, distances_sq: np.ndarray) -> None:
        size = int(voxels.shape[0])
        if size == 0:
            return
        start = self._reserve(size)
        end = start + size
        self._samples.data[start:end] = sample
        self._voxels.data[start:end] = voxels
        self._distances.data[start:end] = distances_sq
        self._count = end

    def views(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        count = self._count
        return (
            self._samples.data[:count],
            self._voxels.data[:count],
            self._distances.data[:count],
        )


@dataclass(frozen=True)
class VoxelGroups:
    """CSR-style grouping of entries by voxel (one segment per touched voxel)."""

    voxels: np.ndarray
    indptr: np.ndarray
    sample_indices: np.ndarray
    distances: np.ndarray

    @property
    def num_groups(self) -> int:
        return int(self.voxels.shape[0])

    def segment(self, group: int) -> Tuple[np.ndarray, np.ndarray]:
        start = int(self.indptr[group])
        end = int(self.indptr[group + 1])
        return self.sample_indices[start:end], self.distances[start:end]


@dataclass(frozen=True)
class SparseDistanceEntries:
    """Parallel arrays of (sample, voxel, squared distance) triples in emission order."""

    sample_indices: np.ndarray
    voxel_indices: np.ndarray
    distances: np.ndarray
    num_samples: int
    num_voxels: int
    index_base: int = 0

    def __len__(self) -> int:
        return int(self.sample_indices.shape[0])

    @property
    def num_entries(self) -> int:
        return len(self)

    def as_tuple(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.sample_indices, self.voxel_indices, self.distances

    def to_index_base(self, base: int) -> "SparseDistanceEntries":
        """Return a copy whose sample/voxel indices start at ``base`` (0 or 1)."""

        if base not in (0, 1):
            raise ValueError(f"index base must be 0 or 1, got {base}.")
        shift = base - self.index_base
        if shift == 0:
            return self
        return SparseDistanceEntries(
            sample_indices=self.sample_indices + shift,
            voxel_indices=self.voxel_indices + shift,
            distances=self.distances,
            num_samples=self.num_samples,
            num_voxels=self.num_voxels,
            index_base=base,
        )

    def per_sample_counts(self) -> np.ndarray:
        samples = self.sample_indices - self.index_base
        return np.bincount(samples, minlength=self.num_samples).astype(I64)

    def decode_voxels(self, geometry: Any) -> np.ndarray:
        """Integer voxel coordinates ``(n_entries, ndims)`` of every entry."""

        return geometry.unravel(self.voxel_indices - self.index_base)

    def group_by_voxel(self) -> VoxelGroups:
        """Group entries by voxel, then by sample, preserving emission order for ties."""

        size = len(self)
        if size == 0:
            empty = np.empty(0, dtype=I64)
            return VoxelGroups(
                voxels=empty,
                indptr=np.zeros(1, dtype=I64),
                sample_indices=empty,
                distances=self.distances[:0],
            )
        positions = np.arange(size, dtype=I64)
        order = np.lexsort((positions, self.sample_indices, self.voxel_indices))
        sorted_voxels = self.voxel_indices[order]
        unique_voxels, counts = np.unique(sorted_voxels, return_counts=True)
        indptr = np.concatenate(
            (np.zeros(1, dtype=I64), np.cumsum(counts, dtype=I64)),
            axis=0,
        )
        return VoxelGroups(
            voxels=unique_voxels.astype(I64),
            indptr=indptr,
            sample_indices=self.sample_indices[order],
            distances=self.distances[order],
        )


def entries_from_accumulator(
    accumulator: TripletAccumulator,
    *,
    num_samples: int,
    num_voxels: int,
) -> SparseDistanceEntries:
    samples, voxels, distances = accumulator.views()
    if accumulator.count < accumulator.capacity:
        # Detach from the oversized buffers.
        samples, voxels, distances = samples.copy(), voxels.copy(), distances.copy()
    return SparseDistanceEntries(
        sample_indices=samples,
        voxel_indices=voxels,
        distances=distances,
        num_samples=int(num_samples),
        num_voxels=int(num_voxels),
    )


__all__ = [
    "TripletAccumulator",
    "VoxelGroups",
    "SparseDistanceEntries",
    "entries_from_accumulator",
]
