"""Reference neighbourhood enumerator.

Walks a sample's clamped search box one dimension at a time, from the
highest dimension down to dimension 0, carrying the squared distance
accumulated over the dimensions fixed so far. The innermost dimension is
evaluated as one numpy row; each element is ``acc + (i - loc[0])**2``, the
same arithmetic the scalar recursion performs, so results are bit-identical
to the compiled engine.

No pruning happens on partial sums: every voxel of the box is visited and
only the full distance is compared against the kernel's squared half-width.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np

I64 = np.int64


class TripletSink(Protocol):
    def extend(self, sample: int, voxels: np.ndarray, distances_sq: np.ndarray) -> None:
        ...


def _descend(
    sink: TripletSink | None,
    sample_index: int,
    cur_dim: int,
    acc: float,
    base_index: int,
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
) -> int:
    lo = int(lower[cur_dim])
    hi = int(upper[cur_dim])
    if cur_dim == 0:
        row = np.arange(lo, hi + 1, dtype=I64)
        delta = row - voxel_loc[0]
        total = acc + delta * delta
        keep = total <= halfwidth_sq
        emitted = int(np.count_nonzero(keep))
        if sink is not None and emitted:
            sink.extend(sample_index, base_index + row[keep] * int(strides[0]), total[keep])
        return emitted

    loc = float(voxel_loc[cur_dim])
    stride = int(strides[cur_dim])
    emitted = 0
    for i in range(lo, hi + 1):
        delta = i - loc
        emitted += _descend(
            sink,
            sample_index,
            cur_dim - 1,
            acc + delta * delta,
            base_index + i * stride,
            voxel_loc,
            lower,
            upper,
            halfwidth_sq,
            strides,
        )
    return emitted


def enumerate_sample(
    sample_index: int,
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
    sink: TripletSink,
) -> int:
    """Emit every voxel of the box within ``sqrt(halfwidth_sq)`` of ``voxel_loc``.

    Entries are appended to ``sink`` with dimension ``ndims - 1`` varying
    slowest and dimension 0 fastest, ascending in each. Returns the number
    of entries emitted (zero when the box is empty in any dimension).
    """

    if np.any(lower > upper):
        return 0
    ndims = int(voxel_loc.shape[0])
    return _descend(
        sink,
        int(sample_index),
        ndims - 1,
        0.0,
        0,
        voxel_loc,
        lower,
        upper,
        float(halfwidth_sq),
        strides,
    )


def count_sample(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
) -> int:
    """Number of entries :func:`enumerate_sample` would emit, without emitting."""

    if np.any(lower > upper):
        return 0
    ndims = int(voxel_loc.shape[0])
    return _descend(
        None,
        -1,
        ndims - 1,
        0.0,
        0,
        voxel_loc,
        lower,
        upper,
        float(halfwidth_sq),
        strides,
    )


def count_entries(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
) -> np.ndarray:
    counts = np.zeros(voxel_loc.shape[0], dtype=I64)
    for p in range(voxel_loc.shape[0]):
        counts[p] = count_sample(voxel_loc[p], lower[p], upper[p], halfwidth_sq, strides)
    return counts


def fill_entries(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
    sink: TripletSink,
) -> int:
    """Drive :func:`enumerate_sample` over all samples in increasing index order."""

    total = 0
    for p in range(voxel_loc.shape[0]):
        total += enumerate_sample(
            p, voxel_loc[p], lower[p], upper[p], halfwidth_sq, strides, sink
        )
    return total


__all__ = [
    "TripletSink",
    "enumerate_sample",
    "count_sample",
    "count_entries",
    "fill_entries",
]
