from __future__ import annotations

from typing import Any, Tuple

import numpy as np

try:  # pragma: no cover - optional dependency
    import numba as nb

    NUMBA_GRIDDING_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    nb = None  # type: ignore
    NUMBA_GRIDDING_AVAILABLE = False

I64 = np.int64
F64 = np.float64


def _require_numba() -> None:
    if not NUMBA_GRIDDING_AVAILABLE:  # pragma: no cover - defensive
        raise RuntimeError(
            "Numba gridding kernels requested but `numba` is not available. "
            "Install numba or disable the feature via SPARSEGRID_ENABLE_NUMBA=0."
        )


if NUMBA_GRIDDING_AVAILABLE:

    @nb.njit(cache=True)
    def _walk_sample(
        sample: int,
        loc: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        strides: np.ndarray,
        halfwidth_sq: float,
        out_samples: np.ndarray,
        out_voxels: np.ndarray,
        out_distances: np.ndarray,
        start: int,
        limit: int,
        write: bool,
    ) -> int:
        ndims = loc.shape[0]
        for d in range(ndims):
            if lower[d] > upper[d]:
                return 0

        # acc[d] / base[d]: squared distance and linear offset over dims >= d.
        seed = lower.copy()
        acc = np.zeros(ndims + 1, dtype=F64)
        base = np.zeros(ndims + 1, dtype=I64)
        for d in range(ndims - 1, 0, -1):
            delta = seed[d] - loc[d]
            acc[d] = acc[d + 1] + delta * delta
            base[d] = base[d + 1] + seed[d] * strides[d]

        count = 0
        loc0 = loc[0]
        stride0 = strides[0]
        while True:
            row_acc = acc[1]
            row_base = base[1]
            for i in range(lower[0], upper[0] + 1):
                delta = i - loc0
                total = row_acc + delta * delta
                if total <= halfwidth_sq:
                    if write:
                        pos = start + count
                        if pos >= limit:
                            return -1
                        out_samples[pos] = sample
                        out_voxels[pos] = row_base + i * stride0
                        out_distances[pos] = total
                    count += 1

            d = 1
            while d < ndims:
                if seed[d] < upper[d]:
                    seed[d] += 1
                    break
                seed[d] = lower[d]
                d += 1
            if d >= ndims:
                break
            for e in range(d, 0, -1):
                delta = seed[e] - loc[e]
                acc[e] = acc[e + 1] + delta * delta
                base[e] = base[e + 1] + seed[e] * strides[e]
        return count

    @nb.njit(cache=True, parallel=True)
    def _count_all(
        voxel_loc: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        strides: np.ndarray,
        halfwidth_sq: float,
    ) -> np.ndarray:
        n = voxel_loc.shape[0]
        counts = np.zeros(n, dtype=I64)
        no_index = np.empty(0, dtype=I64)
        no_distance = np.empty(0, dtype=F64)
        for p in nb.prange(n):
            counts[p] = _walk_sample(
                p,
                voxel_loc[p],
                lower[p],
                upper[p],
                strides,
                halfwidth_sq,
                no_index,
                no_index,
                no_distance,
                0,
                0,
                False,
            )
        return counts

    @nb.njit(cache=True, parallel=True)
    def _fill_partitioned(
        voxel_loc: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        strides: np.ndarray,
        halfwidth_sq: float,
        offsets: np.ndarray,
        out_samples: np.ndarray,
        out_voxels: np.ndarray,
        out_distances: np.ndarray,
    ) -> None:
        n = voxel_loc.shape[0]
        for p in nb.prange(n):
            _walk_sample(
                p,
                voxel_loc[p],
                lower[p],
                upper[p],
                strides,
                halfwidth_sq,
                out_samples,
                out_voxels,
                out_distances,
                offsets[p],
                offsets[p + 1],
                True,
            )

    @nb.njit(cache=True)
    def _fill_sequential(
        voxel_loc: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        strides: np.ndarray,
        halfwidth_sq: float,
        out_samples: np.ndarray,
        out_voxels: np.ndarray,
        out_distances: np.ndarray,
    ) -> int:
        n = voxel_loc.shape[0]
        capacity = out_samples.shape[0]
        cursor = 0
        for p in range(n):
            written = _walk_sample(
                p,
                voxel_loc[p],
                lower[p],
                upper[p],
                strides,
                halfwidth_sq,
                out_samples,
                out_voxels,
                out_distances,
                cursor,
                capacity,
                True,
            )
            if written < 0:
                return -1
            cursor += written
        return cursor


def _prepare(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    strides: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    return (
        np.ascontiguousarray(voxel_loc, dtype=F64),
        np.ascontiguousarray(lower, dtype=I64),
        np.ascontiguousarray(upper, dtype=I64),
        np.ascontiguousarray(strides, dtype=I64),
    )


def count_entries_numba(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
) -> np.ndarray:
    """Per-sample number of qualifying voxels (parallel over samples)."""

    _require_numba()
    loc, lo, hi, st = _prepare(voxel_loc, lower, upper, strides)
    return _count_all(loc, lo, hi, st, float(halfwidth_sq))


def fill_entries_numba(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
    counts: np.ndarray,
    *,
    distance_dtype: Any = F64,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Write every sample into its own region ``[offsets[p], offsets[p+1])``.

    ``counts`` must come from :func:`count_entries_numba` for the same inputs.
    """

    _require_numba()
    loc, lo, hi, st = _prepare(voxel_loc, lower, upper, strides)
    counts_arr = np.asarray(counts, dtype=I64)
    offsets = np.zeros(counts_arr.shape[0] + 1, dtype=I64)
    np.cumsum(counts_arr, out=offsets[1:])
    total = int(offsets[-1])
    out_samples = np.empty(total, dtype=I64)
    out_voxels = np.empty(total, dtype=I64)
    out_distances = np.empty(total, dtype=distance_dtype)
    if total:
        _fill_partitioned(
            loc,
            lo,
            hi,
            st,
            float(halfwidth_sq),
            offsets,
            out_samples,
            out_voxels,
            out_distances,
        )
    return out_samples, out_voxels, out_distances


def fill_sequential_numba(
    voxel_loc: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    halfwidth_sq: float,
    strides: np.ndarray,
    capacity: int,
    *,
    distance_dtype: Any = F64,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """Single-writer fill into ``capacity``-sized buffers.

    Returns the buffers and the entry count, or ``-1`` as the count when the
    capacity is too small; nothing is written past ``capacity``.
    """

    _require_numba()
    loc, lo, hi, st = _prepare(voxel_loc, lower, upper, strides)
    out_samples = np.empty(int(capacity), dtype=I64)
    out_voxels = np.empty(int(capacity), dtype=I64)
    out_distances = np.empty(int(capacity), dtype=distance_dtype)
    count = _fill_sequential(
        loc,
        lo,
        hi,
        st,
        float(halfwidth_sq),
        out_samples,
        out_voxels,
        out_distances,
    )
    return out_samples, out_voxels, out_distances, int(count)


_GRIDDING_WARMED = False


def warmup_gridding_kernels() -> None:
    """Trigger Numba compilation for the gridding kernels."""

    global _GRIDDING_WARMED
    if _GRIDDING_WARMED or not NUMBA_GRIDDING_AVAILABLE:
        return

    voxel_loc = np.asarray([[1.5, 1.0], [0.25, 2.0]], dtype=F64)
    lower = np.asarray([[1, 0], [0, 1]], dtype=I64)
    upper = np.asarray([[2, 2], [1, 2]], dtype=I64)
    strides = np.asarray([1, 3], dtype=I64)
    counts = count_entries_numba(voxel_loc, lower, upper, 1.0, strides)
    fill_entries_numba(voxel_loc, lower, upper, 1.0, strides, counts)
    fill_sequential_numba(voxel_loc, lower, upper, 1.0, strides, int(counts.sum()))
    _GRIDDING_WARMED = True


__all__ = [
    "NUMBA_GRIDDING_AVAILABLE",
    "count_entries_numba",
    "fill_entries_numba",
    "fill_sequential_numba",
    "warmup_gridding_kernels",
]
