from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import numpy as np

from sparsegrid import config as sg_config
from sparsegrid.algo.bounds import (
    SampleBounds,
    box_capacity,
    compute_sample_bounds,
    reference_capacity,
)
from sparsegrid.algo.enumerate import count_entries, fill_entries
from sparsegrid.algo._enumerate_numba import (
    NUMBA_GRIDDING_AVAILABLE,
    count_entries_numba,
    fill_entries_numba,
    fill_sequential_numba,
)
from sparsegrid.core.buffers import (
    SparseDistanceEntries,
    TripletAccumulator,
    entries_from_accumulator,
)
from sparsegrid.core.grid import GridGeometry, KernelSupport
from sparsegrid.diagnostics import OperationMetrics, log_operation
from sparsegrid.errors import CapacityExceededError
from sparsegrid.logging import get_logger

LOGGER = get_logger("algo.gridding")

CAPACITY_POLICIES = ("exact", "box", "reference", "grow")


@dataclass(frozen=True)
class CapacityPlan:
    """How much output space a pass reserves and whether it may grow."""

    policy: str
    capacity: int
    growable: bool
    counts: np.ndarray | None = None


@dataclass(frozen=True)
class GriddingTimings:
    bounds_seconds: float
    count_seconds: float
    fill_seconds: float


def _requested_numba(use_numba: bool | None) -> bool:
    runtime = sg_config.runtime_config()
    return runtime.enable_numba if use_numba is None else bool(use_numba)


def active_engine(use_numba: bool | None = None) -> str:
    """Name of the engine a gridding call would run: ``"numba"`` or ``"reference"``."""

    if _requested_numba(use_numba) and NUMBA_GRIDDING_AVAILABLE:
        return "numba"
    return "reference"


def _resolve_engine(use_numba: bool | None) -> bool:
    requested = _requested_numba(use_numba)
    if requested and not NUMBA_GRIDDING_AVAILABLE:
        LOGGER.warning(
            "Numba gridding requested but `numba` is not installed; using the reference enumerator."
        )
        return False
    return requested


def _count(bounds: SampleBounds, kernel: KernelSupport, strides: np.ndarray, use_numba: bool) -> np.ndarray:
    counter = count_entries_numba if use_numba else count_entries
    return counter(bounds.voxel_loc, bounds.lower, bounds.upper, kernel.halfwidth_sq, strides)


def plan_capacity(
    bounds: SampleBounds,
    kernel: KernelSupport,
    geometry: GridGeometry,
    *,
    policy: str,
    capacity: int | None = None,
    use_numba: bool = False,
) -> CapacityPlan:
    """Resolve the output capacity for one pass.

    An explicit ``capacity`` always wins and is enforced strictly. Otherwise:
    ``exact`` counts first and allocates exactly, ``box`` reserves the summed
    search-box volumes, ``reference`` reserves the legacy truncated bound
    from :func:`reference_capacity` and ``grow`` starts there and doubles on
    demand.
    """

    if capacity is not None:
        capacity = int(capacity)
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}.")
        return CapacityPlan(policy="explicit", capacity=capacity, growable=False)

    if policy == "exact":
        counts = _count(bounds, kernel, geometry.strides_array(), use_numba)
        return CapacityPlan(
            policy=policy,
            capacity=int(counts.sum()),
            growable=False,
            counts=counts,
        )
    if policy == "box":
        return CapacityPlan(policy=policy, capacity=box_capacity(bounds), growable=False)
    reference = reference_capacity(bounds.num_samples, kernel.width, geometry.ndims)
    if policy == "reference":
        return CapacityPlan(policy=policy, capacity=reference, growable=False)
    if policy == "grow":
        return CapacityPlan(policy=policy, capacity=reference, growable=True)
    raise ValueError(
        f"Unsupported capacity policy '{policy}'. Expected one of {CAPACITY_POLICIES}."
    )


def _capacity_error(
    plan: CapacityPlan,
    bounds: SampleBounds,
    kernel: KernelSupport,
    strides: np.ndarray,
    use_numba: bool,
) -> CapacityExceededError:
    required = int(_count(bounds, kernel, strides, use_numba).sum())
    return CapacityExceededError(plan.capacity, required, exact=True)


def _trim(array: np.ndarray, count: int) -> np.ndarray:
    if array.shape[0] == count:
        return array
    return array[:count].copy()


def _fill_numba(
    plan: CapacityPlan,
    bounds: SampleBounds,
    kernel: KernelSupport,
    geometry: GridGeometry,
    distance_dtype: np.dtype,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    strides = geometry.strides_array()
    counts = plan.counts
    if counts is None and plan.growable:
        counts = count_entries_numba(
            bounds.voxel_loc, bounds.lower, bounds.upper, kernel.halfwidth_sq, strides
        )
    if counts is not None:
        return fill_entries_numba(
            bounds.voxel_loc,
            bounds.lower,
            bounds.upper,
            kernel.halfwidth_sq,
            strides,
            counts,
            distance_dtype=distance_dtype,
        )
    samples, voxels, distances, count = fill_sequential_numba(
        bounds.voxel_loc,
        bounds.lower,
        bounds.upper,
        kernel.halfwidth_sq,
        strides,
        plan.capacity,
        distance_dtype=distance_dtype,
    )
    if count < 0:
        raise _capacity_error(plan, bounds, kernel, strides, True)
    return _trim(samples, count), _trim(voxels, count), _trim(distances, count)


def _fill_reference(
    plan: CapacityPlan,
    bounds: SampleBounds,
    kernel: KernelSupport,
    geometry: GridGeometry,
    distance_dtype: np.dtype,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    strides = geometry.strides_array()
    accumulator = TripletAccumulator(
        plan.capacity,
        distance_dtype=distance_dtype,
        growable=plan.growable,
    )
    try:
        fill_entries(
            bounds.voxel_loc,
            bounds.lower,
            bounds.upper,
            kernel.halfwidth_sq,
            strides,
            accumulator,
        )
    except CapacityExceededError as exc:
        raise _capacity_error(plan, bounds, kernel, strides, False) from exc
    entries = entries_from_accumulator(
        accumulator,
        num_samples=bounds.num_samples,
        num_voxels=geometry.num_voxels,
    )
    return entries.as_tuple()


def sparse_gridding_distance(
    coords: Any,
    geometry: GridGeometry,
    kernel: KernelSupport,
    *,
    capacity: int | None = None,
    capacity_policy: str | None = None,
    use_numba: bool | None = None,
    distance_dtype: Any = None,
) -> SparseDistanceEntries:
    """Enumerate ``(sample, voxel, distance_sq)`` for every voxel within kernel support.

    ``coords`` is an already-validated ``(npts, ndims)`` array of normalised
    coordinates. Entries come out sample by sample in increasing index
    order; within a sample, dimension ``ndims - 1`` varies slowest.
    Indices are zero-based.
    """

    with log_operation(LOGGER, "sparse_gridding") as op_log:
        return _sparse_gridding_impl(
            op_log,
            coords,
            geometry,
            kernel,
            capacity=capacity,
            capacity_policy=capacity_policy,
            use_numba=use_numba,
            distance_dtype=distance_dtype,
        )


def _sparse_gridding_impl(
    op_log: OperationMetrics,
    coords: Any,
    geometry: GridGeometry,
    kernel: KernelSupport,
    *,
    capacity: int | None,
    capacity_policy: str | None,
    use_numba: bool | None,
    distance_dtype: Any,
) -> SparseDistanceEntries:
    runtime = sg_config.runtime_config()
    policy = capacity_policy or runtime.capacity_policy
    engine_numba = _resolve_engine(use_numba)
    dtype = np.dtype(distance_dtype or runtime.precision)

    LOGGER.debug(
        "grid dims=%s halfwidth=%s strides=%s kernel_width=%g halfwidth_sq=%g",
        geometry.output_dims,
        geometry.halfwidth,
        geometry.strides,
        kernel.width,
        kernel.halfwidth_sq,
    )

    bounds_start = time.perf_counter()
    bounds = compute_sample_bounds(coords, geometry, kernel)
    bounds_seconds = time.perf_counter() - bounds_start

    count_start = time.perf_counter()
    plan = plan_capacity(
        bounds,
        kernel,
        geometry,
        policy=policy,
        capacity=capacity,
        use_numba=engine_numba,
    )
    count_seconds = time.perf_counter() - count_start

    fill_start = time.perf_counter()
    filler = _fill_numba if engine_numba else _fill_reference
    samples, voxels, distances = filler(plan, bounds, kernel, geometry, dtype)
    fill_seconds = time.perf_counter() - fill_start

    timings = GriddingTimings(
        bounds_seconds=bounds_seconds,
        count_seconds=count_seconds,
        fill_seconds=fill_seconds,
    )
    entries = SparseDistanceEntries(
        sample_indices=samples,
        voxel_indices=voxels,
        distances=distances,
        num_samples=bounds.num_samples,
        num_voxels=geometry.num_voxels,
    )

    op_log.add_metadata(
        samples=bounds.num_samples,
        ndims=geometry.ndims,
        entries=len(entries),
        capacity=plan.capacity,
        policy=plan.policy,
        engine="numba" if engine_numba else "reference",
        empty_samples=int(np.count_nonzero(bounds.is_empty())) if bounds.num_samples else 0,
        bounds_ms=timings.bounds_seconds * 1e3,
        count_ms=timings.count_seconds * 1e3,
        fill_ms=timings.fill_seconds * 1e3,
    )
    return entries


def count_sparse_entries(
    coords: Any,
    geometry: GridGeometry,
    kernel: KernelSupport,
    *,
    use_numba: bool | None = None,
) -> np.ndarray:
    """Per-sample number of entries :func:`sparse_gridding_distance` would emit."""

    bounds = compute_sample_bounds(coords, geometry, kernel)
    return _count(bounds, kernel, geometry.strides_array(), _resolve_engine(use_numba))


__all__ = [
    "CAPACITY_POLICIES",
    "CapacityPlan",
    "active_engine",
    "GriddingTimings",
    "plan_capacity",
    "sparse_gridding_distance",
    "count_sparse_entries",
]
