"""Per-sample bounds, neighbourhood enumeration and the gridding driver."""

from .bounds import (
    SampleBounds,
    bounding_boxes,
    box_capacity,
    box_volumes,
    compute_sample_bounds,
    reference_capacity,
    voxel_locations,
)
from .enumerate import count_sample, enumerate_sample
from .gridding import (
    CAPACITY_POLICIES,
    CapacityPlan,
    GriddingTimings,
    active_engine,
    count_sparse_entries,
    plan_capacity,
    sparse_gridding_distance,
)

__all__ = [
    "SampleBounds",
    "bounding_boxes",
    "box_capacity",
    "box_volumes",
    "compute_sample_bounds",
    "reference_capacity",
    "voxel_locations",
    "count_sample",
    "enumerate_sample",
    "CAPACITY_POLICIES",
    "CapacityPlan",
    "GriddingTimings",
    "active_engine",
    "count_sparse_entries",
    "plan_capacity",
    "sparse_gridding_distance",
]
