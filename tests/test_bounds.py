import numpy as np
import pytest

from sparsegrid.algo.bounds import (
    bounding_boxes,
    box_capacity,
    box_volumes,
    compute_sample_bounds,
    reference_capacity,
    voxel_locations,
)
from sparsegrid.core.grid import GridGeometry, KernelSupport


def test_boundary_sample_box_matches_clamp_formula():
    geometry = GridGeometry.from_shape((8,))
    kernel = KernelSupport.from_width(2.0)

    bounds = compute_sample_bounds(np.asarray([[0.0]]), geometry, kernel)

    np.testing.assert_allclose(bounds.voxel_loc, [[4.0]])
    np.testing.assert_array_equal(bounds.lower, [[3]])
    np.testing.assert_array_equal(bounds.upper, [[5]])
    np.testing.assert_array_equal(bounds.volumes(), [3])


def test_edge_samples_clamp_without_negative_indices():
    geometry = GridGeometry.from_shape((4, 4))
    kernel = KernelSupport.from_width(3.0)
    coords = np.asarray([[-0.5, 0.45], [-0.55, 0.0]])

    bounds = compute_sample_bounds(coords, geometry, kernel)

    assert bounds.lower.min() >= 0
    assert np.all(bounds.upper <= 3)
    # Unclamped continuous location is kept.
    np.testing.assert_allclose(bounds.voxel_loc[1], [-0.2, 2.0])
    np.testing.assert_array_equal(bounds.lower[1], [0, 1])
    np.testing.assert_array_equal(bounds.upper[1], [1, 3])


def test_far_samples_produce_empty_boxes():
    geometry = GridGeometry.from_shape((6, 6))
    kernel = KernelSupport.from_width(2.0)
    coords = np.asarray([[0.0, 0.0], [5.0, 0.0], [0.0, -1e30]])

    bounds = compute_sample_bounds(coords, geometry, kernel)

    np.testing.assert_array_equal(bounds.is_empty(), [False, True, True])
    np.testing.assert_array_equal(bounds.volumes()[1:], [0, 0])


def test_small_width_between_voxels_is_empty():
    geometry = GridGeometry.from_shape((8,))
    kernel = KernelSupport.from_width(0.5)
    lower, upper = bounding_boxes(np.asarray([[3.5]]), kernel, geometry)

    assert lower[0, 0] > upper[0, 0]


def test_voxel_locations_rejects_wrong_shape():
    geometry = GridGeometry.from_shape((4, 4))
    with pytest.raises(ValueError):
        voxel_locations(np.zeros((3, 3)), geometry)


def test_box_volumes_handles_single_and_batched_boxes():
    assert int(box_volumes(np.asarray([0, 1]), np.asarray([2, 1]))) == 3
    np.testing.assert_array_equal(
        box_volumes(np.asarray([[0, 0], [2, 0]]), np.asarray([[1, 1], [1, 3]])),
        [4, 0],
    )


def test_reference_capacity_truncates_per_dimension():
    assert reference_capacity(10, 2.0, 3) == 80
    assert reference_capacity(1, 2.5, 1) == 2
    assert reference_capacity(1, 2.5, 2) == 5
    assert reference_capacity(10, 3.3, 3) == 290
    assert reference_capacity(0, 4.0, 3) == 0


def test_box_capacity_bounds_cubic_search():
    geometry = GridGeometry.from_shape((16, 16))
    kernel = KernelSupport.from_width(3.0)
    coords = np.asarray([[0.0, 0.0], [0.1, -0.1]])

    bounds = compute_sample_bounds(coords, geometry, kernel)

    assert box_capacity(bounds) == int(bounds.volumes().sum())
    assert box_capacity(compute_sample_bounds(np.zeros((0, 2)), geometry, kernel)) == 0
