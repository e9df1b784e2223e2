import numpy as np
import pytest
from numpy.random import default_rng

import sparsegrid
from sparsegrid import (
    CapacityExceededError,
    InvalidCoordinatesError,
    InvalidKernelError,
    InvalidShapeError,
    Runtime,
    SparseGridder,
    sparse_distances,
)

from tests.utils.datasets import as_triples, uniform_coords


def test_gridder_boundary_scenario():
    gridder = SparseGridder(kernel_width=2.0, output_dims=(8,))

    entries = gridder.distances([0.0])

    assert as_triples(entries) == [(0, 3, 1.0), (0, 4, 0.0), (0, 5, 1.0)]


def test_gridder_validates_at_construction():
    with pytest.raises(InvalidShapeError):
        SparseGridder(kernel_width=2.0, output_dims=())
    with pytest.raises(InvalidShapeError):
        SparseGridder(kernel_width=2.0, output_dims=(4, 0))
    with pytest.raises(InvalidKernelError):
        SparseGridder(kernel_width=0.0, output_dims=(4, 4))
    with pytest.raises(ValueError):
        SparseGridder(kernel_width=2.0, output_dims=(4,), coords_layout="rows")  # type: ignore[arg-type]


def test_gridder_rejects_bad_coordinates():
    gridder = SparseGridder(kernel_width=2.0, output_dims=(8, 8))

    with pytest.raises(InvalidShapeError):
        gridder.distances(np.zeros((4, 3)))
    with pytest.raises(InvalidShapeError):
        gridder.distances(np.zeros(5))
    with pytest.raises(InvalidCoordinatesError):
        gridder.distances(np.zeros((2, 2, 2)))
    with pytest.raises(InvalidCoordinatesError):
        gridder.distances(0.0)
    with pytest.raises(InvalidCoordinatesError):
        gridder.distances([[0.0, np.nan]])
    with pytest.raises(InvalidCoordinatesError):
        gridder.distances([["a", "b"]])


def test_single_sample_vector_and_dims_layout():
    coords = uniform_coords(default_rng(5), 6, 2)
    points = SparseGridder(kernel_width=3.0, output_dims=(10, 12))
    columns = SparseGridder(kernel_width=3.0, output_dims=(10, 12), coords_layout="dims")

    assert as_triples(points.distances(coords)) == as_triples(columns.distances(coords.T))
    assert as_triples(points.distances(coords[0])) == as_triples(points.distances(coords[:1]))


def test_one_dimensional_vector_is_many_samples():
    gridder = SparseGridder(kernel_width=2.0, output_dims=(16,))

    entries = gridder.distances([0.0, 0.25])

    assert entries.num_samples == 2
    np.testing.assert_array_equal(entries.per_sample_counts(), [3, 3])


def test_empty_coordinates_are_accepted():
    gridder = SparseGridder(kernel_width=2.0, output_dims=(8, 8))

    entries = gridder.distances(np.zeros((0, 2)))

    assert len(entries) == 0
    assert entries.num_samples == 0
    assert len(gridder.distances([])) == 0


def test_one_based_runtime_shifts_indices():
    coords = uniform_coords(default_rng(2), 5, 3)
    zero = SparseGridder(3.0, (8, 8, 8)).distances(coords)
    one = SparseGridder(3.0, (8, 8, 8), runtime=Runtime(index_base=1)).distances(coords)

    np.testing.assert_array_equal(one.sample_indices, zero.sample_indices + 1)
    np.testing.assert_array_equal(one.voxel_indices, zero.voxel_indices + 1)
    np.testing.assert_array_equal(one.distances, zero.distances)
    assert one.voxel_indices.min() >= 1
    assert one.voxel_indices.max() <= 8 * 8 * 8


def test_count_and_capacity_bound():
    coords = uniform_coords(default_rng(4), 9, 2)
    gridder = SparseGridder(kernel_width=2.5, output_dims=(20, 20))

    counts = gridder.count(coords)
    entries = gridder.distances(coords)

    np.testing.assert_array_equal(counts, entries.per_sample_counts())
    assert gridder.capacity_bound(9) == 9 * 5


def test_explicit_capacity_is_checked():
    coords = uniform_coords(default_rng(8), 10, 2)
    gridder = SparseGridder(kernel_width=3.0, output_dims=(16, 16))
    required = int(gridder.count(coords).sum())

    with pytest.raises(CapacityExceededError) as excinfo:
        gridder.distances(coords, capacity=required - 1)
    assert excinfo.value.required == required
    assert len(gridder.distances(coords, capacity=required)) == required


def test_runtime_precision_reaches_output():
    gridder = SparseGridder(2.0, (8, 8), runtime=Runtime(precision="float32"))

    assert gridder.distances(np.zeros((1, 2))).distances.dtype == np.float32


def test_functional_entry_point_matches_gridder():
    coords = uniform_coords(default_rng(12), 7, 3)

    direct = sparse_distances(coords, 3.0, (9, 9, 9), runtime=Runtime(capacity_policy="box"))
    via_gridder = SparseGridder(3.0, (9, 9, 9)).distances(coords)

    assert as_triples(direct) == as_triples(via_gridder)


def test_package_exports_version():
    assert isinstance(sparsegrid.__version__, str)
    assert "SparseGridder" in sparsegrid.__all__
