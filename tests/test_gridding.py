import numpy as np
import pytest
from numpy.random import default_rng

from sparsegrid.algo.bounds import compute_sample_bounds
from sparsegrid.algo.gridding import (
    CAPACITY_POLICIES,
    count_sparse_entries,
    plan_capacity,
    sparse_gridding_distance,
)
from sparsegrid.core.grid import GridGeometry, KernelSupport
from sparsegrid.errors import CapacityExceededError

from tests.utils.datasets import as_triples, brute_force_entries, uniform_coords


def _setup(dims=(10, 9, 8), width=3.0, count=25, seed=0):
    geometry = GridGeometry.from_shape(dims)
    kernel = KernelSupport.from_width(width)
    coords = uniform_coords(default_rng(seed), count, len(dims))
    return coords, geometry, kernel


@pytest.mark.parametrize("policy", CAPACITY_POLICIES)
def test_policies_agree_on_output(policy):
    coords, geometry, kernel = _setup()

    baseline = sparse_gridding_distance(coords, geometry, kernel, capacity_policy="exact")
    if policy == "reference":
        # width**ndims undercounts the search volume for width 3 in 3-D.
        coords, geometry, kernel = _setup(width=2.0)
        baseline = sparse_gridding_distance(coords, geometry, kernel, capacity_policy="exact")
    result = sparse_gridding_distance(coords, geometry, kernel, capacity_policy=policy)

    assert as_triples(result) == as_triples(baseline)
    assert result.num_samples == coords.shape[0]
    assert result.num_voxels == geometry.num_voxels
    assert result.index_base == 0


def test_driver_matches_brute_force():
    coords, geometry, kernel = _setup(dims=(6, 7), width=3.4, count=30)

    result = sparse_gridding_distance(coords, geometry, kernel)
    expected = brute_force_entries(coords, kernel.width, geometry.output_dims)

    assert sorted((s, v) for s, v, _ in as_triples(result)) == sorted(
        (s, v) for s, v, _ in expected
    )


def test_plan_capacity_policies():
    coords, geometry, kernel = _setup()
    bounds = compute_sample_bounds(coords, geometry, kernel)

    exact = plan_capacity(bounds, kernel, geometry, policy="exact")
    box = plan_capacity(bounds, kernel, geometry, policy="box")
    reference = plan_capacity(bounds, kernel, geometry, policy="reference")
    grow = plan_capacity(bounds, kernel, geometry, policy="grow")
    explicit = plan_capacity(bounds, kernel, geometry, policy="exact", capacity=12)

    assert exact.counts is not None and exact.capacity == int(exact.counts.sum())
    assert box.capacity >= exact.capacity
    assert reference.capacity == 25 * 27 and not reference.growable
    assert grow.capacity == reference.capacity and grow.growable
    assert explicit.policy == "explicit" and explicit.capacity == 12
    with pytest.raises(ValueError):
        plan_capacity(bounds, kernel, geometry, policy="huge")
    with pytest.raises(ValueError):
        plan_capacity(bounds, kernel, geometry, policy="exact", capacity=-1)


def test_explicit_capacity_overflow_reports_required_count():
    coords, geometry, kernel = _setup()
    required = int(count_sparse_entries(coords, geometry, kernel).sum())

    with pytest.raises(CapacityExceededError) as excinfo:
        sparse_gridding_distance(coords, geometry, kernel, capacity=required - 1)

    assert excinfo.value.capacity == required - 1
    assert excinfo.value.required == required
    assert excinfo.value.exact is True


def test_explicit_capacity_that_fits_is_trimmed():
    coords, geometry, kernel = _setup()
    required = int(count_sparse_entries(coords, geometry, kernel).sum())

    result = sparse_gridding_distance(coords, geometry, kernel, capacity=required + 50)

    assert len(result) == required


def test_reference_policy_can_overflow_and_grow_recovers():
    # A voxel-centred sample reaches 5 voxels in 2-D but width**2 == 4.
    geometry = GridGeometry.from_shape((16, 16))
    kernel = KernelSupport.from_width(2.0)
    coords = np.zeros((1, 2))

    count = int(count_sparse_entries(coords, geometry, kernel).sum())
    assert count == 5
    with pytest.raises(CapacityExceededError) as excinfo:
        sparse_gridding_distance(coords, geometry, kernel, capacity_policy="reference")
    assert excinfo.value.capacity == 4
    assert excinfo.value.required == 5

    grown = sparse_gridding_distance(coords, geometry, kernel, capacity_policy="grow")
    assert len(grown) == count


def test_precision_controls_distance_dtype():
    coords, geometry, kernel = _setup()

    result = sparse_gridding_distance(coords, geometry, kernel, distance_dtype="float32")

    assert result.distances.dtype == np.float32
    assert result.sample_indices.dtype == np.int64


def test_no_samples_yield_empty_output():
    _, geometry, kernel = _setup()

    result = sparse_gridding_distance(np.zeros((0, 3)), geometry, kernel)

    assert len(result) == 0
    assert result.per_sample_counts().shape == (0,)


def test_numba_request_without_numba_falls_back(monkeypatch: pytest.MonkeyPatch, caplog):
    monkeypatch.setattr("sparsegrid.algo.gridding.NUMBA_GRIDDING_AVAILABLE", False)
    coords, geometry, kernel = _setup()

    with caplog.at_level("WARNING", logger="sparsegrid.algo.gridding"):
        result = sparse_gridding_distance(coords, geometry, kernel, use_numba=True)

    assert len(result) == int(count_sparse_entries(coords, geometry, kernel, use_numba=False).sum())
    assert any("using the reference enumerator" in record.message for record in caplog.records)


def test_reference_policy_uses_truncated_legacy_bound():
    geometry = GridGeometry.from_shape((16, 16))
    kernel = KernelSupport.from_width(2.5)
    bounds = compute_sample_bounds(np.zeros((3, 2)), geometry, kernel)

    plan = plan_capacity(bounds, kernel, geometry, policy="reference")

    assert plan.capacity == 3 * 5
