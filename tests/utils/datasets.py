from __future__ import annotations

import itertools
from typing import List, Sequence, Tuple

import numpy as np
from numpy.random import Generator, default_rng

Array = np.ndarray


def _ensure_rng(rng: Generator | None) -> Generator:
    return rng or default_rng()


def uniform_coords(
    rng: Generator | None,
    count: int,
    dimension: int,
    *,
    spread: float = 0.5,
) -> Array:
    """Sample `count` normalised coordinates uniformly from `[-spread, spread)`."""

    generator = _ensure_rng(rng)
    if count <= 0 or dimension <= 0:
        return np.zeros((max(count, 0), max(dimension, 0)), dtype=np.float64)
    return generator.uniform(-spread, spread, size=(count, dimension))


def edge_coords(dimension: int) -> Array:
    """Samples sitting on, just inside and just outside the grid faces."""

    values = (-0.5, -0.49, 0.49, 0.5, -0.6, 0.6)
    rows = [[value] * dimension for value in values]
    return np.asarray(rows, dtype=np.float64)


def brute_force_entries(
    coords: Array,
    kernel_width: float,
    output_dims: Sequence[int],
) -> List[Tuple[int, int, float]]:
    """Enumerate qualifying triples by visiting every voxel of the grid."""

    dims = tuple(int(d) for d in output_dims)
    ndims = len(dims)
    halfwidth_sq = (kernel_width * 0.5) ** 2
    offsets = np.asarray([int(np.ceil(d * 0.5)) for d in dims], dtype=np.float64)
    strides = [1]
    for dim in dims[:-1]:
        strides.append(strides[-1] * dim)

    coords_arr = np.asarray(coords, dtype=np.float64).reshape(-1, ndims)
    triples: List[Tuple[int, int, float]] = []
    for p, coord in enumerate(coords_arr):
        loc = coord * np.asarray(dims, dtype=np.float64) + offsets
        for voxel in itertools.product(*(range(d) for d in dims)):
            total = float(sum((voxel[d] - loc[d]) ** 2 for d in range(ndims)))
            if total <= halfwidth_sq:
                linear = sum(voxel[d] * strides[d] for d in range(ndims))
                triples.append((p, linear, total))
    return triples


def as_triples(entries) -> List[Tuple[int, int, float]]:
    return [
        (int(s), int(v), float(d))
        for s, v, d in zip(entries.sample_indices, entries.voxel_indices, entries.distances)
    ]
