from __future__ import annotations

import numpy as np
from numpy.random import Generator, default_rng

Array = np.ndarray


def _ensure_rng(rng: Generator | None) -> Generator:
    return rng or default_rng()


def uniform_coords(
    rng: Generator | None,
    count: int,
    dimension: int,
) -> Array:
    """Sample ``count`` normalised coordinates uniformly from ``[-0.5, 0.5)^dimension``."""

    generator = _ensure_rng(rng)
    if count <= 0 or dimension <= 0:
        return np.zeros((max(count, 0), max(dimension, 0)), dtype=np.float64)
    return generator.uniform(-0.5, 0.5, size=(count, dimension))


def radial_coords(
    rng: Generator | None,
    count: int,
    dimension: int,
    *,
    readout: int = 64,
) -> Array:
    """Centre-out radial spokes with random directions, ``readout`` samples per spoke."""

    generator = _ensure_rng(rng)
    if count <= 0 or dimension <= 0:
        return np.zeros((max(count, 0), max(dimension, 0)), dtype=np.float64)
    readout = max(1, min(int(readout), count))
    spokes = -(-count // readout)
    directions = generator.normal(size=(spokes, dimension))
    norms = np.linalg.norm(directions, axis=1, keepdims=True)
    directions = directions / np.maximum(norms, 1e-12)
    radii = np.linspace(0.0, 0.5, readout, endpoint=False)
    coords = directions[:, None, :] * radii[None, :, None]
    return coords.reshape(-1, dimension)[:count]


__all__ = ["uniform_coords", "radial_coords"]
