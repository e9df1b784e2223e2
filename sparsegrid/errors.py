"""Exception hierarchy raised at the gridding call boundary."""

from __future__ import annotations


class SparseGridError(ValueError):
    """Base class for rejected gridding inputs."""


class InvalidShapeError(SparseGridError):
    """Grid shape has no dimensions, a non-positive extent, or mismatches the coordinates."""


class InvalidKernelError(SparseGridError):
    """Kernel width is non-positive or not finite."""


class InvalidCoordinatesError(SparseGridError):
    """Sample coordinates have the wrong rank or contain non-finite values."""


class CapacityExceededError(RuntimeError):
    """The output accumulator cannot hold every qualifying triple.

    ``required`` is the exact number of entries when it is known and a lower
    bound otherwise (the fill stops at the first triple that does not fit).
    """

    def __init__(self, capacity: int, required: int, *, exact: bool = False) -> None:
        self.capacity = int(capacity)
        self.required = int(required)
        self.exact = bool(exact)
        qualifier = "" if exact else "at least "
        super().__init__(
            f"Sparse output capacity {self.capacity} exceeded: "
            f"{qualifier}{self.required} entries required."
        )


__all__ = [
    "SparseGridError",
    "InvalidShapeError",
    "InvalidKernelError",
    "InvalidCoordinatesError",
    "CapacityExceededError",
]
