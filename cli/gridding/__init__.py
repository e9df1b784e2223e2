from __future__ import annotations

from .app import GriddingCLIOptions, main, run_gridding
from .samples import radial_coords, uniform_coords

__all__ = [
    "GriddingCLIOptions",
    "run_gridding",
    "main",
    "uniform_coords",
    "radial_coords",
]
