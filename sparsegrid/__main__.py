#!/usr/bin/env python
"""Quick-start guide for sparsegrid library usage.

Run with: python -m sparsegrid

This module intentionally avoids importing sparsegrid internals to provide
a fast, clean startup for displaying help text.
"""

from __future__ import annotations

QUICKSTART = """\
================================================================================
                               SPARSEGRID
   Sparse (sample, voxel, squared distance) enumeration for convolution gridding
================================================================================

INSTALLATION
------------
    pip install -e .            # numpy, numba, typer
    pip install -e ".[test]"    # + pytest

BASIC USAGE
-----------
    import numpy as np
    from sparsegrid import SparseGridder

    # Normalised coordinates: grid centre = 0, one unit = one grid extent
    coords = np.random.uniform(-0.5, 0.5, size=(10000, 2))

    gridder = SparseGridder(kernel_width=3.0, output_dims=(128, 128))
    entries = gridder.distances(coords)

    entries.sample_indices   # which sample
    entries.voxel_indices    # linear voxel index (dimension 0 fastest)
    entries.distances        # squared distance in voxel units (<= (width/2)**2)

    # Voxel-major CSR view for assembling a sparse matrix
    groups = entries.group_by_voxel()

CAPACITY
--------
    # Fail fast instead of overrunning a fixed-size output
    entries = gridder.distances(coords, capacity=50_000)   # CapacityExceededError

    # Policies: exact (count then fill), box, reference, grow
    from sparsegrid import Runtime
    gridder = SparseGridder(3.0, (128, 128), runtime=Runtime(capacity_policy="box"))

ENGINES
-------
    Runtime(enable_numba=True)      # compiled two-pass engine, parallel fill
    Runtime(enable_numba=False)     # reference recursive enumerator

ENVIRONMENT
-----------
    SPARSEGRID_ENABLE_NUMBA, SPARSEGRID_PRECISION, SPARSEGRID_CAPACITY_POLICY,
    SPARSEGRID_INDEX_BASE, SPARSEGRID_ENABLE_DIAGNOSTICS, SPARSEGRID_LOG_LEVEL

COMMAND LINE
------------
    python -m cli.gridding --samples 4096 --dimension 3 --grid 64 --kernel-width 4
    python -m cli.gridding --coords traj.npy --grid 256 --grid 256 --output out.npz

================================================================================
"""


def main() -> None:
    """Print quick-start guide."""
    print(QUICKSTART)


if __name__ == "__main__":
    main()
