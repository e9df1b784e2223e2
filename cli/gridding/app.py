from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Tuple

import numpy as np
from numpy.random import default_rng
import typer
from typing_extensions import Annotated

from sparsegrid import config as sg_config
from sparsegrid.algo._enumerate_numba import warmup_gridding_kernels
from sparsegrid.algo.gridding import active_engine
from sparsegrid.api import SparseGridder
from sparsegrid.core.buffers import SparseDistanceEntries
from sparsegrid.errors import CapacityExceededError, SparseGridError
from sparsegrid.telemetry import (
    GRIDDING_RUN_SCHEMA_ID,
    JsonlWriter,
    generate_run_id,
    utc_timestamp,
)

from cli.runtime import runtime_from_args, thread_env_snapshot

from .samples import radial_coords, uniform_coords

EXIT_INPUT_ERROR = 2
EXIT_CAPACITY_ERROR = 3


@dataclass
class GriddingCLIOptions:
    coords: str | None = None
    coords_layout: str = "points"
    samples: int = 4_096
    dimension: int = 3
    trajectory: str = "uniform"
    readout: int = 64
    seed: int = 0
    grid: Tuple[int, ...] = (64,)
    kernel_width: float = 4.0
    capacity: int | None = None
    enable_numba: bool | None = None
    precision: str | None = None
    capacity_policy: str | None = None
    index_base: int | None = None
    diagnostics: bool | None = None
    log_level: str | None = None
    output: str | None = None
    log_file: str | None = None
    run_id: str | None = None


app = typer.Typer(
    add_completion=False,
    pretty_exceptions_enable=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Enumerate sparse (sample, voxel, squared distance) triples for convolution gridding.",
)

_INPUT_PANEL = "Samples"
_GRID_PANEL = "Grid & kernel"
_RUNTIME_PANEL = "Runtime controls"
_OUTPUT_PANEL = "Output & telemetry"


def _load_coords(opts: GriddingCLIOptions) -> np.ndarray:
    if opts.coords:
        return np.load(opts.coords, allow_pickle=False)
    rng = default_rng(opts.seed)
    if opts.trajectory == "radial":
        return radial_coords(rng, opts.samples, opts.dimension, readout=opts.readout)
    return uniform_coords(rng, opts.samples, opts.dimension)


def _resolve_grid(grid: Tuple[int, ...], ndims: int) -> Tuple[int, ...]:
    if len(grid) == 1 and ndims > 1:
        return tuple(grid) * ndims
    return tuple(grid)


def _coords_ndims(coords: np.ndarray, layout: str) -> int:
    if coords.ndim == 1:
        return 1
    return int(coords.shape[0] if layout == "dims" else coords.shape[-1])


def _write_output(path: str, entries: SparseDistanceEntries, gridder: SparseGridder) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        target,
        sample_indices=entries.sample_indices,
        voxel_indices=entries.voxel_indices,
        distances=entries.distances,
        output_dims=np.asarray(gridder.geometry.output_dims, dtype=np.int64),
        kernel_width=np.float64(gridder.kernel.width),
        index_base=np.int64(entries.index_base),
    )


def run_gridding(options: GriddingCLIOptions) -> SparseDistanceEntries:
    opts = options
    run_id = opts.run_id or generate_run_id()
    cli_runtime = runtime_from_args(opts)
    config = cli_runtime.activate()
    threads = thread_env_snapshot()
    engine = active_engine(config.enable_numba)
    print(
        f"[gridding] engine={engine} policy={config.capacity_policy} "
        f"precision={config.precision} numba_threads={threads['numba_threads']}"
    )

    coords = _load_coords(opts)
    ndims = _coords_ndims(coords, opts.coords_layout)
    gridder = SparseGridder(
        kernel_width=opts.kernel_width,
        output_dims=_resolve_grid(opts.grid, ndims),
        runtime=cli_runtime,
        coords_layout=opts.coords_layout,  # type: ignore[arg-type]
    )
    if engine == "numba":
        warmup_gridding_kernels()

    start = time.perf_counter()
    entries = gridder.distances(coords, capacity=opts.capacity)
    elapsed = time.perf_counter() - start

    per_sample = entries.per_sample_counts()
    mean_neighbours = float(per_sample.mean()) if per_sample.size else 0.0
    print(
        f"gridding | samples={entries.num_samples} dims={gridder.geometry.output_dims} "
        f"width={gridder.kernel.width:g} entries={len(entries)} "
        f"mean_per_sample={mean_neighbours:.2f} bound={gridder.capacity_bound(entries.num_samples)} "
        f"time={elapsed:.4f}s"
    )

    if opts.output:
        _write_output(opts.output, entries, gridder)
        print(f"[gridding] wrote {opts.output}")
    if opts.log_file:
        with JsonlWriter(opts.log_file) as writer:
            writer.write(
                {
                    "schema_id": GRIDDING_RUN_SCHEMA_ID,
                    "run_id": run_id,
                    "timestamp": utc_timestamp(),
                    "samples": entries.num_samples,
                    "ndims": gridder.ndims,
                    "output_dims": list(gridder.geometry.output_dims),
                    "kernel_width": gridder.kernel.width,
                    "entries": len(entries),
                    "capacity_policy": config.capacity_policy,
                    "engine": engine,
                    "index_base": entries.index_base,
                    "elapsed_seconds": elapsed,
                }
            )
    return entries


@app.callback(invoke_without_command=True)
def cli(
    ctx: typer.Context,
    coords: Annotated[
        Optional[Path],
        typer.Option(
            "--coords",
            exists=True,
            dir_okay=False,
            help="Load sample coordinates from a .npy file instead of generating them.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = None,
    coords_layout: Annotated[
        Literal["points", "dims"],
        typer.Option(
            "--coords-layout",
            help="Row convention of --coords: (npts, ndims) 'points' or (ndims, npts) 'dims'.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = "points",
    samples: Annotated[
        int,
        typer.Option(
            "--samples",
            help="Number of synthetic samples.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = 4_096,
    dimension: Annotated[
        int,
        typer.Option(
            "--dimension",
            help="Dimensionality of synthetic samples.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = 3,
    trajectory: Annotated[
        Literal["uniform", "radial"],
        typer.Option(
            "--trajectory",
            help="Synthetic sampling pattern.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = "uniform",
    readout: Annotated[
        int,
        typer.Option(
            "--readout",
            help="Samples per spoke for --trajectory radial.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = 64,
    seed: Annotated[
        int,
        typer.Option(
            "--seed",
            help="Random seed for synthetic samples.",
            rich_help_panel=_INPUT_PANEL,
        ),
    ] = 0,
    grid: Annotated[
        Optional[List[int]],
        typer.Option(
            "--grid",
            "-g",
            help="Grid extent per dimension (repeat per dimension, or once to broadcast).",
            rich_help_panel=_GRID_PANEL,
        ),
    ] = None,
    kernel_width: Annotated[
        float,
        typer.Option(
            "--kernel-width",
            "-w",
            help="Kernel support width in voxels.",
            rich_help_panel=_GRID_PANEL,
        ),
    ] = 4.0,
    capacity: Annotated[
        Optional[int],
        typer.Option(
            "--capacity",
            help="Fixed output capacity; the run fails instead of overflowing.",
            rich_help_panel=_GRID_PANEL,
        ),
    ] = None,
    enable_numba: Annotated[
        Optional[bool],
        typer.Option(
            "--enable-numba/--disable-numba",
            help="Force-enable or disable the compiled engine.",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    precision: Annotated[
        Optional[str],
        typer.Option(
            "--precision",
            help="Distance dtype (float32, float64).",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    capacity_policy: Annotated[
        Optional[str],
        typer.Option(
            "--capacity-policy",
            help="Output sizing policy (exact, box, reference, grow).",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    index_base: Annotated[
        Optional[int],
        typer.Option(
            "--index-base",
            help="0 for zero-based indices, 1 for one-based.",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    diagnostics: Annotated[
        Optional[bool],
        typer.Option(
            "--enable-diagnostics/--disable-diagnostics",
            help="Control resource polling + diagnostic logging.",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Override runtime log level.",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Write the triples to an .npz archive.",
            rich_help_panel=_OUTPUT_PANEL,
        ),
    ] = None,
    log_file: Annotated[
        Optional[Path],
        typer.Option(
            "--log-file",
            help="Append a JSONL run summary to this file.",
            rich_help_panel=_OUTPUT_PANEL,
        ),
    ] = None,
    run_id: Annotated[
        Optional[str],
        typer.Option(
            "--run-id",
            help="Optional run identifier propagated to telemetry records.",
            rich_help_panel=_OUTPUT_PANEL,
        ),
    ] = None,
) -> None:
    options = GriddingCLIOptions(
        coords=str(coords) if coords is not None else None,
        coords_layout=coords_layout,
        samples=samples,
        dimension=dimension,
        trajectory=trajectory,
        readout=readout,
        seed=seed,
        grid=tuple(grid) if grid else (64,),
        kernel_width=kernel_width,
        capacity=capacity,
        enable_numba=enable_numba,
        precision=precision,
        capacity_policy=capacity_policy,
        index_base=index_base,
        diagnostics=diagnostics,
        log_level=log_level,
        output=str(output) if output is not None else None,
        log_file=str(log_file) if log_file is not None else None,
        run_id=run_id,
    )
    ctx.obj = options
    if ctx.invoked_subcommand is not None:
        return
    try:
        run_gridding(options)
    except CapacityExceededError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CAPACITY_ERROR) from exc
    except (SparseGridError, ValueError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR) from exc
    finally:
        sg_config.reset_runtime_config_cache()


def main() -> None:
    app()


__all__ = ["GriddingCLIOptions", "run_gridding", "app", "main"]
