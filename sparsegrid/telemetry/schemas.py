from __future__ import annotations

from typing import Dict, Tuple

GRIDDING_RUN_SCHEMA_ID = "sparsegrid.gridding_run.v1"
GRIDDING_RUN_FIELDS: Tuple[str, ...] = (
    "schema_id",
    "run_id",
    "timestamp",
    "samples",
    "ndims",
    "output_dims",
    "kernel_width",
    "entries",
    "capacity_policy",
    "engine",
    "index_base",
    "elapsed_seconds",
)
GRIDDING_RUN_SCHEMA: Dict[str, object] = {
    "id": GRIDDING_RUN_SCHEMA_ID,
    "description": "Per-invocation summary emitted by the gridding CLI.",
    "required": GRIDDING_RUN_FIELDS,
}

__all__ = [
    "GRIDDING_RUN_SCHEMA",
    "GRIDDING_RUN_SCHEMA_ID",
    "GRIDDING_RUN_FIELDS",
]
