from __future__ import annotations

import os
from typing import Any, Dict, Mapping

from sparsegrid.api import Runtime


def _get_arg(source: Any, name: str, default: Any = None) -> Any:
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def runtime_from_args(args: Any) -> Runtime:
    """Translate CLI options (namespace, dataclass or mapping) into runtime overrides."""

    return Runtime(
        enable_numba=_get_arg(args, "enable_numba"),
        precision=_get_arg(args, "precision"),
        capacity_policy=_get_arg(args, "capacity_policy"),
        index_base=_get_arg(args, "index_base"),
        diagnostics=_get_arg(args, "diagnostics"),
        log_level=_get_arg(args, "log_level"),
    )


def thread_env_snapshot() -> Dict[str, str]:
    return {"numba_threads": os.environ.get("NUMBA_NUM_THREADS", "auto")}


__all__ = ["runtime_from_args", "thread_env_snapshot"]
