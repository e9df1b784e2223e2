from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator

from sparsegrid import config as sg_config

try:  # pragma: no cover - unavailable on Windows
    import resource
except ModuleNotFoundError:  # pragma: no cover - platform dependent
    resource = None  # type: ignore


def _max_rss_bytes() -> int:
    if resource is None:
        return 0
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is reported in KiB on Linux and bytes on macOS.
    scale = 1 if sys.platform == "darwin" else 1024
    return int(usage.ru_maxrss) * scale


def _cpu_times() -> tuple[float, float]:
    times = os.times()
    return float(times.user), float(times.system)


def _format_ms(value: float | None) -> str:
    return "NA" if value is None else f"{value:.3f}"


@dataclass
class OperationMetrics:
    """Resource counters and free-form metadata for a logged operation.

    Resource fields stay ``None`` when polling is disabled and print as ``NA``.
    """

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    wall_ms: float = 0.0
    cpu_user_ms: float | None = None
    cpu_system_ms: float | None = None
    rss_delta: int | None = None

    def add_metadata(self, **values: Any) -> None:
        self.metadata.update(values)

    def format(self) -> str:
        parts = [
            f"op={self.name}",
            f"wall_ms={self.wall_ms:.3f}",
            f"cpu_user_ms={_format_ms(self.cpu_user_ms)}",
            f"cpu_system_ms={_format_ms(self.cpu_system_ms)}",
            f"rss_delta={'NA' if self.rss_delta is None else self.rss_delta}",
        ]
        for key, value in self.metadata.items():
            if isinstance(value, float):
                parts.append(f"{key}={value:.3f}")
            else:
                parts.append(f"{key}={value}")
        return " ".join(parts)


@contextmanager
def log_operation(logger: logging.Logger, name: str) -> Iterator[OperationMetrics]:
    """Time the wrapped block and log a single ``op=<name>`` summary line.

    With diagnostics disabled the cpu/rss polling is skipped and those
    fields are reported as ``NA``; wall time and metadata are still logged.
    """

    poll = sg_config.runtime_config().enable_diagnostics
    metrics = OperationMetrics(name=name)
    if poll:
        rss_start = _max_rss_bytes()
        user_start, system_start = _cpu_times()
    wall_start = time.perf_counter()
    try:
        yield metrics
    finally:
        metrics.wall_ms = (time.perf_counter() - wall_start) * 1e3
        if poll:
            user_end, system_end = _cpu_times()
            metrics.cpu_user_ms = (user_end - user_start) * 1e3
            metrics.cpu_system_ms = (system_end - system_start) * 1e3
            metrics.rss_delta = _max_rss_bytes() - rss_start
        logger.info(metrics.format())


__all__ = ["OperationMetrics", "log_operation"]
