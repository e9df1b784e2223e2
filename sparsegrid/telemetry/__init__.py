from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from .schemas import GRIDDING_RUN_FIELDS, GRIDDING_RUN_SCHEMA, GRIDDING_RUN_SCHEMA_ID


def generate_run_id(prefix: str = "sparsegrid") -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:8]}"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonlWriter:
    """Append one JSON object per line to ``path``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding="utf-8")

    def write(self, record: Mapping[str, Any]) -> None:
        self._handle.write(json.dumps(dict(record), sort_keys=True) + "\n")
        self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> "JsonlWriter":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = [
    "GRIDDING_RUN_FIELDS",
    "GRIDDING_RUN_SCHEMA",
    "GRIDDING_RUN_SCHEMA_ID",
    "JsonlWriter",
    "generate_run_id",
    "utc_timestamp",
]
