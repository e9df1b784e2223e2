from __future__ import annotations

import pytest

from sparsegrid import config as sg_config

_ENV_KEYS = (
    "SPARSEGRID_ENABLE_NUMBA",
    "SPARSEGRID_PRECISION",
    "SPARSEGRID_CAPACITY_POLICY",
    "SPARSEGRID_INDEX_BASE",
    "SPARSEGRID_ENABLE_DIAGNOSTICS",
    "SPARSEGRID_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    sg_config.reset_runtime_config_cache()
    yield
    sg_config.reset_runtime_config_cache()
