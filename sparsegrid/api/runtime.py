from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from sparsegrid import config as sg_config

_ATTR_TO_FIELD = {
    "enable_numba": "enable_numba",
    "precision": "precision",
    "capacity_policy": "capacity_policy",
    "index_base": "index_base",
    "diagnostics": "enable_diagnostics",
    "log_level": "log_level",
}


@dataclass(frozen=True)
class Runtime:
    """Optional overrides layered on top of the ``SPARSEGRID_*`` environment."""

    enable_numba: bool | None = None
    precision: str | None = None
    capacity_policy: str | None = None
    index_base: int | None = None
    diagnostics: bool | None = None
    log_level: str | None = None

    def overrides(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for attr, field in _ATTR_TO_FIELD.items():
            value = getattr(self, attr)
            if value is not None:
                payload[field] = value
        return payload

    def to_config(self, base: sg_config.RuntimeConfig | None = None) -> sg_config.RuntimeConfig:
        base_config = base or sg_config.RuntimeConfig.from_env()
        return base_config.with_overrides(**self.overrides())

    def activate(self) -> sg_config.RuntimeConfig:
        """Install this runtime as the active configuration and return it."""

        return sg_config.configure_runtime(self.to_config())

    def describe(self) -> Dict[str, Any]:
        config = self.to_config()
        return {
            "enable_numba": config.enable_numba,
            "precision": config.precision,
            "capacity_policy": config.capacity_policy,
            "index_base": config.index_base,
            "enable_diagnostics": config.enable_diagnostics,
            "log_level": config.log_level,
        }


__all__ = ["Runtime"]
