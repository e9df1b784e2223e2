from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

_LOGGER = logging.getLogger("sparsegrid")

_SUPPORTED_PRECISION = {"float32", "float64"}
_CAPACITY_POLICIES = {"exact", "box", "reference", "grow"}
_INDEX_BASES = {0, 1}
_DEFAULT_CAPACITY_POLICY = "exact"
_DEFAULT_NUMBA_THREADING_LAYER = "workqueue"


def _ensure_env(var: str, value: str) -> None:
    if os.getenv(var) is None:
        os.environ[var] = value


def _configure_threading_defaults() -> None:
    """Set threading defaults for the compiled kernels unless the user overrides them."""

    threads = os.getenv("NUMBA_NUM_THREADS")
    if threads is None:
        count = os.cpu_count() or 1
        os.environ["NUMBA_NUM_THREADS"] = str(count)
    _ensure_env("NUMBA_THREADING_LAYER", _DEFAULT_NUMBA_THREADING_LAYER)


_configure_threading_defaults()


def _bool_from_env(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    if value == "":
        return default
    raise ValueError(f"Invalid boolean value '{value}'")


def _parse_optional_int(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value '{raw}'") from exc


def _normalise_precision(value: str | None) -> str:
    if value is None:
        return "float64"
    value = value.strip().lower()
    if value not in _SUPPORTED_PRECISION:
        raise ValueError(f"Unsupported precision '{value}'. Expected one of {_SUPPORTED_PRECISION}.")
    return value


def _parse_capacity_policy(value: str | None) -> str:
    if value is None:
        return _DEFAULT_CAPACITY_POLICY
    policy = value.strip().lower()
    if policy not in _CAPACITY_POLICIES:
        raise ValueError(
            f"Unsupported capacity policy '{policy}'. Expected one of {_CAPACITY_POLICIES}."
        )
    return policy


def _parse_index_base(raw: str | int | None) -> int:
    if raw is None:
        return 0
    value = raw if isinstance(raw, int) else _parse_optional_int(raw)
    if value is None:
        return 0
    if value not in _INDEX_BASES:
        raise ValueError(f"Unsupported index base '{value}'. Expected 0 or 1.")
    return value


@dataclass(frozen=True)
class RuntimeConfig:
    enable_numba: bool
    precision: str
    capacity_policy: str
    index_base: int
    enable_diagnostics: bool
    log_level: str

    @property
    def distance_dtype(self) -> str:
        return self.precision

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        enable_numba = _bool_from_env(os.getenv("SPARSEGRID_ENABLE_NUMBA"), default=False)
        precision = _normalise_precision(os.getenv("SPARSEGRID_PRECISION"))
        capacity_policy = _parse_capacity_policy(os.getenv("SPARSEGRID_CAPACITY_POLICY"))
        index_base = _parse_index_base(os.getenv("SPARSEGRID_INDEX_BASE"))
        enable_diagnostics = _bool_from_env(
            os.getenv("SPARSEGRID_ENABLE_DIAGNOSTICS"), default=True
        )
        log_level = os.getenv("SPARSEGRID_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        return cls(
            enable_numba=enable_numba,
            precision=precision,
            capacity_policy=capacity_policy,
            index_base=index_base,
            enable_diagnostics=enable_diagnostics,
            log_level=log_level,
        )

    def with_overrides(self, **overrides: Any) -> "RuntimeConfig":
        """Return a copy with validated overrides applied (``None`` values are ignored)."""

        values: Dict[str, Any] = {
            "enable_numba": self.enable_numba,
            "precision": self.precision,
            "capacity_policy": self.capacity_policy,
            "index_base": self.index_base,
            "enable_diagnostics": self.enable_diagnostics,
            "log_level": self.log_level,
        }
        for key, value in overrides.items():
            if key not in values:
                raise ValueError(f"Unknown runtime field '{key}'.")
            if value is None:
                continue
            if key == "precision":
                value = _normalise_precision(value)
            elif key == "capacity_policy":
                value = _parse_capacity_policy(value)
            elif key == "index_base":
                value = _parse_index_base(value)
            elif key == "log_level":
                value = str(value).strip().upper()
            else:
                value = bool(value)
            values[key] = value
        return RuntimeConfig(**values)


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("sparsegrid")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)


_CONFIG_CACHE: Optional[RuntimeConfig] = None


def runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, reading the environment on first use."""

    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        config = RuntimeConfig.from_env()
        _configure_logging(config.log_level)
        _CONFIG_CACHE = config
    return _CONFIG_CACHE


def configure_runtime(config: RuntimeConfig) -> RuntimeConfig:
    """Force the active runtime to use ``config`` instead of env defaults."""

    global _CONFIG_CACHE
    _configure_logging(config.log_level)
    _CONFIG_CACHE = config
    return config


def reset_runtime_config_cache() -> None:
    """Clear the cached runtime configuration (used in tests)."""

    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def describe_runtime() -> Dict[str, Any]:
    """Return a serialisable view of the active runtime configuration."""

    config = runtime_config()
    return {
        "enable_numba": config.enable_numba,
        "precision": config.precision,
        "capacity_policy": config.capacity_policy,
        "index_base": config.index_base,
        "enable_diagnostics": config.enable_diagnostics,
        "log_level": config.log_level,
        "numba_threads": os.environ.get("NUMBA_NUM_THREADS", "auto"),
    }


__all__ = [
    "RuntimeConfig",
    "runtime_config",
    "configure_runtime",
    "reset_runtime_config_cache",
    "describe_runtime",
]
