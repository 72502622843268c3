"""Configuration loading and validation for sysrates."""

from __future__ import annotations

import os
from dataclasses import MISSING, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

DISK_SOURCES = ("auto", "procfs", "psutil")


@dataclass
class SamplerConfig:
    """Rate sampling settings."""

    min_interval_ms: float = 200.0
    sector_size: int = 512
    collector_timeout_seconds: float = 5.0
    disk_source: str = "auto"
    proc_root: str = "/proc"
    exclude_devices: list[str] = field(default_factory=lambda: ["loop", "ram"])


@dataclass
class WatchConfig:
    """Periodic sampling loop settings."""

    enabled: bool = True
    interval_seconds: float = 2.0
    cpu: bool = True
    disks: bool = True
    filesystem: bool = True


@dataclass
class OtelExporterConfig:
    """OpenTelemetry exporter settings."""

    endpoint: str = "http://localhost:4318"
    service_name: str = "sysrates"
    headers: dict[str, str] = field(default_factory=dict)
    export_interval_ms: int = 10000


@dataclass
class SysratesConfig:
    """Top-level sysrates configuration."""

    mode: str = "local"
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    otel: OtelExporterConfig = field(default_factory=OtelExporterConfig)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using the SYSRATES_ prefix."""
    env_map = {
        "SYSRATES_MODE": ("mode",),
        "SYSRATES_MIN_INTERVAL_MS": ("sampler", "min_interval_ms"),
        "SYSRATES_COLLECTOR_TIMEOUT": ("sampler", "collector_timeout_seconds"),
        "SYSRATES_DISK_SOURCE": ("sampler", "disk_source"),
        "SYSRATES_PROC_ROOT": ("sampler", "proc_root"),
        "SYSRATES_WATCH_INTERVAL": ("watch", "interval_seconds"),
        "SYSRATES_OTEL_ENDPOINT": ("otel", "endpoint"),
        "SYSRATES_OTEL_SERVICE_NAME": ("otel", "service_name"),
    }
    numeric = {"min_interval_ms", "collector_timeout_seconds", "interval_seconds"}
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            final_key = path[-1]
            if final_key in numeric:
                try:
                    obj[final_key] = float(value)
                except ValueError as exc:
                    raise ConfigurationError(f"{env_key} must be a number, got {value!r}") from exc
            else:
                obj[final_key] = value
    return data


def _coerce(cls: type, key: str, value: Any) -> Any:
    """Convert *value* to the type of the field default, or raise ConfigurationError."""
    f = cls.__dataclass_fields__[key]
    default = f.default if f.default is not MISSING else f.default_factory()
    expected = type(default)
    try:
        if expected is bool:
            if not isinstance(value, bool):
                raise TypeError(value)
            return value
        if expected in (int, float):
            if isinstance(value, bool):
                raise TypeError(value)
            return expected(value)
        if expected is str:
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                raise TypeError(value)
            return str(value)
        if not isinstance(value, expected):
            raise TypeError(value)
        return value
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"{cls.__name__}.{key} must be {expected.__name__}, got {value!r}"
        ) from exc


def _section(cls: type, data: Any) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{cls.__name__} section must be a mapping")
    return cls(**{k: _coerce(cls, k, v) for k, v in data.items() if k in cls.__dataclass_fields__})


def _dict_to_config(data: dict[str, Any]) -> SysratesConfig:
    """Convert a raw dictionary to a SysratesConfig dataclass."""
    return SysratesConfig(
        mode=data.get("mode", "local"),
        sampler=_section(SamplerConfig, data.get("sampler")),
        watch=_section(WatchConfig, data.get("watch")),
        otel=_section(OtelExporterConfig, data.get("otel")),
    )


def validate_config(cfg: SysratesConfig) -> SysratesConfig:
    """Raise :class:`ConfigurationError` on values the sampler cannot use."""
    if cfg.mode not in ("local", "online"):
        raise ConfigurationError(f"mode must be 'local' or 'online', got {cfg.mode!r}")
    if cfg.sampler.min_interval_ms < 0:
        raise ConfigurationError("sampler.min_interval_ms must not be negative")
    if cfg.sampler.sector_size <= 0:
        raise ConfigurationError("sampler.sector_size must be positive")
    if cfg.sampler.collector_timeout_seconds <= 0:
        raise ConfigurationError("sampler.collector_timeout_seconds must be positive")
    if cfg.sampler.disk_source not in DISK_SOURCES:
        raise ConfigurationError(
            f"sampler.disk_source must be one of {', '.join(DISK_SOURCES)}, got {cfg.sampler.disk_source!r}"
        )
    if cfg.watch.interval_seconds <= 0:
        raise ConfigurationError("watch.interval_seconds must be positive")
    return cfg


def load_config(path: str | Path | None = None) -> SysratesConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``sysrates.yaml`` in the current directory if *path* is None.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("sysrates.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            try:
                loaded = yaml.safe_load(fh)
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return validate_config(_dict_to_config(data))
