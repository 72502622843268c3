"""sysrates – turns monotonic OS counters into CPU, disk and filesystem rates."""

from __future__ import annotations

__version__ = "0.1.0"

from .query import (  # noqa: E402
    QueryOptions,
    SystemSampler,
    cpu_current_speed,
    current_load,
    disks_io,
    disks_io_totals,
    fs_stats,
    full_load,
    get_default_sampler,
)

__all__ = [
    "QueryOptions",
    "SystemSampler",
    "__version__",
    "cpu_current_speed",
    "current_load",
    "disks_io",
    "disks_io_totals",
    "fs_stats",
    "full_load",
    "get_default_sampler",
]
