"""CPU tick collector and the stateless CPU queries."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import psutil

from ..errors import CollectionError
from ..sampler.base import RawSample
from .base import BaseCounterCollector

logger = logging.getLogger(__name__)

# psutil field -> counter name; fields a platform lacks count as 0
_CPU_FIELDS = {
    "user": "user",
    "nice": "nice",
    "system": "system",
    "idle": "idle",
    "irq": "irq",
    "steal": "steal",
    "guest": "guest",
}


def _to_ticks(times: Any) -> dict[str, int]:
    """psutil cpu times (seconds) to integer milliseconds."""
    return {
        counter: int(round(getattr(times, attr, 0.0) * 1000))
        for attr, counter in _CPU_FIELDS.items()
    }


class CpuCounterCollector(BaseCounterCollector):
    """Collects per-core CPU time counters (``cpu:<index>``)."""

    @property
    def name(self) -> str:
        return "cpu"

    def collect(self, devices: list[str] | None = None) -> list[RawSample]:
        try:
            per_cpu = psutil.cpu_times(percpu=True)
        except (OSError, RuntimeError, psutil.Error) as exc:
            raise CollectionError(f"cannot read cpu times: {exc}") from exc
        if not per_cpu:
            raise CollectionError("no per-cpu times reported")

        now = self._clock()
        return [
            RawSample(entity_id=f"cpu:{idx}", counters=_to_ticks(times), timestamp_ms=now)
            for idx, times in enumerate(per_cpu)
        ]


def load_average() -> float:
    """Highest of the 1/5/15 minute load averages per logical core."""
    try:
        loads = psutil.getloadavg()
    except (OSError, AttributeError) as exc:
        logger.debug("Load average unavailable: %s", exc)
        return 0.0
    cores = psutil.cpu_count() or 1
    return round(max(load / cores for load in loads), 2)


def boot_load() -> float:
    """CPU busy percentage since boot."""
    try:
        ticks = _to_ticks(psutil.cpu_times())
    except (OSError, RuntimeError, psutil.Error) as exc:
        raise CollectionError(f"cannot read cpu times: {exc}") from exc
    total = sum(ticks.values())
    if total <= 0:
        return 0.0
    return (total - ticks["idle"]) / total * 100.0


@dataclass
class CpuSpeed:
    """Current clock speed in GHz."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    cores: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _proc_cpuinfo_speeds(proc_root: str) -> list[float]:
    path = Path(proc_root) / "cpuinfo"
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return []
    speeds: list[float] = []
    for line in text.splitlines():
        if line.startswith("cpu MHz"):
            _, _, value = line.partition(":")
            try:
                mhz = float(value.strip())
            except ValueError:
                continue
            speeds.append(math.floor(mhz / 10) / 100)
    return speeds


def current_speed(linux: bool = False, proc_root: str = "/proc") -> CpuSpeed:
    """Per-core clock speed from psutil, falling back to /proc/cpuinfo on Linux."""
    try:
        freqs = psutil.cpu_freq(percpu=True) or []
    except (OSError, NotImplementedError, AttributeError, psutil.Error) as exc:
        logger.debug("cpu_freq unavailable: %s", exc)
        freqs = []
    speeds = [f.current / 1000.0 for f in freqs if f.current]

    if not speeds and linux:
        speeds = _proc_cpuinfo_speeds(proc_root)

    if not speeds:
        return CpuSpeed()

    return CpuSpeed(
        min=round(min(speeds), 2),
        max=round(max(speeds), 2),
        avg=round(sum(speeds) / len(speeds), 2),
        cores=[round(s, 2) for s in speeds],
    )
