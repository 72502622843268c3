"""Block device I/O counter collectors."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import psutil

from ..errors import CollectionError
from ..sampler.base import RawSample
from .base import BaseCounterCollector, Clock

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = ("loop", "ram")
SECTOR_SIZE = 512


def _wanted(device: str, exclude: tuple[str, ...], devices: list[str] | None) -> bool:
    if devices is not None and device not in devices:
        return False
    return not any(part in device for part in exclude)


class PsutilDiskCollector(BaseCounterCollector):
    """Per-device counters from ``psutil.disk_io_counters(perdisk=True)``.

    Works on Linux, macOS and Windows. ``io_time_ms`` is psutil's
    ``busy_time`` where the platform reports it.
    """

    def __init__(self, exclude: tuple[str, ...] = DEFAULT_EXCLUDE, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._exclude = tuple(exclude)

    @property
    def name(self) -> str:
        return "disk"

    def collect(self, devices: list[str] | None = None) -> list[RawSample]:
        try:
            per_disk = psutil.disk_io_counters(perdisk=True, nowrap=False)
        except (OSError, RuntimeError, psutil.Error) as exc:
            raise CollectionError(f"cannot read disk counters: {exc}") from exc
        if per_disk is None:
            raise CollectionError("no disk counters available")

        now = self._clock()
        samples: list[RawSample] = []
        for device, io in sorted(per_disk.items()):
            if not _wanted(device, self._exclude, devices):
                continue
            samples.append(RawSample(
                entity_id=f"disk:{device}",
                counters=_psutil_counters(io),
                timestamp_ms=now,
            ))
        return samples


def _psutil_counters(io: Any) -> dict[str, int]:
    return {
        "reads": int(io.read_count),
        "writes": int(io.write_count),
        "read_bytes": int(io.read_bytes),
        "write_bytes": int(io.write_bytes),
        "read_time_ms": int(getattr(io, "read_time", 0)),
        "write_time_ms": int(getattr(io, "write_time", 0)),
        "io_time_ms": int(getattr(io, "busy_time", 0)),
        "weighted_io_time_ms": 0,
    }


def parse_diskstats(text: str) -> dict[str, dict[str, int]]:
    """Parse ``/proc/diskstats`` into per-device counters.

    Column layout (0-based): 2 device, 3 reads completed, 5 sectors read,
    6 ms reading, 7 writes completed, 9 sectors written, 10 ms writing,
    12 ms doing I/O, 13 weighted ms doing I/O. Lines with fewer than 14
    columns are skipped.
    """
    result: dict[str, dict[str, int]] = {}
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 14:
            continue
        try:
            sectors_read = int(fields[5])
            sectors_written = int(fields[9])
            result[fields[2]] = {
                "reads": int(fields[3]),
                "writes": int(fields[7]),
                "sectors_read": sectors_read,
                "sectors_written": sectors_written,
                "read_bytes": sectors_read * SECTOR_SIZE,
                "write_bytes": sectors_written * SECTOR_SIZE,
                "read_time_ms": int(fields[6]),
                "write_time_ms": int(fields[10]),
                "io_time_ms": int(fields[12]),
                "weighted_io_time_ms": int(fields[13]),
            }
        except ValueError:
            logger.debug("Skipping malformed diskstats line: %r", line)
            continue
    return result


class ProcDiskstatsCollector(BaseCounterCollector):
    """Per-device counters read from ``<proc_root>/diskstats`` (Linux)."""

    def __init__(
        self,
        proc_root: str = "/proc",
        exclude: tuple[str, ...] = DEFAULT_EXCLUDE,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock)
        self._path = Path(proc_root) / "diskstats"
        self._exclude = tuple(exclude)

    @property
    def name(self) -> str:
        return "diskstats"

    def available(self) -> bool:
        return self._path.exists()

    def collect(self, devices: list[str] | None = None) -> list[RawSample]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CollectionError(f"cannot read {self._path}: {exc}") from exc

        now = self._clock()
        return [
            RawSample(entity_id=f"disk:{device}", counters=counters, timestamp_ms=now)
            for device, counters in parse_diskstats(text).items()
            if _wanted(device, self._exclude, devices)
        ]
