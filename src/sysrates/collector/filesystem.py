"""Filesystem-wide read/write byte totals."""

from __future__ import annotations

from ..errors import CollectionError
from ..sampler.base import RawSample
from .base import BaseCounterCollector

FS_ENTITY = "fs:aggregate"


def fs_entity_id(devices: list[str] | None = None) -> str:
    """Entity id of the aggregate over *devices*; each device set is its own entity."""
    if not devices:
        return FS_ENTITY
    return f"{FS_ENTITY}:{','.join(sorted(set(devices)))}"


class FilesystemCounterCollector(BaseCounterCollector):
    """Sums the byte counters of a disk collector into one aggregate sample.

    Without a device filter the sample is ``fs:aggregate``; a filtered call
    produces ``fs:aggregate:<dev1>,<dev2>`` so that sums over different device
    sets are never diffed against each other.
    """

    def __init__(self, disks: BaseCounterCollector) -> None:
        super().__init__(None)
        self._disks = disks

    @property
    def name(self) -> str:
        return "filesystem"

    def collect(self, devices: list[str] | None = None) -> list[RawSample]:
        samples = self._disks.collect(devices)
        if not samples:
            raise CollectionError("no block devices to aggregate")
        return [RawSample(
            entity_id=fs_entity_id(devices),
            counters={
                "bytes_read": sum(s.counters.get("read_bytes", 0) for s in samples),
                "bytes_written": sum(s.counters.get("write_bytes", 0) for s in samples),
            },
            timestamp_ms=max(s.timestamp_ms for s in samples),
        )]
