"""Public query functions: current CPU load, disk I/O and filesystem rates.

Each query asks a collector for fresh counters, diffs them against the
sample store, and shapes the result. Nothing runs in the background; a query
triggers at most one collector call.

Usage::

    sampler = SystemSampler()
    sampler.current_load()          # first call: all zeros (baseline)
    time.sleep(1)
    load = sampler.current_load()   # load over the last second
    print(load.current_load, [c.load for c in load.cpus])
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .collector.base import BaseCounterCollector, Clock
from .collector.cpu import CpuCounterCollector, CpuSpeed, boot_load, current_speed, load_average
from .collector.disk import ProcDiskstatsCollector, PsutilDiskCollector
from .collector.filesystem import FilesystemCounterCollector, fs_entity_id
from .config import SamplerConfig
from .errors import CollectionCancelled, CollectionError, CollectionTimeout
from .platform import CPU, DISK, FILESYSTEM, PlatformFlags, get_platform_flags, supports
from .sampler.aggregator import (
    DiskIOSnapshot,
    FsStatsSnapshot,
    LoadSnapshot,
    aggregate_cpu,
    aggregate_disk,
    aggregate_disk_totals,
    aggregate_fs,
)
from .sampler.base import RateSnapshot, RawSample
from .sampler.engine import RateEngine
from .sampler.store import SampleStore

logger = logging.getLogger(__name__)

_CANCEL_POLL_SECONDS = 0.05


@dataclass
class QueryOptions:
    """Per-call options.

    ``platform`` overrides the detected platform for the support checks.
    ``timeout_seconds`` bounds the collector call (defaults to the sampler
    configuration). Setting ``cancel_event`` aborts a running collection.
    ``devices`` restricts disk queries to the named devices.
    """

    platform: str | None = None
    timeout_seconds: float | None = None
    cancel_event: threading.Event | None = None
    devices: list[str] | None = None


def _default_disk_collector(config: SamplerConfig, clock: Clock | None) -> BaseCounterCollector:
    exclude = tuple(config.exclude_devices)
    if config.disk_source == "psutil":
        return PsutilDiskCollector(exclude=exclude, clock=clock)
    procfs = ProcDiskstatsCollector(proc_root=config.proc_root, exclude=exclude, clock=clock)
    if config.disk_source == "procfs" or procfs.available():
        return procfs
    return PsutilDiskCollector(exclude=exclude, clock=clock)


class SystemSampler:
    """Owns the sample store and collectors used by the query functions.

    Construct one per process (or use :func:`get_default_sampler`) so that
    successive calls diff against each other.
    """

    def __init__(
        self,
        config: SamplerConfig | None = None,
        *,
        store: SampleStore | None = None,
        cpu_collector: BaseCounterCollector | None = None,
        disk_collector: BaseCounterCollector | None = None,
        fs_collector: BaseCounterCollector | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or SamplerConfig()
        self.engine = RateEngine(store, min_interval_ms=self._config.min_interval_ms)
        self._cpu = cpu_collector or CpuCounterCollector(clock)
        self._disks = disk_collector or _default_disk_collector(self._config, clock)
        self._fs = fs_collector or FilesystemCounterCollector(self._disks)
        # one single-worker pool per collector, so a hung collector only stalls its own family
        self._executors: dict[int, concurrent.futures.ThreadPoolExecutor] = {}
        self._pending: dict[tuple[int, tuple[str, ...] | None], concurrent.futures.Future] = {}
        self._pool_lock = threading.Lock()
        self.collection_failures = 0

    @property
    def store(self) -> SampleStore:
        return self.engine.store

    @property
    def config(self) -> SamplerConfig:
        return self._config

    # ------------------------------------------------------------------
    # collection
    # ------------------------------------------------------------------

    def _executor_for(self, collector: BaseCounterCollector) -> concurrent.futures.ThreadPoolExecutor:
        key = id(collector)
        executor = self._executors.get(key)
        if executor is None:
            executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix=f"sysrates-{collector.name}",
            )
            self._executors[key] = executor
        return executor

    def _submit(self, collector: BaseCounterCollector, devices: list[str] | None) -> concurrent.futures.Future:
        """Start a collection, or join the one still running for the same collector and devices."""
        key = (id(collector), tuple(sorted(devices)) if devices is not None else None)
        with self._pool_lock:
            future = self._pending.get(key)
            if future is not None and not future.done():
                logger.debug("%s collection still running; waiting on it", collector.name)
                return future
            future = self._executor_for(collector).submit(collector.collect, devices)
            self._pending[key] = future

        def _forget(done: concurrent.futures.Future) -> None:
            with self._pool_lock:
                if self._pending.get(key) is done:
                    del self._pending[key]

        future.add_done_callback(_forget)
        return future

    def _collect(self, collector: BaseCounterCollector, options: QueryOptions) -> list[RawSample]:
        """Run *collector* on its worker thread, honouring timeout and cancellation.

        A collector that outlives the timeout keeps running in the background;
        later calls join it instead of queueing behind it.
        """
        timeout = options.timeout_seconds
        if timeout is None:
            timeout = self._config.collector_timeout_seconds
        cancel = options.cancel_event
        if cancel is not None and cancel.is_set():
            raise CollectionCancelled(f"{collector.name} collection cancelled")

        future = self._submit(collector, options.devices)
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CollectionTimeout(f"{collector.name} collector timed out after {timeout:.2f}s")
            wait_for = min(remaining, _CANCEL_POLL_SECONDS) if cancel is not None else remaining
            done, _ = concurrent.futures.wait([future], timeout=wait_for)
            if done:
                return future.result()
            if cancel is not None and cancel.is_set():
                raise CollectionCancelled(f"{collector.name} collection cancelled")

    def _observe(
        self,
        prefix: str,
        collector: BaseCounterCollector,
        options: QueryOptions,
        keep: Callable[[RateSnapshot], bool] | None = None,
    ) -> list[RateSnapshot]:
        try:
            samples = self._collect(collector, options)
        except CollectionError as exc:
            self.collection_failures += 1
            cached = self.engine.last_snapshots(prefix)
            if keep is not None:
                cached = [s for s in cached if keep(s)]
            logger.warning(
                "%s collection failed (%s); returning %d cached snapshot(s)",
                collector.name,
                exc,
                len(cached),
            )
            return cached
        return self.engine.observe(samples)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def supports(self, family: str, platform: str | None = None) -> bool:
        """Whether *family* (``cpu``, ``disk``, ``filesystem``) is available on *platform*."""
        return supports(family, get_platform_flags(platform))

    def _flags(self, options: QueryOptions) -> PlatformFlags:
        return get_platform_flags(options.platform)

    def _observe_disks(self, options: QueryOptions) -> list[RateSnapshot]:
        devices = options.devices
        return self._observe(
            "disk:",
            self._disks,
            options,
            keep=lambda s: devices is None or s.name in devices,
        )

    def current_load(self, options: QueryOptions | None = None) -> LoadSnapshot:
        """Overall and per-core CPU load since the previous call."""
        options = options or QueryOptions()
        snapshots = self._observe("cpu:", self._cpu, options)
        return aggregate_cpu(snapshots, avg_load=load_average())

    def full_load(self) -> float:
        """CPU busy percentage since boot."""
        try:
            return boot_load()
        except CollectionError as exc:
            logger.warning("Full load unavailable: %s", exc)
            return 0.0

    def cpu_current_speed(self, options: QueryOptions | None = None) -> CpuSpeed:
        """Current clock speed per core in GHz."""
        options = options or QueryOptions()
        return current_speed(linux=self._flags(options).linux, proc_root=self._config.proc_root)

    def disks_io(self, options: QueryOptions | None = None) -> list[DiskIOSnapshot]:
        """Per-device I/O rates; empty on platforms without a disk collector."""
        options = options or QueryOptions()
        if not supports(DISK, self._flags(options)):
            logger.debug("disks_io unsupported on %s", self._flags(options).platform)
            return []
        return [aggregate_disk(s, self._config.sector_size) for s in self._observe_disks(options)]

    def disks_io_totals(self, options: QueryOptions | None = None) -> DiskIOSnapshot | None:
        """Throughput of all devices together; None where disks are unsupported."""
        options = options or QueryOptions()
        if not supports(DISK, self._flags(options)):
            return None
        return aggregate_disk_totals(self._observe_disks(options), self._config.sector_size)

    def fs_stats(self, options: QueryOptions | None = None) -> FsStatsSnapshot | None:
        """Filesystem read/write rates; None on platforms without a collector.

        A ``devices`` filter is tracked as a separate aggregate, so switching
        filters starts a new baseline instead of diffing unrelated sums.
        """
        options = options or QueryOptions()
        if not supports(FILESYSTEM, self._flags(options)):
            logger.debug("fs_stats unsupported on %s", self._flags(options).platform)
            return None
        entity = fs_entity_id(options.devices)
        snapshots = self._observe("fs:", self._fs, options, keep=lambda s: s.entity_id == entity)
        matching = [s for s in snapshots if s.entity_id == entity]
        return aggregate_fs(matching[0] if matching else None)

    def close(self) -> None:
        with self._pool_lock:
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.shutdown(wait=False)

    def __enter__(self) -> SystemSampler:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


_default_sampler: SystemSampler | None = None
_default_lock = threading.Lock()


def get_default_sampler() -> SystemSampler:
    """Process-wide sampler used by the module-level query functions."""
    global _default_sampler
    with _default_lock:
        if _default_sampler is None:
            _default_sampler = SystemSampler()
        return _default_sampler


def current_load(options: QueryOptions | None = None) -> LoadSnapshot:
    return get_default_sampler().current_load(options)


def full_load() -> float:
    return get_default_sampler().full_load()


def cpu_current_speed(options: QueryOptions | None = None) -> CpuSpeed:
    return get_default_sampler().cpu_current_speed(options)


def disks_io(options: QueryOptions | None = None) -> list[DiskIOSnapshot]:
    return get_default_sampler().disks_io(options)


def disks_io_totals(options: QueryOptions | None = None) -> DiskIOSnapshot | None:
    return get_default_sampler().disks_io_totals(options)


def fs_stats(options: QueryOptions | None = None) -> FsStatsSnapshot | None:
    return get_default_sampler().fs_stats(options)


__all__ = [
    "CPU",
    "DISK",
    "FILESYSTEM",
    "QueryOptions",
    "SystemSampler",
    "cpu_current_speed",
    "current_load",
    "disks_io",
    "disks_io_totals",
    "fs_stats",
    "full_load",
    "get_default_sampler",
]
