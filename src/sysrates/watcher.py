"""Periodic sampling loop that feeds computed rates to sinks."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .config import WatchConfig
from .exporter.base import MetricSample
from .query import SystemSampler

logger = logging.getLogger(__name__)

Sink = Callable[[list[MetricSample]], None]


def load_samples(sampler: SystemSampler, now: float) -> list[MetricSample]:
    load = sampler.current_load()
    samples = [
        MetricSample("system.cpu.load_percent", load.current_load, "%", now, {"cpu": "total"},
                     "CPU busy percentage over the last window"),
        MetricSample("system.cpu.user_percent", load.current_load_user, "%", now, {"cpu": "total"},
                     "CPU user percentage over the last window"),
        MetricSample("system.cpu.system_percent", load.current_load_system, "%", now, {"cpu": "total"},
                     "CPU system percentage over the last window"),
        MetricSample("system.cpu.avg_load", load.avg_load, "1", now, {},
                     "Highest load average per core"),
    ]
    for idx, core in enumerate(load.cpus):
        samples.append(MetricSample(
            "system.cpu.load_percent", core.load, "%", now, {"cpu": str(idx)},
            f"CPU core {idx} busy percentage",
        ))
    return samples


def disk_samples(sampler: SystemSampler, now: float) -> list[MetricSample]:
    samples: list[MetricSample] = []
    for disk in sampler.disks_io():
        labels = {"device": disk.name}
        samples.extend([
            MetricSample("system.disk.read_bytes_rate", disk.rx_sec, "bytes/s", now, labels,
                         f"Read rate on {disk.name}"),
            MetricSample("system.disk.write_bytes_rate", disk.wx_sec, "bytes/s", now, labels,
                         f"Write rate on {disk.name}"),
            MetricSample("system.disk.read_ops_rate", disk.r_io_sec, "1/s", now, labels,
                         f"Read operations per second on {disk.name}"),
            MetricSample("system.disk.write_ops_rate", disk.w_io_sec, "1/s", now, labels,
                         f"Write operations per second on {disk.name}"),
        ])
    return samples


def fs_samples(sampler: SystemSampler, now: float) -> list[MetricSample]:
    stats = sampler.fs_stats()
    if stats is None:
        return []
    return [
        MetricSample("system.fs.read_bytes_rate", stats.rx_sec, "bytes/s", now, {},
                     "Filesystem read rate"),
        MetricSample("system.fs.write_bytes_rate", stats.wx_sec, "bytes/s", now, {},
                     "Filesystem write rate"),
        MetricSample("system.fs.total_bytes_rate", stats.tx_sec, "bytes/s", now, {},
                     "Filesystem read+write rate"),
    ]


class SamplingLoop:
    """Calls the query functions on an interval and hands the results to sinks.

    Instantiate it with a :class:`SystemSampler` and a :class:`WatchConfig`,
    register one or more sinks via :meth:`add_sink`, then call
    :meth:`start` / :meth:`stop`.
    """

    def __init__(self, sampler: SystemSampler, config: WatchConfig) -> None:
        self._sampler = sampler
        self._config = config
        self._sinks: list[Sink] = []
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self._families: list[tuple[str, Callable[[SystemSampler, float], list[MetricSample]]]] = []
        if config.cpu:
            self._families.append(("cpu", load_samples))
        if config.disks:
            self._families.append(("disks", disk_samples))
        if config.filesystem:
            self._families.append(("filesystem", fs_samples))

    def add_sink(self, sink: Sink) -> None:
        """Register a callback to receive collected samples."""
        self._sinks.append(sink)

    def collect_once(self) -> list[MetricSample]:
        """Query every enabled family once and return the gauges."""
        now = time.time()
        all_samples: list[MetricSample] = []
        for name, fn in self._families:
            try:
                all_samples.extend(fn(self._sampler, now))
            except Exception:
                logger.exception("Sampling %s failed", name)
        return all_samples

    def _run(self) -> None:
        """Background thread loop."""
        while not self._stop_event.is_set():
            samples = self.collect_once()
            for sink in self._sinks:
                try:
                    sink(samples)
                except Exception:
                    logger.exception("Sink failed")
            self._stop_event.wait(self._config.interval_seconds)

    def start(self) -> None:
        """Start sampling in the background."""
        if not self._config.enabled:
            return
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info("SamplingLoop started (interval=%.1fs)", self._config.interval_seconds)

    def stop(self) -> None:
        """Stop background sampling."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("SamplingLoop stopped")
