"""Shape per-entity rate snapshots into CPU, disk and filesystem views.

Totals are always derived from summed deltas over a shared window, never
from averaging per-entity percentages or rates, so the overall figures stay
consistent with the per-entity breakdown.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from .base import RateSnapshot
from .calculator import per_second

CPU_BUSY_COUNTERS = ("user", "system", "nice", "irq", "steal", "guest")
CPU_COUNTERS = CPU_BUSY_COUNTERS + ("idle",)

DISK_COUNTERS = (
    "reads",
    "writes",
    "read_bytes",
    "write_bytes",
    "read_time_ms",
    "write_time_ms",
    "io_time_ms",
    "weighted_io_time_ms",
)

FS_COUNTERS = ("bytes_read", "bytes_written")

DEFAULT_SECTOR_SIZE = 512


def _percent(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100.0


def _entity_index(snapshot: RateSnapshot) -> tuple[int, str]:
    name = snapshot.name
    return (int(name), name) if name.isdigit() else (1 << 30, name)


# ---------------------------------------------------------------------------
# CPU
# ---------------------------------------------------------------------------

@dataclass
class CoreLoad:
    """Load of one core over the last window."""

    load: float = 0.0
    load_user: float = 0.0
    load_system: float = 0.0
    load_nice: float = 0.0
    load_idle: float = 0.0
    load_irq: float = 0.0
    load_steal: float = 0.0
    load_guest: float = 0.0
    raw_load: int = 0
    raw_load_user: int = 0
    raw_load_system: int = 0
    raw_load_nice: int = 0
    raw_load_idle: int = 0
    raw_load_irq: int = 0
    raw_load_steal: int = 0
    raw_load_guest: int = 0
    current_tick: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LoadSnapshot:
    """Overall and per-core CPU load."""

    avg_load: float = 0.0
    current_load: float = 0.0
    current_load_user: float = 0.0
    current_load_system: float = 0.0
    current_load_nice: float = 0.0
    current_load_idle: float = 0.0
    current_load_irq: float = 0.0
    current_load_steal: float = 0.0
    current_load_guest: float = 0.0
    raw_current_load: int = 0
    raw_current_load_user: int = 0
    raw_current_load_system: int = 0
    raw_current_load_nice: int = 0
    raw_current_load_idle: int = 0
    raw_current_load_irq: int = 0
    raw_current_load_steal: int = 0
    raw_current_load_guest: int = 0
    ms: float = 0.0
    cpus: list[CoreLoad] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def core_load(snapshot: RateSnapshot) -> CoreLoad:
    """Percentages of one core from its tick deltas."""
    d = {name: snapshot.delta(name) for name in CPU_COUNTERS}
    busy = sum(d[name] for name in CPU_BUSY_COUNTERS)
    tick = busy + d["idle"]
    return CoreLoad(
        load=_percent(busy, tick),
        load_user=_percent(d["user"], tick),
        load_system=_percent(d["system"], tick),
        load_nice=_percent(d["nice"], tick),
        load_idle=_percent(d["idle"], tick),
        load_irq=_percent(d["irq"], tick),
        load_steal=_percent(d["steal"], tick),
        load_guest=_percent(d["guest"], tick),
        raw_load=busy,
        raw_load_user=d["user"],
        raw_load_system=d["system"],
        raw_load_nice=d["nice"],
        raw_load_idle=d["idle"],
        raw_load_irq=d["irq"],
        raw_load_steal=d["steal"],
        raw_load_guest=d["guest"],
        current_tick=tick,
    )


def aggregate_cpu(snapshots: list[RateSnapshot], avg_load: float = 0.0) -> LoadSnapshot:
    """Combine per-core snapshots (``cpu:<n>``) into a :class:`LoadSnapshot`."""
    ordered = sorted(snapshots, key=_entity_index)
    cores = [core_load(s) for s in ordered]

    total = {name: 0 for name in CPU_COUNTERS}
    for snapshot in ordered:
        for name in CPU_COUNTERS:
            total[name] += snapshot.delta(name)
    busy = sum(total[name] for name in CPU_BUSY_COUNTERS)
    tick = busy + total["idle"]

    return LoadSnapshot(
        avg_load=avg_load,
        current_load=_percent(busy, tick),
        current_load_user=_percent(total["user"], tick),
        current_load_system=_percent(total["system"], tick),
        current_load_nice=_percent(total["nice"], tick),
        current_load_idle=_percent(total["idle"], tick),
        current_load_irq=_percent(total["irq"], tick),
        current_load_steal=_percent(total["steal"], tick),
        current_load_guest=_percent(total["guest"], tick),
        raw_current_load=busy,
        raw_current_load_user=total["user"],
        raw_current_load_system=total["system"],
        raw_current_load_nice=total["nice"],
        raw_current_load_idle=total["idle"],
        raw_current_load_irq=total["irq"],
        raw_current_load_steal=total["steal"],
        raw_current_load_guest=total["guest"],
        ms=max((s.elapsed_ms for s in ordered), default=0.0),
        cpus=cores,
    )


# ---------------------------------------------------------------------------
# Disks
# ---------------------------------------------------------------------------

@dataclass
class DiskIOSnapshot:
    """Cumulative totals and windowed rates of one block device."""

    name: str
    r_io: int = 0
    w_io: int = 0
    t_io: int = 0
    r_io_sec: float = 0.0
    w_io_sec: float = 0.0
    t_io_sec: float = 0.0
    rx: int = 0
    wx: int = 0
    tx: int = 0
    rx_sec: float = 0.0
    wx_sec: float = 0.0
    tx_sec: float = 0.0
    rx_sectors: float = 0.0
    wx_sectors: float = 0.0
    tx_sectors: float = 0.0
    r_wait_time: int = 0
    w_wait_time: int = 0
    t_wait_time: int = 0
    r_wait_percent: float = 0.0
    w_wait_percent: float = 0.0
    t_wait_percent: float = 0.0
    tms: int = 0
    qms: int = 0
    ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _disk_view(
    name: str,
    counters: dict[str, int],
    deltas: dict[str, int],
    elapsed_ms: float,
    sector_size: int,
) -> DiskIOSnapshot:
    c = {key: counters.get(key, 0) for key in DISK_COUNTERS}
    d = {key: deltas.get(key, 0) for key in DISK_COUNTERS}

    if "sectors_read" in counters or "sectors_written" in counters:
        rx_sectors: float = counters.get("sectors_read", 0)
        wx_sectors: float = counters.get("sectors_written", 0)
    else:
        rx_sectors = c["read_bytes"] / sector_size
        wx_sectors = c["write_bytes"] / sector_size

    r_io_sec = per_second(d["reads"], elapsed_ms)
    w_io_sec = per_second(d["writes"], elapsed_ms)
    rx_sec = per_second(d["read_bytes"], elapsed_ms)
    wx_sec = per_second(d["write_bytes"], elapsed_ms)

    return DiskIOSnapshot(
        name=name,
        r_io=c["reads"],
        w_io=c["writes"],
        t_io=c["reads"] + c["writes"],
        r_io_sec=r_io_sec,
        w_io_sec=w_io_sec,
        t_io_sec=r_io_sec + w_io_sec,
        rx=c["read_bytes"],
        wx=c["write_bytes"],
        tx=c["read_bytes"] + c["write_bytes"],
        rx_sec=rx_sec,
        wx_sec=wx_sec,
        tx_sec=rx_sec + wx_sec,
        rx_sectors=rx_sectors,
        wx_sectors=wx_sectors,
        tx_sectors=rx_sectors + wx_sectors,
        r_wait_time=c["read_time_ms"],
        w_wait_time=c["write_time_ms"],
        t_wait_time=c["read_time_ms"] + c["write_time_ms"],
        r_wait_percent=_percent(d["read_time_ms"], elapsed_ms),
        w_wait_percent=_percent(d["write_time_ms"], elapsed_ms),
        t_wait_percent=_percent(d["read_time_ms"] + d["write_time_ms"], elapsed_ms),
        tms=c["io_time_ms"],
        qms=c["weighted_io_time_ms"],
        ms=elapsed_ms,
    )


def aggregate_disk(snapshot: RateSnapshot, sector_size: int = DEFAULT_SECTOR_SIZE) -> DiskIOSnapshot:
    """Per-device view of one ``disk:<name>`` snapshot."""
    return _disk_view(
        snapshot.name,
        snapshot.counters,
        snapshot.delta_counters,
        snapshot.elapsed_ms,
        sector_size,
    )


def aggregate_disk_totals(
    snapshots: list[RateSnapshot],
    sector_size: int = DEFAULT_SECTOR_SIZE,
) -> DiskIOSnapshot:
    """Overall throughput of all devices, as a device named ``total``.

    Deltas are summed first; the rate window is the largest elapsed time of
    the devices that already had a baseline.
    """
    counters: dict[str, int] = {}
    deltas: dict[str, int] = {}
    for snapshot in snapshots:
        for key, value in snapshot.counters.items():
            counters[key] = counters.get(key, 0) + value
        for key, value in snapshot.delta_counters.items():
            deltas[key] = deltas.get(key, 0) + value
    elapsed_ms = max((s.elapsed_ms for s in snapshots if not s.cold_start), default=0.0)
    return _disk_view("total", counters, deltas, elapsed_ms, sector_size)


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------

@dataclass
class FsStatsSnapshot:
    """Bytes read/written by all filesystems and the rate over the last window."""

    rx: int = 0
    wx: int = 0
    tx: int = 0
    rx_sec: float = 0.0
    wx_sec: float = 0.0
    tx_sec: float = 0.0
    ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_fs(snapshot: RateSnapshot | None) -> FsStatsSnapshot:
    if snapshot is None:
        return FsStatsSnapshot()
    rx = snapshot.counters.get("bytes_read", 0)
    wx = snapshot.counters.get("bytes_written", 0)
    rx_sec = snapshot.rate("bytes_read")
    wx_sec = snapshot.rate("bytes_written")
    return FsStatsSnapshot(
        rx=rx,
        wx=wx,
        tx=rx + wx,
        rx_sec=rx_sec,
        wx_sec=wx_sec,
        tx_sec=rx_sec + wx_sec,
        ms=snapshot.elapsed_ms,
    )
