"""Terminal rendering of rate snapshots using Rich."""

from __future__ import annotations

from .collector.cpu import CpuSpeed
from .exporter.base import MetricSample
from .sampler.aggregator import DiskIOSnapshot, FsStatsSnapshot, LoadSnapshot


def _fmt_bytes(val: float) -> str:
    if val >= 1_073_741_824:
        return f"{val / 1_073_741_824:.1f} GB"
    if val >= 1_048_576:
        return f"{val / 1_048_576:.1f} MB"
    return f"{val / 1024:.1f} KB"


def print_load(load: LoadSnapshot) -> None:
    """Overall and per-core CPU load table."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"CPU load (window {load.ms:.0f} ms, avg load {load.avg_load:.2f})")
    table.add_column("CPU", style="cyan", width=8)
    table.add_column("Load %", justify="right", width=8)
    table.add_column("User %", justify="right", width=8)
    table.add_column("System %", justify="right", width=9)
    table.add_column("Nice %", justify="right", width=8)
    table.add_column("Idle %", justify="right", width=8)
    table.add_column("IRQ %", justify="right", width=8)
    table.add_column("Steal %", justify="right", width=8)

    table.add_row(
        "[bold]all[/bold]",
        f"{load.current_load:.1f}",
        f"{load.current_load_user:.1f}",
        f"{load.current_load_system:.1f}",
        f"{load.current_load_nice:.1f}",
        f"{load.current_load_idle:.1f}",
        f"{load.current_load_irq:.1f}",
        f"{load.current_load_steal:.1f}",
    )
    for idx, core in enumerate(load.cpus):
        table.add_row(
            str(idx),
            f"{core.load:.1f}",
            f"{core.load_user:.1f}",
            f"{core.load_system:.1f}",
            f"{core.load_nice:.1f}",
            f"{core.load_idle:.1f}",
            f"{core.load_irq:.1f}",
            f"{core.load_steal:.1f}",
        )

    Console().print(table)


def print_disks(disks: list[DiskIOSnapshot], totals: DiskIOSnapshot | None = None) -> None:
    """Per-device I/O table, with an optional totals row."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title="Disk I/O")
    table.add_column("Device", style="cyan", width=14)
    table.add_column("Read/s", justify="right", width=12)
    table.add_column("Write/s", justify="right", width=12)
    table.add_column("rIO/s", justify="right", width=9)
    table.add_column("wIO/s", justify="right", width=9)
    table.add_column("Wait %", justify="right", width=8)
    table.add_column("Window", justify="right", width=10)

    rows = list(disks)
    if totals is not None:
        rows.append(totals)
    for disk in rows:
        name = f"[bold]{disk.name}[/bold]" if disk is totals else disk.name
        table.add_row(
            name,
            _fmt_bytes(disk.rx_sec),
            _fmt_bytes(disk.wx_sec),
            f"{disk.r_io_sec:.1f}",
            f"{disk.w_io_sec:.1f}",
            f"{disk.t_wait_percent:.1f}",
            f"{disk.ms:.0f} ms",
        )

    Console().print(table)


def print_fs(stats: FsStatsSnapshot | None) -> None:
    from rich.console import Console

    console = Console()
    if stats is None:
        console.print("Filesystem statistics are not supported on this platform.")
        return
    console.print(
        f"Filesystem: read {_fmt_bytes(stats.rx_sec)}/s, write {_fmt_bytes(stats.wx_sec)}/s, "
        f"total {_fmt_bytes(stats.tx_sec)}/s over {stats.ms:.0f} ms "
        f"(since boot: {_fmt_bytes(stats.rx)} read, {_fmt_bytes(stats.wx)} written)"
    )


def print_speed(speed: CpuSpeed) -> None:
    from rich.console import Console

    cores = ", ".join(f"{c:.2f}" for c in speed.cores) or "-"
    Console().print(
        f"CPU speed (GHz): min {speed.min:.2f}, max {speed.max:.2f}, avg {speed.avg:.2f}; cores: {cores}"
    )


def print_samples(samples: list[MetricSample]) -> None:
    """One line per gauge, for the watch command."""
    from rich.console import Console

    console = Console()
    for s in samples:
        labels = ",".join(f"{k}={v}" for k, v in s.labels.items())
        console.print(f"[cyan]{s.name}[/cyan]{{{labels}}} {s.value:.2f} {s.unit}")
