"""CLI interface for sysrates."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time
from typing import Any

from . import __version__
from .config import SysratesConfig, load_config
from .errors import ConfigurationError
from .query import QueryOptions, SystemSampler


def _options(args: argparse.Namespace) -> QueryOptions:
    return QueryOptions(
        platform=args.platform,
        timeout_seconds=args.timeout,
        devices=args.device or None,
    )


def _two_samples(sampler: SystemSampler, args: argparse.Namespace, query: str) -> Any:
    """Take a baseline, wait the window, and return the second reading."""
    fn = getattr(sampler, query)
    options = _options(args)
    fn(options)
    time.sleep(max(args.window, sampler.config.min_interval_ms / 1000.0))
    return fn(options)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _cmd_load(args: argparse.Namespace, cfg: SysratesConfig) -> None:
    """Print CPU load over a short window."""
    with SystemSampler(cfg.sampler) as sampler:
        load = _two_samples(sampler, args, "current_load")
    if args.json:
        _print_json(load.to_dict())
        return
    from .display import print_load
    print_load(load)


def _cmd_disks(args: argparse.Namespace, cfg: SysratesConfig) -> None:
    """Print per-device disk I/O rates over a short window."""
    with SystemSampler(cfg.sampler) as sampler:
        disks = _two_samples(sampler, args, "disks_io")
        totals = sampler.disks_io_totals(_options(args))
    if args.json:
        _print_json({
            "disks": [d.to_dict() for d in disks],
            "total": totals.to_dict() if totals is not None else None,
        })
        return
    from .display import print_disks
    print_disks(disks, totals)


def _cmd_fs(args: argparse.Namespace, cfg: SysratesConfig) -> None:
    """Print filesystem read/write rates over a short window."""
    with SystemSampler(cfg.sampler) as sampler:
        stats = _two_samples(sampler, args, "fs_stats")
    if args.json:
        _print_json(stats.to_dict() if stats is not None else None)
        return
    from .display import print_fs
    print_fs(stats)


def _cmd_speed(args: argparse.Namespace, cfg: SysratesConfig) -> None:
    """Print current CPU clock speeds."""
    with SystemSampler(cfg.sampler) as sampler:
        speed = sampler.cpu_current_speed(_options(args))
    if args.json:
        _print_json(speed.to_dict())
        return
    from .display import print_speed
    print_speed(speed)


def _cmd_watch(args: argparse.Namespace, cfg: SysratesConfig) -> None:
    """Sample continuously until interrupted."""
    from .display import print_samples
    from .watcher import SamplingLoop

    if args.interval is not None:
        cfg.watch.interval_seconds = args.interval

    exporters = []
    if cfg.mode == "online":
        from .exporter.otel import OtelExporter
        exporters.append(OtelExporter(cfg.otel))

    sampler = SystemSampler(cfg.sampler)
    loop = SamplingLoop(sampler, cfg.watch)
    if not args.quiet:
        loop.add_sink(print_samples)
    for exp in exporters:
        loop.add_sink(exp.export)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    loop.start()
    print(f"sysrates watching (mode={cfg.mode}, interval={cfg.watch.interval_seconds}s)")
    print("Press Ctrl+C to stop.\n")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        loop.stop()
        for exp in exporters:
            exp.shutdown()
        sampler.close()
    print("\nSampling stopped.")


def _cmd_version(_args: argparse.Namespace, _cfg: SysratesConfig) -> None:
    print(f"sysrates {__version__}")


def _add_query_args(p: argparse.ArgumentParser, window: bool = True) -> None:
    if window:
        p.add_argument("--window", type=float, default=1.0, help="Seconds between the two samples")
    p.add_argument("--platform", default=None, help="Platform override (linux, darwin, win32, freebsd, ...)")
    p.add_argument("--timeout", type=float, default=None, help="Collector timeout in seconds")
    p.add_argument("--device", action="append", default=None, help="Restrict to a device (repeatable)")
    p.add_argument("--json", action="store_true", help="Print JSON instead of a table")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the sysrates CLI."""
    parser = argparse.ArgumentParser(
        prog="sysrates",
        description="CPU load, disk I/O and filesystem rates from OS counters",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to sysrates.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    load_p = sub.add_parser("load", help="CPU load overall and per core")
    _add_query_args(load_p)
    load_p.set_defaults(func=_cmd_load)

    disks_p = sub.add_parser("disks", help="Per-device disk I/O rates")
    _add_query_args(disks_p)
    disks_p.set_defaults(func=_cmd_disks)

    fs_p = sub.add_parser("fs", help="Filesystem read/write rates")
    _add_query_args(fs_p)
    fs_p.set_defaults(func=_cmd_fs)

    speed_p = sub.add_parser("speed", help="Current CPU clock speed")
    _add_query_args(speed_p, window=False)
    speed_p.set_defaults(func=_cmd_speed)

    watch_p = sub.add_parser("watch", help="Sample continuously and print or export rates")
    watch_p.add_argument("--interval", type=float, default=None, help="Seconds between samples")
    watch_p.add_argument("--quiet", "-q", action="store_true", help="Do not print samples")
    watch_p.set_defaults(func=_cmd_watch)

    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        cfg = load_config(args.config)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)

    args.func(args, cfg)


if __name__ == "__main__":
    main()
