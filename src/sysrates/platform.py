"""Platform flags and per-platform support of the metric families."""

from __future__ import annotations

import sys
from dataclasses import dataclass

KNOWN_PLATFORMS = (
    "linux",
    "darwin",
    "win32",
    "freebsd",
    "openbsd",
    "netbsd",
    "sunos",
    "android",
)

CPU = "cpu"
DISK = "disk"
FILESYSTEM = "filesystem"


@dataclass(frozen=True)
class PlatformFlags:
    """Boolean view of a platform name."""

    platform: str
    linux: bool = False
    darwin: bool = False
    windows: bool = False
    freebsd: bool = False
    openbsd: bool = False
    netbsd: bool = False
    sunos: bool = False

    @property
    def bsd(self) -> bool:
        return self.freebsd or self.openbsd or self.netbsd


def normalize_platform(name: str) -> str:
    """Map ``sys.platform`` style names (``freebsd14``, ``linux2``) to a known name."""
    name = name.lower()
    if name in ("windows", "win64", "cygwin"):
        return "win32"
    if name == "macos":
        return "darwin"
    for known in KNOWN_PLATFORMS:
        if name.startswith(known):
            return known
    if name.startswith("sunos") or name.startswith("solaris"):
        return "sunos"
    return name


def get_platform_flags(platform: str | None = None) -> PlatformFlags:
    """Return flags for *platform*, or for the running interpreter if None."""
    name = normalize_platform(platform or sys.platform)
    return PlatformFlags(
        platform=name,
        linux=name in ("linux", "android"),
        darwin=name == "darwin",
        windows=name == "win32",
        freebsd=name == "freebsd",
        openbsd=name == "openbsd",
        netbsd=name == "netbsd",
        sunos=name == "sunos",
    )


def supports(family: str, flags: PlatformFlags) -> bool:
    """Whether *family* (``cpu``, ``disk``, ``filesystem``) has a collector on *flags*.

    CPU load works everywhere psutil does. Per-device disk I/O is only
    available on Linux, macOS and Windows; filesystem totals are not
    available on the BSDs and SunOS.
    """
    if family == CPU:
        return True
    if family == DISK:
        return flags.linux or flags.darwin or flags.windows
    if family == FILESYSTEM:
        return not (flags.bsd or flags.sunos)
    return False
