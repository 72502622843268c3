"""Tests for platform detection and support gating."""

import sys

import pytest

from sysrates.platform import (
    CPU,
    DISK,
    FILESYSTEM,
    get_platform_flags,
    normalize_platform,
    supports,
)


@pytest.mark.parametrize("raw, expected", [
    ("linux", "linux"),
    ("linux2", "linux"),
    ("freebsd14", "freebsd"),
    ("Darwin", "darwin"),
    ("macos", "darwin"),
    ("windows", "win32"),
    ("cygwin", "win32"),
    ("sunos5", "sunos"),
    ("solaris", "sunos"),
    ("android", "android"),
    ("haiku", "haiku"),
])
def test_normalize_platform(raw, expected):
    assert normalize_platform(raw) == expected


def test_flags_default_to_running_platform():
    assert get_platform_flags().platform == normalize_platform(sys.platform)


def test_android_counts_as_linux():
    flags = get_platform_flags("android")
    assert flags.linux
    assert flags.platform == "android"


def test_bsd_flag():
    assert get_platform_flags("openbsd").bsd
    assert get_platform_flags("netbsd").bsd
    assert not get_platform_flags("darwin").bsd


@pytest.mark.parametrize("platform, disk, fs", [
    ("linux", True, True),
    ("darwin", True, True),
    ("win32", True, True),
    ("freebsd", False, False),
    ("openbsd", False, False),
    ("netbsd", False, False),
    ("sunos", False, False),
    ("haiku", False, True),
])
def test_supports(platform, disk, fs):
    flags = get_platform_flags(platform)
    assert supports(CPU, flags) is True
    assert supports(DISK, flags) is disk
    assert supports(FILESYSTEM, flags) is fs


def test_unknown_family():
    assert supports("gpu", get_platform_flags("linux")) is False
