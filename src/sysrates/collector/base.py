"""Base interface for raw counter collectors."""

from __future__ import annotations

import abc
import time
from typing import Callable

from ..sampler.base import RawSample

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class BaseCounterCollector(abc.ABC):
    """Abstract base class for collectors of monotonic counters.

    Collectors read the OS once per :meth:`collect` call and keep no state
    between calls. Failures are raised as
    :class:`~sysrates.errors.CollectionError`.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or monotonic_ms

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Collector name used in logs and configuration."""

    @abc.abstractmethod
    def collect(self, devices: list[str] | None = None) -> list[RawSample]:
        """Read current counters. *devices* optionally restricts the entities."""
