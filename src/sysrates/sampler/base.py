"""Data model shared by the sample store, rate calculator and aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

MIN_INTERVAL_MS = 200.0


@dataclass(frozen=True)
class RawSample:
    """One observation of the monotonic counters of one entity.

    *entity_id* is a stable key such as ``cpu:3``, ``disk:sda`` or
    ``fs:aggregate``. *timestamp_ms* comes from a monotonic clock.
    """

    entity_id: str
    counters: dict[str, int]
    timestamp_ms: float


@dataclass(frozen=True)
class CounterReset:
    """A counter went backwards between two observations of the same entity."""

    entity_id: str
    counter: str
    previous: int
    current: int
    timestamp_ms: float


@dataclass(frozen=True)
class RateSnapshot:
    """Windowed deltas and per-second rates for one entity.

    The counter mappings are read-only views, so a snapshot handed to a
    caller cannot alter the copy kept in the sample store.
    """

    entity_id: str
    counters: Mapping[str, int]
    delta_counters: Mapping[str, int]
    elapsed_ms: float
    rates_per_second: Mapping[str, float]
    cold_start: bool = False
    resets: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in ("counters", "delta_counters", "rates_per_second"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def name(self) -> str:
        """Entity id without its family prefix (``sda`` for ``disk:sda``)."""
        return self.entity_id.split(":", 1)[-1]

    def delta(self, counter: str) -> int:
        return self.delta_counters.get(counter, 0)

    def rate(self, counter: str) -> float:
        return self.rates_per_second.get(counter, 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "counters": dict(self.counters),
            "delta_counters": dict(self.delta_counters),
            "elapsed_ms": self.elapsed_ms,
            "rates_per_second": dict(self.rates_per_second),
            "cold_start": self.cold_start,
            "resets": list(self.resets),
        }


@dataclass(frozen=True)
class CachedEntry:
    """What the sample store keeps per entity."""

    last_sample: RawSample
    last_rates: RateSnapshot


@dataclass(frozen=True)
class RateUpdate:
    """Result of one calculator run.

    ``stored`` is False when the minimum-interval guard returned the cached
    rates and the store must be left as it is.
    """

    entry: CachedEntry
    snapshot: RateSnapshot
    stored: bool
    resets: list[CounterReset] = field(default_factory=list)


def zero_snapshot(sample: RawSample) -> RateSnapshot:
    """Snapshot for an entity seen for the first time."""
    return RateSnapshot(
        entity_id=sample.entity_id,
        counters=dict(sample.counters),
        delta_counters={name: 0 for name in sample.counters},
        elapsed_ms=0.0,
        rates_per_second={name: 0.0 for name in sample.counters},
        cold_start=True,
    )
