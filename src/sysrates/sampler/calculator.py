"""Counter-to-rate calculation.

:func:`calculate_rates` is a pure function: it never touches the store.
The caller writes ``RateUpdate.entry`` back when ``RateUpdate.stored`` is
True.
"""

from __future__ import annotations

from .base import (
    MIN_INTERVAL_MS,
    CachedEntry,
    CounterReset,
    RateSnapshot,
    RateUpdate,
    RawSample,
    zero_snapshot,
)


def per_second(delta: float, elapsed_ms: float) -> float:
    """Rate of *delta* over *elapsed_ms*; 0 instead of NaN/inf for an empty window."""
    if elapsed_ms <= 0:
        return 0.0
    return delta / (elapsed_ms / 1000.0)


def calculate_rates(
    previous: CachedEntry | None,
    sample: RawSample,
    min_interval_ms: float = MIN_INTERVAL_MS,
) -> RateUpdate:
    """Diff *sample* against the cached entry of the same entity.

    - No cached entry: zero snapshot, sample becomes the baseline.
    - Less than *min_interval_ms* since the cached sample: the cached rates
      are returned unchanged and nothing is stored.
    - A counter lower than before is reported as a :class:`CounterReset`
      and contributes a delta of 0; the new value becomes the baseline.
    """
    if previous is None:
        snapshot = zero_snapshot(sample)
        return RateUpdate(
            entry=CachedEntry(last_sample=sample, last_rates=snapshot),
            snapshot=snapshot,
            stored=True,
        )

    elapsed_ms = sample.timestamp_ms - previous.last_sample.timestamp_ms
    if elapsed_ms < min_interval_ms:
        return RateUpdate(entry=previous, snapshot=previous.last_rates, stored=False)

    old_counters = previous.last_sample.counters
    deltas: dict[str, int] = {}
    rates: dict[str, float] = {}
    resets: list[CounterReset] = []

    for name, value in sample.counters.items():
        old = old_counters.get(name)
        if old is None:
            # counter appeared since the last sample: cold for this counter only
            delta = 0
        else:
            delta = value - old
            if delta < 0:
                resets.append(CounterReset(
                    entity_id=sample.entity_id,
                    counter=name,
                    previous=old,
                    current=value,
                    timestamp_ms=sample.timestamp_ms,
                ))
                delta = 0
        deltas[name] = delta
        rates[name] = per_second(delta, elapsed_ms)

    snapshot = RateSnapshot(
        entity_id=sample.entity_id,
        counters=dict(sample.counters),
        delta_counters=deltas,
        elapsed_ms=elapsed_ms,
        rates_per_second=rates,
        cold_start=False,
        resets=tuple(r.counter for r in resets),
    )
    return RateUpdate(
        entry=CachedEntry(last_sample=sample, last_rates=snapshot),
        snapshot=snapshot,
        stored=True,
        resets=resets,
    )
