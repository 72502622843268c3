"""Glue between the sample store and the rate calculator."""

from __future__ import annotations

import collections
import logging

from .base import MIN_INTERVAL_MS, CachedEntry, CounterReset, RateSnapshot, RawSample
from .calculator import calculate_rates
from .store import SampleStore

logger = logging.getLogger(__name__)


class RateEngine:
    """Runs the calculator for a batch of samples against one store.

    Counter resets are logged, counted in :attr:`reset_count` and the most
    recent ones are kept in :attr:`recent_resets`.
    """

    def __init__(
        self,
        store: SampleStore | None = None,
        min_interval_ms: float = MIN_INTERVAL_MS,
        max_recent_resets: int = 100,
    ) -> None:
        self.store = store if store is not None else SampleStore()
        self.min_interval_ms = min_interval_ms
        self.reset_count = 0
        self.recent_resets: collections.deque[CounterReset] = collections.deque(
            maxlen=max_recent_resets,
        )

    def observe(self, samples: list[RawSample]) -> list[RateSnapshot]:
        """Turn *samples* into snapshots, updating the store atomically."""
        snapshots: list[RateSnapshot] = []
        with self.store.batch():
            for sample in samples:
                snapshots.append(self.store.update(sample.entity_id, lambda prev, s=sample: self._step(prev, s)))
        return snapshots

    def _step(
        self,
        previous: CachedEntry | None,
        sample: RawSample,
    ) -> tuple[CachedEntry | None, RateSnapshot]:
        update = calculate_rates(previous, sample, self.min_interval_ms)
        for reset in update.resets:
            self.reset_count += 1
            self.recent_resets.append(reset)
            logger.warning(
                "Counter reset on %s: %s went from %d to %d; using new value as baseline",
                reset.entity_id,
                reset.counter,
                reset.previous,
                reset.current,
            )
        if update.snapshot.cold_start and update.stored:
            logger.debug("First observation of %s", sample.entity_id)
        return (update.entry if update.stored else None), update.snapshot

    def last_snapshots(self, prefix: str) -> list[RateSnapshot]:
        """Cached rates of every entity whose id starts with *prefix*."""
        return [entry.last_rates for entry in self.store.entries(prefix).values()]
