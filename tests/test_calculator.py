"""Tests for the counter-to-rate calculator."""

from sysrates.sampler.base import CachedEntry, RawSample, zero_snapshot
from sysrates.sampler.calculator import calculate_rates, per_second


def _sample(counters, ts, entity="disk:sda"):
    return RawSample(entity_id=entity, counters=dict(counters), timestamp_ms=ts)


def _entry(sample):
    return CachedEntry(last_sample=sample, last_rates=zero_snapshot(sample))


def test_per_second():
    assert per_second(100, 1000) == 100.0
    assert per_second(100, 500) == 200.0
    assert per_second(100, 0) == 0.0
    assert per_second(100, -5) == 0.0


def test_cold_start_returns_zero_snapshot():
    sample = _sample({"reads": 10, "writes": 3}, 1000)
    update = calculate_rates(None, sample)
    assert update.stored is True
    assert update.snapshot.cold_start is True
    assert update.snapshot.elapsed_ms == 0.0
    assert update.snapshot.delta_counters == {"reads": 0, "writes": 0}
    assert update.snapshot.rates_per_second == {"reads": 0.0, "writes": 0.0}
    assert update.snapshot.counters == {"reads": 10, "writes": 3}
    assert update.entry.last_sample is sample


def test_monotonic_delta():
    first = _sample({"reads": 100}, 1000)
    second = _sample({"reads": 350}, 1500)
    update = calculate_rates(_entry(first), second)
    assert update.stored is True
    assert update.snapshot.cold_start is False
    assert update.snapshot.elapsed_ms == 500
    assert update.snapshot.delta("reads") == 250
    assert update.snapshot.rate("reads") == 500.0
    assert update.resets == []
    assert update.entry.last_sample is second
    assert update.entry.last_rates is update.snapshot


def test_counter_reset_uses_new_baseline():
    first = _sample({"reads": 1000, "writes": 10}, 0)
    second = _sample({"reads": 500, "writes": 20}, 1000)
    update = calculate_rates(_entry(first), second)
    assert update.stored is True
    assert update.snapshot.delta("reads") == 0
    assert update.snapshot.rate("reads") == 0.0
    assert update.snapshot.delta("writes") == 10
    assert update.snapshot.resets == ("reads",)
    assert len(update.resets) == 1
    reset = update.resets[0]
    assert reset.entity_id == "disk:sda"
    assert reset.counter == "reads"
    assert reset.previous == 1000
    assert reset.current == 500
    assert update.entry.last_sample.counters["reads"] == 500


def test_min_interval_returns_cached_rates():
    first = _sample({"reads": 0}, 0)
    second = _sample({"reads": 100}, 1000)
    entry = calculate_rates(_entry(first), second).entry

    third = _sample({"reads": 150}, 1100)
    update = calculate_rates(entry, third)
    assert update.stored is False
    assert update.snapshot is entry.last_rates
    assert update.entry is entry
    assert update.snapshot.rate("reads") == 100.0


def test_min_interval_is_configurable():
    first = _sample({"reads": 0}, 0)
    second = _sample({"reads": 10}, 50)
    update = calculate_rates(_entry(first), second, min_interval_ms=0)
    assert update.stored is True
    assert update.snapshot.rate("reads") == 200.0


def test_zero_elapsed_with_no_guard():
    first = _sample({"reads": 0}, 1000)
    second = _sample({"reads": 10}, 1000)
    update = calculate_rates(_entry(first), second, min_interval_ms=0)
    assert update.snapshot.delta("reads") == 10
    assert update.snapshot.rate("reads") == 0.0


def test_new_counter_counts_as_zero_delta():
    first = _sample({"reads": 10}, 0)
    second = _sample({"reads": 20, "writes": 7}, 1000)
    update = calculate_rates(_entry(first), second)
    assert update.snapshot.delta("writes") == 0
    assert update.snapshot.rate("writes") == 0.0
    assert update.snapshot.delta("reads") == 10
    assert update.resets == []


def test_snapshot_to_dict():
    first = _sample({"reads": 10}, 0)
    second = _sample({"reads": 20}, 1000)
    d = calculate_rates(_entry(first), second).snapshot.to_dict()
    assert d["entity_id"] == "disk:sda"
    assert d["delta_counters"] == {"reads": 10}
    assert d["rates_per_second"] == {"reads": 10.0}
    assert d["cold_start"] is False
    assert d["resets"] == []


def test_snapshot_name_strips_prefix():
    assert zero_snapshot(_sample({}, 0, entity="disk:nvme0n1")).name == "nvme0n1"
    assert zero_snapshot(_sample({}, 0, entity="cpu:3")).name == "3"


def test_cpu_scenario_fifty_percent():
    from sysrates.sampler.aggregator import aggregate_cpu
    from sysrates.sampler.engine import RateEngine

    engine = RateEngine()
    cold = engine.observe([_sample({"user": 100, "idle": 900}, 0, entity="cpu:0")])
    assert cold[0].rate("user") == 0.0
    assert "cpu:0" in engine.store

    warm = engine.observe([_sample({"user": 150, "idle": 950}, 1000, entity="cpu:0")])
    assert warm[0].delta("user") == 50
    assert warm[0].delta("idle") == 50
    load = aggregate_cpu(warm)
    assert load.cpus[0].current_tick == 100
    assert load.current_load == 50.0


def test_disk_sector_reset_scenario():
    from sysrates.sampler.engine import RateEngine

    engine = RateEngine()
    engine.observe([_sample({"sectors_read": 1000}, 0)])
    after_reset = engine.observe([_sample({"sectors_read": 500}, 500)])
    assert after_reset[0].delta("sectors_read") == 0
    assert engine.store.get("disk:sda").last_sample.counters["sectors_read"] == 500

    final = engine.observe([_sample({"sectors_read": 600}, 1000)])
    assert final[0].delta("sectors_read") == 100
    assert final[0].rate("sectors_read") == 200.0
