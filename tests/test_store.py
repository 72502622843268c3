"""Tests for the sample store and rate engine."""

import logging
import threading

import pytest

from sysrates.sampler.base import CachedEntry, RawSample, zero_snapshot
from sysrates.sampler.engine import RateEngine
from sysrates.sampler.store import SampleStore


def _entry(entity, value, ts):
    sample = RawSample(entity_id=entity, counters={"n": value}, timestamp_ms=ts)
    return CachedEntry(last_sample=sample, last_rates=zero_snapshot(sample))


def test_get_put():
    store = SampleStore()
    assert store.get("cpu:0") is None
    assert "cpu:0" not in store
    entry = _entry("cpu:0", 1, 0)
    store.put("cpu:0", entry)
    assert store.get("cpu:0") is entry
    assert "cpu:0" in store
    assert len(store) == 1


def test_update_none_leaves_store_untouched():
    store = SampleStore()
    entry = _entry("cpu:0", 1, 0)
    store.put("cpu:0", entry)
    result = store.update("cpu:0", lambda prev: (None, "unchanged"))
    assert result == "unchanged"
    assert store.get("cpu:0") is entry


def test_entries_prefix_is_a_copy():
    store = SampleStore()
    store.put("cpu:0", _entry("cpu:0", 1, 0))
    store.put("disk:sda", _entry("disk:sda", 1, 0))
    cpus = store.entries("cpu:")
    assert list(cpus) == ["cpu:0"]
    cpus.clear()
    assert len(store) == 2
    assert len(store.entries()) == 2


def test_concurrent_updates_are_serialized():
    store = SampleStore()
    store.put("counter", _entry("counter", 0, 0))

    def bump(prev):
        value = prev.last_sample.counters["n"] + 1
        return _entry("counter", value, 0), value

    def worker():
        for _ in range(500):
            store.update("counter", bump)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.get("counter").last_sample.counters["n"] == 4000


def test_batch_blocks_other_writers():
    store = SampleStore()
    entered = threading.Event()
    written = threading.Event()

    def writer():
        entered.wait()
        store.put("disk:sdb", _entry("disk:sdb", 1, 0))
        written.set()

    t = threading.Thread(target=writer)
    t.start()
    with store.batch():
        entered.set()
        # the writer must wait for the batch to finish
        assert not written.wait(0.1)
        store.put("disk:sda", _entry("disk:sda", 1, 0))
    t.join(timeout=5)
    assert written.is_set()
    assert "disk:sda" in store and "disk:sdb" in store


class TestRateEngine:
    def test_observe_updates_store(self):
        engine = RateEngine()
        first = engine.observe([RawSample("disk:sda", {"reads": 100}, 0)])
        assert first[0].cold_start is True
        second = engine.observe([RawSample("disk:sda", {"reads": 300}, 1000)])
        assert second[0].rate("reads") == 200.0
        assert engine.store.get("disk:sda").last_sample.counters["reads"] == 300

    def test_min_interval_does_not_store(self):
        engine = RateEngine()
        engine.observe([RawSample("disk:sda", {"reads": 0}, 0)])
        engine.observe([RawSample("disk:sda", {"reads": 100}, 1000)])
        cached = engine.observe([RawSample("disk:sda", {"reads": 999}, 1050)])
        assert cached[0].rate("reads") == 100.0
        assert engine.store.get("disk:sda").last_sample.timestamp_ms == 1000

    def test_reset_is_logged_and_counted(self, caplog):
        engine = RateEngine(max_recent_resets=1)
        engine.observe([RawSample("disk:sda", {"reads": 1000}, 0)])
        with caplog.at_level(logging.WARNING, logger="sysrates.sampler.engine"):
            snaps = engine.observe([RawSample("disk:sda", {"reads": 500}, 1000)])
        assert snaps[0].delta("reads") == 0
        assert engine.reset_count == 1
        assert engine.recent_resets[-1].previous == 1000
        assert "Counter reset on disk:sda" in caplog.text

    def test_last_snapshots(self):
        engine = RateEngine()
        engine.observe([
            RawSample("cpu:0", {"idle": 1}, 0),
            RawSample("cpu:1", {"idle": 1}, 0),
            RawSample("disk:sda", {"reads": 1}, 0),
        ])
        assert sorted(s.entity_id for s in engine.last_snapshots("cpu:")) == ["cpu:0", "cpu:1"]
        assert engine.last_snapshots("fs:") == []


def test_returned_snapshots_cannot_alter_the_store():
    engine = RateEngine()
    engine.observe([RawSample("disk:sda", {"reads": 0}, 0)])
    (snap,) = engine.observe([RawSample("disk:sda", {"reads": 100}, 1000)])
    with pytest.raises(TypeError):
        snap.rates_per_second["reads"] = 1e9
    with pytest.raises(TypeError):
        snap.counters["reads"] = 0
    (cached,) = engine.last_snapshots("disk:")
    assert cached.rate("reads") == 100.0
    assert engine.store.get("disk:sda").last_rates.counters == {"reads": 100}
