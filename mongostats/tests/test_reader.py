"""Tests for serverStatus snapshot extraction."""

from datetime import datetime, timezone

import pytest

from mongostats.collector.reader import GaugeSpec, SnapshotReader
from mongostats.sources.base import RawSnapshot
from mongostats.tests.fakes import server_status

OBSERVED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def read(document: dict):
    return SnapshotReader().read(RawSnapshot(document=document, observed_at=OBSERVED))


def test_full_snapshot_yields_gauges_and_counters():
    reading = read(server_status())

    assert reading.gauges == {
        "uptime_in_hours": 2.0,
        "resident_memory_in_mb": 2.0,
        "virtual_memory_in_mb": 2396.0,
        "mapped_memory_in_mb": 80.0,
        "current_connections": 2.0,
        "available_connections": 19998.0,
        "lock_percentage": pytest.approx(0.25),
        "background_flush_average_ms": 0.5,
    }
    names = [c.name for c in reading.counters]
    assert "opcount_query_per_sec" in names
    assert "index_btree_misses_per_sec" in names
    assert "assert_rollovers_per_sec" in names
    assert "page_faults_per_sec" in names
    assert len(names) == 15
    assert all(c.timestamp == OBSERVED for c in reading.counters)
    assert reading.problems == []


def test_missing_asserts_section_only_drops_assert_counters():
    document = server_status()
    del document["asserts"]

    reading = read(document)

    assert not any(c.name.startswith("assert_") for c in reading.counters)
    assert any(c.name.startswith("opcount_") for c in reading.counters)
    assert len(reading.gauges) == 8
    assert [p.path for p in reading.problems] == ["asserts"]


def test_missing_gauge_field_is_skipped():
    document = server_status(globalLock={"totalTime": 1.0})

    reading = read(document)

    assert "lock_percentage" not in reading.gauges
    assert "uptime_in_hours" in reading.gauges
    assert reading.problems[0].path == "globalLock.ratio"


def test_malformed_values_are_skipped_per_field():
    document = server_status(
        mem="unavailable",
        opcounters={"insert": "many", "query": 5, "update": True, "delete": 0, "getmore": -1, "command": 3},
    )

    reading = read(document)

    assert not any(name.endswith("memory_in_mb") for name in reading.gauges)
    opcounts = {c.name: c.value for c in reading.counters if c.name.startswith("opcount_")}
    assert opcounts == {
        "opcount_query_per_sec": 5,
        "opcount_delete_per_sec": 0,
        "opcount_command_per_sec": 3,
    }
    paths = {p.path for p in reading.problems}
    assert {"mem", "opcounters.insert", "opcounters.update", "opcounters.getmore"} <= paths


def test_modern_server_without_legacy_sections():
    document = server_status()
    for key in ("indexCounters", "backgroundFlushing"):
        del document[key]
    del document["mem"]["mapped"]
    del document["globalLock"]["ratio"]

    reading = read(document)

    assert "mapped_memory_in_mb" not in reading.gauges
    assert not any(c.name.startswith("index_btree_") for c in reading.counters)
    assert len(reading.counters) == 12


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_gauge_is_skipped(bad):
    document = server_status(mem={"resident": bad, "virtual": 2396, "mapped": 80})

    reading = read(document)

    assert "resident_memory_in_mb" not in reading.gauges
    assert reading.gauges["virtual_memory_in_mb"] == 2396.0
    assert "uptime_in_hours" in reading.gauges
    assert [p.path for p in reading.problems] == ["mem.resident"]


@pytest.mark.parametrize("bad", [float("nan"), float("inf")])
def test_non_finite_counter_is_skipped(bad):
    document = server_status(
        opcounters={"insert": bad, "query": 1, "update": 0, "delete": 0, "getmore": 0, "command": 3}
    )

    reading = read(document)

    names = {c.name for c in reading.counters}
    assert "opcount_insert_per_sec" not in names
    assert "opcount_query_per_sec" in names
    assert reading.problems[0].path == "opcounters.insert"
    assert reading.problems[0].reason == "not a finite number"


def test_failing_transform_becomes_a_problem():
    def explode(value):
        raise OverflowError("too large")

    reader = SnapshotReader(gauges=(GaugeSpec("uptime_in_hours", ("uptime",), explode),), counter_groups=())
    reading = reader.read(RawSnapshot(document=server_status(), observed_at=OBSERVED))

    assert reading.gauges == {}
    assert reading.problems[0].path == "uptime"
