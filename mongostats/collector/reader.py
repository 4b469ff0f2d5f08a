"""Snapshot reader — extracts gauges and counters from a serverStatus document."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from mongostats.errors import DataShapeError
from mongostats.sources.base import RawSnapshot

MEGABYTE = 1048576


@dataclass(frozen=True)
class GaugeSpec:
    name: str
    path: tuple[str, ...]
    transform: Callable[[float], float] = float


@dataclass(frozen=True)
class CounterGroup:
    """Counters living side by side in one sub-document."""

    path: tuple[str, ...]
    fields: tuple[str, ...]
    name_format: str


@dataclass(frozen=True)
class CounterSample:
    name: str
    value: float
    timestamp: datetime


@dataclass
class SnapshotReading:
    gauges: dict[str, float] = field(default_factory=dict)
    counters: list[CounterSample] = field(default_factory=list)
    problems: list[DataShapeError] = field(default_factory=list)


GAUGES: tuple[GaugeSpec, ...] = (
    GaugeSpec("uptime_in_hours", ("uptime",), lambda v: float(v) / 3600),
    GaugeSpec("resident_memory_in_mb", ("mem", "resident"), int),
    GaugeSpec("virtual_memory_in_mb", ("mem", "virtual"), int),
    GaugeSpec("mapped_memory_in_mb", ("mem", "mapped"), int),
    GaugeSpec("current_connections", ("connections", "current"), int),
    GaugeSpec("available_connections", ("connections", "available"), int),
    GaugeSpec("lock_percentage", ("globalLock", "ratio"), lambda v: float(v) * 100),
    GaugeSpec("background_flush_average_ms", ("backgroundFlushing", "average_ms")),
)

COUNTER_GROUPS: tuple[CounterGroup, ...] = (
    CounterGroup(
        ("indexCounters", "btree"),
        ("accesses", "hits", "misses"),
        "index_btree_{}_per_sec",
    ),
    CounterGroup(
        ("opcounters",),
        ("insert", "query", "update", "delete", "getmore", "command"),
        "opcount_{}_per_sec",
    ),
    CounterGroup(
        ("asserts",),
        ("regular", "warning", "msg", "user", "rollovers"),
        "assert_{}_per_sec",
    ),
    CounterGroup(("extra_info",), ("page_faults",), "{}_per_sec"),
)


def _lookup(document: dict, path: tuple[str, ...]) -> Any:
    node: Any = document
    for depth, key in enumerate(path):
        if not isinstance(node, dict):
            raise DataShapeError(".".join(path[:depth]), "not a sub-document")
        if key not in node:
            raise DataShapeError(".".join(path[: depth + 1]), "missing")
        node = node[key]
    return node


def _number(document: dict, path: tuple[str, ...]) -> float:
    value = _lookup(document, path)
    # bool is an int subclass but never a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataShapeError(".".join(path), f"expected a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise DataShapeError(".".join(path), "not a finite number")
    return value


class SnapshotReader:
    """Reads a raw snapshot field by field.

    Missing or malformed fields only drop the metric that needed them; they
    are recorded in ``SnapshotReading.problems`` and never raised.
    """

    def __init__(
        self,
        gauges: tuple[GaugeSpec, ...] = GAUGES,
        counter_groups: tuple[CounterGroup, ...] = COUNTER_GROUPS,
    ) -> None:
        self.gauges = gauges
        self.counter_groups = counter_groups

    def read(self, snapshot: RawSnapshot) -> SnapshotReading:
        reading = SnapshotReading()
        document = snapshot.document

        for spec in self.gauges:
            try:
                value = _number(document, spec.path)
            except DataShapeError as e:
                reading.problems.append(e)
                continue
            try:
                reading.gauges[spec.name] = float(spec.transform(value))
            except (ValueError, OverflowError) as e:
                reading.problems.append(DataShapeError(".".join(spec.path), str(e)))

        for group in self.counter_groups:
            try:
                section = _lookup(document, group.path)
            except DataShapeError as e:
                reading.problems.append(e)
                continue
            if not isinstance(section, dict):
                reading.problems.append(DataShapeError(".".join(group.path), "not a sub-document"))
                continue

            for name in group.fields:
                try:
                    value = _number(section, (name,))
                except DataShapeError as e:
                    reading.problems.append(
                        DataShapeError(".".join(group.path + (name,)), e.reason)
                    )
                    continue
                if value < 0:
                    reading.problems.append(
                        DataShapeError(".".join(group.path + (name,)), "negative counter")
                    )
                    continue
                reading.counters.append(
                    CounterSample(group.name_format.format(name), value, snapshot.observed_at)
                )

        return reading
