"""Windowed statistics over stored readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence

from models.records import Metric, Reading


@dataclass(frozen=True)
class MetricStats:
    """Summary of one metric's values inside a window."""

    min: float
    max: float
    avg: float
    median: float
    count: int


@dataclass(frozen=True)
class WindowSummary:
    """Per-metric statistics plus the observed span of the window."""

    metrics: Dict[Metric, Optional[MetricStats]]
    count: int
    start: datetime
    end: datetime


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def stats(self, values: Iterable[Optional[float]]) -> Optional[MetricStats]:
        present = [value for value in values if value is not None]
        if not present:
            return None

        ordered = sorted(present)
        count = len(ordered)
        return MetricStats(
            min=ordered[0],
            max=ordered[-1],
            avg=sum(present) / count,
            # Lower median: [10, 20, 30, 40] -> 20.
            median=ordered[(count - 1) // 2],
            count=count,
        )

    def metric_stats(
        self, readings: Iterable[Reading], metric: Metric
    ) -> Optional[MetricStats]:
        return self.stats(reading.value_of(metric) for reading in readings)

    def summarize(self, readings: Sequence[Reading]) -> Optional[WindowSummary]:
        if not readings:
            return None
        return WindowSummary(
            metrics={metric: self.metric_stats(readings, metric) for metric in Metric},
            count=len(readings),
            start=readings[0].timestamp,
            end=readings[-1].timestamp,
        )
