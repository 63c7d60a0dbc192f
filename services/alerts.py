"""Threshold alerts for the latest reading against vineyard ranges."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from models.records import Metric, Reading


class Severity(str, Enum):
    critical = "critical"
    warning = "warning"


_SEVERITY_RANK = {Severity.critical: 0, Severity.warning: 1}


@dataclass(frozen=True)
class RangeBand:
    """Nested ideal/critical limits for one metric. ``None`` means unbounded."""

    ideal_min: Optional[float] = None
    ideal_max: Optional[float] = None
    critical_min: Optional[float] = None
    critical_max: Optional[float] = None


@dataclass(frozen=True)
class Alert:
    metric: Metric
    value: float
    severity: Severity
    message: str


# Ideal ranges for wine grapes. High leaf wetness means disease risk.
_TEMPERATURE_BAND = RangeBand(ideal_min=18, ideal_max=25, critical_min=10, critical_max=35)
_SOIL_BAND = RangeBand(ideal_min=30, ideal_max=60, critical_min=20, critical_max=80)
_LEAF_BAND = RangeBand(ideal_max=70, critical_max=85)

DEFAULT_RANGES: Mapping[Metric, RangeBand] = {
    Metric.temperature: _TEMPERATURE_BAND,
    Metric.soil_moisture_1: _SOIL_BAND,
    Metric.soil_moisture_2: _SOIL_BAND,
    Metric.leaf_wetness: _LEAF_BAND,
}


def _below(value: float, limit: Optional[float]) -> bool:
    return limit is not None and value < limit


def _above(value: float, limit: Optional[float]) -> bool:
    return limit is not None and value > limit


def _temperature_message(value: float, severity: Severity, low: bool) -> str:
    direction = "low" if low else "high"
    if severity is Severity.critical:
        return f"Temperature critically {direction} at {value:.1f}°C"
    return f"Temperature {direction}, outside ideal range at {value:.1f}°C"


def _soil_message(channel: int, value: float, severity: Severity, low: bool) -> str:
    direction = "dry" if low else "wet"
    if severity is Severity.critical:
        return f"Soil sensor {channel} critically {direction} at {value:.1f}%"
    return f"Soil sensor {channel} {direction}, outside ideal range at {value:.1f}%"


def _leaf_message(value: float, severity: Severity, low: bool) -> str:
    if low:
        direction = "critically low" if severity is Severity.critical else "low"
        return f"Leaf wetness {direction} at {value:.1f}%"
    if severity is Severity.critical:
        return f"High leaf wetness ({value:.1f}%) - disease risk!"
    return f"Elevated leaf wetness at {value:.1f}%"


def _message(metric: Metric, value: float, severity: Severity, low: bool) -> str:
    if metric is Metric.temperature:
        return _temperature_message(value, severity, low)
    if metric is Metric.soil_moisture_1:
        return _soil_message(1, value, severity, low)
    if metric is Metric.soil_moisture_2:
        return _soil_message(2, value, severity, low)
    return _leaf_message(value, severity, low)


def classify(value: float, band: RangeBand) -> Optional[tuple[Severity, bool]]:
    """Return ``(severity, is_low)`` for an out-of-range value, else ``None``."""
    if _below(value, band.critical_min) or _above(value, band.critical_max):
        return Severity.critical, _below(value, band.critical_min)
    if _below(value, band.ideal_min) or _above(value, band.ideal_max):
        return Severity.warning, _below(value, band.ideal_min)
    return None


class AlertEvaluator:
    """Classify a reading's metrics against a two-tier range table."""

    def __init__(self, ranges: Optional[Mapping[Metric, RangeBand]] = None) -> None:
        self.ranges: Dict[Metric, RangeBand] = dict(
            DEFAULT_RANGES if ranges is None else ranges
        )

    def evaluate(self, reading: Reading) -> List[Alert]:
        """Alerts for ``reading``, critical first, otherwise in metric order."""
        alerts: List[Alert] = []
        for metric in Metric:
            band = self.ranges.get(metric)
            value = reading.value_of(metric)
            if band is None or value is None:
                continue
            outcome = classify(value, band)
            if outcome is None:
                continue
            severity, low = outcome
            alerts.append(
                Alert(
                    metric=metric,
                    value=value,
                    severity=severity,
                    message=_message(metric, value, severity, low),
                )
            )
        return sorted(alerts, key=lambda alert: _SEVERITY_RANK[alert.severity])
