"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


UNKNOWN = "Unknown"


class PayloadShape(str, Enum):
    """Wire layouts accepted by the normalizer."""

    flat = "flat"
    nested = "nested"


class Metric(str, Enum):
    """Monitored metrics, valued by their wire names."""

    temperature = "temperature"
    soil_moisture_1 = "soilMoisture1"
    soil_moisture_2 = "soilMoisture2"
    leaf_wetness = "leafWetness"

    @property
    def attribute(self) -> str:
        return self.name


def _freeze(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(payload))


@dataclass(frozen=True, slots=True)
class Reading:
    """One canonical sensor snapshot, stamped at ingestion time.

    Temperature is always degrees Celsius. Every other metric is a percentage.
    ``None`` means the sensor was absent or its value unusable; ``0.0`` is a
    real reading.
    """

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_moisture_1: Optional[float] = None
    soil_moisture_2: Optional[float] = None
    leaf_wetness: Optional[float] = None
    station_type: str = UNKNOWN
    passkey: str = UNKNOWN
    source_device_time: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "raw", _freeze(self.raw))

    def value_of(self, metric: Metric) -> Optional[float]:
        return getattr(self, metric.attribute)

    @property
    def has_metrics(self) -> bool:
        """True when at least one monitored metric carries a value."""
        return any(self.value_of(metric) is not None for metric in Metric)
