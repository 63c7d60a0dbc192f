"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import Metric, Reading
from services.aggregator import MetricStats, WindowSummary
from services.alerts import Alert, Severity
from services.monitor import RawPayloadRecord


class CamelModel(BaseModel):
    """Base for payloads exposed with the gateway-facing camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


class ReadingOut(CamelModel):
    """Canonical reading; temperature is degrees Celsius."""

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_moisture_1: Optional[float] = Field(default=None, alias="soilMoisture1")
    soil_moisture_2: Optional[float] = Field(default=None, alias="soilMoisture2")
    leaf_wetness: Optional[float] = Field(default=None, alias="leafWetness")
    station_type: str = Field(..., alias="stationType")
    passkey: str
    source_device_time: Optional[str] = Field(default=None, alias="sourceDeviceTime")
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            timestamp=reading.timestamp,
            temperature=reading.temperature,
            humidity=reading.humidity,
            soil_moisture_1=reading.soil_moisture_1,
            soil_moisture_2=reading.soil_moisture_2,
            leaf_wetness=reading.leaf_wetness,
            station_type=reading.station_type,
            passkey=reading.passkey,
            source_device_time=reading.source_device_time,
            raw=dict(reading.raw),
        )


class LatestResponse(BaseModel):
    success: bool = True
    reading: ReadingOut


class NoDataResponse(BaseModel):
    success: bool = False
    message: str


class HistoryResponse(BaseModel):
    success: bool = True
    count: int = Field(..., ge=0)
    readings: List[ReadingOut] = Field(default_factory=list)


class MetricStatsOut(BaseModel):
    min: float
    max: float
    avg: float
    median: float
    count: int = Field(..., ge=1)

    @classmethod
    def from_stats(cls, stats: Optional[MetricStats]) -> Optional["MetricStatsOut"]:
        if stats is None:
            return None
        return cls(
            min=stats.min,
            max=stats.max,
            avg=stats.avg,
            median=stats.median,
            count=stats.count,
        )


class TimeRange(BaseModel):
    start: datetime
    end: datetime


class StatsOut(CamelModel):
    """Aggregates for the requested trailing window."""

    temperature: Optional[MetricStatsOut] = None
    soil_moisture_1: Optional[MetricStatsOut] = Field(default=None, alias="soilMoisture1")
    soil_moisture_2: Optional[MetricStatsOut] = Field(default=None, alias="soilMoisture2")
    leaf_wetness: Optional[MetricStatsOut] = Field(default=None, alias="leafWetness")
    count: int = Field(..., ge=0)
    time_range: TimeRange = Field(..., alias="timeRange")

    @classmethod
    def from_summary(cls, summary: WindowSummary) -> "StatsOut":
        metrics = summary.metrics
        return cls(
            temperature=MetricStatsOut.from_stats(metrics.get(Metric.temperature)),
            soil_moisture_1=MetricStatsOut.from_stats(metrics.get(Metric.soil_moisture_1)),
            soil_moisture_2=MetricStatsOut.from_stats(metrics.get(Metric.soil_moisture_2)),
            leaf_wetness=MetricStatsOut.from_stats(metrics.get(Metric.leaf_wetness)),
            count=summary.count,
            time_range=TimeRange(start=summary.start, end=summary.end),
        )


class StatsResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    stats: Optional[StatsOut] = None


class AlertOut(BaseModel):
    metric: Metric
    value: float
    severity: Severity
    message: str

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertOut":
        return cls(
            metric=alert.metric,
            value=alert.value,
            severity=alert.severity,
            message=alert.message,
        )


class AlertsResponse(CamelModel):
    success: bool = True
    alert_count: int = Field(..., ge=0, alias="alertCount")
    alerts: List[AlertOut] = Field(default_factory=list)
    timestamp: Optional[datetime] = None
    message: Optional[str] = None


class RawPayloadOut(BaseModel):
    timestamp: datetime
    source: str
    shape: str
    stored: bool
    data: Dict[str, Any]

    @classmethod
    def from_record(cls, record: Optional[RawPayloadRecord]) -> Optional["RawPayloadOut"]:
        if record is None:
            return None
        return cls(
            timestamp=record.received_at,
            source=record.source,
            shape=record.shape.value,
            stored=record.stored,
            data=dict(record.data),
        )


class DebugResponse(CamelModel):
    success: bool = True
    last_raw_data: Optional[RawPayloadOut] = Field(default=None, alias="lastRawData")
    total_readings: int = Field(..., ge=0, alias="totalReadings")
    latest_parsed: Optional[ReadingOut] = Field(default=None, alias="latestParsed")


class ServiceStatus(CamelModel):
    service: str
    status: str
    timestamp: datetime
    total_readings: int = Field(..., ge=0, alias="totalReadings")
    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    endpoints: Dict[str, str] = Field(default_factory=dict)
