"""Core monitoring operations shared by the webhook routes and the poller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from threading import Lock
from typing import Any, List, Mapping, Optional

from datastore.reading_store import Clock, ReadingStore, build_default_store, utc_now
from models.records import PayloadShape, Reading
from services.aggregator import Aggregator, WindowSummary
from services.alerts import Alert, AlertEvaluator
from services.normalizer import normalize
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    stored: bool
    reading: Reading


@dataclass(frozen=True)
class RawPayloadRecord:
    """Last payload received from any source, kept for diagnostics."""

    received_at: datetime
    source: str
    shape: PayloadShape
    data: Mapping[str, Any]
    stored: bool


@dataclass(frozen=True)
class AlertReport:
    alerts: List[Alert]
    timestamp: datetime


@dataclass(frozen=True)
class DebugSnapshot:
    last_raw: Optional[RawPayloadRecord]
    total_readings: int
    latest: Optional[Reading]


class MonitorService:
    """Owns the reading history and exposes the ingest/query operations."""

    def __init__(
        self,
        store: ReadingStore,
        aggregator: Aggregator,
        evaluator: AlertEvaluator,
        clock: Clock = utc_now,
        default_limit: int = 100,
        default_stats_hours: float = 24.0,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.evaluator = evaluator
        self.clock = clock
        self.default_limit = default_limit
        self.default_stats_hours = default_stats_hours
        self._last_raw: Optional[RawPayloadRecord] = None
        self._ingest_lock = Lock()

    def ingest(
        self,
        payload: Mapping[str, Any],
        shape: PayloadShape,
        source: str = "webhook",
    ) -> IngestResult:
        """Normalize ``payload`` and store it when it carries any metric."""
        with self._ingest_lock:
            received_at = self.clock()
            reading = normalize(payload, shape, received_at)
            stored = reading.has_metrics
            if stored:
                self.store.append(reading)
            self._last_raw = RawPayloadRecord(
                received_at=received_at,
                source=source,
                shape=PayloadShape(shape),
                data=dict(payload),
                stored=stored,
            )

        if stored:
            logger.info(
                "Stored reading temp=%s soil1=%s soil2=%s leaf=%s",
                reading.temperature,
                reading.soil_moisture_1,
                reading.soil_moisture_2,
                reading.leaf_wetness,
                extra={"source": source, "stored": True},
            )
        else:
            logger.warning(
                "Received payload without sensor values",
                extra={"source": source, "stored": False},
            )
        return IngestResult(stored=stored, reading=reading)

    def get_latest(self) -> Optional[Reading]:
        return self.store.latest()

    def get_history(
        self, hours: Optional[float] = None, limit: Optional[int] = None
    ) -> List[Reading]:
        since = timedelta(hours=hours) if hours is not None else None
        return self.store.query(since=since, limit=limit or self.default_limit)

    def get_stats(self, hours: Optional[float] = None) -> Optional[WindowSummary]:
        window = hours if hours is not None else self.default_stats_hours
        readings = self.store.query(since=timedelta(hours=window), limit=None)
        return self.aggregator.summarize(readings)

    def get_alerts(self) -> Optional[AlertReport]:
        latest = self.store.latest()
        if latest is None:
            return None
        alerts = self.evaluator.evaluate(latest)
        for alert in alerts:
            logger.debug(
                alert.message,
                extra={"metric": alert.metric.value, "severity": alert.severity.value},
            )
        return AlertReport(alerts=alerts, timestamp=latest.timestamp)

    def get_debug_snapshot(self) -> DebugSnapshot:
        return DebugSnapshot(
            last_raw=self._last_raw,
            total_readings=len(self.store),
            latest=self.store.latest(),
        )

    @property
    def total_readings(self) -> int:
        return len(self.store)

    @property
    def last_update(self) -> Optional[datetime]:
        latest = self.store.latest()
        return latest.timestamp if latest else None


@lru_cache
def build_default_monitor() -> MonitorService:
    """Factory that wires the monitor with the configured store."""
    settings = get_settings()
    return MonitorService(
        store=build_default_store(),
        aggregator=Aggregator(),
        evaluator=AlertEvaluator(),
        default_limit=settings.history_default_limit,
        default_stats_hours=settings.stats_default_hours,
    )
