from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.reading_store import ReadingStore
from services.aggregator import Aggregator
from services.alerts import AlertEvaluator
from services.monitor import MonitorService


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> ReadingStore:
    return ReadingStore(capacity=50, clock=clock)


@pytest.fixture()
def monitor(store: ReadingStore, clock: FakeClock) -> MonitorService:
    return MonitorService(
        store=store,
        aggregator=Aggregator(),
        evaluator=AlertEvaluator(),
        clock=clock,
    )
