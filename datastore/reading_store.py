"""In-memory, capacity-bounded history of canonical readings."""

from __future__ import annotations
from collections import deque
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Deque, Optional

from models.records import Reading
from settings import get_settings


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadingStore:
    """Capacity-bounded, insertion-ordered history of readings.

    Appending past ``capacity`` drops the oldest entries. All access goes
    through one lock so a webhook request and the cloud poller never
    interleave a write.
    """

    def __init__(self, capacity: int = 10_000, clock: Clock = utc_now) -> None:
        if capacity <= 0:
            raise ValueError("Store capacity must be positive.")
        self._capacity = capacity
        self._readings: Deque[Reading] = deque(maxlen=capacity)
        self._clock = clock
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def append(self, reading: Reading) -> None:
        with self._lock:
            self._readings.append(reading)

    def latest(self) -> Optional[Reading]:
        with self._lock:
            if not self._readings:
                return None
            return self._readings[-1]

    def query(
        self,
        since: Optional[timedelta] = None,
        limit: Optional[int] = 100,
    ) -> list[Reading]:
        """Return the most recent ``limit`` readings newer than ``now - since``.

        Results keep chronological order.
        """
        if limit is not None and limit <= 0:
            raise ValueError("limit must be a positive integer.")

        with self._lock:
            snapshot = list(self._readings)

        if since is not None:
            cutoff = self._clock() - since
            snapshot = [reading for reading in snapshot if reading.timestamp >= cutoff]
        if limit is not None:
            snapshot = snapshot[-limit:]
        return snapshot

    def all(self) -> list[Reading]:
        with self._lock:
            return list(self._readings)

    def clear(self) -> None:
        with self._lock:
            self._readings.clear()


@lru_cache
def build_default_store(capacity: Optional[int] = None) -> ReadingStore:
    settings = get_settings()
    store_capacity = settings.history_capacity if capacity is None else capacity
    return ReadingStore(capacity=store_capacity)
