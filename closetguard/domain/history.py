from __future__ import annotations
import random
from collections import deque
from datetime import datetime, timedelta
from typing import Iterable

from .models import SensorReading


class HistoryBuffer:
    """Chronological, bounded record of sensor readings.

    Oldest readings are evicted first once `capacity` is reached.
    """

    def __init__(self, capacity: int = 50, readings: Iterable[SensorReading] = ()) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._buf: deque[SensorReading] = deque(readings, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._buf.maxlen or 0

    def __len__(self) -> int:
        return len(self._buf)

    def append(self, reading: SensorReading) -> None:
        self._buf.append(reading)

    def replace(self, readings: Iterable[SensorReading]) -> None:
        self._buf.clear()
        self._buf.extend(readings)

    def snapshot(self) -> tuple[SensorReading, ...]:
        return tuple(self._buf)

    def recent(self, n: int) -> tuple[SensorReading, ...]:
        if n <= 0:
            return ()
        return tuple(self._buf)[-n:]

    def latest(self) -> SensorReading | None:
        return self._buf[-1] if self._buf else None


def seed_readings(
    rng: random.Random,
    now: datetime,
    count: int = 20,
    spacing_s: float = 3.0,
) -> list[SensorReading]:
    """Synthetic calm-closet sequence ending `spacing_s` before `now`."""
    out: list[SensorReading] = []
    for i in range(count, 0, -1):
        out.append(
            SensorReading(
                ts_utc=now - timedelta(seconds=i * spacing_s),
                temperature=24.0 + rng.uniform(0.0, 2.0),
                humidity=50.0 + rng.uniform(0.0, 10.0),
                mold_index=5.0 + rng.uniform(0.0, 5.0),
            )
        )
    return out
