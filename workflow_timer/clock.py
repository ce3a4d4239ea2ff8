from __future__ import annotations

from datetime import datetime, timezone, tzinfo
import time
from typing import Protocol


def to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.astimezone()
    return int(round(value.timestamp() * 1000))


def from_millis(value: int, tz: tzinfo | None = None) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=tz)


class Clock(Protocol):
    def now_ms(self) -> int:
        ...


class RealClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FakeClock:
    def __init__(self, start: datetime | int | None = None) -> None:
        if start is None:
            start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._current = start if isinstance(start, int) else to_millis(start)

    def now_ms(self) -> int:
        return self._current

    def set(self, value: datetime | int) -> None:
        self._current = value if isinstance(value, int) else to_millis(value)

    def advance(self, *, minutes: float = 0, seconds: float = 0, ms: int = 0) -> int:
        self._current += int(round(minutes * 60_000 + seconds * 1000)) + ms
        return self._current
