from __future__ import annotations

import threading
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from booking_engine.application.ports.clock import ClockPort


class FixedClock(ClockPort):
    """Clock that only moves when told to."""

    def __init__(self, now: datetime, timezone: tzinfo | None = None) -> None:
        self._now = now
        self._timezone = timezone or ZoneInfo("UTC")
        self._lock = threading.Lock()

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, now: datetime) -> None:
        with self._lock:
            self._now = now

    def advance(self, **delta: float) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(**delta)
            return self._now
