from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_engine.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def __init__(self, timezone: str = "UTC") -> None:
        self._timezone = _safe_timezone(timezone)

    @property
    def timezone(self) -> ZoneInfo:
        return self._timezone

    def now(self) -> datetime:
        return datetime.now(self._timezone).replace(tzinfo=None)


def _safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")
