from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open interval [start, end) on the business-local clock."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Range end {self.end.isoformat()} must be after start {self.start.isoformat()}")

    @classmethod
    def of(cls, start: datetime, duration_minutes: int) -> TimeRange:
        return cls(start=start, end=start + timedelta(minutes=duration_minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: TimeRange) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: TimeRange) -> bool:
        return self.start <= other.start and other.end <= self.end
