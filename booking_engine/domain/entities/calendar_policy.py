from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Mapping

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class DayHours:
    open: time
    close: time
    closed: bool = False

    def __post_init__(self) -> None:
        if not self.closed and self.close <= self.open:
            raise ValueError(f"Close time {self.close} must be after open time {self.open}")


@dataclass(frozen=True)
class OpenHours:
    open: time
    close: time

    def bounds(self, day: date) -> tuple[datetime, datetime]:
        return datetime.combine(day, self.open), datetime.combine(day, self.close)


@dataclass(frozen=True)
class BreakInterval:
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Break end {self.end} must be after start {self.start}")


@dataclass(frozen=True)
class ResourceCalendar:
    # Empty weekly_hours means the resource follows the business week.
    weekly_hours: tuple[DayHours, ...] = ()
    blocked_dates: frozenset[date] = frozenset()

    def __post_init__(self) -> None:
        if self.weekly_hours and len(self.weekly_hours) != 7:
            raise ValueError("Resource weekly_hours override must have exactly 7 entries")


@dataclass(frozen=True)
class CalendarPolicy:
    """
    Business calendar: one DayHours per weekday (Monday first), blocked dates,
    and business-wide breaks. Resources may replace the weekly table wholesale
    and add their own blocked dates.
    """

    weekly_hours: tuple[DayHours, ...]
    blocked_dates: frozenset[date] = frozenset()
    breaks: tuple[BreakInterval, ...] = ()
    resources: Mapping[str, ResourceCalendar] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.weekly_hours) != 7:
            raise ValueError("weekly_hours must have exactly 7 entries (Monday..Sunday)")

    def resource_calendar(self, resource_id: str) -> ResourceCalendar:
        return self.resources.get(resource_id) or ResourceCalendar()

    def is_blocked(self, day: date, resource_id: str) -> bool:
        return day in self.blocked_dates or day in self.resource_calendar(resource_id).blocked_dates

    def effective_hours(self, day: date, resource_id: str) -> OpenHours | None:
        """Resolve opening hours for a resource on a date. None means closed."""
        if self.is_blocked(day, resource_id):
            return None

        override = self.resource_calendar(resource_id).weekly_hours
        table = override if override else self.weekly_hours
        entry = table[day.weekday()]
        if entry.closed:
            return None
        return OpenHours(open=entry.open, close=entry.close)
