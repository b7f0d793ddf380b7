from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator

from booking_engine.application.exceptions import ValidationError
from booking_engine.application.ports.clock import ClockPort
from booking_engine.domain.entities.calendar_policy import CalendarPolicy
from booking_engine.domain.entities.time_range import TimeRange


@dataclass(frozen=True)
class SlotSequence:
    """
    Lazy, finite, restartable sequence of candidate slots for one day.

    Every iteration walks the same cursor from scratch, so the sequence can be
    consumed any number of times with identical results.
    """

    window: TimeRange | None
    breaks: tuple[TimeRange, ...]
    duration: timedelta
    step: timedelta
    not_before: datetime | None = None

    def __iter__(self) -> Iterator[TimeRange]:
        if self.window is None:
            return
        cursor = self.window.start
        while cursor + self.duration <= self.window.end:
            candidate = TimeRange(start=cursor, end=cursor + self.duration)
            if self._is_valid(candidate):
                yield candidate
            cursor += self.step

    def _is_valid(self, candidate: TimeRange) -> bool:
        if self.not_before is not None and candidate.start < self.not_before:
            return False
        return not any(candidate.overlaps(br) for br in self.breaks)


class SlotGenerator:
    def __init__(self, clock: ClockPort, granularity_minutes: int = 30) -> None:
        if granularity_minutes <= 0:
            raise ValidationError("Slot granularity must be a positive number of minutes")
        self._clock = clock
        self._granularity_minutes = granularity_minutes

    def generate(
        self,
        policy: CalendarPolicy,
        day: date,
        resource_id: str,
        duration_minutes: int,
        granularity_minutes: int | None = None,
    ) -> SlotSequence:
        """
        Candidate bookable ranges for a resource on a date.

        Slots lie inside the effective opening hours, never intersect a break,
        and on the current day never start before now. Existing bookings are
        not consulted here.
        """
        if duration_minutes <= 0:
            raise ValidationError(f"Duration must be positive, got {duration_minutes}")
        step_minutes = granularity_minutes if granularity_minutes is not None else self._granularity_minutes
        if step_minutes <= 0:
            raise ValidationError(f"Granularity must be positive, got {step_minutes}")

        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=step_minutes)
        now = self._clock.now()

        hours = policy.effective_hours(day, resource_id)
        if hours is None or day < now.date():
            return SlotSequence(window=None, breaks=(), duration=duration, step=step)

        opens_at, closes_at = hours.bounds(day)
        breaks = tuple(
            TimeRange(start=datetime.combine(day, br.start), end=datetime.combine(day, br.end))
            for br in policy.breaks
        )
        return SlotSequence(
            window=TimeRange(start=opens_at, end=closes_at),
            breaks=breaks,
            duration=duration,
            step=step,
            not_before=now if day == now.date() else None,
        )
