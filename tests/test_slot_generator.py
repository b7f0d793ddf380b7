from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timedelta

import pytest

from booking_engine.application.exceptions import ValidationError
from booking_engine.application.use_cases.generate_slots import SlotGenerator
from booking_engine.domain.entities.calendar_policy import ResourceCalendar
from booking_engine.domain.entities.time_range import TimeRange

from conftest import MONDAY, SATURDAY, TUESDAY, at


def _hhmm(slots) -> list[str]:
    return [s.start.strftime("%H:%M") for s in slots]


def test_nine_to_five_with_lunch_break(generator, policy):
    slots = generator.generate(policy, MONDAY, "alice", 30)

    assert _hhmm(slots) == [
        "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
        "13:00", "13:30", "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
    ]
    last = list(slots)[-1]
    assert last.end == at(MONDAY, 17)


def test_sequence_is_restartable(generator, policy):
    slots = generator.generate(policy, TUESDAY, "alice", 30)

    first = list(slots)
    second = list(slots)
    assert first == second
    assert len(first) == 14


def test_sequence_is_lazy(generator, policy):
    slots = iter(generator.generate(policy, TUESDAY, "alice", 30))

    assert next(slots).start == at(TUESDAY, 9)
    assert next(slots).start == at(TUESDAY, 9, 30)


def test_slot_that_would_cross_a_break_is_skipped(generator, policy):
    slots = generator.generate(policy, TUESDAY, "alice", 60)

    starts = _hhmm(slots)
    assert "11:00" in starts
    assert "11:30" not in starts
    assert "12:00" not in starts
    assert "12:30" not in starts
    assert starts[-1] == "16:00"


def test_slot_longer_than_remaining_day_is_skipped_not_truncated(generator, policy):
    slots = list(generator.generate(policy, TUESDAY, "alice", 45))

    assert slots[-1].start == at(TUESDAY, 16)
    assert slots[-1].end == at(TUESDAY, 16, 45)
    assert all(s.duration_minutes == 45 for s in slots)


def test_today_hides_slots_that_already_started(generator, policy, clock):
    clock.set(at(MONDAY, 10, 15))

    assert _hhmm(generator.generate(policy, MONDAY, "alice", 30))[0] == "10:30"


def test_today_keeps_slot_starting_exactly_now(generator, policy, clock):
    clock.set(at(MONDAY, 10))

    assert _hhmm(generator.generate(policy, MONDAY, "alice", 30))[0] == "10:00"


def test_future_day_ignores_current_time(generator, policy, clock):
    clock.set(at(MONDAY, 16, 45))

    assert _hhmm(generator.generate(policy, TUESDAY, "alice", 30))[0] == "09:00"


def test_past_day_yields_nothing(generator, policy, clock):
    clock.set(at(TUESDAY, 8))

    assert list(generator.generate(policy, MONDAY, "alice", 30)) == []


def test_closed_day_yields_nothing(generator, policy):
    assert list(generator.generate(policy, SATURDAY, "alice", 30)) == []


def test_blocked_date_yields_nothing(generator, policy):
    blocked = replace(policy, resources={"alice": ResourceCalendar(blocked_dates=frozenset({TUESDAY}))})

    assert list(generator.generate(blocked, TUESDAY, "alice", 30)) == []
    assert list(generator.generate(blocked, TUESDAY, "bob", 30)) != []


def test_custom_granularity(generator, policy):
    starts = _hhmm(generator.generate(policy, TUESDAY, "alice", 30, granularity_minutes=15))

    assert starts[:3] == ["09:00", "09:15", "09:30"]
    assert "11:30" in starts
    assert "11:45" not in starts
    assert starts[-1] == "16:30"


@pytest.mark.parametrize("duration", [0, -30])
def test_non_positive_duration_is_rejected(generator, policy, duration):
    with pytest.raises(ValidationError):
        generator.generate(policy, TUESDAY, "alice", duration)


def test_non_positive_granularity_is_rejected(clock, generator, policy):
    with pytest.raises(ValidationError):
        SlotGenerator(clock=clock, granularity_minutes=0)
    with pytest.raises(ValidationError):
        generator.generate(policy, TUESDAY, "alice", 30, granularity_minutes=0)


def test_slots_stay_inside_hours_and_outside_breaks(generator, policy):
    day = date(2030, 1, 9)
    hours = policy.effective_hours(day, "alice")
    window = TimeRange(datetime.combine(day, hours.open), datetime.combine(day, hours.close))
    breaks = [TimeRange(datetime.combine(day, b.start), datetime.combine(day, b.end)) for b in policy.breaks]

    for duration in (15, 20, 30, 50, 90, 240):
        for slot in generator.generate(policy, day, "alice", duration):
            assert window.contains(slot)
            assert not any(slot.overlaps(b) for b in breaks)
            assert slot.end - slot.start == timedelta(minutes=duration)


def test_duration_longer_than_open_window_yields_nothing(generator, policy):
    assert list(generator.generate(policy, TUESDAY, "alice", 9 * 60)) == []
