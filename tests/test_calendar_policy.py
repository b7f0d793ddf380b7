from __future__ import annotations

from dataclasses import replace
from datetime import time

import pytest

from booking_engine.domain.entities.calendar_policy import CalendarPolicy, DayHours, OpenHours, ResourceCalendar

from conftest import MONDAY, SATURDAY, TUESDAY

NINE_TO_FIVE = DayHours(open=time(9), close=time(17))
CLOSED = DayHours(open=time(0), close=time(0), closed=True)


def test_business_default_hours_apply_to_any_resource(policy):
    assert policy.effective_hours(MONDAY, "alice") == OpenHours(open=time(9), close=time(17))
    assert policy.effective_hours(MONDAY, "bob") == OpenHours(open=time(9), close=time(17))


def test_closed_weekday_is_closed(policy):
    assert policy.effective_hours(SATURDAY, "alice") is None


def test_business_blocked_date_closes_every_resource(policy):
    blocked = replace(policy, blocked_dates=frozenset({TUESDAY}))

    assert blocked.effective_hours(TUESDAY, "alice") is None
    assert blocked.effective_hours(TUESDAY, "bob") is None
    assert blocked.effective_hours(MONDAY, "alice") is not None


def test_resource_blocked_dates_are_unioned_with_business_dates(policy):
    blocked = replace(
        policy,
        blocked_dates=frozenset({TUESDAY}),
        resources={"alice": ResourceCalendar(blocked_dates=frozenset({MONDAY}))},
    )

    assert blocked.effective_hours(MONDAY, "alice") is None
    assert blocked.effective_hours(TUESDAY, "alice") is None
    assert blocked.effective_hours(MONDAY, "bob") is not None


def test_resource_override_replaces_business_week_entirely(policy):
    late_shift = DayHours(open=time(12), close=time(20))
    override = ResourceCalendar(weekly_hours=(CLOSED,) + (late_shift,) * 6)
    custom = replace(policy, resources={"alice": override})

    # Monday is closed for alice even though the business is open.
    assert custom.effective_hours(MONDAY, "alice") is None
    assert custom.effective_hours(TUESDAY, "alice") == OpenHours(open=time(12), close=time(20))
    # Saturday is open for alice even though the business is closed.
    assert custom.effective_hours(SATURDAY, "alice") == OpenHours(open=time(12), close=time(20))
    assert custom.effective_hours(SATURDAY, "bob") is None


def test_resource_without_weekly_override_follows_business_week(policy):
    custom = replace(policy, resources={"alice": ResourceCalendar(blocked_dates=frozenset({TUESDAY}))})

    assert custom.effective_hours(MONDAY, "alice") == OpenHours(open=time(9), close=time(17))


def test_blocked_date_wins_over_override(policy):
    override = ResourceCalendar(weekly_hours=(NINE_TO_FIVE,) * 7, blocked_dates=frozenset({SATURDAY}))
    custom = replace(policy, resources={"alice": override})

    assert custom.effective_hours(SATURDAY, "alice") is None


def test_policy_requires_seven_days():
    with pytest.raises(ValueError):
        CalendarPolicy(weekly_hours=(NINE_TO_FIVE,) * 6)


def test_override_requires_seven_days():
    with pytest.raises(ValueError):
        ResourceCalendar(weekly_hours=(NINE_TO_FIVE,) * 5)


def test_open_day_must_close_after_opening():
    with pytest.raises(ValueError):
        DayHours(open=time(17), close=time(9))
