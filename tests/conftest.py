"""
Shared fixtures: a business open Monday-Friday 09:00-17:00 with a 12:00-13:00
break, and a clock frozen at Monday 2030-01-07 09:00.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from booking_engine.application.use_cases.availability import AvailabilityUseCase
from booking_engine.application.use_cases.generate_slots import SlotGenerator
from booking_engine.application.use_cases.lifecycle import AppointmentLifecycle
from booking_engine.application.use_cases.reservation import ReservationCoordinator
from booking_engine.domain.entities.appointment import BookingDetails
from booking_engine.infrastructure.clock.fixed_clock import FixedClock
from booking_engine.infrastructure.config.business_config import default_business_config
from booking_engine.infrastructure.config.policy_store import ServiceCatalogStore, StaticCalendarPolicyStore
from booking_engine.infrastructure.events.memory_publisher import InMemoryEventPublisher
from booking_engine.infrastructure.store.memory_store import MemoryAppointmentStore

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 12)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(MONDAY, 9))


@pytest.fixture
def business():
    return default_business_config()


@pytest.fixture
def policy(business):
    return business.policy


@pytest.fixture
def policies(policy) -> StaticCalendarPolicyStore:
    return StaticCalendarPolicyStore(policy)


@pytest.fixture
def catalog(business) -> ServiceCatalogStore:
    return ServiceCatalogStore(business.services)


@pytest.fixture
def store() -> MemoryAppointmentStore:
    return MemoryAppointmentStore()


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def generator(clock) -> SlotGenerator:
    return SlotGenerator(clock=clock)


@pytest.fixture
def coordinator(store, policies, catalog, generator, clock, publisher) -> ReservationCoordinator:
    return ReservationCoordinator(
        store=store,
        policies=policies,
        catalog=catalog,
        slot_generator=generator,
        clock=clock,
        publisher=publisher,
    )


@pytest.fixture
def lifecycle(store, clock, publisher) -> AppointmentLifecycle:
    return AppointmentLifecycle(store=store, clock=clock, publisher=publisher)


@pytest.fixture
def availability(policies, catalog, store, generator) -> AvailabilityUseCase:
    return AvailabilityUseCase(policies=policies, catalog=catalog, ledger=store, slot_generator=generator)


@pytest.fixture
def customer() -> BookingDetails:
    return BookingDetails(name="Ada Lovelace", email="ada@example.com", phone="+15550100")
