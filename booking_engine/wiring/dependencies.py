from functools import lru_cache
import logging

from booking_engine.core.config import settings
from booking_engine.application.ports.appointment_store import AppointmentStorePort
from booking_engine.application.ports.calendar_policy import CalendarPolicyPort
from booking_engine.application.ports.clock import ClockPort
from booking_engine.application.ports.event_publisher import EventPublisherPort
from booking_engine.application.ports.service_catalog import ServiceCatalogPort
from booking_engine.application.use_cases.availability import AvailabilityUseCase
from booking_engine.application.use_cases.generate_slots import SlotGenerator
from booking_engine.application.use_cases.lifecycle import AppointmentLifecycle
from booking_engine.application.use_cases.reservation import ReservationCoordinator
from booking_engine.infrastructure.clock.system_clock import SystemClock
from booking_engine.infrastructure.config.business_config import (
    BusinessConfig,
    default_business_config,
    load_business_config,
)
from booking_engine.infrastructure.config.policy_store import ServiceCatalogStore, StaticCalendarPolicyStore
from booking_engine.infrastructure.events.memory_publisher import InMemoryEventPublisher
from booking_engine.infrastructure.events.webhook_publisher import WebhookEventPublisher
from booking_engine.infrastructure.store.memory_store import MemoryAppointmentStore
from booking_engine.infrastructure.store.sql_store import SqlAppointmentStore, build_engine

logger = logging.getLogger(__name__)


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_business_config() -> BusinessConfig:
    if settings.BUSINESS_CONFIG_FILE:
        return load_business_config(settings.BUSINESS_CONFIG_FILE)
    logger.info("BUSINESS_CONFIG_FILE not set, using built-in business config")
    return default_business_config()


def get_policy_store() -> CalendarPolicyPort:
    return StaticCalendarPolicyStore(get_business_config().policy)


def get_service_catalog() -> ServiceCatalogPort:
    return ServiceCatalogStore(get_business_config().services)


@lru_cache
def get_appointment_store() -> AppointmentStorePort:
    if settings.DATABASE_URL:
        logger.info("Using SqlAppointmentStore")
        engine = build_engine(settings.DATABASE_URL, settings.RESERVATION_LOCK_TIMEOUT_SECONDS)
        return SqlAppointmentStore(engine)
    if settings.ENV.lower() not in {"dev", "local"}:
        raise ValueError("DATABASE_URL is required outside dev/local.")
    logger.info("Using MemoryAppointmentStore (DATABASE_URL missing, ENV=dev/local)")
    return MemoryAppointmentStore()


@lru_cache
def get_event_publisher() -> EventPublisherPort:
    if settings.EVENT_WEBHOOK_URL:
        return WebhookEventPublisher(
            endpoint=settings.EVENT_WEBHOOK_URL,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
    return InMemoryEventPublisher()


def get_slot_generator() -> SlotGenerator:
    return SlotGenerator(clock=get_clock(), granularity_minutes=settings.SLOT_GRANULARITY_MINUTES)


def get_availability_use_case() -> AvailabilityUseCase:
    return AvailabilityUseCase(
        policies=get_policy_store(),
        catalog=get_service_catalog(),
        ledger=get_appointment_store(),
        slot_generator=get_slot_generator(),
        horizon_days=settings.AVAILABLE_DATES_HORIZON_DAYS,
    )


def get_reservation_coordinator() -> ReservationCoordinator:
    return ReservationCoordinator(
        store=get_appointment_store(),
        policies=get_policy_store(),
        catalog=get_service_catalog(),
        slot_generator=get_slot_generator(),
        clock=get_clock(),
        publisher=get_event_publisher(),
        token_ttl_hours=settings.CONFIRMATION_TOKEN_TTL_HOURS,
        lock_timeout_seconds=settings.RESERVATION_LOCK_TIMEOUT_SECONDS,
    )


def get_lifecycle() -> AppointmentLifecycle:
    return AppointmentLifecycle(
        store=get_appointment_store(),
        clock=get_clock(),
        publisher=get_event_publisher(),
        cancellation_cutoff_hours=settings.CANCELLATION_CUTOFF_HOURS,
    )
