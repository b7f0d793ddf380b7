from __future__ import annotations

import logging
from datetime import date, timedelta

from booking_engine.application.exceptions import NotFound, ValidationError
from booking_engine.application.ports.appointment_store import BookingLedgerPort
from booking_engine.application.ports.calendar_policy import CalendarPolicyPort
from booking_engine.application.ports.service_catalog import ServiceCatalogPort
from booking_engine.application.use_cases.generate_slots import SlotGenerator
from booking_engine.domain.entities.appointment import Appointment
from booking_engine.domain.entities.service import Service
from booking_engine.domain.entities.time_range import TimeRange


class AvailabilityUseCase:
    def __init__(
        self,
        policies: CalendarPolicyPort,
        catalog: ServiceCatalogPort,
        ledger: BookingLedgerPort,
        slot_generator: SlotGenerator,
        horizon_days: int = 30,
    ) -> None:
        self._policies = policies
        self._catalog = catalog
        self._ledger = ledger
        self._slot_generator = slot_generator
        self._horizon_days = horizon_days
        self._logger = logging.getLogger(__name__)

    def available_slots(self, resource_id: str, day: date, service_id: str) -> list[TimeRange]:
        """Slots for the service that do not overlap any active appointment of the resource."""
        service = self._require_service(service_id)
        policy = self._policies.get_policy(resource_id)
        candidates = self._slot_generator.generate(policy, day, resource_id, service.duration_minutes)

        booked = [a.time_range for a in self._ledger.active_appointments(resource_id, day)]
        free = [slot for slot in candidates if not any(slot.overlaps(b) for b in booked)]

        self._logger.debug(
            "Availability computed",
            extra={"resource_id": resource_id, "date": day.isoformat(), "free": len(free), "booked": len(booked)},
        )
        return free

    def available_dates(
        self,
        resource_id: str,
        service_id: str,
        start: date,
        days: int | None = None,
    ) -> list[date]:
        horizon = days if days is not None else self._horizon_days
        if horizon <= 0:
            raise ValidationError(f"Days must be positive, got {horizon}")

        dates: list[date] = []
        for offset in range(horizon):
            day = start + timedelta(days=offset)
            if self.available_slots(resource_id, day, service_id):
                dates.append(day)
        return dates

    def appointments_for_day(self, resource_id: str, day: date) -> list[Appointment]:
        return self._ledger.active_appointments(resource_id, day)

    def _require_service(self, service_id: str) -> Service:
        service = self._catalog.get_service(service_id)
        if service is None:
            raise NotFound(f"Unknown service {service_id}")
        return service
