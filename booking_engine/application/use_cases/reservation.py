from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass, replace
from datetime import timedelta

from booking_engine.application.exceptions import (
    IdempotencyKeyReused,
    LockTimeout,
    NotFound,
    SlotUnavailable,
    StorageError,
    ValidationError,
)
from booking_engine.application.ports.appointment_store import AppointmentStorePort
from booking_engine.application.ports.calendar_policy import CalendarPolicyPort
from booking_engine.application.ports.clock import ClockPort
from booking_engine.application.ports.event_publisher import EventPublisherPort
from booking_engine.application.ports.service_catalog import ServiceCatalogPort
from booking_engine.application.use_cases.generate_slots import SlotGenerator
from booking_engine.domain.entities.appointment import Appointment, AppointmentStatus, BookingDetails
from booking_engine.domain.entities.events import AppointmentCreated
from booking_engine.domain.entities.time_range import TimeRange


@dataclass(frozen=True)
class ReservationResult:
    appointment: Appointment
    created: bool


def request_fingerprint(resource_id: str, service_id: str, time_range: TimeRange, details: BookingDetails) -> str:
    raw = "|".join(
        [
            resource_id,
            service_id,
            time_range.start.isoformat(),
            time_range.end.isoformat(),
            details.name,
            details.email or "",
            details.phone or "",
            details.notes or "",
            details.customer_ref or "",
        ]
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ReservationCoordinator:
    """Turns a free slot into a durable appointment; the only creator of appointments."""

    # One internal restart on infrastructure faults, never on business-rule errors.
    MAX_ATTEMPTS = 2

    def __init__(
        self,
        store: AppointmentStorePort,
        policies: CalendarPolicyPort,
        catalog: ServiceCatalogPort,
        slot_generator: SlotGenerator,
        clock: ClockPort,
        publisher: EventPublisherPort,
        token_ttl_hours: int = 48,
        lock_timeout_seconds: float = 5.0,
    ) -> None:
        self._store = store
        self._policies = policies
        self._catalog = catalog
        self._slot_generator = slot_generator
        self._clock = clock
        self._publisher = publisher
        self._token_ttl = timedelta(hours=token_ttl_hours)
        self._lock_timeout_seconds = lock_timeout_seconds
        self._logger = logging.getLogger(__name__)

    def reserve(
        self,
        resource_id: str,
        service_id: str,
        time_range: TimeRange,
        details: BookingDetails,
        idempotency_key: str | None = None,
    ) -> ReservationResult:
        service = self._catalog.get_service(service_id)
        if service is None:
            raise NotFound(f"Unknown service {service_id}")
        if time_range.duration_minutes != service.duration_minutes:
            raise ValidationError(
                f"Range lasts {time_range.duration_minutes} minutes but {service_id} "
                f"takes {service.duration_minutes}"
            )
        if time_range.start.date() != (time_range.end - timedelta(microseconds=1)).date():
            raise ValidationError("Range must fall within a single day")
        if not details.name.strip():
            raise ValidationError("Customer name is required")

        fingerprint = request_fingerprint(resource_id, service_id, time_range, details)

        if idempotency_key:
            existing = self._store.find_by_idempotency_key(idempotency_key)
            if existing is not None:
                return self._replay(existing, idempotency_key, fingerprint)

        policy = self._policies.get_policy(resource_id)
        slots = self._slot_generator.generate(policy, time_range.start.date(), resource_id, service.duration_minutes)
        if time_range not in slots:
            self._logger.info(
                "Requested range is not a valid slot",
                extra={"resource_id": resource_id, "reason": time_range.start.isoformat()},
            )
            raise SlotUnavailable(f"{time_range.start.isoformat()} is not an available slot for {resource_id}")

        now = self._clock.now()
        candidate = Appointment(
            id=uuid.uuid4().hex,
            resource_id=resource_id,
            service_id=service_id,
            start_time=time_range.start,
            duration_minutes=service.duration_minutes,
            status=AppointmentStatus.scheduled,
            customer_ref=details.reference,
            details=replace(details, customer_ref=details.reference),
            confirmation_token=secrets.token_urlsafe(32),
            token_expires_at=now + self._token_ttl,
            idempotency_key=idempotency_key or None,
            request_fingerprint=fingerprint,
            created_at=now,
            updated_at=now,
        )

        stored, created = self._commit(candidate)
        if not created:
            return self._replay(stored, idempotency_key or "", fingerprint)

        self._logger.info(
            "Appointment reserved",
            extra={"appointment_id": stored.id, "resource_id": resource_id, "status": stored.status.value},
        )
        self._publish(AppointmentCreated(appointment=stored, occurred_at=now))
        return ReservationResult(appointment=stored, created=True)

    def _commit(self, candidate: Appointment) -> tuple[Appointment, bool]:
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                return self._store.insert_if_free(candidate, self._lock_timeout_seconds)
            except (LockTimeout, StorageError) as e:
                if attempt >= self.MAX_ATTEMPTS:
                    raise
                self._logger.warning(
                    "Retrying reservation after infrastructure fault",
                    extra={"resource_id": candidate.resource_id, "error": e.code, "attempt": attempt},
                )
        raise StorageError("Reservation attempts exhausted")

    def _replay(self, existing: Appointment, idempotency_key: str, fingerprint: str) -> ReservationResult:
        if existing.request_fingerprint != fingerprint:
            raise IdempotencyKeyReused(f"Idempotency key {idempotency_key} was used for a different request")
        self._logger.info(
            "Idempotent replay of reservation",
            extra={"appointment_id": existing.id, "resource_id": existing.resource_id},
        )
        return ReservationResult(appointment=existing, created=False)

    def _publish(self, event: AppointmentCreated) -> None:
        try:
            self._publisher.publish(event)
        except Exception as e:
            self._logger.error(
                "Failed to publish event",
                extra={"event": event.name, "appointment_id": event.appointment.id, "error": str(e)},
            )
