from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace
from datetime import timedelta

from booking_engine.application.exceptions import (
    CancellationWindowClosed,
    InvalidTransition,
    NotFound,
    TokenExpired,
    TokenNotFound,
    ValidationError,
)
from booking_engine.application.ports.appointment_store import AppointmentStorePort
from booking_engine.application.ports.clock import ClockPort
from booking_engine.application.ports.event_publisher import EventPublisherPort
from booking_engine.domain.entities.appointment import Appointment, AppointmentStatus
from booking_engine.domain.entities.events import AppointmentCancelled, AppointmentConfirmed, AppointmentEvent

CANCELLABLE = frozenset({AppointmentStatus.scheduled, AppointmentStatus.confirmed})


@dataclass(frozen=True)
class ConfirmationResult:
    appointment: Appointment
    already_confirmed: bool = False


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AppointmentLifecycle:
    """
    State machine for an appointment after creation.

        scheduled --confirm--> confirmed --complete--> completed
                                         --no_show---> no_show
        scheduled|confirmed --cancel--> cancelled

    Every transition is a single guarded write with an optimistic version
    check; the loser of a race gets StaleState.
    """

    def __init__(
        self,
        store: AppointmentStorePort,
        clock: ClockPort,
        publisher: EventPublisherPort,
        cancellation_cutoff_hours: int = 6,
    ) -> None:
        self._store = store
        self._clock = clock
        self._publisher = publisher
        self._cutoff = timedelta(hours=cancellation_cutoff_hours)
        self._logger = logging.getLogger(__name__)

    def get(self, appointment_id: str) -> Appointment:
        appointment = self._store.get(appointment_id)
        if appointment is None:
            raise NotFound(f"Unknown appointment {appointment_id}")
        return appointment

    def confirm(self, token: str) -> ConfirmationResult:
        if not token or not token.strip():
            raise ValidationError("Confirmation token is required")

        digest = token_digest(token)
        appointment = self._store.find_by_token(token, digest)
        if appointment is None:
            raise TokenNotFound("Unknown confirmation token")

        if appointment.status == AppointmentStatus.confirmed:
            return ConfirmationResult(appointment=appointment, already_confirmed=True)
        if appointment.status != AppointmentStatus.scheduled or appointment.confirmation_token != token:
            raise InvalidTransition(f"Cannot confirm a {appointment.status.value} appointment")

        now = self._clock.now()
        if appointment.token_expires_at is None or now >= appointment.token_expires_at:
            raise TokenExpired("Confirmation token has expired")

        confirmed = self._store.save_transition(
            replace(
                appointment,
                status=AppointmentStatus.confirmed,
                confirmation_token=None,
                token_expires_at=None,
                token_digest=digest,
                updated_at=now,
            ),
            expected_version=appointment.version,
        )
        self._log_transition(confirmed, AppointmentStatus.scheduled)
        self._publish(AppointmentConfirmed(appointment=confirmed, occurred_at=now))
        return ConfirmationResult(appointment=confirmed)

    def cancel(self, appointment_id: str, actor: str = "customer") -> Appointment:
        appointment = self.get(appointment_id)
        if appointment.status not in CANCELLABLE:
            raise InvalidTransition(f"Cannot cancel a {appointment.status.value} appointment")

        now = self._clock.now()
        if now >= appointment.start_time - self._cutoff:
            raise CancellationWindowClosed(
                f"Cancellation closes {self._cutoff} before the appointment start"
            )

        token = appointment.confirmation_token
        cancelled = self._store.save_transition(
            replace(
                appointment,
                status=AppointmentStatus.cancelled,
                confirmation_token=None,
                token_expires_at=None,
                token_digest=token_digest(token) if token else appointment.token_digest,
                cancelled_by=actor,
                updated_at=now,
            ),
            expected_version=appointment.version,
        )
        self._log_transition(cancelled, appointment.status)
        self._publish(AppointmentCancelled(appointment=cancelled, occurred_at=now, actor=actor))
        return cancelled

    def complete(self, appointment_id: str) -> Appointment:
        return self._close_out(appointment_id, AppointmentStatus.completed)

    def no_show(self, appointment_id: str) -> Appointment:
        return self._close_out(appointment_id, AppointmentStatus.no_show)

    def _close_out(self, appointment_id: str, target: AppointmentStatus) -> Appointment:
        appointment = self.get(appointment_id)
        if appointment.status != AppointmentStatus.confirmed:
            raise InvalidTransition(
                f"Cannot mark a {appointment.status.value} appointment as {target.value}"
            )
        updated = self._store.save_transition(
            replace(appointment, status=target, updated_at=self._clock.now()),
            expected_version=appointment.version,
        )
        self._log_transition(updated, appointment.status)
        return updated

    def _log_transition(self, appointment: Appointment, previous: AppointmentStatus) -> None:
        self._logger.info(
            "Appointment transitioned from %s",
            previous.value,
            extra={"appointment_id": appointment.id, "status": appointment.status.value},
        )

    def _publish(self, event: AppointmentEvent) -> None:
        try:
            self._publisher.publish(event)
        except Exception as e:
            self._logger.error(
                "Failed to publish event",
                extra={"event": event.name, "appointment_id": event.appointment.id, "error": str(e)},
            )
