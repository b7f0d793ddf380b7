from __future__ import annotations

import logging
from typing import Any

import httpx

from booking_engine.application.ports.event_publisher import EventPublisherPort
from booking_engine.domain.entities.appointment import Appointment
from booking_engine.domain.entities.events import AppointmentCancelled, AppointmentCreated, AppointmentEvent


class WebhookEventPublisher(EventPublisherPort):
    """POSTs lifecycle events to the notification/calendar-sync collaborator."""

    def __init__(
        self,
        endpoint: str,
        public_base_url: str,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._public_base_url = public_base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def publish(self, event: AppointmentEvent) -> None:
        payload = self.build_payload(event)
        resp = self._client.post(self._endpoint, json=payload)
        if resp.status_code >= 400:
            self._logger.error(
                "Event webhook rejected",
                extra={
                    "event": event.name,
                    "appointment_id": event.appointment.id,
                    "status": resp.status_code,
                    "error": resp.text[:200],
                },
            )
            resp.raise_for_status()
        self._logger.info("Event delivered", extra={"event": event.name, "appointment_id": event.appointment.id})

    def build_payload(self, event: AppointmentEvent) -> dict[str, Any]:
        appointment = event.appointment
        payload: dict[str, Any] = {
            "event": event.name,
            "occurred_at": event.occurred_at.isoformat(),
            "appointment": _serialize_appointment(appointment),
        }
        if isinstance(event, AppointmentCreated) and appointment.confirmation_token:
            payload["confirm_url"] = f"{self._public_base_url}/confirm?token={appointment.confirmation_token}"
            payload["cancel_url"] = f"{self._public_base_url}/cancel/{appointment.id}"
        if isinstance(event, AppointmentCancelled):
            payload["actor"] = event.actor
        return payload


def _serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    details = appointment.details
    return {
        "id": appointment.id,
        "resource_id": appointment.resource_id,
        "service_id": appointment.service_id,
        "start_time": appointment.start_time.isoformat(),
        "end_time": appointment.end_time.isoformat(),
        "duration_minutes": appointment.duration_minutes,
        "status": appointment.status.value,
        "customer_ref": appointment.customer_ref,
        "customer": {
            "name": details.name,
            "email": details.email,
            "phone": details.phone,
            "notes": details.notes,
        },
    }
