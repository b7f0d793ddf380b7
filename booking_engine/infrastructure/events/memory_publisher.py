from __future__ import annotations

import logging
import threading

from booking_engine.application.ports.event_publisher import EventPublisherPort
from booking_engine.domain.entities.events import AppointmentEvent


class InMemoryEventPublisher(EventPublisherPort):
    """Logs and records events; used in dev and tests."""

    def __init__(self) -> None:
        self._events: list[AppointmentEvent] = []
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def publish(self, event: AppointmentEvent) -> None:
        with self._lock:
            self._events.append(event)
        self._logger.info(
            "Event published",
            extra={"event": event.name, "appointment_id": event.appointment.id},
        )

    @property
    def events(self) -> list[AppointmentEvent]:
        with self._lock:
            return list(self._events)

    def names(self) -> list[str]:
        return [e.name for e in self.events]
