from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from booking_engine.domain.entities.appointment import Appointment


@dataclass(frozen=True)
class AppointmentEvent:
    appointment: Appointment
    occurred_at: datetime

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class AppointmentCreated(AppointmentEvent):
    pass


@dataclass(frozen=True)
class AppointmentConfirmed(AppointmentEvent):
    pass


@dataclass(frozen=True)
class AppointmentCancelled(AppointmentEvent):
    actor: str = "customer"
