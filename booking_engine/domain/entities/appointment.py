from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from booking_engine.domain.entities.time_range import TimeRange


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


# Statuses that hold the resource's time.
ACTIVE_STATUSES = frozenset(
    {AppointmentStatus.scheduled, AppointmentStatus.confirmed, AppointmentStatus.completed}
)
INACTIVE_STATUSES = frozenset({AppointmentStatus.cancelled, AppointmentStatus.no_show})


@dataclass(frozen=True)
class BookingDetails:
    name: str
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    customer_ref: str | None = None

    @property
    def reference(self) -> str:
        return self.customer_ref or self.email or self.phone or self.name


@dataclass(frozen=True)
class Appointment:
    id: str
    resource_id: str
    service_id: str
    start_time: datetime
    duration_minutes: int
    status: AppointmentStatus
    customer_ref: str
    details: BookingDetails
    confirmation_token: str | None = None
    token_expires_at: datetime | None = None
    # Digest of the consumed token, lets a repeated confirm be recognised.
    token_digest: str | None = None
    idempotency_key: str | None = None
    request_fingerprint: str | None = None
    cancelled_by: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def end_time(self) -> datetime:
        return self.time_range.end

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.of(self.start_time, self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
