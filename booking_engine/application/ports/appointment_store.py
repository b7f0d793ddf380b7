from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from typing import Iterable

from booking_engine.domain.entities.appointment import INACTIVE_STATUSES, Appointment, AppointmentStatus
from booking_engine.domain.entities.time_range import TimeRange


def day_range(day: date) -> TimeRange:
    start = datetime.combine(day, time.min)
    return TimeRange(start=start, end=start + timedelta(days=1))


class BookingLedgerPort(ABC):
    """
    Read-only view over stored appointments.

    Results may be stale by the time the caller acts on them; the overlap
    guarantee is enforced by AppointmentStorePort.insert_if_free.
    """

    @abstractmethod
    def overlaps(
        self,
        resource_id: str,
        time_range: TimeRange,
        exclude_statuses: Iterable[AppointmentStatus] = INACTIVE_STATUSES,
    ) -> bool:
        raise NotImplementedError

    @abstractmethod
    def active_appointments(self, resource_id: str, day: date) -> list[Appointment]:
        """Active appointments of the resource intersecting the given day, ordered by start."""
        raise NotImplementedError


class AppointmentStorePort(BookingLedgerPort):
    @abstractmethod
    def get(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_token(self, token: str, token_digest: str) -> Appointment | None:
        """Find by live confirmation token, or by the digest of an already consumed one."""
        raise NotImplementedError

    @abstractmethod
    def find_by_idempotency_key(self, idempotency_key: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def insert_if_free(self, appointment: Appointment, lock_timeout: float) -> tuple[Appointment, bool]:
        """
        Atomically insert the appointment unless its range overlaps an active
        appointment of the same resource.

        Requirements:
        - Check and insert are serialised per resource; waiting longer than
          `lock_timeout` seconds raises LockTimeout
        - If the appointment carries an idempotency key that is already stored,
          return (existing, False) without inserting
        - Raise ConflictError on overlap; never commit two overlapping active rows
        - Raise StorageError on infrastructure faults

        Returns:
            Tuple of (stored appointment, created flag)
        """
        raise NotImplementedError

    @abstractmethod
    def save_transition(self, appointment: Appointment, expected_version: int) -> Appointment:
        """
        Persist a lifecycle transition if the stored row still has `expected_version`.

        The stored version becomes `expected_version + 1`. Raises StaleState on
        version mismatch and NotFound if the row does not exist.
        """
        raise NotImplementedError
