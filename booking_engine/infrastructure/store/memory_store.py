from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Iterable

from booking_engine.application.exceptions import ConflictError, LockTimeout, NotFound, StaleState
from booking_engine.application.ports.appointment_store import AppointmentStorePort, day_range
from booking_engine.domain.entities.appointment import INACTIVE_STATUSES, Appointment, AppointmentStatus
from booking_engine.domain.entities.time_range import TimeRange


class MemoryAppointmentStore(AppointmentStorePort):
    """
    Process-local store for dev and tests. Writers on the same resource are
    serialised by a per-resource lock.

    Locks are created on first use and kept for the life of the store, so the
    lock table grows with the number of distinct resources seen.
    """

    def __init__(self) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._by_resource: dict[str, list[str]] = {}
        self._by_idempotency_key: dict[str, str] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # guards _locks
        self._data_lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, resource_id: str) -> threading.Lock:
        """Get or create the lock for a resource."""
        with self._lock_lock:
            if resource_id not in self._locks:
                self._locks[resource_id] = threading.Lock()
            return self._locks[resource_id]

    def overlaps(
        self,
        resource_id: str,
        time_range: TimeRange,
        exclude_statuses: Iterable[AppointmentStatus] = INACTIVE_STATUSES,
    ) -> bool:
        excluded = frozenset(exclude_statuses)
        return any(
            a.status not in excluded and a.time_range.overlaps(time_range)
            for a in self._for_resource(resource_id)
        )

    def active_appointments(self, resource_id: str, day: date) -> list[Appointment]:
        window = day_range(day)
        found = [a for a in self._for_resource(resource_id) if a.is_active and a.time_range.overlaps(window)]
        return sorted(found, key=lambda a: a.start_time)

    def get(self, appointment_id: str) -> Appointment | None:
        with self._data_lock:
            return self._appointments.get(appointment_id)

    def find_by_token(self, token: str, token_digest: str) -> Appointment | None:
        with self._data_lock:
            for appointment in self._appointments.values():
                if appointment.confirmation_token == token or appointment.token_digest == token_digest:
                    return appointment
        return None

    def find_by_idempotency_key(self, idempotency_key: str) -> Appointment | None:
        with self._data_lock:
            appointment_id = self._by_idempotency_key.get(idempotency_key)
            return self._appointments.get(appointment_id) if appointment_id else None

    def insert_if_free(self, appointment: Appointment, lock_timeout: float) -> tuple[Appointment, bool]:
        lock = self._get_lock(appointment.resource_id)
        if not lock.acquire(timeout=lock_timeout):
            raise LockTimeout(f"Timed out waiting for resource {appointment.resource_id}")
        try:
            with self._data_lock:
                if appointment.idempotency_key:
                    existing = self.find_by_idempotency_key(appointment.idempotency_key)
                    if existing is not None:
                        return existing, False

                if self.overlaps(appointment.resource_id, appointment.time_range):
                    self._logger.info(
                        "Reservation lost to an overlapping appointment",
                        extra={"resource_id": appointment.resource_id, "reason": "overlap"},
                    )
                    raise ConflictError(
                        f"Resource {appointment.resource_id} is already booked at {appointment.start_time.isoformat()}"
                    )

                self._appointments[appointment.id] = appointment
                self._by_resource.setdefault(appointment.resource_id, []).append(appointment.id)
                if appointment.idempotency_key:
                    self._by_idempotency_key[appointment.idempotency_key] = appointment.id
                return appointment, True
        finally:
            lock.release()

    def save_transition(self, appointment: Appointment, expected_version: int) -> Appointment:
        with self._data_lock:
            current = self._appointments.get(appointment.id)
            if current is None:
                raise NotFound(f"Unknown appointment {appointment.id}")
            if current.version != expected_version:
                raise StaleState(
                    f"Appointment {appointment.id} is at version {current.version}, expected {expected_version}"
                )
            stored = replace(appointment, version=expected_version + 1)
            self._appointments[appointment.id] = stored
            return stored

    def _for_resource(self, resource_id: str) -> list[Appointment]:
        with self._data_lock:
            return [self._appointments[i] for i in self._by_resource.get(resource_id, [])]
