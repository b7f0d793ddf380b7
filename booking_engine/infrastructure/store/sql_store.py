from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator

from sqlalchemy import create_engine, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from booking_engine.application.exceptions import ConflictError, LockTimeout, NotFound, StaleState, StorageError
from booking_engine.application.ports.appointment_store import AppointmentStorePort, day_range
from booking_engine.domain.entities.appointment import (
    ACTIVE_STATUSES,
    INACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    BookingDetails,
)
from booking_engine.domain.entities.time_range import TimeRange
from booking_engine.infrastructure.store.sql_models import AppointmentRow, Base, ResourceLockRow

LOCK_ERROR_MARKERS = ("database is locked", "lock timeout", "lock_timeout", "could not obtain lock")


def build_engine(database_url: str, lock_timeout: float = 5.0) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": lock_timeout}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


class SqlAppointmentStore(AppointmentStorePort):
    """
    SQLAlchemy-backed store.

    Reservations bump the resource's row in `resource_locks` before checking
    for overlaps, so concurrent writers on one resource queue behind each
    other at the database. Lifecycle writes are compare-and-set on `version`.
    """

    def __init__(self, engine: Engine, create_tables: bool = True) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self._logger = logging.getLogger(__name__)
        if create_tables:
            Base.metadata.create_all(engine)

    def overlaps(
        self,
        resource_id: str,
        time_range: TimeRange,
        exclude_statuses: Iterable[AppointmentStatus] = INACTIVE_STATUSES,
    ) -> bool:
        excluded = [s.value for s in exclude_statuses]
        with self._reading("checking overlaps") as session:
            return self._first_overlap(session, resource_id, time_range, excluded) is not None

    def active_appointments(self, resource_id: str, day: date) -> list[Appointment]:
        window = day_range(day)
        stmt = (
            select(AppointmentRow)
            .where(
                AppointmentRow.resource_id == resource_id,
                AppointmentRow.status.in_([s.value for s in ACTIVE_STATUSES]),
                AppointmentRow.start_time < window.end,
                AppointmentRow.end_time > window.start,
            )
            .order_by(AppointmentRow.start_time)
        )
        with self._reading("listing appointments") as session:
            return [_to_entity(row) for row in session.scalars(stmt)]

    def get(self, appointment_id: str) -> Appointment | None:
        with self._reading("loading an appointment") as session:
            row = session.get(AppointmentRow, appointment_id)
            return _to_entity(row) if row else None

    def find_by_token(self, token: str, token_digest: str) -> Appointment | None:
        stmt = select(AppointmentRow).where(
            (AppointmentRow.confirmation_token == token) | (AppointmentRow.token_digest == token_digest)
        )
        with self._reading("looking up a confirmation token") as session:
            row = session.scalars(stmt).first()
            return _to_entity(row) if row else None

    def find_by_idempotency_key(self, idempotency_key: str) -> Appointment | None:
        with self._reading("looking up an idempotency key") as session:
            row = self._by_idempotency_key(session, idempotency_key)
            return _to_entity(row) if row else None

    def insert_if_free(self, appointment: Appointment, lock_timeout: float) -> tuple[Appointment, bool]:
        session = self._session_factory()
        try:
            with session.begin():
                self._lock_resource(session, appointment.resource_id, lock_timeout)

                if appointment.idempotency_key:
                    existing = self._by_idempotency_key(session, appointment.idempotency_key)
                    if existing is not None:
                        return _to_entity(existing), False

                excluded = [s.value for s in INACTIVE_STATUSES]
                if self._first_overlap(session, appointment.resource_id, appointment.time_range, excluded):
                    self._logger.info(
                        "Reservation lost to an overlapping appointment",
                        extra={"resource_id": appointment.resource_id, "reason": "overlap"},
                    )
                    raise ConflictError(
                        f"Resource {appointment.resource_id} is already booked at {appointment.start_time.isoformat()}"
                    )

                session.add(_to_row(appointment))
            return appointment, True
        except IntegrityError as e:
            if appointment.idempotency_key:
                existing = self.find_by_idempotency_key(appointment.idempotency_key)
                if existing is not None:
                    return existing, False
            self._logger.warning("Integrity error while reserving", extra={"error": str(e.orig)})
            raise StorageError("Reservation could not be stored") from e
        except OperationalError as e:
            if _is_lock_error(e):
                raise LockTimeout(f"Timed out waiting for resource {appointment.resource_id}") from e
            self._logger.exception("Database error while reserving")
            raise StorageError("Reservation could not be stored") from e
        except SQLAlchemyError as e:
            self._logger.exception("Database error while reserving")
            raise StorageError("Reservation could not be stored") from e
        finally:
            session.close()

    def save_transition(self, appointment: Appointment, expected_version: int) -> Appointment:
        values = _row_values(appointment)
        values.pop("id")
        values["version"] = expected_version + 1
        stmt = (
            update(AppointmentRow)
            .where(AppointmentRow.id == appointment.id, AppointmentRow.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        session = self._session_factory()
        try:
            with session.begin():
                result = session.execute(stmt)
                if result.rowcount == 0:
                    if session.get(AppointmentRow, appointment.id) is None:
                        raise NotFound(f"Unknown appointment {appointment.id}")
                    raise StaleState(f"Appointment {appointment.id} changed since version {expected_version}")
        except SQLAlchemyError as e:
            self._logger.exception("Database error while saving transition")
            raise StorageError("Transition could not be stored") from e
        finally:
            session.close()

        stored = self.get(appointment.id)
        if stored is None:
            raise NotFound(f"Unknown appointment {appointment.id}")
        return stored

    @contextmanager
    def _reading(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            self._logger.exception("Database error while %s", action)
            raise StorageError(f"Storage failed while {action}") from e
        finally:
            session.close()

    def _lock_resource(self, session: Session, resource_id: str, lock_timeout: float) -> None:
        if self._engine.dialect.name == "postgresql":
            session.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout * 1000)}ms'"))
        result = session.execute(
            update(ResourceLockRow)
            .where(ResourceLockRow.resource_id == resource_id)
            .values(version=ResourceLockRow.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # First reservation for this resource; a concurrent first insert
            # surfaces as IntegrityError and the caller retries.
            session.add(ResourceLockRow(resource_id=resource_id, version=1))
            session.flush()

    def _by_idempotency_key(self, session: Session, idempotency_key: str) -> AppointmentRow | None:
        stmt = select(AppointmentRow).where(AppointmentRow.idempotency_key == idempotency_key)
        return session.scalars(stmt).first()

    def _first_overlap(
        self,
        session: Session,
        resource_id: str,
        time_range: TimeRange,
        excluded_statuses: list[str],
    ) -> AppointmentRow | None:
        stmt = select(AppointmentRow).where(
            AppointmentRow.resource_id == resource_id,
            AppointmentRow.start_time < time_range.end,
            AppointmentRow.end_time > time_range.start,
        )
        if excluded_statuses:
            stmt = stmt.where(AppointmentRow.status.not_in(excluded_statuses))
        return session.scalars(stmt.limit(1)).first()


def _is_lock_error(error: OperationalError) -> bool:
    message = str(error.orig).lower()
    return any(marker in message for marker in LOCK_ERROR_MARKERS)


def _row_values(appointment: Appointment) -> dict:
    details = appointment.details
    return {
        "id": appointment.id,
        "resource_id": appointment.resource_id,
        "service_id": appointment.service_id,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "duration_minutes": appointment.duration_minutes,
        "status": appointment.status.value,
        "customer_ref": appointment.customer_ref,
        "customer_name": details.name,
        "customer_email": details.email,
        "customer_phone": details.phone,
        "notes": details.notes,
        "confirmation_token": appointment.confirmation_token,
        "token_expires_at": appointment.token_expires_at,
        "token_digest": appointment.token_digest,
        "idempotency_key": appointment.idempotency_key,
        "request_fingerprint": appointment.request_fingerprint,
        "cancelled_by": appointment.cancelled_by,
        "version": appointment.version,
        "created_at": appointment.created_at,
        "updated_at": appointment.updated_at,
    }


def _to_row(appointment: Appointment) -> AppointmentRow:
    return AppointmentRow(**_row_values(appointment))


def _to_entity(row: AppointmentRow) -> Appointment:
    return Appointment(
        id=row.id,
        resource_id=row.resource_id,
        service_id=row.service_id,
        start_time=row.start_time,
        duration_minutes=row.duration_minutes,
        status=AppointmentStatus(row.status),
        customer_ref=row.customer_ref,
        details=BookingDetails(
            name=row.customer_name,
            email=row.customer_email,
            phone=row.customer_phone,
            notes=row.notes,
            customer_ref=row.customer_ref,
        ),
        confirmation_token=row.confirmation_token,
        token_expires_at=row.token_expires_at,
        token_digest=row.token_digest,
        idempotency_key=row.idempotency_key,
        request_fingerprint=row.request_fingerprint,
        cancelled_by=row.cancelled_by,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
