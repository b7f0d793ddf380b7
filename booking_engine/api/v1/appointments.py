import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response

from booking_engine.api.v1.schemas import (
    AppointmentSchema,
    AvailabilityResponseSchema,
    AvailableDatesResponseSchema,
    CancelRequestSchema,
    ConfirmRequestSchema,
    ConfirmResponseSchema,
    ReserveRequestSchema,
    ReserveResponseSchema,
    ServiceSchema,
    TimeRangeSchema,
)
from booking_engine.application.exceptions import BookingError, NotFound
from booking_engine.application.ports.clock import ClockPort
from booking_engine.application.ports.service_catalog import ServiceCatalogPort
from booking_engine.application.use_cases.availability import AvailabilityUseCase
from booking_engine.application.use_cases.lifecycle import AppointmentLifecycle
from booking_engine.application.use_cases.reservation import ReservationCoordinator
from booking_engine.domain.entities.appointment import Appointment, BookingDetails
from booking_engine.domain.entities.time_range import TimeRange
from booking_engine.wiring.dependencies import (
    get_availability_use_case,
    get_clock,
    get_lifecycle,
    get_reservation_coordinator,
    get_service_catalog,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_http(error: BookingError) -> HTTPException:
    logger.info("Request rejected", extra={"error": error.code, "reason": str(error)})
    return HTTPException(status_code=error.http_status, detail={"error": error.code, "message": str(error)})


def _appointment_schema(appointment: Appointment) -> AppointmentSchema:
    return AppointmentSchema(
        id=appointment.id,
        resource_id=appointment.resource_id,
        service_id=appointment.service_id,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status.value,
        customer_ref=appointment.customer_ref,
        token_expires_at=appointment.token_expires_at,
        cancelled_by=appointment.cancelled_by,
        version=appointment.version,
    )


@router.get("/services", response_model=list[ServiceSchema])
def list_services(catalog: ServiceCatalogPort = Depends(get_service_catalog)):
    return [
        ServiceSchema(id=s.service_id, name=s.name, duration_minutes=s.duration_minutes, description=s.description)
        for s in catalog.list_services()
    ]


@router.get("/resources/{resource_id}/availability", response_model=AvailabilityResponseSchema)
def availability(
    resource_id: str,
    day: date = Query(..., alias="date"),
    service_id: str = Query(...),
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        slots = uc.available_slots(resource_id, day, service_id)
    except BookingError as e:
        raise _to_http(e)
    return AvailabilityResponseSchema(
        resource_id=resource_id,
        date=day,
        service_id=service_id,
        slots=[TimeRangeSchema(start=s.start, end=s.end) for s in slots],
    )


@router.get("/resources/{resource_id}/available-dates", response_model=AvailableDatesResponseSchema)
def available_dates(
    resource_id: str,
    service_id: str = Query(...),
    start: date | None = Query(None),
    days: int | None = Query(None, ge=1, le=366),
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
    clock: ClockPort = Depends(get_clock),
):
    first_day = start or clock.now().date()
    try:
        dates = uc.available_dates(resource_id, service_id, first_day, days)
    except BookingError as e:
        raise _to_http(e)
    return AvailableDatesResponseSchema(resource_id=resource_id, service_id=service_id, dates=dates)


@router.get("/resources/{resource_id}/appointments", response_model=list[AppointmentSchema])
def resource_appointments(
    resource_id: str,
    day: date = Query(..., alias="date"),
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    return [_appointment_schema(a) for a in uc.appointments_for_day(resource_id, day)]


@router.post("/appointments", response_model=ReserveResponseSchema, status_code=201)
def reserve(
    req: ReserveRequestSchema,
    response: Response,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator),
    catalog: ServiceCatalogPort = Depends(get_service_catalog),
    clock: ClockPort = Depends(get_clock),
):
    try:
        end = req.end
        if end is None:
            service = catalog.get_service(req.service_id)
            if service is None:
                raise NotFound(f"Unknown service {req.service_id}")
            end = req.start + timedelta(minutes=service.duration_minutes)
        time_range = TimeRange(start=_local(req.start, clock), end=_local(end, clock))
        result = coordinator.reserve(
            resource_id=req.resource_id,
            service_id=req.service_id,
            time_range=time_range,
            details=BookingDetails(**req.customer.model_dump()),
            idempotency_key=idempotency_key or req.idempotency_key,
        )
    except BookingError as e:
        raise _to_http(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": "validation_error", "message": str(e)})

    if not result.created:
        response.status_code = 200
    return ReserveResponseSchema(appointment=_appointment_schema(result.appointment), created=result.created)


@router.get("/appointments/{appointment_id}", response_model=AppointmentSchema)
def get_appointment(appointment_id: str, lifecycle: AppointmentLifecycle = Depends(get_lifecycle)):
    try:
        return _appointment_schema(lifecycle.get(appointment_id))
    except BookingError as e:
        raise _to_http(e)


@router.post("/appointments/confirm", response_model=ConfirmResponseSchema)
def confirm(req: ConfirmRequestSchema, lifecycle: AppointmentLifecycle = Depends(get_lifecycle)):
    try:
        result = lifecycle.confirm(req.token)
    except BookingError as e:
        raise _to_http(e)
    return ConfirmResponseSchema(
        appointment=_appointment_schema(result.appointment),
        already_confirmed=result.already_confirmed,
    )


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentSchema)
def cancel(
    appointment_id: str,
    req: CancelRequestSchema | None = None,
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    actor = req.actor.value if req else "customer"
    try:
        return _appointment_schema(lifecycle.cancel(appointment_id, actor))
    except BookingError as e:
        raise _to_http(e)


@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentSchema)
def complete(appointment_id: str, lifecycle: AppointmentLifecycle = Depends(get_lifecycle)):
    try:
        return _appointment_schema(lifecycle.complete(appointment_id))
    except BookingError as e:
        raise _to_http(e)


@router.post("/appointments/{appointment_id}/no-show", response_model=AppointmentSchema)
def no_show(appointment_id: str, lifecycle: AppointmentLifecycle = Depends(get_lifecycle)):
    try:
        return _appointment_schema(lifecycle.no_show(appointment_id))
    except BookingError as e:
        raise _to_http(e)


def _local(value: datetime, clock: ClockPort) -> datetime:
    """Aware datetimes are moved into the business timezone; naive ones are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(clock.timezone).replace(tzinfo=None)
