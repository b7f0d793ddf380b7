from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class Actor(str, Enum):
    customer = "customer"
    business = "business"


class TimeRangeSchema(BaseModel):
    start: datetime
    end: datetime


class AvailabilityResponseSchema(BaseModel):
    resource_id: str
    date: date
    service_id: str
    slots: list[TimeRangeSchema]


class AvailableDatesResponseSchema(BaseModel):
    resource_id: str
    service_id: str
    dates: list[date]


class CustomerSchema(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    customer_ref: str | None = None


class ReserveRequestSchema(BaseModel):
    resource_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    start: datetime
    end: datetime | None = None
    customer: CustomerSchema
    idempotency_key: str | None = None


class AppointmentSchema(BaseModel):
    id: str
    resource_id: str
    service_id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    customer_ref: str
    token_expires_at: datetime | None = None
    cancelled_by: str | None = None
    version: int


class ReserveResponseSchema(BaseModel):
    appointment: AppointmentSchema
    created: bool


class ConfirmRequestSchema(BaseModel):
    token: str = Field(min_length=1)


class ConfirmResponseSchema(BaseModel):
    appointment: AppointmentSchema
    already_confirmed: bool = False


class CancelRequestSchema(BaseModel):
    actor: Actor = Actor.customer


class ServiceSchema(BaseModel):
    id: str
    name: str
    duration_minutes: int
    description: str | None = None
