from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AppointmentRow(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True)
    resource_id = Column(String(100), nullable=False)
    service_id = Column(String(100), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)  # start_time + duration_minutes, for range queries
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, index=True)
    customer_ref = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    confirmation_token = Column(String(128), unique=True, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    token_digest = Column(String(64), nullable=True, index=True)
    idempotency_key = Column(String(255), unique=True, nullable=True)
    request_fingerprint = Column(String(64), nullable=True)
    cancelled_by = Column(String(50), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_appointments_resource_start", "resource_id", "start_time"),)

    def __repr__(self):
        return f"<AppointmentRow(id={self.id}, resource_id={self.resource_id}, status={self.status})>"


class ResourceLockRow(Base):
    """One row per resource; reservations update it to serialise writers on that resource."""

    __tablename__ = "resource_locks"

    resource_id = Column(String(100), primary_key=True)
    version = Column(Integer, nullable=False, default=0)
