"""Appointment model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, text

from rendezvous.database import Base

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(Base):
    """Represents a showroom visit requested by a customer."""
    __tablename__ = "rendezvous"
    __table_args__ = (
        # At most one confirmed visit per slot.
        Index(
            "uq_rendezvous_confirmed_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String, nullable=False)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
