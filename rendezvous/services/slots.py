"""Showroom slot grid and availability.

Only confirmed visits take a slot. Pending requests are provisional, so two
customers may hold pending requests for the same slot until an administrator
confirms one of them.
"""

import logging
from datetime import date

from pydantic import BaseModel, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.core import config
from rendezvous.core.errors import AppointmentError, StoreReadError
from rendezvous.models.appointment import STATUS_CONFIRMED, Appointment

logger = logging.getLogger(__name__)


class SlotSchedule(BaseModel):
    start_hour: int = config.SLOT_START_HOUR
    end_hour: int = config.SLOT_END_HOUR
    increment_minutes: int = config.SLOT_INCREMENT_MINUTES

    @model_validator(mode='after')
    def validate_window(self) -> 'SlotSchedule':
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError('start_hour must be before end_hour, both within 0-24.')
        if not 0 < self.increment_minutes <= 60 or 60 % self.increment_minutes != 0:
            raise ValueError('increment_minutes must divide an hour evenly.')
        return self


class AppointmentSlot(BaseModel):
    date: date
    time: str
    is_available: bool


def generate_slot_times(schedule: SlotSchedule | None = None) -> list[str]:
    schedule = schedule or SlotSchedule()
    return [
        f'{hour:02d}:{minute:02d}'
        for hour in range(schedule.start_hour, schedule.end_hour)
        for minute in range(0, 60, schedule.increment_minutes)
    ]


def normalize_time_label(value: str) -> str:
    # The store may hand back "14:00:00" for a "14:00" booking.
    return value.strip()[:5]


def coerce_date(value: date | str, error: type[AppointmentError] = StoreReadError) -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string.

    Malformed input fails the same way the store would: ``StoreReadError`` on
    reads, or whatever ``error`` the caller names for writes.
    """
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise error(f'Invalid appointment date: {value!r}') from exc


def get_confirmed_times(db: Session, slot_date: date) -> set[str]:
    try:
        rows = db.query(Appointment.appointment_time).filter(
            Appointment.appointment_date == slot_date,
            Appointment.status == STATUS_CONFIRMED,
        ).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to load confirmed appointments for %s', slot_date)
        raise StoreReadError('Could not load appointments.') from exc

    return {normalize_time_label(appointment_time) for (appointment_time,) in rows}


def get_available_slots(
    db: Session,
    slot_date: date | str,
    schedule: SlotSchedule | None = None,
) -> list[AppointmentSlot]:
    """Return every slot of the day in chronological order.

    The result reflects the store at call time; re-fetch after any booking
    or status change.
    """
    day = coerce_date(slot_date)
    taken = get_confirmed_times(db, day)

    return [
        AppointmentSlot(date=day, time=slot_time, is_available=slot_time not in taken)
        for slot_time in generate_slot_times(schedule)
    ]
