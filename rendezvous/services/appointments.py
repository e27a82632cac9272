import logging
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.core.errors import (
    InvalidStatusTransition,
    NotFound,
    SlotConflict,
    StoreReadError,
    StoreWriteError,
    Unauthenticated,
)
from rendezvous.models.appointment import (
    APPOINTMENT_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Appointment,
)
from rendezvous.services.slots import coerce_date, normalize_time_label

logger = logging.getLogger(__name__)

# Confirmed and cancelled are terminal.
ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: set(),
    STATUS_CANCELLED: set(),
}


def _require_identity(owner_id: str | None) -> str:
    normalized = (owner_id or '').strip()
    if not normalized:
        raise Unauthenticated('User not authenticated.')
    return normalized


def create_appointment(
    db: Session,
    owner_id: str | None,
    appointment_date: date | str,
    appointment_time: str,
) -> Appointment:
    """Insert a pending visit for ``owner_id``.

    Availability is not re-checked here; a pending request never takes a
    slot, and the confirmation step guards against double booking.
    """
    owner_id = _require_identity(owner_id)
    appointment_date = coerce_date(appointment_date, error=StoreWriteError)

    appointment = Appointment(
        user_id=owner_id,
        appointment_date=appointment_date,
        appointment_time=normalize_time_label(appointment_time),
        status=STATUS_PENDING,
    )
    try:
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment for %s on %s %s', owner_id, appointment_date, appointment_time)
        raise StoreWriteError('Could not create the appointment.') from exc

    logger.info('Appointment %s requested by %s for %s %s', appointment.id, owner_id, appointment_date, appointment.appointment_time)
    return appointment


def get_user_appointments(db: Session, owner_id: str | None) -> list[Appointment]:
    owner_id = _require_identity(owner_id)

    try:
        return db.query(Appointment).filter(
            Appointment.user_id == owner_id,
        ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()
    except SQLAlchemyError as exc:
        raise StoreReadError('Could not load appointments.') from exc


def get_by_id(db: Session, appointment_id: int) -> Appointment:
    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    except SQLAlchemyError as exc:
        raise StoreReadError('Could not load the appointment.') from exc

    if appointment is None:
        raise NotFound(f'Appointment {appointment_id} not found.')
    return appointment


def list_appointments(db: Session, status: str | None = None) -> list[Appointment]:
    try:
        query = db.query(Appointment)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()
    except SQLAlchemyError as exc:
        raise StoreReadError('Could not load appointments.') from exc


def week_bounds(day: date) -> tuple[date, date]:
    """Sunday-to-Saturday week containing ``day``."""
    week_start = day - timedelta(days=(day.weekday() + 1) % 7)
    return week_start, week_start + timedelta(days=6)


def has_appointment_in_week(db: Session, owner_id: str | None, day: date | str) -> bool:
    owner_id = _require_identity(owner_id)
    week_start, week_end = week_bounds(coerce_date(day))

    try:
        existing = db.query(Appointment.id).filter(
            Appointment.user_id == owner_id,
            Appointment.appointment_date >= week_start,
            Appointment.appointment_date <= week_end,
            Appointment.status != STATUS_CANCELLED,
        ).first()
    except SQLAlchemyError as exc:
        raise StoreReadError('Could not load appointments.') from exc

    return existing is not None


def _slot_confirmed_elsewhere(db: Session, appointment: Appointment) -> bool:
    try:
        other = db.query(Appointment.id).filter(
            Appointment.id != appointment.id,
            Appointment.appointment_date == appointment.appointment_date,
            Appointment.appointment_time == appointment.appointment_time,
            Appointment.status == STATUS_CONFIRMED,
        ).first()
    except SQLAlchemyError as exc:
        raise StoreReadError('Could not load appointments.') from exc
    return other is not None


def update_status(db: Session, appointment_id: int, new_status: str) -> Appointment:
    new_status = (new_status or '').strip().lower()
    appointment = get_by_id(db, appointment_id)
    current = appointment.status

    if new_status not in APPOINTMENT_STATUSES or new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(current, new_status)

    if new_status == STATUS_CONFIRMED and _slot_confirmed_elsewhere(db, appointment):
        raise SlotConflict(
            f'{appointment.appointment_date} {appointment.appointment_time} is already confirmed for another customer.'
        )

    try:
        appointment.status = new_status
        db.commit()
        db.refresh(appointment)
    except IntegrityError as exc:
        # Lost the race against a concurrent confirmation.
        db.rollback()
        raise SlotConflict('This slot was confirmed for another customer.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update appointment %s to %s', appointment_id, new_status)
        raise StoreWriteError('Could not update the appointment.') from exc

    logger.info('Appointment %s moved from %s to %s', appointment_id, current, new_status)
    return appointment


def delete_appointment(db: Session, appointment_id: int) -> None:
    appointment = get_by_id(db, appointment_id)

    try:
        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreWriteError('Could not delete the appointment.') from exc

    logger.info('Appointment %s deleted', appointment_id)
