import re
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.auth.dependencies import get_current_identity, is_admin
from rendezvous.core.errors import (
    AppointmentError,
    InvalidStatusTransition,
    NotFound,
    SlotConflict,
    StoreReadError,
    StoreWriteError,
    Unauthenticated,
)
from rendezvous.database import ensure_appointment_schema, get_db
from rendezvous.models.user import Profile
from rendezvous.services import appointments as appointment_service
from rendezvous.services.slots import AppointmentSlot, generate_slot_times, get_available_slots

router = APIRouter(tags=['appointments'])

TIME_LABEL_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$')


class CreateAppointmentRequest(BaseModel):
    date: date
    time: str

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        if not TIME_LABEL_PATTERN.match(normalized):
            raise ValueError('Time must use the HH:MM format.')
        label = normalized[:5]
        if label not in generate_slot_times():
            raise ValueError('Time is not one of the showroom slots.')
        return label


class AppointmentResponse(BaseModel):
    id: int
    user_id: str
    appointment_date: date
    appointment_time: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class WeekCheckResponse(BaseModel):
    has_appointment: bool


def to_http_exception(exc: AppointmentError) -> HTTPException:
    if isinstance(exc, Unauthenticated):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Not authenticated')
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')
    if isinstance(exc, SlotConflict):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This time is already booked.')
    if isinstance(exc, InvalidStatusTransition):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (StoreReadError, StoreWriteError)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL.',
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail='Unexpected appointment error.')


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL.',
        ) from exc


@router.get('/slots', response_model=list[AppointmentSlot])
def list_slots(
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_available_slots(db, slot_date)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointment_service.create_appointment(db, identity, data.date, data.time)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointment_service.get_user_appointments(db, identity)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc


@router.get('/week-check', response_model=WeekCheckResponse)
def check_week(
    slot_date: date = Query(..., alias='date'),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return WeekCheckResponse(
            has_appointment=appointment_service.has_appointment_in_week(db, identity, slot_date),
        )
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.get_by_id(db, appointment_id)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc

    if appointment.user_id != identity:
        try:
            caller = db.query(Profile).filter(Profile.id == identity).first()
        except SQLAlchemyError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail='Database unavailable. Verify DATABASE_URL.',
            ) from exc
        if not is_admin(caller):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the customer who booked this appointment can view it.',
            )

    return appointment
