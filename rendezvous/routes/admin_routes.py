import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from rendezvous.auth.dependencies import require_admin
from rendezvous.core.errors import AppointmentError
from rendezvous.database import get_db
from rendezvous.models.appointment import APPOINTMENT_STATUSES
from rendezvous.models.user import Profile
from rendezvous.routes.appointment_routes import AppointmentResponse, ensure_database_ready, to_http_exception
from rendezvous.services import appointments as appointment_service
from rendezvous.services.notifications import dispatch_status_notification

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    ensure_database_ready()

    try:
        return appointment_service.list_appointments(db, status_filter)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.update_status(db, appointment_id, data.status)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s set appointment %s to %s', admin.email, appointment_id, appointment.status)
    # Runs after the response; delivery failures are only logged.
    background_tasks.add_task(dispatch_status_notification, appointment.id, appointment.status)
    return appointment


@router.delete('/appointments/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment_service.delete_appointment(db, appointment_id)
    except AppointmentError as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s deleted appointment %s', admin.email, appointment_id)
