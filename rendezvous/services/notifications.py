"""
Status-change emails for showroom visits, sent over SMTP.

Delivery is best effort: the status change is authoritative, so every failure
here is logged and reported as False, never raised.
Set SMTP_USER and SMTP_PASSWORD in .env, or NOTIFY_DRY_RUN=true to only log.
"""
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.core import config
from rendezvous.database import SessionLocal
from rendezvous.models.appointment import Appointment
from rendezvous.models.user import Profile

logger = logging.getLogger(__name__)


class StatusEmail(NamedTuple):
    subject: str
    html: str


STATUS_TEMPLATES = {
    'pending': (
        'We Received Your Appointment Request',
        '<p>Thank you for requesting a visit to our showroom.</p>'
        '<p>Our team will review your request and confirm it shortly.</p>',
    ),
    'confirmed': (
        'Your Appointment Has Been Confirmed',
        "<p>We're pleased to confirm your visit to our showroom.</p>"
        '<p>We look forward to welcoming you.</p>',
    ),
    'cancelled': (
        'Update Regarding Your Appointment Request',
        '<p>Thank you for your interest in our showroom.</p>'
        '<p>We regret to inform you that we are unable to honor this appointment.</p>'
        '<p>Please feel free to book another time or contact us to discuss alternatives.</p>',
    ),
    'completed': (
        'Thank You for Your Visit',
        "<p>We're happy you could visit our showroom.</p>"
        "<p>Thank you for choosing our services. We hope you found what you were looking for.</p>",
    ),
}


def compose_status_email(appointment: Appointment, status: str, recipient_name: str | None = None) -> StatusEmail:
    shop = html.escape(config.SHOP_NAME)
    safe_status = html.escape(status)
    subject, body_content = STATUS_TEMPLATES.get(
        status,
        (
            'Update on Your Appointment',
            f'<p>We have an update regarding your appointment.</p><p>The current status is: {safe_status}</p>',
        ),
    )
    greeting = html.escape(recipient_name) if recipient_name else 'Customer'

    body = (
        f'<html><head><title>{subject}</title></head><body>'
        f'<h1>{subject}</h1>'
        f'<p>Dear {greeting},</p>'
        f'{body_content}'
        '<p>Appointment Details:</p>'
        '<ul>'
        f'<li>Appointment ID: {appointment.id}</li>'
        f'<li>Date: {appointment.appointment_date}</li>'
        f'<li>Time: {html.escape(str(appointment.appointment_time))}</li>'
        f'<li>Status: {safe_status}</li>'
        '</ul>'
        f'<p>Thank you for choosing {shop}!</p>'
        f'<p>Best regards,<br>The {shop} Team</p>'
        '</body></html>'
    )
    return StatusEmail(subject=subject, html=body)


def _from_address() -> str:
    if config.NOTIFY_FROM.strip():
        return config.NOTIFY_FROM.strip()
    user = config.SMTP_USER.strip()
    if user:
        return f'{config.SHOP_NAME} <{user}>'
    return f'{config.SHOP_NAME} <noreply@localhost>'


def send_email(to_email: str, subject: str, html_body: str) -> bool:
    """Send one HTML email. Returns True if sent, False if skipped or failed."""
    to_email = (to_email or '').strip()
    if not to_email:
        return False

    if config.NOTIFY_DRY_RUN:
        logger.info('[DRY_RUN EMAIL] to=%s subject=%s', to_email, subject)
        return True

    user = config.SMTP_USER.strip()
    password = config.SMTP_PASSWORD.strip()
    if not user or not password:
        logger.debug('SMTP_USER or SMTP_PASSWORD not set; skipping email to %s', to_email)
        return False

    msg = MIMEMultipart('alternative')
    msg['Subject'] = subject
    msg['From'] = _from_address()
    msg['To'] = to_email
    msg.attach(MIMEText(html_body, 'html'))
    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=config.SMTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception('Failed to send email to %s', to_email)
        return False

    logger.info('Email "%s" sent to %s', subject, to_email)
    return True


def dispatch_status_notification(
    appointment_id: int,
    new_status: str,
    session_factory: Callable[[], Session] = SessionLocal,
    sender: Callable[[str, str, str], bool] = send_email,
) -> bool:
    """Tell the customer their appointment changed status.

    Runs after the status change committed, usually as a background task.
    """
    db = session_factory()
    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            logger.warning('Appointment %s not found; no notification sent', appointment_id)
            return False

        profile = db.query(Profile).filter(Profile.id == appointment.user_id).first()
        if profile is None or not profile.email:
            logger.warning('No email on file for owner of appointment %s; no notification sent', appointment_id)
            return False

        message = compose_status_email(appointment, new_status, profile.full_name)
        recipient = profile.email
    except SQLAlchemyError:
        logger.exception('Could not load appointment %s for notification', appointment_id)
        return False
    finally:
        db.close()

    logger.info('Sending %s notification for appointment %s to %s', new_status, appointment_id, recipient)
    try:
        delivered = sender(recipient, message.subject, message.html)
    except Exception:
        logger.exception('Notification for appointment %s failed', appointment_id)
        return False

    if not delivered:
        logger.warning('Notification for appointment %s was not delivered', appointment_id)
    return delivered
