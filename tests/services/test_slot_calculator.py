from datetime import date
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from rendezvous.core.errors import StoreReadError
from rendezvous.services.slots import SlotSchedule, generate_slot_times, get_available_slots


def test_generate_slot_times_covers_business_hours_in_half_hours() -> None:
    times = generate_slot_times()

    assert len(times) == 18
    assert times[0] == '09:00'
    assert times[1] == '09:30'
    assert times[-1] == '17:30'
    assert times == sorted(times)
    assert '18:00' not in times


def test_generate_slot_times_follows_custom_schedule() -> None:
    times = generate_slot_times(SlotSchedule(start_hour=10, end_hour=12, increment_minutes=15))

    assert times == ['10:00', '10:15', '10:30', '10:45', '11:00', '11:15', '11:30', '11:45']


@pytest.mark.parametrize(
    ('start_hour', 'end_hour', 'increment_minutes'),
    [
        (18, 9, 30),
        (9, 9, 30),
        (9, 25, 30),
        (9, 18, 0),
        (9, 18, 45),
    ],
)
def test_slot_schedule_rejects_invalid_windows(start_hour: int, end_hour: int, increment_minutes: int) -> None:
    with pytest.raises(ValidationError):
        SlotSchedule(start_hour=start_hour, end_hour=end_hour, increment_minutes=increment_minutes)


def test_get_available_slots_with_no_bookings_is_fully_open(appointment_db) -> None:
    slots = get_available_slots(appointment_db, date(2025, 3, 10))

    assert len(slots) == 18
    assert all(slot.is_available for slot in slots)
    assert all(slot.date == date(2025, 3, 10) for slot in slots)


def test_get_available_slots_marks_only_confirmed_bookings(appointment_db, add_appointment) -> None:
    add_appointment('u1', date(2025, 4, 1), '09:00', status='confirmed')
    add_appointment('u2', date(2025, 4, 1), '09:30', status='confirmed')

    slots = get_available_slots(appointment_db, '2025-04-01')

    assert len(slots) == 18
    unavailable = [slot.time for slot in slots if not slot.is_available]
    assert unavailable == ['09:00', '09:30']
    assert sum(slot.is_available for slot in slots) == 16


def test_pending_and_cancelled_bookings_do_not_block_slots(appointment_db, add_appointment) -> None:
    add_appointment('u1', date(2025, 4, 2), '10:00', status='pending')
    add_appointment('u2', date(2025, 4, 2), '10:00', status='pending')
    add_appointment('u3', date(2025, 4, 2), '11:00', status='cancelled')

    slots = {slot.time: slot.is_available for slot in get_available_slots(appointment_db, date(2025, 4, 2))}

    assert slots['10:00'] is True
    assert slots['11:00'] is True


def test_confirmed_booking_on_another_date_does_not_block(appointment_db, add_appointment) -> None:
    add_appointment('u1', date(2025, 4, 3), '14:00', status='confirmed')

    slots = {slot.time: slot.is_available for slot in get_available_slots(appointment_db, date(2025, 4, 4))}

    assert slots['14:00'] is True


def test_stored_times_with_seconds_still_block_their_slot(appointment_db, add_appointment) -> None:
    add_appointment('u1', date(2025, 4, 5), '15:30:00', status='confirmed')

    slots = {slot.time: slot.is_available for slot in get_available_slots(appointment_db, date(2025, 4, 5))}

    assert slots['15:30'] is False


def test_get_available_slots_rejects_malformed_date(appointment_db) -> None:
    with pytest.raises(StoreReadError):
        get_available_slots(appointment_db, '2025-13-45')


def test_get_available_slots_propagates_store_failures() -> None:
    db = MagicMock()
    db.query.side_effect = OperationalError('SELECT', {}, Exception('connection refused'))

    with pytest.raises(StoreReadError):
        get_available_slots(db, date(2025, 3, 10))
