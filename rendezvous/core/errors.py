"""Failure kinds raised by the appointment services.

Routes translate these into HTTP responses; the services never render them.
"""


class AppointmentError(Exception):
    """Base class for appointment workflow failures."""


class Unauthenticated(AppointmentError):
    """A write or owner lookup was attempted without an identity."""


class NotFound(AppointmentError):
    """Lookup by id yielded nothing."""


class StoreReadError(AppointmentError):
    """The appointment store could not be queried."""


class StoreWriteError(AppointmentError):
    """An insert, update or delete against the store failed."""


class InvalidStatusTransition(AppointmentError):
    def __init__(self, current: str | None, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from {current!r} to {requested!r}.")


class SlotConflict(AppointmentError):
    """Another confirmed appointment already holds the slot."""
