from __future__ import annotations

import datetime as dt
from dataclasses import dataclass


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    duration_minutes: int


@dataclass(frozen=True)
class NewService:
    name: str
    duration_minutes: int


@dataclass(frozen=True)
class Appointment:
    """A stored booking.

    `service_name` references a Service by name, not by id, so deleting the
    service leaves the appointment in place with a label that no longer
    resolves to a duration.
    """

    id: str
    client_name: str
    service_name: str
    date: dt.date
    time: str  # HH:MM


@dataclass(frozen=True)
class NewAppointment:
    client_name: str
    service_name: str
    date: dt.date
    time: str  # HH:MM


def parse_date(raw: str) -> dt.date:
    try:
        return dt.date.fromisoformat(raw)
    except ValueError as e:
        raise InvalidBookingError(f"Invalid date {raw!r}. Expected YYYY-MM-DD.") from e


class BookingError(RuntimeError):
    """Base class for errors the booking layer reports to the user."""


class InvalidTimeSlotError(BookingError):
    pass


class InvalidBookingError(BookingError):
    pass


class NoSlotAvailableError(BookingError):
    def __init__(self, message: str = "No slot available for this service.") -> None:
        super().__init__(message)


class InvalidServiceError(BookingError):
    pass


class DuplicateServiceError(InvalidServiceError):
    pass


class StoreError(BookingError):
    """The appointment store or service catalog failed (I/O, HTTP, corrupt data)."""
