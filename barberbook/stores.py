"""Contracts for the appointment store and service catalog, plus the wire shape
both backends share."""
from __future__ import annotations

import datetime as dt
from typing import Any, Mapping, Protocol

from barberbook.domain import Appointment, NewAppointment, NewService, Service, StoreError


class AppointmentStore(Protocol):
    def fetch_by_date(self, date: dt.date) -> list[Appointment]:
        ...

    def add(self, appointment: NewAppointment) -> Appointment:
        ...

    def update(self, appointment_id: str, appointment: NewAppointment) -> Appointment:
        ...

    def delete(self, appointment_id: str) -> None:
        ...


class ServiceCatalog(Protocol):
    def list(self) -> list[Service]:
        ...

    def add(self, service: NewService) -> Service:
        ...

    def delete(self, service_id: str) -> None:
        ...


def appointment_payload(appointment: NewAppointment) -> dict[str, Any]:
    return {
        "clientName": appointment.client_name,
        "serviceName": appointment.service_name,
        "date": appointment.date.isoformat(),
        "time": appointment.time,
    }


def appointment_from_payload(raw: Mapping[str, Any]) -> Appointment:
    try:
        return Appointment(
            id=str(raw["id"]),
            client_name=str(raw["clientName"]),
            service_name=str(raw["serviceName"]),
            date=dt.date.fromisoformat(str(raw["date"])),
            time=str(raw["time"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed appointment record: {raw!r}") from e


def service_payload(service: NewService) -> dict[str, Any]:
    return {"name": service.name, "duration": service.duration_minutes}


def service_from_payload(raw: Mapping[str, Any]) -> Service:
    try:
        return Service(id=str(raw["id"]), name=str(raw["name"]), duration_minutes=int(raw["duration"]))
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed service record: {raw!r}") from e
