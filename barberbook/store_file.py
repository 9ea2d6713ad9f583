from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
import uuid
from typing import Any

from barberbook.domain import Appointment, NewAppointment, NewService, Service, StoreError
from barberbook.stores import (
    appointment_from_payload,
    appointment_payload,
    service_from_payload,
    service_payload,
)

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Appointments and services kept in a single JSON document.

    Every call reads the file and every mutation rewrites it atomically, so
    there is no in-memory state to go stale between calls.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.appointments = _FileAppointments(self)
        self.services = _FileServices(self)

    def load(self) -> dict[str, list[dict[str, Any]]]:
        if not os.path.exists(self.path):
            return {"appointments": [], "services": []}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            raise StoreError(f"Cannot read {self.path} ({type(e).__name__}: {e})") from e

        if not isinstance(raw, dict):
            raise StoreError(f"Unexpected document in {self.path}: expected an object")

        data: dict[str, list[dict[str, Any]]] = {}
        for key in ("appointments", "services"):
            records = raw.get(key, [])
            if not isinstance(records, list):
                raise StoreError(f"Unexpected {key} in {self.path}: expected a list")
            data[key] = records
        return data

    def save(self, data: dict[str, list[dict[str, Any]]]) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        try:
            if folder and not os.path.exists(folder):
                os.makedirs(folder, exist_ok=True)

            # Atomic write
            with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tmp_name = tf.name

            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write {self.path} ({type(e).__name__}: {e})") from e


def _new_id() -> str:
    return uuid.uuid4().hex


def _record_id(record: Any) -> str | None:
    if not isinstance(record, dict):
        return None
    return str(record.get("id"))


class _FileAppointments:
    def __init__(self, store: JsonFileStore) -> None:
        self._store = store

    def fetch_by_date(self, date: dt.date) -> list[Appointment]:
        records = self._store.load()["appointments"]
        return [a for a in map(appointment_from_payload, records) if a.date == date]

    def add(self, appointment: NewAppointment) -> Appointment:
        data = self._store.load()
        record = {"id": _new_id(), **appointment_payload(appointment)}
        data["appointments"].append(record)
        self._store.save(data)
        return appointment_from_payload(record)

    def update(self, appointment_id: str, appointment: NewAppointment) -> Appointment:
        data = self._store.load()
        for i, record in enumerate(data["appointments"]):
            if _record_id(record) == appointment_id:
                updated = {"id": appointment_id, **appointment_payload(appointment)}
                data["appointments"][i] = updated
                self._store.save(data)
                return appointment_from_payload(updated)
        raise StoreError(f"Appointment not found: {appointment_id}")

    def delete(self, appointment_id: str) -> None:
        data = self._store.load()
        remaining = [r for r in data["appointments"] if _record_id(r) != appointment_id]
        if len(remaining) == len(data["appointments"]):
            raise StoreError(f"Appointment not found: {appointment_id}")
        data["appointments"] = remaining
        self._store.save(data)


class _FileServices:
    def __init__(self, store: JsonFileStore) -> None:
        self._store = store

    def list(self) -> list[Service]:
        return [service_from_payload(r) for r in self._store.load()["services"]]

    def add(self, service: NewService) -> Service:
        data = self._store.load()
        record = {"id": _new_id(), **service_payload(service)}
        data["services"].append(record)
        self._store.save(data)
        return service_from_payload(record)

    def delete(self, service_id: str) -> None:
        data = self._store.load()
        remaining = [r for r in data["services"] if _record_id(r) != service_id]
        if len(remaining) == len(data["services"]):
            raise StoreError(f"Service not found: {service_id}")
        data["services"] = remaining
        self._store.save(data)
        logger.debug("Service %s removed from %s", service_id, self._store.path)
