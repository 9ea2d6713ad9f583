from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, replace
from typing import Iterable, Literal

from barberbook.availability import SchedulingRequest, choose_time, resolve_available_slots
from barberbook.domain import (
    Appointment,
    DuplicateServiceError,
    InvalidBookingError,
    InvalidServiceError,
    InvalidTimeSlotError,
    NewAppointment,
    NewService,
    NoSlotAvailableError,
    Service,
    StoreError,
)
from barberbook.slot_grid import DEFAULT_GRID, GRANULARITY_MINUTES, LUNCH_BREAK_SLOTS, SlotGrid, TimeSlot, is_valid_duration
from barberbook.stores import AppointmentStore, ServiceCatalog

logger = logging.getLogger(__name__)

DraftMode = Literal["create", "edit"]

CREATE: DraftMode = "create"
EDIT: DraftMode = "edit"


@dataclass(frozen=True)
class DaySnapshot:
    """Appointments and services as fetched for one date.

    `load_error` is set when the stores could not be read; the snapshot is then
    empty and every scheduling computation on it still works.
    """

    date: dt.date
    appointments: tuple[Appointment, ...] = ()
    services: tuple[Service, ...] = ()
    load_error: str | None = None

    def find(self, appointment_id: str) -> Appointment | None:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    def service(self, name: str | None) -> Service | None:
        return next((s for s in self.services if s.name == name), None)


@dataclass(frozen=True)
class BookingDraft:
    """An appointment being filled in, before it reaches the store.

    A draft is either "none" (no time could be proposed) or
    "proposed-time-selected". Submitting it is the "submitted" step: the desk
    persists it and hands back a reloaded DaySnapshot, and the draft is done.
    """

    mode: DraftMode
    date: dt.date
    client_name: str
    service_name: str | None
    time: TimeSlot | None
    original: Appointment | None = None

    def __post_init__(self) -> None:
        if self.mode not in (CREATE, EDIT):
            raise InvalidBookingError(f"Unknown draft mode {self.mode!r}")

    @property
    def request(self) -> SchedulingRequest:
        return SchedulingRequest(
            date=self.date,
            service_name=self.service_name,
            editing=self.original if self.mode == EDIT else None,
        )

    @property
    def state(self) -> str:
        # "submitted" is never reported here: submit() consumes the draft.
        return "proposed-time-selected" if self.time is not None else "none"


def shift_date(date: dt.date, offset_days: int) -> dt.date:
    return date + dt.timedelta(days=offset_days)


def _sort_by_time(appointments: Iterable[Appointment]) -> tuple[Appointment, ...]:
    return tuple(sorted(appointments, key=lambda a: (a.time, a.client_name, a.id)))


class BookingDesk:
    """Drives the appointment lifecycle against the two stores.

    Every mutation is followed by a fresh `load` of the affected date, so the
    occupancy the caller sees next is rebuilt from what the store holds.
    """

    def __init__(
        self,
        appointments: AppointmentStore,
        services: ServiceCatalog,
        *,
        grid: SlotGrid = DEFAULT_GRID,
        blackout: Iterable[TimeSlot] = LUNCH_BREAK_SLOTS,
    ) -> None:
        self.appointments = appointments
        self.services = services
        self.grid = grid
        self.blackout = frozenset(blackout)

    def load(self, date: dt.date) -> DaySnapshot:
        try:
            apps = self.appointments.fetch_by_date(date)
            srvs = self.services.list()
        except StoreError as e:
            logger.error("Failed to load %s (%s: %s)", date.isoformat(), type(e).__name__, e)
            return DaySnapshot(date=date, load_error=str(e))

        snapshot = DaySnapshot(
            date=date,
            appointments=_sort_by_time(a for a in apps if a.date == date),
            services=tuple(srvs),
        )
        logger.debug(
            "Loaded %s: appointments=%d services=%d",
            date.isoformat(),
            len(snapshot.appointments),
            len(snapshot.services),
        )
        return snapshot

    def available_slots(
        self,
        snapshot: DaySnapshot,
        service_name: str | None,
        editing: Appointment | None = None,
    ) -> list[TimeSlot]:
        request = SchedulingRequest(date=snapshot.date, service_name=service_name, editing=editing)
        return self._resolve(snapshot, request)

    def _resolve(self, snapshot: DaySnapshot, request: SchedulingRequest) -> list[TimeSlot]:
        return resolve_available_slots(
            request,
            snapshot.services,
            snapshot.appointments,
            grid=self.grid,
            blackout=self.blackout,
        )

    # Drafts

    def open_create(
        self,
        snapshot: DaySnapshot,
        *,
        client_name: str = "",
        service_name: str | None = None,
    ) -> BookingDraft:
        if service_name is None and snapshot.services:
            service_name = snapshot.services[0].name
        draft = BookingDraft(
            mode=CREATE,
            date=snapshot.date,
            client_name=client_name,
            service_name=service_name,
            time=None,
        )
        return self._propose_time(snapshot, draft)

    def open_edit(self, snapshot: DaySnapshot, appointment: Appointment) -> BookingDraft:
        try:
            current = self.grid.parse(appointment.time)
        except InvalidTimeSlotError:
            current = None
        draft = BookingDraft(
            mode=EDIT,
            date=appointment.date,
            client_name=appointment.client_name,
            service_name=appointment.service_name,
            time=current,
            original=appointment,
        )
        return self._propose_time(snapshot, draft)

    def change_service(self, snapshot: DaySnapshot, draft: BookingDraft, service_name: str) -> BookingDraft:
        return self._propose_time(snapshot, replace(draft, service_name=service_name))

    def choose_time(self, snapshot: DaySnapshot, draft: BookingDraft, raw_time: str) -> BookingDraft:
        slot = self.grid.parse(raw_time)
        if slot not in self._resolve(snapshot, draft.request):
            raise InvalidTimeSlotError(f"{slot} is not available for {draft.service_name}.")
        return replace(draft, time=slot)

    def _propose_time(self, snapshot: DaySnapshot, draft: BookingDraft) -> BookingDraft:
        candidates = self._resolve(snapshot, draft.request)
        chosen = choose_time(candidates, draft.time)
        if chosen != draft.time and draft.time is not None:
            logger.info("Selected time %s no longer fits %s, moved to %s", draft.time, draft.service_name, chosen)
        return replace(draft, time=chosen)

    # Lifecycle

    def submit(self, draft: BookingDraft) -> DaySnapshot:
        if draft.time is None:
            raise NoSlotAvailableError()

        client_name = draft.client_name.strip()
        if not client_name:
            raise InvalidBookingError("Client name is required.")
        if not draft.service_name:
            raise InvalidBookingError("Service is required.")

        payload = NewAppointment(
            client_name=client_name,
            service_name=draft.service_name,
            date=draft.date,
            time=draft.time.token,
        )

        if draft.mode == CREATE:
            created = self.appointments.add(payload)
            logger.info("Booked %s for %s on %s at %s", created.id, client_name, draft.date, draft.time)
        elif draft.mode == EDIT and draft.original is not None:
            updated = self.appointments.update(draft.original.id, payload)
            logger.info(
                "Rescheduled %s: %s %s -> %s %s",
                updated.id,
                draft.original.date,
                draft.original.time,
                draft.date,
                draft.time,
            )
        else:
            raise InvalidBookingError(f"Cannot submit draft in mode {draft.mode!r}")

        return self.load(draft.date)

    def cancel(self, snapshot: DaySnapshot, appointment_id: str) -> DaySnapshot:
        self.appointments.delete(appointment_id)
        logger.info("Cancelled appointment %s", appointment_id)
        return self.load(snapshot.date)

    # Service catalog

    def list_services(self) -> list[Service]:
        return self.services.list()

    def add_service(self, name: str, duration_minutes: int = GRANULARITY_MINUTES) -> Service:
        clean = name.strip()
        if not clean:
            raise InvalidServiceError("Service name is required.")
        if not is_valid_duration(duration_minutes):
            raise InvalidServiceError(
                f"Invalid duration {duration_minutes!r}. Expected a positive multiple of {GRANULARITY_MINUTES} minutes."
            )

        existing = self.services.list()
        if any(s.name.lower() == clean.lower() for s in existing):
            raise DuplicateServiceError(f"Service {clean!r} already exists.")

        service = self.services.add(NewService(name=clean, duration_minutes=duration_minutes))
        logger.info("Added service %s (%s, %d min)", service.id, service.name, service.duration_minutes)
        return service

    def delete_service(self, service_id: str) -> None:
        # Appointments keep their service name; they just stop counting
        # toward occupancy once the name no longer resolves.
        self.services.delete(service_id)
        logger.info("Removed service %s", service_id)
