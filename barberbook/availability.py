from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, Sequence

from barberbook.domain import Appointment, Service
from barberbook.occupancy import Occupancy, appointment_run, build_occupancy, duration_lookup
from barberbook.slot_grid import DEFAULT_GRID, LUNCH_BREAK_SLOTS, SlotGrid, TimeSlot, slots_for_duration


@dataclass(frozen=True)
class SchedulingRequest:
    """One question to the resolver: where can `service_name` go on `date`?

    `editing` is the stored appointment being rescheduled, if any. Its own
    slots (computed with its original service) don't count as taken.
    """

    date: dt.date
    service_name: str | None
    editing: Appointment | None = None


def find_candidates(
    duration_minutes: int,
    occupancy: Occupancy,
    *,
    blackout: Iterable[TimeSlot] = LUNCH_BREAK_SLOTS,
    exclude: Iterable[TimeSlot] = (),
) -> list[TimeSlot]:
    """Start times whose full run is on the grid and free.

    blocked = (occupancy | blackout) - exclude
    """
    grid = occupancy.grid
    if duration_minutes <= 0:
        return []

    blocked = occupancy.union(Occupancy.from_slots(blackout, grid)).without(exclude)
    required = slots_for_duration(duration_minutes)

    candidates: list[TimeSlot] = []
    for start in grid:
        if _run_fits(start, required, grid, blocked):
            candidates.append(start)
    return candidates


def _run_fits(start: TimeSlot, required: int, grid: SlotGrid, blocked: Occupancy) -> bool:
    current = start
    for _ in range(required):
        if not grid.contains(current) or blocked.is_taken(current):
            return False
        current = grid.next(current)
    return True


def resolve_available_slots(
    request: SchedulingRequest,
    services: Sequence[Service],
    appointments: Iterable[Appointment],
    *,
    grid: SlotGrid = DEFAULT_GRID,
    blackout: Iterable[TimeSlot] = LUNCH_BREAK_SLOTS,
) -> list[TimeSlot]:
    durations = duration_lookup(services)
    duration = durations.get(request.service_name) if request.service_name else None
    if duration is None:
        return []

    same_day = [a for a in appointments if a.date == request.date]
    occupancy = build_occupancy(same_day, durations, grid)

    exclude: list[TimeSlot] = []
    if request.editing is not None and request.editing.date == request.date:
        exclude = appointment_run(request.editing, durations, grid)

    return find_candidates(duration, occupancy, blackout=blackout, exclude=exclude)


def choose_time(candidates: Sequence[TimeSlot], current: TimeSlot | None) -> TimeSlot | None:
    """Keep `current` if it is still a candidate, else fall back to the first one."""
    if current is not None and current in candidates:
        return current
    return candidates[0] if candidates else None
