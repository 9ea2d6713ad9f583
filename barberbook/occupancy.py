from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from barberbook.domain import Appointment, InvalidTimeSlotError, Service
from barberbook.slot_grid import DEFAULT_GRID, SlotGrid, TimeSlot, slots_for_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occupancy:
    """Taken/free flag for every position of a slot grid.

    Times that fall outside the grid are never stored: a run that spills past
    closing can't block anything, since candidates are checked against the
    grid first.
    """

    grid: SlotGrid
    taken: tuple[bool, ...]

    @classmethod
    def empty(cls, grid: SlotGrid = DEFAULT_GRID) -> Occupancy:
        return cls(grid=grid, taken=(False,) * len(grid))

    @classmethod
    def from_slots(cls, slots: Iterable[TimeSlot], grid: SlotGrid = DEFAULT_GRID) -> Occupancy:
        taken = [False] * len(grid)
        for slot in slots:
            i = grid.index(slot)
            if i is not None:
                taken[i] = True
        return cls(grid=grid, taken=tuple(taken))

    def is_taken(self, slot: TimeSlot) -> bool:
        i = self.grid.index(slot)
        return i is not None and self.taken[i]

    def slots(self) -> list[TimeSlot]:
        return [slot for slot, flag in zip(self.grid, self.taken) if flag]

    def union(self, other: Occupancy) -> Occupancy:
        self._check_grid(other)
        return Occupancy(grid=self.grid, taken=tuple(a or b for a, b in zip(self.taken, other.taken)))

    def without(self, slots: Iterable[TimeSlot]) -> Occupancy:
        freed = Occupancy.from_slots(slots, self.grid)
        return Occupancy(grid=self.grid, taken=tuple(a and not b for a, b in zip(self.taken, freed.taken)))

    def _check_grid(self, other: Occupancy) -> None:
        if other.grid is not self.grid and other.grid.generate() != self.grid.generate():
            raise ValueError("Cannot combine occupancies built on different grids")

    __or__ = union


def duration_lookup(services: Iterable[Service]) -> dict[str, int]:
    return {s.name: s.duration_minutes for s in services}


def appointment_run(
    appointment: Appointment,
    durations: Mapping[str, int],
    grid: SlotGrid = DEFAULT_GRID,
) -> list[TimeSlot]:
    """Slots an appointment occupies, starting at its time.

    Empty when the service no longer exists or the stored time is not a grid
    token.
    """
    duration = durations.get(appointment.service_name)
    if duration is None:
        logger.debug(
            "Appointment %s references unknown service %r, skipping",
            appointment.id,
            appointment.service_name,
        )
        return []

    try:
        start = grid.parse(appointment.time)
    except InvalidTimeSlotError:
        logger.warning("Appointment %s has off-grid time %r, skipping", appointment.id, appointment.time)
        return []

    return grid.run(start, slots_for_duration(duration))


def build_occupancy(
    appointments: Iterable[Appointment],
    durations: Mapping[str, int],
    grid: SlotGrid = DEFAULT_GRID,
) -> Occupancy:
    slots: list[TimeSlot] = []
    for appointment in appointments:
        slots.extend(appointment_run(appointment, durations, grid))
    return Occupancy.from_slots(slots, grid)
