from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from barberbook.domain import InvalidTimeSlotError

GRANULARITY_MINUTES = 30

OPEN_HOUR = 9
# The shop closes at 19:00, so the last slot starts at 18:00.
CLOSE_HOUR = 19

_TOKEN_RE = re.compile(r"^(\d{2}):(\d{2})$")


@dataclass(frozen=True, order=True)
class TimeSlot:
    """Time of day on the booking grid, stored as minutes since midnight."""

    minutes: int

    @classmethod
    def parse(cls, raw: str) -> TimeSlot:
        m = _TOKEN_RE.match(raw) if isinstance(raw, str) else None
        if not m:
            raise InvalidTimeSlotError(f"Invalid time {raw!r}. Expected HH:MM.")
        hour, minute = int(m.group(1)), int(m.group(2))
        if hour > 23 or minute > 59:
            raise InvalidTimeSlotError(f"Invalid time {raw!r}. Expected HH:MM.")
        return cls(hour * 60 + minute)

    @classmethod
    def at(cls, hour: int, minute: int = 0) -> TimeSlot:
        return cls(hour * 60 + minute)

    @property
    def token(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"

    def add_minutes(self, minutes: int) -> TimeSlot:
        return TimeSlot(self.minutes + minutes)

    def __str__(self) -> str:
        return self.token


class SlotGrid:
    """Ordered slot-start times of one business day."""

    def __init__(self, open_hour: int = OPEN_HOUR, close_hour: int = CLOSE_HOUR) -> None:
        if not 0 <= open_hour < close_hour <= 24:
            raise ValueError(f"Invalid business hours: {open_hour}..{close_hour}")
        self.open_hour = open_hour
        self.close_hour = close_hour
        self._slots = tuple(self._build())
        self._positions = {slot: i for i, slot in enumerate(self._slots)}

    def _build(self) -> Iterator[TimeSlot]:
        for hour in range(self.open_hour, self.close_hour):
            yield TimeSlot.at(hour, 0)
            if hour != self.close_hour - 1:
                yield TimeSlot.at(hour, 30)

    def generate(self) -> tuple[TimeSlot, ...]:
        return self._slots

    def next(self, slot: TimeSlot) -> TimeSlot:
        # Past the last slot this yields a time that is not on the grid;
        # callers read that as "does not fit".
        return slot.add_minutes(GRANULARITY_MINUTES)

    def contains(self, slot: TimeSlot) -> bool:
        return slot in self._positions

    def index(self, slot: TimeSlot) -> int | None:
        return self._positions.get(slot)

    def parse(self, raw: str) -> TimeSlot:
        """Parse an HH:MM token and require it to be a grid member."""
        slot = TimeSlot.parse(raw)
        if not self.contains(slot):
            raise InvalidTimeSlotError(f"{raw} is not a bookable time.")
        return slot

    def run(self, start: TimeSlot, count: int) -> list[TimeSlot]:
        """`count` consecutive slots from `start`; may run off the grid."""
        result: list[TimeSlot] = []
        current = start
        for _ in range(count):
            result.append(current)
            current = self.next(current)
        return result

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[TimeSlot]:
        return iter(self._slots)


DEFAULT_GRID = SlotGrid()

LUNCH_BREAK_SLOTS: frozenset[TimeSlot] = frozenset({TimeSlot.at(12, 0), TimeSlot.at(12, 30)})


def slots_for_duration(duration_minutes: int) -> int:
    # A duration off the 30-minute step still blocks every slot it touches.
    return -(-duration_minutes // GRANULARITY_MINUTES)


def is_valid_duration(duration_minutes: int) -> bool:
    return (
        isinstance(duration_minutes, int)
        and not isinstance(duration_minutes, bool)
        and duration_minutes > 0
        and duration_minutes % GRANULARITY_MINUTES == 0
    )
