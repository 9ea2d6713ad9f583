from __future__ import annotations

import datetime as dt
import itertools

import pytest

from barberbook.domain import Appointment, Service
from barberbook.occupancy import Occupancy, appointment_run, build_occupancy, duration_lookup
from barberbook.slot_grid import DEFAULT_GRID, SlotGrid, TimeSlot

DAY = dt.date(2025, 3, 14)

SERVICES = [
    Service(id="s1", name="Corte", duration_minutes=30),
    Service(id="s2", name="Corte + Barba", duration_minutes=60),
    Service(id="s3", name="Coloração", duration_minutes=120),
]


def _app(app_id: str, time: str, service: str) -> Appointment:
    return Appointment(id=app_id, client_name=f"client-{app_id}", service_name=service, date=DAY, time=time)


def _tokens(occupancy: Occupancy) -> list[str]:
    return [s.token for s in occupancy.slots()]


def test_each_appointment_expands_to_its_duration() -> None:
    durations = duration_lookup(SERVICES)
    occupancy = build_occupancy(
        [_app("1", "10:00", "Corte + Barba"), _app("2", "14:00", "Coloração"), _app("3", "09:00", "Corte")],
        durations,
    )

    assert _tokens(occupancy) == ["09:00", "10:00", "10:30", "14:00", "14:30", "15:00", "15:30"]


def test_unknown_service_is_skipped_silently() -> None:
    occupancy = build_occupancy([_app("1", "10:00", "Deleted service")], duration_lookup(SERVICES))
    assert occupancy.slots() == []


def test_off_grid_start_is_skipped() -> None:
    occupancy = build_occupancy([_app("1", "10:15", "Corte")], duration_lookup(SERVICES))
    assert occupancy.slots() == []


def test_run_past_closing_keeps_only_grid_slots() -> None:
    durations = duration_lookup(SERVICES)
    app = _app("1", "18:00", "Corte + Barba")

    assert [s.token for s in appointment_run(app, durations)] == ["18:00", "18:30"]
    assert _tokens(build_occupancy([app], durations)) == ["18:00"]


def test_occupancy_is_independent_of_appointment_order() -> None:
    durations = duration_lookup(SERVICES)
    apps = [
        _app("1", "09:00", "Corte + Barba"),
        _app("2", "09:30", "Corte"),  # overlaps the first one
        _app("3", "16:00", "Coloração"),
    ]

    expected = build_occupancy(apps, durations)
    for perm in itertools.permutations(apps):
        assert build_occupancy(perm, durations) == expected


def test_building_twice_gives_the_same_result() -> None:
    durations = duration_lookup(SERVICES)
    apps = [_app("1", "11:00", "Coloração")]
    assert build_occupancy(apps, durations) == build_occupancy(apps, durations)


def test_union_and_without() -> None:
    a = Occupancy.from_slots([TimeSlot.at(9), TimeSlot.at(9, 30)])
    b = Occupancy.from_slots([TimeSlot.at(10)])

    merged = a | b
    assert _tokens(merged) == ["09:00", "09:30", "10:00"]
    assert _tokens(merged.without([TimeSlot.at(9, 30), TimeSlot.at(20)])) == ["09:00", "10:00"]

    assert merged.is_taken(TimeSlot.at(10))
    assert not merged.is_taken(TimeSlot.at(11))
    assert not merged.is_taken(TimeSlot.at(20))


def test_union_rejects_other_grid() -> None:
    other = Occupancy.empty(SlotGrid(open_hour=10, close_hour=12))
    with pytest.raises(ValueError):
        Occupancy.empty(DEFAULT_GRID).union(other)
