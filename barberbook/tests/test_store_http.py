from __future__ import annotations

import datetime as dt
import json

import httpx
import pytest

from barberbook.config import Settings
from barberbook.domain import NewAppointment, NewService, StoreError
from barberbook.store_http import HttpStore

DAY = dt.date(2025, 3, 14)

_APP = {"id": "a1", "clientName": "Ana", "serviceName": "Corte", "date": "2025-03-14", "time": "10:00"}


def _store(handler, **kwargs) -> HttpStore:
    kwargs.setdefault("retry_wait_max", 0)
    return HttpStore("https://store.test/api/", transport=httpx.MockTransport(handler), **kwargs)


def test_fetch_by_date_sends_date_and_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[_APP])

    apps = _store(handler, api_token="secret").appointments.fetch_by_date(DAY)

    assert [a.id for a in apps] == ["a1"]
    assert apps[0].date == DAY
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/appointments"
    assert seen[0].url.params["date"] == "2025-03-14"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_add_update_delete_appointment() -> None:
    calls: list[tuple[str, str, dict | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        calls.append((request.method, request.url.path, body))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": "a1", **body})

    store = _store(handler).appointments
    new = NewAppointment(client_name="Ana", service_name="Corte", date=DAY, time="10:00")

    assert store.add(new).id == "a1"
    assert store.update("a1", new).time == "10:00"
    assert store.delete("a1") is None

    assert [(m, p) for m, p, _ in calls] == [
        ("POST", "/api/appointments"),
        ("PUT", "/api/appointments/a1"),
        ("DELETE", "/api/appointments/a1"),
    ]
    assert calls[0][2] == {"clientName": "Ana", "serviceName": "Corte", "date": "2025-03-14", "time": "10:00"}


def test_services() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": "s1", "name": "Corte", "duration": 30}])
        if request.method == "POST":
            return httpx.Response(201, json={"id": "s2", **json.loads(request.content)})
        return httpx.Response(204)

    services = _store(handler).services

    assert [(s.name, s.duration_minutes) for s in services.list()] == [("Corte", 30)]
    created = services.add(NewService(name="Barba", duration_minutes=60))
    assert (created.id, created.duration_minutes) == ("s2", 60)
    services.delete("s2")


def test_http_error_becomes_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(StoreError, match="500"):
        _store(handler).services.list()


def test_unexpected_payload_becomes_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"appointments": []})

    with pytest.raises(StoreError, match="expected a list"):
        _store(handler).appointments.fetch_by_date(DAY)


def test_reads_are_retried_on_transport_errors() -> None:
    attempts = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[])

    assert _store(handler, retry_attempts=2).appointments.fetch_by_date(DAY) == []
    assert attempts["n"] == 2


def test_reads_give_up_after_configured_attempts() -> None:
    attempts = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreError, match="ConnectError"):
        _store(handler, retry_attempts=3).services.list()
    assert attempts["n"] == 3


def test_writes_are_not_retried() -> None:
    attempts = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    new = NewAppointment(client_name="Ana", service_name="Corte", date=DAY, time="10:00")
    with pytest.raises(StoreError):
        _store(handler, retry_attempts=3).appointments.add(new)
    assert attempts["n"] == 1


def test_from_settings() -> None:
    settings = Settings(store_backend="http", store_url="https://store.test", store_retry_attempts=4)

    store = HttpStore.from_settings(settings)

    assert store.base_url == "https://store.test"
    assert store.retry_attempts == 4

    with pytest.raises(RuntimeError, match="STORE_URL"):
        HttpStore.from_settings(Settings(store_backend="http"))
