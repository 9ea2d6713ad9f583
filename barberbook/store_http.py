from __future__ import annotations

import datetime as dt
import logging
from typing import Any

import httpx
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from barberbook.config import Settings
from barberbook.domain import Appointment, NewAppointment, NewService, Service, StoreError
from barberbook.stores import (
    appointment_from_payload,
    appointment_payload,
    service_from_payload,
    service_payload,
)

logger = logging.getLogger(__name__)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    sleep_seconds = getattr(retry_state.next_action, "sleep", 0) or 0
    logger.info(
        "Store read attempt %s failed (%s), retrying in %.1fs",
        retry_state.attempt_number,
        type(exc).__name__ if exc else "unknown",
        sleep_seconds,
    )


class HttpStore:
    """JSON REST client for a remote appointment store and service catalog.

    Only reads are retried; writes are sent once and any failure is raised
    to the caller as StoreError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 20.0,
        retry_attempts: int = 2,
        retry_wait_max: float = 4.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.retry_wait_max = retry_wait_max
        self._headers = {"Accept": "application/json"}
        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token}"
        self._transport = transport

        self.appointments = _HttpAppointments(self)
        self.services = _HttpServices(self)

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpStore:
        if not settings.store_url:
            raise RuntimeError("STORE_URL is required for the http store backend")
        return cls(
            settings.store_url,
            api_token=settings.store_api_token,
            timeout_seconds=settings.store_timeout_seconds,
            retry_attempts=settings.store_retry_attempts,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        with self._client() as client:
            r = client.request(method, path, **kwargs)
            r.raise_for_status()
            if r.status_code == 204 or not r.content:
                return None
            return r.json()

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            if method == "GET":
                decorated = retry(
                    stop=stop_after_attempt(self.retry_attempts),
                    wait=wait_exponential(multiplier=0.5, max=self.retry_wait_max),
                    retry=retry_if_exception_type(httpx.TransportError),
                    before_sleep=_log_before_sleep,
                    reraise=True,
                )(self._send)
                return decorated(method, path, **kwargs)
            return self._send(method, path, **kwargs)
        except httpx.HTTPStatusError as e:
            raise StoreError(f"Store API error: {e.response.status_code} on {method} {path}") from e
        except httpx.HTTPError as e:
            raise StoreError(f"Store request failed: {method} {path} ({type(e).__name__}: {e})") from e
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON for {method} {path}") from e


def _expect_list(data: Any, path: str) -> list[Any]:
    if not isinstance(data, list):
        raise StoreError(f"Unexpected response for {path}: expected a list")
    return data


def _expect_object(data: Any, path: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise StoreError(f"Unexpected response for {path}: expected an object")
    return data


class _HttpAppointments:
    def __init__(self, store: HttpStore) -> None:
        self._store = store

    def fetch_by_date(self, date: dt.date) -> list[Appointment]:
        data = self._store.request("GET", "/appointments", params={"date": date.isoformat()})
        return [appointment_from_payload(r) for r in _expect_list(data, "/appointments")]

    def add(self, appointment: NewAppointment) -> Appointment:
        data = self._store.request("POST", "/appointments", json=appointment_payload(appointment))
        return appointment_from_payload(_expect_object(data, "/appointments"))

    def update(self, appointment_id: str, appointment: NewAppointment) -> Appointment:
        path = f"/appointments/{appointment_id}"
        data = self._store.request("PUT", path, json=appointment_payload(appointment))
        return appointment_from_payload(_expect_object(data, path))

    def delete(self, appointment_id: str) -> None:
        self._store.request("DELETE", f"/appointments/{appointment_id}")


class _HttpServices:
    def __init__(self, store: HttpStore) -> None:
        self._store = store

    def list(self) -> list[Service]:
        data = self._store.request("GET", "/services")
        return [service_from_payload(r) for r in _expect_list(data, "/services")]

    def add(self, service: NewService) -> Service:
        data = self._store.request("POST", "/services", json=service_payload(service))
        return service_from_payload(_expect_object(data, "/services"))

    def delete(self, service_id: str) -> None:
        self._store.request("DELETE", f"/services/{service_id}")
