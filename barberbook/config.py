from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

_BACKENDS = {"file", "http"}


@dataclass(frozen=True)
class Settings:
    store_backend: str = "file"

    # JSON document used by the file backend
    store_file: str = "barberbook.json"

    # HTTP backend
    store_url: str | None = None
    store_api_token: str | None = None
    store_timeout_seconds: float = 20.0
    # How many times an idempotent read against the HTTP store is attempted.
    store_retry_attempts: int = 2

    log_level: str = "INFO"


def _parse_backend(raw: str) -> str:
    backend = raw.strip().lower()
    if backend not in _BACKENDS:
        raise RuntimeError(f"Invalid STORE_BACKEND value: {raw!r}. Expected one of: file, http")
    return backend


def _parse_log_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"Invalid LOG_LEVEL value: {raw!r}")
    return level


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    store_backend = _parse_backend(os.getenv("STORE_BACKEND", "file"))
    store_file = os.getenv("STORE_FILE", "barberbook.json")

    store_url = _optional("STORE_URL")
    if store_backend == "http" and not store_url:
        raise RuntimeError("Missing required environment variable: STORE_URL (STORE_BACKEND=http)")

    try:
        store_timeout_seconds = float(os.getenv("STORE_TIMEOUT_SECONDS", "20"))
    except ValueError as e:
        raise RuntimeError("STORE_TIMEOUT_SECONDS must be a number") from e
    if store_timeout_seconds <= 0:
        raise RuntimeError("STORE_TIMEOUT_SECONDS must be > 0")

    try:
        store_retry_attempts = int(os.getenv("STORE_RETRY_ATTEMPTS", "2"))
    except ValueError as e:
        raise RuntimeError("STORE_RETRY_ATTEMPTS must be an integer") from e
    if store_retry_attempts < 1:
        raise RuntimeError("STORE_RETRY_ATTEMPTS must be >= 1")

    return Settings(
        store_backend=store_backend,
        store_file=store_file,
        store_url=store_url,
        store_api_token=_optional("STORE_API_TOKEN"),
        store_timeout_seconds=store_timeout_seconds,
        store_retry_attempts=store_retry_attempts,
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "INFO")),
    )
