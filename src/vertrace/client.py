"""HTTP client for the version-trace backend that supplies visualization data."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from vertrace.core.parser import Release, VisualizationData, parse_release, parse_visualization_data
from vertrace.errors import ApiError

logger = logging.getLogger(__name__)

API_URL_ENV = "VERTRACE_API_URL"
DEFAULT_BASE_URL = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF = 0.5


def default_base_url() -> str:
    """Base URL from VERTRACE_API_URL, else the local backend."""
    return os.environ.get(API_URL_ENV) or DEFAULT_BASE_URL


@dataclass(frozen=True)
class HealthStatus:
    """Result of the backend health check."""

    ok: bool
    details: dict = field(default_factory=dict)


class ResponseSequencer:
    """
    Hand out increasing tickets so only the newest request's result is applied.

    Call begin() before issuing a request and is_current(ticket) when its
    response arrives; a response whose ticket is no longer current is stale
    and must be dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    @property
    def latest(self) -> int:
        return self._latest


def _error_from_response(response: httpx.Response) -> ApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    message = ""
    if isinstance(payload, dict):
        message = str(payload.get("error") or payload.get("detail") or "")
    return ApiError(message or response.reason_phrase or "request failed", status_code=response.status_code)


class VersionTraceClient:
    """Synchronous client with retry on transport errors."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: float = DEFAULT_BACKOFF,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or default_base_url()).rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> VersionTraceClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _send(self, method: str, path: str) -> httpx.Response:
        """Send a request, retrying transport errors with exponential backoff."""
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._client.request(method, path)
            except httpx.TransportError as e:
                if attempt >= self.max_attempts:
                    raise ApiError(f"Cannot reach {self.base_url}{path}: {e}") from e
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning(
                    "%s %s failed (%s); retry %d/%d in %.1fs",
                    method,
                    path,
                    e,
                    attempt,
                    self.max_attempts - 1,
                    delay,
                )
                time.sleep(delay)
                continue
            if response.is_error:
                raise _error_from_response(response)
            return response

    def _get_json(self, path: str) -> Any:
        response = self._send("GET", path)
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}", status_code=response.status_code) from e

    def fetch_visualization(self) -> VisualizationData:
        """GET /visualization and parse it."""
        return parse_visualization_data(self._get_json("/visualization"))

    def list_packages(self) -> list[str]:
        """GET /packages: every package name the backend knows."""
        return [str(p) for p in self._get_json("/packages") or []]

    def list_releases(self) -> list[Release]:
        """GET /releases; malformed entries are dropped."""
        releases = []
        for raw in self._get_json("/releases") or []:
            release = parse_release(raw)
            if release is not None:
                releases.append(release)
        return releases

    def refresh(self) -> bool:
        """POST /refresh to make the backend re-collect its data. True on success."""
        try:
            self._send("POST", "/refresh")
        except ApiError as e:
            logger.warning("Backend refresh failed: %s", e)
            return False
        return True

    def health(self) -> HealthStatus:
        """GET /health; never raises, reports failure in the details instead."""
        try:
            data = self._get_json("/health")
        except ApiError as e:
            return HealthStatus(ok=False, details={"error": str(e)})
        if not isinstance(data, dict):
            return HealthStatus(ok=False, details={"error": "unexpected health payload"})
        return HealthStatus(ok=data.get("status") == "ok", details=data)
