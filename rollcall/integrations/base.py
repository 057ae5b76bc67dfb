"""HTTP plumbing for outbound notification calls.

One :class:`HttpClient` is meant to live for the whole application so its
circuit breaker sees every failure, whichever request or job triggered it.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from rollcall.config import ResilienceConfig, ServiceConfig

logger = logging.getLogger(__name__)


class IntegrationError(RuntimeError):
    """Raised when a downstream call fails irrecoverably."""


class RejectedRequestError(IntegrationError):
    """The downstream service refused the payload (HTTP 4xx); retrying won't help."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class CircuitOpenError(IntegrationError):
    """Raised when the circuit breaker prevents further calls."""


class CircuitBreaker:
    """Consecutive-failure breaker shared by every thread using a client."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.threshold = max(1, config.circuit_breaker_failure_threshold)
        self.reset_timeout = config.circuit_breaker_reset_timeout
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._opened_at is not None and not self._cooled_down()

    def before_call(self) -> None:
        with self._lock:
            if self._opened_at is None:
                return
            if not self._cooled_down():
                raise CircuitOpenError("Circuit breaker is open; skipping call.")
            # Half-open: let one attempt through, the next failure re-opens.
            self._opened_at = None
            self._failures = self.threshold - 1

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.threshold and self._opened_at is None:
                self._opened_at = time.monotonic()
                logger.warning(
                    "Circuit opened after %s consecutive failures", self._failures
                )

    def _cooled_down(self) -> bool:
        return time.monotonic() - self._opened_at >= self.reset_timeout


class HttpClient:
    """JSON-over-HTTP client: bounded retries on transport and 5xx errors."""

    def __init__(self, config: ServiceConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.breaker = CircuitBreaker(config.resilience)
        self.session = session or requests.Session()

    def post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self._build_url(path)
        resilience = self.config.resilience
        attempts = max(1, resilience.max_attempts)
        delay = resilience.backoff_factor

        for attempt in range(1, attempts + 1):
            self.breaker.before_call()
            try:
                body = self._send(url, payload)
            except RejectedRequestError:
                # The service is up; it just said no.
                self.breaker.record_success()
                raise
            except (requests.RequestException, IntegrationError) as exc:
                self.breaker.record_failure()
                if attempt == attempts:
                    if isinstance(exc, IntegrationError):
                        raise
                    raise IntegrationError(f"POST {url} failed: {exc}") from exc
                time.sleep(delay)
                delay = min(delay * 2, max(resilience.max_backoff, resilience.backoff_factor))
            else:
                self.breaker.record_success()
                return body
        raise IntegrationError(f"POST {url} failed")  # pragma: no cover

    def _send(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            url, json=payload, headers=self._headers(), timeout=self.config.timeout
        )
        if 400 <= response.status_code < 500:
            raise RejectedRequestError(
                response.status_code, f"HTTP {response.status_code} from {url}: {response.text}"
            )
        if response.status_code >= 500:
            raise IntegrationError(f"HTTP {response.status_code} from {url}: {response.text}")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise IntegrationError(f"Invalid JSON payload received from {url}") from exc

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.secret:
            headers["Authorization"] = f"Bearer {self.config.secret}"
        return headers

    def _build_url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
