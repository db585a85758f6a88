"""Shared aiohttp client for push provider HTTP calls.

Provides per-request timeouts, exponential backoff with jitter for transient
failures (timeouts, connection errors, 429 and 5xx) and a per-URL circuit
breaker so a push service that is down is not hammered on every activation.
"""

import asyncio
import json
import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Self

import aiohttp

from inbox_targeting.types.aliases import JSONPayload
from inbox_targeting.types.models import Response


class CircuitState(Enum):
    """Circuit breaker state enumeration."""

    CLOSED = auto()
    OPEN = auto()
    HALF_OPEN = auto()


@dataclass(slots=True)
class CircuitBreakerState:
    """Failure bookkeeping for one target URL."""

    consecutive_failures: int = 0
    last_failure_time: datetime | None = None
    circuit_state: CircuitState = CircuitState.CLOSED


class HTTPStatusError(RuntimeError):
    """Raised when a request ends with a non-success HTTP status."""

    status: int

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message)
        self.status = status


class CircuitOpenError(RuntimeError):
    """Raised when the circuit for a URL is open and requests are rejected."""


class AIOHTTPClient:
    """Async HTTP client with retry logic and circuit breaker.

    Implements the HTTPClient protocol. Must be used as an async context
    manager so the underlying session is opened and closed.

    Example:
        >>> async with AIOHTTPClient(max_retries=2) as client:
        ...     response = await client.post_with_retry(
        ...         "https://push.example.com/send",
        ...         [{"to": "...", "title": "Hitno"}],
        ...     )
    """

    def __init__(
        self,
        *,
        max_retries: int = 3,
        max_backoff_seconds: float = 30.0,
        default_timeout_seconds: float = 10.0,
        jitter_percent: float = 20.0,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown_seconds: float = 60.0,
    ) -> None:
        self._max_retries: int = max_retries
        self._max_backoff_seconds: float = max_backoff_seconds
        self._default_timeout_seconds: float = default_timeout_seconds
        self._jitter_percent: float = jitter_percent
        self._circuit_breaker_threshold: int = circuit_breaker_threshold
        self._circuit_breaker_cooldown_seconds: float = circuit_breaker_cooldown_seconds
        self._circuit_breakers: dict[str, CircuitBreakerState] = {}
        self._session: aiohttp.ClientSession | None = None
        self._logger: logging.Logger = logging.getLogger(__name__)

    async def __aenter__(self) -> Self:
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._default_timeout_seconds),
            json_serialize=json.dumps,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def post(
        self,
        url: str,
        payload: JSONPayload,
        *,
        timeout: float,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a single JSON POST request.

        Raises:
            RuntimeError: If used outside ``async with``
            TimeoutError: If the request exceeds ``timeout``
            ValueError: If the URL is malformed
            aiohttp.ClientError: For connection issues
        """
        if self._session is None:
            msg = "HTTP client session not initialized. Use 'async with' context manager."
            raise RuntimeError(msg)

        self._logger.debug("POST %s", url)
        try:
            async with asyncio.timeout(timeout):
                async with self._session.post(url, json=payload, headers=headers) as response:
                    body: Mapping[str, object]
                    try:
                        decoded: object = await response.json()  # pyright: ignore[reportAny]
                    except (aiohttp.ContentTypeError, ValueError):
                        decoded = {}
                    body = decoded if isinstance(decoded, Mapping) else {"data": decoded}  # pyright: ignore[reportUnknownVariableType]
                    return Response(
                        status=response.status,
                        body=body,  # pyright: ignore[reportUnknownArgumentType]
                        headers=dict(response.headers),
                    )
        except TimeoutError:
            self._logger.warning("Request to %s timed out after %.1fs", url, timeout)
            raise
        except aiohttp.InvalidURL as exc:
            self._logger.error("Invalid URL: %s", url)
            raise ValueError(f"Malformed URL: {url}") from exc
        except aiohttp.ClientError as exc:
            self._logger.warning("Client error for %s: %s", url, exc)
            raise

    async def post_with_retry(
        self,
        url: str,
        payload: JSONPayload,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a JSON POST, retrying transient failures with backoff.

        Retries timeouts, connection errors, 429 (honoring Retry-After) and
        5xx responses up to ``max_retries`` times. Other 4xx responses fail
        immediately.

        Raises:
            CircuitOpenError: If the circuit for ``url`` is open
            HTTPStatusError: On a non-retryable status or exhausted 5xx retries
            TimeoutError: On exhausted timeout retries
            aiohttp.ClientError: On exhausted connection retries
        """
        if not self._should_attempt_request(url):
            msg = f"Circuit breaker is OPEN for {url}"
            self._logger.error(msg)
            raise CircuitOpenError(msg)

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            is_last = attempt == self._max_retries
            try:
                response = await self.post(
                    url,
                    payload,
                    timeout=self._default_timeout_seconds,
                    headers=headers,
                )
            except (TimeoutError, aiohttp.ClientError) as exc:
                self._logger.warning(
                    "Transport failure for %s: %s (attempt %d/%d)",
                    url,
                    type(exc).__name__,
                    attempt + 1,
                    attempts,
                )
                if is_last:
                    self._record_failure(url)
                    raise
                await asyncio.sleep(self._calculate_backoff_delay(attempt))
                continue

            if 200 <= response.status < 400:
                self._record_success(url)
                self._logger.debug(
                    "Request to %s succeeded (status=%d, attempt=%d)",
                    url,
                    response.status,
                    attempt + 1,
                )
                return response

            if not self._is_retryable_status(response.status):
                self._record_failure(url)
                msg = f"Client error {response.status} from {url} (non-retryable)"
                raise HTTPStatusError(msg, status=response.status)

            if is_last:
                self._record_failure(url)
                msg = f"Server error {response.status} from {url} after {attempts} attempts"
                raise HTTPStatusError(msg, status=response.status)

            delay = self._calculate_backoff_delay(attempt)
            if response.status == 429:
                retry_after = self._parse_retry_after(response.headers)
                if retry_after is not None:
                    delay = min(retry_after, self._max_backoff_seconds)
            self._logger.warning(
                "Status %d from %s, retrying in %.1fs (attempt %d/%d)",
                response.status,
                url,
                delay,
                attempt + 1,
                attempts,
            )
            await asyncio.sleep(delay)

        # range() always ends in a return or raise above
        msg = f"All retry attempts exhausted for {url}"
        raise RuntimeError(msg)

    def _calculate_backoff_delay(self, attempt: int) -> float:
        """Exponential backoff (2^attempt seconds) with +/- jitter, capped."""
        base_delay = min(pow(2.0, attempt), self._max_backoff_seconds)
        jitter = self._jitter_percent / 100.0
        delay = base_delay * (1.0 + random.uniform(-jitter, jitter))
        return min(delay, self._max_backoff_seconds)

    def _parse_retry_after(self, headers: Mapping[str, str]) -> float | None:
        retry_after = headers.get("Retry-After") or headers.get("retry-after")
        if not retry_after:
            return None
        try:
            return float(retry_after)
        except ValueError:
            self._logger.warning("Retry-After header has unsupported format: %s", retry_after)
            return None

    def _is_retryable_status(self, status: int) -> bool:
        return status == 429 or status >= 500

    def _should_attempt_request(self, url: str) -> bool:
        breaker = self._circuit_breakers.get(url)
        if breaker is None or breaker.circuit_state != CircuitState.OPEN:
            return True
        if breaker.last_failure_time is None:
            return True

        elapsed = datetime.now() - breaker.last_failure_time
        if elapsed.total_seconds() >= self._circuit_breaker_cooldown_seconds:
            breaker.circuit_state = CircuitState.HALF_OPEN
            self._logger.warning("Circuit breaker for %s transitioned to HALF_OPEN", url)
            return True
        return False

    def _record_success(self, url: str) -> None:
        breaker = self._circuit_breakers.get(url)
        if breaker is None:
            return
        previous_state = breaker.circuit_state
        breaker.consecutive_failures = 0
        breaker.circuit_state = CircuitState.CLOSED
        if previous_state != CircuitState.CLOSED:
            self._logger.info("Circuit breaker for %s transitioned to CLOSED", url)

    def _record_failure(self, url: str) -> None:
        breaker = self._circuit_breakers.setdefault(url, CircuitBreakerState())
        breaker.consecutive_failures += 1
        breaker.last_failure_time = datetime.now()

        if breaker.circuit_state == CircuitState.HALF_OPEN or (
            breaker.consecutive_failures >= self._circuit_breaker_threshold
            and breaker.circuit_state == CircuitState.CLOSED
        ):
            breaker.circuit_state = CircuitState.OPEN
            self._logger.warning(
                "Circuit breaker for %s transitioned to OPEN (failures=%d, threshold=%d)",
                url,
                breaker.consecutive_failures,
                self._circuit_breaker_threshold,
            )
