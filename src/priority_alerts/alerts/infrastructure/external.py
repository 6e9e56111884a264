"""
Alerts External Service Integrations
====================================

Realtime broadcasters for alert events:
- HttpBroadcaster: posts events to a realtime gateway with retries and a
  circuit breaker
- LoggingBroadcaster: writes events to the log when no gateway is configured
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from priority_alerts.alerts.application import IBroadcaster
from priority_alerts.config import AlertEvent
from priority_alerts.core import BroadcastException
from priority_alerts.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the broadcaster endpoint.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failed deliveries, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Broadcaster circuit opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class HttpBroadcaster(IBroadcaster):
    """
    Delivers alert events to a realtime gateway over HTTP.

    Each event is POSTed as ``{"channel", "event", "data"}`` where channel
    is ``broadcast`` or a per-user topic such as ``user:42:alert``.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._backoff = retry_backoff_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker()
        self._http_client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _post(self, message: Dict[str, Any]) -> None:
        if not self._circuit_breaker.allow_request():
            raise BroadcastException(
                "Circuit breaker open, event dropped",
                {"event": message["event"]}
            )

        last_error = None
        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._url, json=message)

                if response.status_code < 300:
                    self._circuit_breaker.record_success()
                    return

                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    "Broadcaster returned error status",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e)
                logger.warning(
                    "Broadcaster request failed",
                    extra={"error": last_error, "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff * (2 ** attempt))

        self._circuit_breaker.record_failure()
        raise BroadcastException(
            f"Delivery failed after {self._max_retries} attempts: {last_error}",
            {"event": message["event"], "channel": message["channel"]}
        )

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        await self._post({"channel": "broadcast", "event": event, "data": payload})

    async def publish_to_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        await self._post({
            "channel": AlertEvent.USER_ALERT_TOPIC.format(user_id=user_id),
            "event": AlertEvent.PRIORITY_ALERT,
            "data": payload,
        })

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class LoggingBroadcaster(IBroadcaster):
    """Writes events to the application log instead of a gateway."""

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "Alert event",
            extra={"event": event, "alert_id": payload.get("id") or payload.get("alert_id")}
        )

    async def publish_to_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "User alert",
            extra={
                "topic": AlertEvent.USER_ALERT_TOPIC.format(user_id=user_id),
                "alert_id": payload.get("id"),
            }
        )
