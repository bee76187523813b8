"""
Reliable publisher for Treblle payloads.

Features:
- Credential injection and keyword masking before every send
- Random endpoint per attempt (load spreading across the pool)
- Outcome classification: delivered, rejected (4xx), retry
- Bounded retries with a fixed delay, then the event is dropped
"""

import asyncio
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import structlog

from ..config import PublisherSettings
from ..models.payload import TrebllePayload
from .endpoints import EndpointSelector
from .exceptions import PublisherError
from .masking import MaskingEngine
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

SUCCESS_STATUS_CODES = frozenset({200, 201, 202, 204})

DEFAULT_MAX_RETRIES = 3


class DeliveryOutcome(str, Enum):
    """Classification of a single delivery call."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    RETRY = "retry"


class PublishOutcome(str, Enum):
    """Final outcome of publishing one event."""

    DELIVERED = "delivered"
    REJECTED = "rejected"
    DROPPED = "dropped"


@dataclass
class DeliveryResponse:
    """Status line of a delivery call."""
    status: int
    reason: str = ""


@dataclass
class PublishResult:
    """Result of publishing one event."""
    outcome: PublishOutcome
    attempts: int
    status_code: Optional[int] = None
    endpoint: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome is PublishOutcome.DELIVERED


class AttemptBudget:
    """
    Remaining retries for one event's publish lifecycle.

    A budget is created per event and must not be shared between events.
    """

    __slots__ = ("remaining",)

    def __init__(self, retries: int = DEFAULT_MAX_RETRIES) -> None:
        self.remaining = retries

    def consume(self) -> bool:
        """Take one retry; False when the budget is exhausted."""
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True

    def release(self) -> None:
        self.remaining = 0

    def __repr__(self) -> str:
        return f"AttemptBudget(remaining={self.remaining})"


def classify_response(response: Optional[DeliveryResponse]) -> DeliveryOutcome:
    """Map a delivery call result onto the retry policy."""
    if response is None:
        return DeliveryOutcome.RETRY
    if response.status in SUCCESS_STATUS_CODES:
        return DeliveryOutcome.SUCCESS
    if 400 <= response.status < 500:
        return DeliveryOutcome.CLIENT_ERROR
    return DeliveryOutcome.RETRY


def _redact(secret: Optional[str]) -> str:
    if not secret:
        return ""
    return secret[:8] + "..." if len(secret) > 8 else "***"


class TrebllePublisher:
    """
    Publishes payloads to Treblle with bounded retries.

    Handles:
    - HTTP session lifecycle
    - Masking and serialization
    - Outcome classification and retry loop
    """

    def __init__(
        self,
        api_key: str,
        project_id: str,
        masking_engine: MaskingEngine,
        endpoint_selector: EndpointSelector,
        settings: Optional[PublisherSettings] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api_key = api_key
        self.project_id = project_id
        self.masking_engine = masking_engine
        self.endpoint_selector = endpoint_selector
        self.settings = settings or PublisherSettings()
        self.metrics = metrics
        self._sleep = sleep
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(
            "Treblle publisher initialized",
            api_key=_redact(api_key),
            project_id=_redact(project_id),
            endpoints=len(endpoint_selector.endpoints),
            max_retries=self.settings.max_retries,
        )

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        )
        logger.info("Treblle publisher started")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info("Treblle publisher stopped")

    @property
    def is_started(self) -> bool:
        return self.session is not None

    def new_budget(self) -> AttemptBudget:
        return AttemptBudget(self.settings.max_retries)

    async def publish(
        self,
        payload: TrebllePayload,
        budget: Optional[AttemptBudget] = None,
    ) -> PublishResult:
        """
        Publish one payload, retrying transport and server failures.

        Args:
            payload: The normalized payload
            budget: Retry budget for this event; a fresh one when omitted

        Returns:
            PublishResult with the final outcome and attempt count
        """
        if budget is None:
            budget = self.new_budget()

        attempts = 0
        while True:
            attempts += 1
            endpoint = self.endpoint_selector.pick()
            body = self.build_request_body(payload)

            response = await self._send(endpoint, body)
            outcome = classify_response(response)
            status_code = response.status if response else None

            if outcome is DeliveryOutcome.SUCCESS:
                logger.info(
                    "Event successfully published",
                    internal_id=payload.internal_id,
                    status_code=status_code,
                    endpoint=endpoint,
                    attempts=attempts,
                )
                return self._finish(PublishOutcome.DELIVERED, attempts, status_code, endpoint)

            if outcome is DeliveryOutcome.CLIENT_ERROR:
                logger.error(
                    "Event publishing rejected",
                    internal_id=payload.internal_id,
                    project_id=self.project_id,
                    status_code=status_code,
                    reason=response.reason if response else "",
                    endpoint=endpoint,
                )
                return self._finish(PublishOutcome.REJECTED, attempts, status_code, endpoint)

            if not budget.consume():
                logger.error(
                    "Failed all retry attempts, event dropped",
                    internal_id=payload.internal_id,
                    project_id=self.project_id,
                    attempts=attempts,
                    last_status_code=status_code,
                )
                return self._finish(PublishOutcome.DROPPED, attempts, status_code, endpoint)

            logger.warning(
                "Event publishing failed, retrying",
                internal_id=payload.internal_id,
                project_id=self.project_id,
                status_code=status_code,
                endpoint=endpoint,
                attempt=attempts,
                retries_left=budget.remaining,
                delay_seconds=self.settings.retry_delay_seconds,
            )
            if self.metrics:
                self.metrics.record_retry()
            await self._sleep(self.settings.retry_delay_seconds)

    def build_request_body(self, payload: TrebllePayload) -> Dict[str, Any]:
        """
        Inject credentials, mask and build the JSON request body.

        Masking runs over the serialized ``data`` tree only.
        """
        payload.api_key = self.api_key
        payload.project_id = self.project_id

        body = payload.model_dump(mode="json")
        body["data"] = self.masking_engine.mask(body["data"])

        return {
            "api_key": body["api_key"],
            "project_id": body["project_id"],
            "internal_id": body["internal_id"],
            "sdk": body["sdk"],
            "version": body["version"],
            "data": body["data"],
        }

    async def _send(self, endpoint: str, body: Dict[str, Any]) -> Optional[DeliveryResponse]:
        """
        POST the body to one endpoint.

        Returns:
            The status line, or None when no response was obtained
        """
        if not self.session:
            raise PublisherError("Publisher not started")

        headers = {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        started = time.perf_counter()
        response: Optional[DeliveryResponse] = None
        try:
            async with self.session.post(
                endpoint,
                data=json.dumps(body),
                headers=headers,
            ) as http_response:
                response = DeliveryResponse(
                    status=http_response.status,
                    reason=http_response.reason or "",
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "No response from Treblle",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )

        if self.metrics:
            self.metrics.record_publish_attempt(
                response.status if response else None,
                time.perf_counter() - started,
            )

        return response

    def _finish(
        self,
        outcome: PublishOutcome,
        attempts: int,
        status_code: Optional[int],
        endpoint: str,
    ) -> PublishResult:
        if self.metrics:
            self.metrics.record_outcome(outcome.value)
        return PublishResult(
            outcome=outcome,
            attempts=attempts,
            status_code=status_code,
            endpoint=endpoint,
        )
