"""
Batch processing pipeline.

Orchestrates the flow for every event of a stream batch:
1. Shape check (non-empty, decodable, event_type == "treblle_log")
2. Normalization
3. Masking and delivery with a per-event retry budget

Events are processed sequentially in arrival order. A failing event is
counted and logged; it never stops the rest of the batch.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import structlog

from ..models.capture_event import TREBLLE_LOG_EVENT
from .metrics import MetricsCollector
from .normalizer import PayloadNormalizer
from .publisher import TrebllePublisher

logger = structlog.get_logger(__name__)

BatchMessage = Union[str, bytes, Mapping[str, Any], None]


@dataclass
class BatchResult:
    """Result of processing one batch of capture events."""
    success_count: int
    failure_count: int
    skipped_count: int = 0
    processing_time_ms: float = 0.0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


class BatchPipeline:
    """
    Runs normalize → mask → publish for each event of a batch.

    Holds no per-event state: each event gets its own retry budget, which
    is released once the event is done.
    """

    def __init__(
        self,
        normalizer: PayloadNormalizer,
        publisher: TrebllePublisher,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.normalizer = normalizer
        self.publisher = publisher
        self.metrics = metrics
        logger.info("Batch pipeline initialized", has_metrics=metrics is not None)

    async def process_batch(self, messages: Optional[Sequence[BatchMessage]]) -> BatchResult:
        """
        Process a batch of raw capture events.

        Args:
            messages: Events as JSON strings/bytes or already decoded objects

        Returns:
            BatchResult with success and failure counts
        """
        if not messages:
            logger.info("No messages received in batch")
            return BatchResult(success_count=0, failure_count=0)

        started = time.perf_counter()
        logger.info("Batch received", messages_count=len(messages))
        if self.metrics:
            self.metrics.record_batch(len(messages))

        success_count = 0
        failure_count = 0
        skipped_count = 0

        for index, message in enumerate(messages, start=1):
            log = logger.bind(message_index=index, batch_size=len(messages))

            event = self._decode_message(message, log)
            if event is None:
                failure_count += 1
                self._record(False)
                continue

            event_type = event.get("event_type")
            if event_type != TREBLLE_LOG_EVENT:
                log.warning("Skipping message with unexpected event_type", event_type=event_type)
                failure_count += 1
                skipped_count += 1
                if self.metrics:
                    self.metrics.record_skipped(event_type)
                self._record(False)
                continue

            payload = self.normalizer.normalize(event)
            if payload is None:
                log.warning("Treblle payload could not be built")
                failure_count += 1
                self._record(False)
                continue

            budget = self.publisher.new_budget()
            try:
                result = await self.publisher.publish(payload, budget)
            except Exception as e:
                log.error(
                    "Failed to publish message",
                    internal_id=payload.internal_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                failure_count += 1
                self._record(False)
                continue
            finally:
                budget.release()

            if result.delivered:
                log.info("Message published", internal_id=payload.internal_id, attempts=result.attempts)
                success_count += 1
                self._record(True)
            else:
                log.warning(
                    "Message not delivered",
                    internal_id=payload.internal_id,
                    outcome=result.outcome.value,
                    attempts=result.attempts,
                )
                failure_count += 1
                self._record(False)

        processing_time_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Batch processing completed",
            success_count=success_count,
            failure_count=failure_count,
            skipped_count=skipped_count,
            processing_time_ms=round(processing_time_ms, 2),
        )

        return BatchResult(
            success_count=success_count,
            failure_count=failure_count,
            skipped_count=skipped_count,
            processing_time_ms=processing_time_ms,
        )

    def _decode_message(self, message: BatchMessage, log: Any) -> Optional[Mapping[str, Any]]:
        """Return the event object, or None when the message is unusable."""
        if message is None:
            log.warning("Skipping null message")
            return None

        if isinstance(message, (str, bytes)):
            text = message.decode("utf-8", errors="replace") if isinstance(message, bytes) else message
            if not text.strip():
                log.warning("Skipping empty message")
                return None
            try:
                message = json.loads(text)
            except json.JSONDecodeError as e:
                log.error("Message is not valid JSON", error=str(e))
                return None

        if not isinstance(message, Mapping) or not message:
            log.warning("Skipping message that is not a JSON object", message_type=type(message).__name__)
            return None

        return message

    def _record(self, success: bool) -> None:
        if self.metrics:
            self.metrics.record_event("success" if success else "failure")
