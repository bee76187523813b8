"""
Batch processing endpoint.

Main endpoint: POST /v1/batches
"""

import uuid
from typing import Any, List

import structlog
from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, Field

from ..core.exceptions import ConfigurationError
from ..core.pipeline import BatchPipeline

logger = structlog.get_logger(__name__)

router = APIRouter()


class BatchResponse(BaseModel):
    """Batch-level counts for one processed batch."""

    success_count: int = Field(description="Events delivered to Treblle")
    failure_count: int = Field(description="Events skipped, rejected or dropped")
    skipped_count: int = Field(description="Events ignored because of their event_type")
    processing_time_ms: float = Field(description="Wall time spent on the batch")
    request_id: str = Field(description="Unique request identifier")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(description="Error code")
    message: str = Field(description="Human-readable error message")
    details: dict = Field(default_factory=dict, description="Additional error details")


async def get_batch_pipeline(request: Request) -> BatchPipeline:
    """Dependency to get the batch pipeline from app state."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise ConfigurationError(
            "TREBLLE_API_KEY or TREBLLE_SDK_TOKEN not configured or empty",
        )
    return pipeline


@router.post(
    "/batches",
    response_model=BatchResponse,
    responses={
        503: {"model": ErrorResponse, "description": "Credentials not configured"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Process a batch of capture events",
    description="""
    Process one stream batch of captured API traffic.

    Each element is a capture event object or its JSON string. Events are
    normalized, masked and delivered to Treblle one after another; a
    failing event is counted and does not stop the batch.

    Delivery retries block the request: up to three retries with a fixed
    delay per event.
    """,
)
async def process_batch(
    messages: List[Any] = Body(..., description="Capture events in arrival order"),
    pipeline: BatchPipeline = Depends(get_batch_pipeline),
) -> BatchResponse:
    """Process a batch and report its counts."""
    request_id = str(uuid.uuid4())
    logger.info("Processing batch request", request_id=request_id, messages_count=len(messages))

    result = await pipeline.process_batch(messages)

    return BatchResponse(
        success_count=result.success_count,
        failure_count=result.failure_count,
        skipped_count=result.skipped_count,
        processing_time_ms=result.processing_time_ms,
        request_id=request_id,
    )
