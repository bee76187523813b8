"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - forwarder_events_processed_total{result} - Events per batch result
    - forwarder_events_skipped_total{event_type} - Skipped events (unknown/other)
    - forwarder_publish_attempts_total{status_class} - Delivery calls
    - forwarder_publish_retries_total - Delivery retries
    - forwarder_publish_outcomes_total{outcome} - Delivered/rejected/dropped
    """,
)
async def get_metrics(request: Request) -> Response:
    """Return the collector's registry in Prometheus text format."""
    metrics_collector = getattr(request.app.state, "metrics", None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics_collector.update_uptime()
    metrics_data = generate_latest(metrics_collector.registry)

    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
