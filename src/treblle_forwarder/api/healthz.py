"""
Health check endpoints.

- /healthz: Liveness probe (always 200 if service alive)
- /readyz: Readiness probe (200 only if credentials are configured and the
  publisher session is open)
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, Response, status

from .. import __version__

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/healthz",
    status_code=200,
    summary="Liveness probe",
)
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe - always returns 200 if service is alive."""
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "treblle-forwarder",
        "version": __version__,
    }


@router.get(
    "/readyz",
    summary="Readiness probe",
    description="""
    Readiness probe endpoint.

    Returns 200 only if:
    - Treblle credentials are configured
    - The publisher HTTP session is open

    Returns 503 Service Unavailable otherwise.
    """,
)
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    """Readiness probe - returns 200 only if batches can be forwarded."""
    pipeline = getattr(request.app.state, "pipeline", None)

    checks = {
        "credentials": pipeline is not None,
        "publisher": pipeline is not None and pipeline.publisher.is_started,
    }
    failed_checks = [name for name, ok in checks.items() if not ok]

    if failed_checks:
        logger.warning("Readiness check failed", failed_checks=failed_checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
            "failed_checks": failed_checks,
        }

    response.status_code = status.HTTP_200_OK
    return {
        "status": "ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
