"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /v1/batches - Process one batch of capture events
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .batches import router as batches_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router

__all__ = ["batches_router", "healthz_router", "metrics_router"]
