"""
Main FastAPI application entry point.

Sets up the app with logging, lifecycle of the Treblle publisher and the
batch, health and metrics routes.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api import batches_router, healthz_router, metrics_router
from .config import Settings, get_settings
from .core.endpoints import EndpointSelector
from .core.exceptions import ForwarderException
from .core.masking import MaskingEngine, MaskKeywordSet
from .core.metrics import MetricsCollector
from .core.normalizer import PayloadNormalizer
from .core.pipeline import BatchPipeline
from .core.publisher import TrebllePublisher


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_pipeline(settings: Settings, metrics: Optional[MetricsCollector] = None) -> BatchPipeline:
    """Wire normalizer, masking engine, endpoint selector and publisher."""
    treblle = settings.treblle
    keywords = MaskKeywordSet.from_config(treblle.additional_mask_keywords)

    publisher = TrebllePublisher(
        api_key=treblle.sdk_token,
        project_id=treblle.api_key,
        masking_engine=MaskingEngine(keywords),
        endpoint_selector=EndpointSelector(treblle.endpoints),
        settings=settings.publisher,
        metrics=metrics,
    )

    return BatchPipeline(
        normalizer=PayloadNormalizer(metrics=metrics),
        publisher=publisher,
        metrics=metrics,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start and stop the publisher session."""
        logger = structlog.get_logger(__name__)
        logger.info("Starting Treblle forwarder", version=app.version)

        metrics_collector = MetricsCollector()
        app.state.metrics = metrics_collector
        app.state.pipeline = None

        treblle = settings.treblle
        logger.info(
            "Treblle configuration loaded",
            sdk_token_present=bool(treblle.sdk_token),
            api_key_present=bool(treblle.api_key),
        )

        if treblle.has_credentials:
            pipeline = build_pipeline(settings, metrics_collector)
            await pipeline.publisher.start()
            app.state.pipeline = pipeline
        else:
            logger.error(
                "TREBLLE_API_KEY or TREBLLE_SDK_TOKEN not configured or empty; batches will be refused"
            )

        try:
            logger.info("Treblle forwarder started")
            yield
        finally:
            logger.info("Shutting down Treblle forwarder")

            pipeline = getattr(app.state, "pipeline", None)
            if pipeline is not None:
                await pipeline.publisher.stop()

            logger.info("Treblle forwarder shutdown complete")

    return lifespan


async def forwarder_exception_handler(request: Request, exc: ForwarderException) -> JSONResponse:
    """Handle custom forwarder exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Forwarder exception occurred",
        error=str(exc),
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": str(exc),
            "details": exc.details,
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit settings; loaded from config/env when omitted
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="Treblle Forwarder",
        description="Captured API traffic → Treblle",
        version=__version__,
        lifespan=create_lifespan_handler(settings),
    )
    app.state.settings = settings

    app.add_exception_handler(ForwarderException, forwarder_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(batches_router, prefix="/v1", tags=["batches"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "Treblle Forwarder",
            "version": app.version,
            "docs": "/docs",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
