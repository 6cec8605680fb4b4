"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .adapters.registry import AdapterRegistry
from .core.channel_catalog import load_channel_catalog
from .core.config import settings
from .core.database import async_session_factory, close_db, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import HOTEL_HEADER, setup_middleware
from .core.observability import (
    SERVICE_NAME,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import analytics, bookings, channels, health, metrics, sync
from .schemas.health import ReadinessResponse
from .workers.manager import worker_manager

# Configure structured logging
setup_structured_logging()

# Configure traditional logging for compatibility
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown events for the FastAPI application.
    """
    logger.info(
        "Starting channel sync service",
        extra={"environment": settings.environment, "debug": settings.debug}
    )

    try:
        setup_tracing()
        setup_metrics()
        instrument_sqlalchemy()
        logger.info("Observability setup completed")

        await init_db()
        logger.info("Database initialized successfully")

        await worker_manager.start_all()
    except Exception as e:
        logger.error("Failed to initialize application", extra={"error": str(e)}, exc_info=True)
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down channel sync service")

    try:
        await worker_manager.stop_all()
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error during application cleanup", extra={"error": str(e)}, exc_info=True)

    logger.info("Application shutdown complete")


def configure_channels(app: FastAPI, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
    """
    Load the channel catalog and build the adapter registry on ``app.state``.

    Args:
        app: Application to configure
        transport: Optional httpx transport for OTA traffic
    """
    catalog = load_channel_catalog(settings.channel_catalog_path)
    app.state.channel_catalog = catalog
    app.state.adapter_registry = AdapterRegistry.from_catalog(catalog, settings, transport=transport)

    logger.info(
        "Channel catalog loaded",
        extra={"channel_types": [channel.id for channel in catalog]}
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Channel Sync API",
        description="Keeps hotel inventory, rates and reservations in step with online travel agencies",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    configure_channels(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)

    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        response_model=dict,
    )
    async def health_check():
        """Liveness check."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": "1.0.0",
            "environment": settings.environment,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        response_model=ReadinessResponse,
    )
    async def readiness_check():
        """
        Readiness check that verifies the database answers and the catalog is loaded.

        Returns 503 when a dependency is unavailable.
        """
        checks = {"channel_catalog": "ok" if len(app.state.channel_catalog) else "empty"}
        try:
            async with async_session_factory() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            logger.warning("Readiness database check failed", extra={"error": str(e)})
            checks["database"] = "unavailable"

        ready = all(value == "ok" for value in checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ReadinessResponse(
                status="ready" if ready else "not_ready",
                service=SERVICE_NAME,
                checks=checks,
            ).model_dump(),
        )

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        response_model=dict,
    )
    async def service_info():
        """Service information endpoint."""
        return {
            "service": SERVICE_NAME,
            "version": "1.0.0",
            "description": "OTA channel synchronization engine",
            "environment": settings.environment,
            "hotel_header": HOTEL_HEADER,
            "supported_channels": [channel.id for channel in app.state.channel_catalog],
            "sync_window_days": settings.sync_window_days,
            "manual_sync_days": settings.manual_sync_days,
            "workers": worker_manager.get_worker_status(),
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "metrics": "/metrics",
                "docs": "/docs" if settings.debug else None,
            },
        }

    app.include_router(health.router)
    app.include_router(channels.router)
    app.include_router(sync.router)
    app.include_router(bookings.router)
    app.include_router(analytics.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "channel_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
