"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.observability import SERVICE_NAME
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping(request: Request) -> JSONResponse:
    """
    RPC-style liveness probe.

    Reports ``degraded`` when no channel types are loaded, since nothing can be synchronized.
    """
    catalog = getattr(request.app.state, "channel_catalog", None)
    channel_types = len(catalog) if catalog is not None else 0

    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if channel_types else HealthStatus.DEGRADED,
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc),
        channel_types=channel_types,
    )

    logger.debug(
        "Health ping",
        extra={"status": response_data.status.value, "channel_types": channel_types}
    )

    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
