"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Request, sync attempt, OTA call and inventory counters in Prometheus text format",
    response_class=Response,
    tags=["Observability"]
)
async def metrics():
    """Return the channel sync Prometheus registry."""
    return Response(
        content=get_prometheus_metrics(),
        media_type=CONTENT_TYPE_LATEST
    )
