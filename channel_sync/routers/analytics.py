"""Analytics router."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.dependencies import get_analytics_service, get_hotel_id
from ..core.exceptions import ProblemDetailsException
from ..schemas.analytics import HotelAnalytics
from ..services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get("", response_model=HotelAnalytics)
async def get_analytics(
    hotel_id: str = Depends(get_hotel_id),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    """Per-channel booking and sync aggregates for the hotel."""
    try:
        response_data = await analytics.hotel_analytics(hotel_id)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error computing analytics",
            extra={"hotel_id": hotel_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
