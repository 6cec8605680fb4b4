"""Booking router for reservations received from OTA channels."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..core.dependencies import get_channel_booking_service, get_hotel_id, get_sync_dispatcher
from ..core.exceptions import ProblemDetailsException
from ..models.channel_booking import ChannelBookingStatus
from ..schemas.booking import (
    BookingStatusResponse,
    ChannelBooking,
    ChannelBookingPage,
    UpdateBookingStatusRequest,
)
from ..services.channel_booking_service import ChannelBookingService
from ..services.sync_dispatcher import SyncDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/bookings", tags=["bookings"])


@router.get("", response_model=ChannelBookingPage)
async def list_bookings(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    channel_id: Optional[UUID] = Query(None),
    status: Optional[ChannelBookingStatus] = Query(None),
    hotel_id: str = Depends(get_hotel_id),
    bookings: ChannelBookingService = Depends(get_channel_booking_service),
) -> JSONResponse:
    try:
        rows, total = await bookings.list_for_hotel(
            hotel_id,
            limit=limit,
            offset=offset,
            channel_id=channel_id,
            status=status,
        )
        response_data = ChannelBookingPage(
            items=[ChannelBooking.model_validate(row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error listing bookings",
            extra={"hotel_id": hotel_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post("/{booking_id}/status", response_model=BookingStatusResponse)
async def update_booking_status(
    booking_id: UUID,
    request: UpdateBookingStatusRequest,
    hotel_id: str = Depends(get_hotel_id),
    dispatcher: SyncDispatcher = Depends(get_sync_dispatcher),
) -> JSONResponse:
    """
    Confirm or cancel a reservation on its OTA.

    The local status only changes when the OTA accepts the update.
    """
    try:
        booking, result, sync_log = await dispatcher.update_booking_status(
            booking_id,
            hotel_id,
            request.status.value,
        )
        response_data = BookingStatusResponse(
            success=result.success,
            message=result.message,
            sync_log_id=str(sync_log.id),
            booking=ChannelBooking.model_validate(booking),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error updating booking status",
            extra={"hotel_id": hotel_id, "booking_id": str(booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
