"""Sync router for inventory pushes, reservation pulls and the sync audit log."""

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.dependencies import get_hotel_id, get_sync_dispatcher, get_sync_log_service
from ..core.exceptions import ProblemDetailsException
from ..models.sync_log import SyncStatus
from ..schemas.booking import PullReservationsResponse
from ..schemas.sync import (
    BulkSyncResponse,
    ManualSyncResponse,
    PullReservationsRequest,
    ReconcileResponse,
    SyncChannelRequest,
    SyncLog,
    SyncLogPage,
)
from ..services.sync_dispatcher import SyncDispatcher
from ..services.sync_log_service import SyncLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["sync"])


@router.post("/sync-inventory", response_model=BulkSyncResponse)
async def sync_inventory(
    hotel_id: str = Depends(get_hotel_id),
    dispatcher: SyncDispatcher = Depends(get_sync_dispatcher),
) -> JSONResponse:
    """
    Push the forward inventory window to every auto-sync channel of the hotel.

    Per-channel failures are reported in ``results`` and never fail the request.
    """
    try:
        results = await dispatcher.sync_all_channels(hotel_id)
        response_data = BulkSyncResponse(synced_channels=len(results), results=results)

        logger.info(
            "Bulk inventory sync requested",
            extra={
                "hotel_id": hotel_id,
                "channels": len(results),
                "failed": sum(1 for result in results if not result.success)
            }
        )

        return JSONResponse(
            status_code=200,
            content=response_data.model_dump(mode="json", by_alias=True)
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in bulk inventory sync",
            extra={"hotel_id": hotel_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post("/channels/{channel_id}/sync", response_model=ManualSyncResponse)
async def sync_channel(
    channel_id: UUID,
    request: Optional[SyncChannelRequest] = None,
    hotel_id: str = Depends(get_hotel_id),
    dispatcher: SyncDispatcher = Depends(get_sync_dispatcher),
) -> JSONResponse:
    """Push one channel's inventory; the range defaults to today through 30 days ahead."""
    request = request or SyncChannelRequest()
    try:
        channel, result = await dispatcher.sync_channel(
            channel_id,
            hotel_id,
            start=request.start_date,
            end=request.end_date,
        )
        response_data = ManualSyncResponse(
            message="Channel sync completed" if result.success else "Channel sync failed",
            channel_name=channel.display_name,
            records_synced=result.records_processed if result.success else 0,
            result=result,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in channel sync",
            extra={"hotel_id": hotel_id, "channel_id": str(channel_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post("/channels/{channel_id}/pull-reservations", response_model=PullReservationsResponse)
async def pull_reservations(
    channel_id: UUID,
    request: Optional[PullReservationsRequest] = None,
    hotel_id: str = Depends(get_hotel_id),
    dispatcher: SyncDispatcher = Depends(get_sync_dispatcher),
) -> JSONResponse:
    request = request or PullReservationsRequest()
    try:
        response_data = await dispatcher.pull_reservations(
            channel_id,
            hotel_id,
            start=request.start_date,
            end=request.end_date,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error pulling reservations",
            extra={"hotel_id": hotel_id, "channel_id": str(channel_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.get("/sync-logs", response_model=SyncLogPage)
async def list_sync_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    channel_id: Optional[UUID] = Query(None),
    status: Optional[SyncStatus] = Query(None),
    hotel_id: str = Depends(get_hotel_id),
    sync_logs: SyncLogService = Depends(get_sync_log_service),
) -> JSONResponse:
    """Page through the hotel's sync attempts, newest first."""
    try:
        rows, total = await sync_logs.list_for_hotel(
            hotel_id,
            limit=limit,
            offset=offset,
            channel_id=channel_id,
            status=status,
        )
        response_data = SyncLogPage(
            items=[SyncLog.model_validate(row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error listing sync logs",
            extra={"hotel_id": hotel_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )


@router.post("/sync-logs/reconcile", response_model=ReconcileResponse)
async def reconcile_sync_logs(
    older_than_minutes: int = Query(settings.pending_sync_timeout_minutes, ge=1),
    hotel_id: str = Depends(get_hotel_id),
    sync_logs: SyncLogService = Depends(get_sync_log_service),
) -> JSONResponse:
    """Mark the hotel's sync logs stuck in pending as failed."""
    try:
        reconciled = await sync_logs.reconcile_stale_pending(
            timedelta(minutes=older_than_minutes),
            hotel_id=hotel_id,
        )
        response_data = ReconcileResponse(reconciled=reconciled, older_than_minutes=older_than_minutes)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error reconciling sync logs",
            extra={"hotel_id": hotel_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        )
