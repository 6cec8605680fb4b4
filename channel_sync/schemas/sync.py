"""Synchronization and sync log Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.sync_log import SyncDirection, SyncStatus, SyncType
from .common import DateRange, IdStr, PaginatedResponse


class SyncChannelRequest(DateRange):
    """Request body for a manual single-channel sync."""


class PullReservationsRequest(DateRange):
    """Request body for pulling reservations from a channel."""


class ChannelSyncResult(BaseModel):
    """Outcome of one channel's synchronization attempt."""

    channel_id: IdStr = Field(..., description="Channel that was synchronized")
    channel_type: str | None = Field(None, description="Catalog type code")
    display_name: str | None = Field(None, description="Channel display name")
    success: bool = Field(..., description="Whether the OTA accepted the update")
    message: str = Field("", description="Adapter or error message")
    sync_log_id: str | None = Field(None, description="Audit row for the attempt, if one was written")
    records_processed: int = Field(0, ge=0)
    retry_after: int | None = Field(None, description="Seconds the OTA asked us to wait, if any")


class BulkSyncResponse(BaseModel):
    """Response of the hotel-wide inventory sync."""

    message: str = "Inventory sync completed"
    synced_channels: int = Field(..., serialization_alias="syncedChannels")
    results: list[ChannelSyncResult]


class ManualSyncResponse(BaseModel):
    """Response of a single-channel sync."""

    message: str = "Channel sync completed"
    channel_name: str
    records_synced: int
    result: ChannelSyncResult


class SyncLog(BaseModel):
    """Sync log response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: IdStr
    hotel_id: str
    channel_id: IdStr | None = None
    sync_type: SyncType
    direction: SyncDirection
    status: SyncStatus
    started_at: datetime
    completed_at: datetime | None = None
    records_processed: int
    records_successful: int
    records_failed: int
    response_payload: Any | None = None
    error_message: str | None = None


class SyncLogPage(PaginatedResponse):
    """Paginated sync log listing."""

    items: list[SyncLog]


class ReconcileResponse(BaseModel):
    """Result of a stale pending sync log sweep."""

    reconciled: int = Field(..., ge=0, description="Rows demoted from pending to failed")
    older_than_minutes: int
