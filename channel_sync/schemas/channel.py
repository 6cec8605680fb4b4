"""Channel-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.channel import ChannelStatus
from .common import IdStr


class SupportedChannel(BaseModel):
    """Catalog entry exposed by the supported-channels listing."""

    id: str = Field(..., description="Channel type code")
    name: str = Field(..., description="OTA display name")
    endpoint: str = Field(..., description="Default API endpoint")
    commission: float = Field(..., description="Typical commission percentage")


class ChannelSettings(BaseModel):
    """Per-channel synchronization settings."""

    auto_sync: bool = Field(True, description="Include in bulk inventory syncs")
    rate_parity: bool = Field(False, description="Enforce rate parity across channels")
    inventory_buffer: int = Field(0, ge=0, le=1000, description="Rooms withheld from this channel")
    commission_rate: float | None = Field(None, ge=0, le=100, description="Commission percentage")


class CreateChannelRequest(BaseModel):
    """Request schema for connecting a new OTA channel."""

    channel_type: str = Field(..., min_length=1, max_length=50, description="Catalog type code")
    display_name: str = Field(..., min_length=1, max_length=255, description="Name shown to staff")
    property_id: str | None = Field(None, max_length=128, description="Hotel identifier on the OTA")
    api_endpoint: str | None = Field(None, max_length=512, description="Override of the catalog endpoint")
    credentials: dict[str, Any] = Field(default_factory=dict, description="Credential bundle, e.g. username/password")
    status: ChannelStatus = Field(ChannelStatus.TESTING, description="Initial lifecycle status")
    settings: ChannelSettings = Field(default_factory=ChannelSettings)


class UpdateChannelRequest(BaseModel):
    """Request schema for updating a channel; omitted fields are left unchanged."""

    display_name: str | None = Field(None, min_length=1, max_length=255)
    property_id: str | None = Field(None, max_length=128)
    api_endpoint: str | None = Field(None, max_length=512)
    credentials: dict[str, Any] | None = None
    status: ChannelStatus | None = None
    settings: ChannelSettings | None = None


class Channel(BaseModel):
    """Channel response schema. Credentials are never returned, only their field names."""

    model_config = ConfigDict(from_attributes=True)

    id: IdStr = Field(..., description="Unique channel ID")
    hotel_id: str = Field(..., description="Owning hotel")
    channel_type: str = Field(..., description="Catalog type code")
    display_name: str = Field(..., description="Name shown to staff")
    property_id: str | None = Field(None, description="Hotel identifier on the OTA")
    api_endpoint: str | None = Field(None, description="Endpoint override")
    credential_fields: list[str] = Field(default_factory=list, description="Names of stored credential fields")
    status: ChannelStatus = Field(..., description="Lifecycle status")
    settings: ChannelSettings = Field(..., description="Synchronization settings")
    last_sync_at: datetime | None = Field(None, description="Last completed inventory push")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")

    @classmethod
    def from_model(cls, channel: Any) -> "Channel":
        return cls(
            id=channel.id,
            hotel_id=channel.hotel_id,
            channel_type=channel.channel_type,
            display_name=channel.display_name,
            property_id=channel.property_id,
            api_endpoint=channel.api_endpoint,
            credential_fields=sorted((channel.credentials or {}).keys()),
            status=channel.status,
            settings=ChannelSettings.model_validate(channel.settings or {}),
            last_sync_at=channel.last_sync_at,
            created_at=channel.created_at,
        )


class ConnectionTestResponse(BaseModel):
    """Result of a connection test against an OTA."""

    success: bool
    message: str
    channel_status: ChannelStatus
    data: Any | None = None


class ExternalRatePlan(BaseModel):
    """Rate plan as listed by the OTA."""

    external_rate_plan_id: str
    name: str | None = None


class ExternalRoom(BaseModel):
    """Room type as listed by the OTA, with the local room type mapped to it."""

    external_room_id: str
    name: str | None = None
    rate_plans: list[ExternalRatePlan] = Field(default_factory=list)
    mapped_room_type: str | None = Field(None, description="Local room type mapped to this OTA room")


class ExternalRoomsResponse(BaseModel):
    """Room types and rate plans fetched from a channel's OTA."""

    success: bool
    message: str
    rooms: list[ExternalRoom] = Field(default_factory=list)
    retry_after: int | None = None
