"""Channel analytics Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer


class ChannelAnalytics(BaseModel):
    """Aggregates for one channel."""

    channel_id: str
    channel_type: str
    display_name: str
    status: str
    bookings: int = Field(0, ge=0)
    cancelled_bookings: int = Field(0, ge=0)
    revenue: Decimal = Decimal("0.00")
    commission: Decimal = Decimal("0.00")
    syncs_succeeded: int = Field(0, ge=0)
    syncs_failed: int = Field(0, ge=0)
    syncs_partial: int = Field(0, ge=0, description="Syncs where some records were rejected")
    syncs_pending: int = Field(0, ge=0)
    last_sync_at: datetime | None = None

    @field_serializer("revenue", "commission")
    def serialize_money(self, value: Decimal) -> str:
        return str(value)


class HotelAnalytics(BaseModel):
    """Channel aggregates for one hotel."""

    hotel_id: str
    total_channels: int
    active_channels: int
    total_bookings: int
    total_revenue: Decimal
    total_commission: Decimal
    channels: list[ChannelAnalytics]

    @field_serializer("total_revenue", "total_commission")
    def serialize_money(self, value: Decimal) -> str:
        return str(value)
