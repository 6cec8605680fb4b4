"""Channel booking Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ..models.channel_booking import ChannelBookingStatus
from .common import IdStr, PaginatedResponse


class ReservationStatusUpdate(str, Enum):
    """Statuses a hotel can report back to an OTA."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for confirming or cancelling an OTA reservation."""

    status: ReservationStatusUpdate


class ChannelBooking(BaseModel):
    """Channel booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: IdStr
    hotel_id: str
    channel_id: IdStr
    external_reservation_id: str
    guest_name: str
    guest_email: str | None = None
    check_in: date
    check_out: date
    room_type: str | None = None
    status: ChannelBookingStatus
    total_amount: Decimal
    currency: str
    commission_amount: Decimal
    created_at: datetime

    @field_serializer("total_amount", "commission_amount")
    def serialize_money(self, value: Decimal) -> str:
        return str(value)


class ChannelBookingPage(PaginatedResponse):
    """Paginated booking listing."""

    items: list[ChannelBooking]


class PullReservationsResponse(BaseModel):
    """Outcome of a reservation pull."""

    success: bool
    message: str
    sync_log_id: str
    fetched: int = Field(..., ge=0)
    created: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)


class BookingStatusResponse(BaseModel):
    """Outcome of a reservation status update sent to the OTA."""

    success: bool
    message: str
    sync_log_id: str
    booking: ChannelBooking
