"""Rate plan and room mapping Pydantic schemas."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from ..models.room import RoomType
from .common import IdStr


class SeasonalRate(BaseModel):
    """Override rate for an inclusive date range."""

    start_date: date = Field(..., description="First day (inclusive)")
    end_date: date = Field(..., description="Last day (inclusive)")
    rate: Decimal = Field(..., ge=0, decimal_places=2, description="Replacement nightly rate")

    @model_validator(mode="after")
    def check_order(self) -> "SeasonalRate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    @field_serializer("rate")
    def serialize_rate(self, rate: Decimal) -> str:
        return str(rate)


class CreateRatePlanRequest(BaseModel):
    """Request schema for creating a rate plan. Seasonal entries resolve first-match in list order."""

    room_type: RoomType = Field(..., description="Internal room-type category")
    name: str = Field(..., min_length=1, max_length=255, description="Rate plan name")
    base_rate: Decimal = Field(..., ge=0, decimal_places=2, description="Nightly base rate")
    weekend_surcharge: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    discount_percentage: Decimal = Field(
        Decimal("0"), ge=-100, le=500, decimal_places=2,
        description="Negative for a discount, positive for a markup"
    )
    seasonal_rates: list[SeasonalRate] = Field(default_factory=list)
    is_active: bool = True


class UpdateRatePlanRequest(BaseModel):
    """Request schema for updating a rate plan; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    base_rate: Decimal | None = Field(None, ge=0, decimal_places=2)
    weekend_surcharge: Decimal | None = Field(None, ge=0, decimal_places=2)
    tax_rate: Decimal | None = Field(None, ge=0, le=100, decimal_places=2)
    discount_percentage: Decimal | None = Field(None, ge=-100, le=500, decimal_places=2)
    seasonal_rates: list[SeasonalRate] | None = None
    is_active: bool | None = None


class RatePlan(BaseModel):
    """Rate plan response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: IdStr
    channel_id: IdStr
    room_type: str
    name: str
    base_rate: Decimal
    weekend_surcharge: Decimal
    tax_rate: Decimal
    discount_percentage: Decimal
    seasonal_rates: list[SeasonalRate]
    is_active: bool

    @field_serializer("base_rate", "weekend_surcharge", "tax_rate", "discount_percentage")
    def serialize_money(self, value: Decimal) -> str:
        return str(value)


class CreateRoomMappingRequest(BaseModel):
    """Request schema for mapping an internal room type onto the channel's codes."""

    room_type: RoomType
    room_id: str | None = Field(None, max_length=64, description="Optional internal room identifier")
    external_room_id: str = Field(..., min_length=1, max_length=128, description="Channel room type code")
    external_rate_plan_id: str = Field(..., min_length=1, max_length=128, description="Channel rate plan code")


class RoomMapping(BaseModel):
    """Room mapping response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: IdStr
    channel_id: IdStr
    room_type: str
    room_id: str | None = None
    external_room_id: str
    external_rate_plan_id: str
