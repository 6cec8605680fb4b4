"""Channel rate plan model definition."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utc_now

if TYPE_CHECKING:
    from .channel import Channel


class RatePlan(Base):
    """Pricing rule for one (channel, room type) pair."""

    __tablename__ = "channel_rate_plans"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign key to channel
    channel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ota_channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    room_type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Pricing
    base_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    weekend_surcharge: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))

    # Ordered list of {"start_date", "end_date", "rate"}; first match wins
    seasonal_rates: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("channel_id", "room_type", name="uq_rate_plan_channel_room_type"),
        CheckConstraint("base_rate >= 0", name="ck_rate_plan_base_rate_non_negative"),
        CheckConstraint("tax_rate >= 0", name="ck_rate_plan_tax_rate_non_negative"),
    )

    # Relationships
    channel: Mapped["Channel"] = relationship("Channel", back_populates="rate_plans")

    def __repr__(self) -> str:
        return (
            f"<RatePlan(id={self.id}, channel_id={self.channel_id}, "
            f"room_type='{self.room_type}', base_rate={self.base_rate})>"
        )
