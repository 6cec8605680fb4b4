"""Channel booking model definition."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utc_now


class ChannelBookingStatus(str, Enum):
    """Status of a reservation that originated on an OTA."""
    NEW = "new"
    MODIFIED = "modified"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ChannelBooking(Base):
    """A reservation pulled from an OTA channel."""

    __tablename__ = "channel_bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    hotel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ota_channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    external_reservation_id: Mapped[str] = mapped_column(String(128), nullable=False)

    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    room_type: Mapped[str | None] = mapped_column(String(128), nullable=True)

    status: Mapped[ChannelBookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ChannelBookingStatus.NEW,
        index=True
    )

    # Money
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    raw_payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

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
        UniqueConstraint("channel_id", "external_reservation_id", name="uq_channel_booking_external_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChannelBooking(id={self.id}, channel_id={self.channel_id}, "
            f"external_reservation_id='{self.external_reservation_id}', status={self.status})>"
        )
