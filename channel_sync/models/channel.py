"""OTA channel connection model definition."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utc_now

if TYPE_CHECKING:
    from .rate_plan import RatePlan
    from .room_mapping import RoomMapping


class ChannelStatus(str, Enum):
    """Channel lifecycle status enumeration."""
    TESTING = "testing"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class Channel(Base):
    """One OTA connection owned by exactly one hotel."""

    __tablename__ = "ota_channels"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owning hotel
    hotel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # OTA identity
    channel_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    api_endpoint: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Opaque to the core; interpreted only by the protocol adapter
    credentials: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    status: Mapped[ChannelStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ChannelStatus.TESTING,
        index=True
    )

    # auto_sync, rate_parity, inventory_buffer, commission_rate
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

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
        UniqueConstraint("hotel_id", "channel_type", "property_id", name="uq_channel_hotel_type_property"),
        CheckConstraint(
            "status IN ('active', 'inactive', 'error', 'testing')",
            name="ck_channel_status_valid"
        ),
    )

    # Relationships
    rate_plans: Mapped[list["RatePlan"]] = relationship(
        "RatePlan",
        back_populates="channel",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    room_mappings: Mapped[list["RoomMapping"]] = relationship(
        "RoomMapping",
        back_populates="channel",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def auto_sync(self) -> bool:
        return bool((self.settings or {}).get("auto_sync", True))

    @property
    def inventory_buffer(self) -> int:
        try:
            return max(0, int((self.settings or {}).get("inventory_buffer", 0) or 0))
        except (TypeError, ValueError):
            return 0

    @property
    def is_active(self) -> bool:
        return self.status == ChannelStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<Channel(id={self.id}, hotel_id='{self.hotel_id}', "
            f"channel_type='{self.channel_type}', status={self.status})>"
        )
