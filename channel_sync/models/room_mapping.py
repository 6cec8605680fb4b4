"""Room mapping model definition."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utc_now

if TYPE_CHECKING:
    from .channel import Channel


class RoomMapping(Base):
    """Correspondence between an internal room type and the channel's room and rate plan codes."""

    __tablename__ = "channel_room_mappings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    channel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ota_channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    room_type: Mapped[str] = mapped_column(String(20), nullable=False)
    room_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    external_room_id: Mapped[str] = mapped_column(String(128), nullable=False)
    external_rate_plan_id: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("channel_id", "room_type", name="uq_room_mapping_channel_room_type"),
    )

    channel: Mapped["Channel"] = relationship("Channel", back_populates="room_mappings")

    def __repr__(self) -> str:
        return (
            f"<RoomMapping(channel_id={self.channel_id}, room_type='{self.room_type}', "
            f"external_room_id='{self.external_room_id}')>"
        )
