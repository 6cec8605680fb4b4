"""Hotel room stock model definition."""

from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class RoomType(str, Enum):
    """Fixed room-type categories, in inventory output order."""
    STANDARD = "standard"
    DELUXE = "deluxe"
    SUITE = "suite"


class Room(Base):
    """
    A physical room in a hotel's stock.

    The table is owned by the hotel management application; the
    synchronization engine only reads it to count rooms per type.
    """

    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    hotel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(20), nullable=False)
    room_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("hotel_id", "number", name="uq_room_hotel_number"),
    )

    def __repr__(self) -> str:
        return f"<Room(hotel_id='{self.hotel_id}', number='{self.number}', room_type='{self.room_type}')>"
