"""Models module exporting all database models."""

from .channel import Channel, ChannelStatus
from .channel_booking import ChannelBooking, ChannelBookingStatus
from .rate_plan import RatePlan
from .room import Room, RoomType
from .room_mapping import RoomMapping
from .sync_log import SyncDirection, SyncLog, SyncStatus, SyncType

__all__ = [
    # Channel registry
    "Channel",
    "ChannelStatus",
    "RatePlan",
    "RoomMapping",

    # Hotel room stock (read-only)
    "Room",
    "RoomType",

    # Audit log
    "SyncLog",
    "SyncStatus",
    "SyncType",
    "SyncDirection",

    # OTA reservations
    "ChannelBooking",
    "ChannelBookingStatus",
]
