"""Inventory generator producing per-channel availability and rate records."""

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.observability import metrics_collector
from ..models.channel import Channel, ChannelStatus
from ..models.rate_plan import RatePlan
from ..models.room import Room, RoomType
from ..models.room_mapping import RoomMapping
from .rate_calculator import RateCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryRecord:
    """Availability and sell rate for one (channel, room type, date) triple."""

    channel_id: UUID
    rate_plan_id: UUID
    room_type: str
    date: date
    total_rooms: int
    available_rooms: int
    sell_rate: Decimal
    external_room_id: Optional[str] = None
    external_rate_plan_id: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation for sync log request payloads."""
        payload = asdict(self)
        payload["channel_id"] = str(self.channel_id)
        payload["rate_plan_id"] = str(self.rate_plan_id)
        payload["date"] = self.date.isoformat()
        payload["sell_rate"] = str(self.sell_rate)
        return payload


def iter_dates(start: date, end: date):
    """Yield every date from ``start`` to ``end`` inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


class InventoryGenerator:
    """Builds inventory records for a hotel's active channels over a date range."""

    def __init__(self, db: AsyncSession, rate_calculator: Optional[RateCalculator] = None):
        self.db = db
        self.rate_calculator = rate_calculator or RateCalculator()

    async def _room_counts(self, hotel_id: str) -> Counter:
        result = await self.db.execute(
            select(Room.room_type, func.count(Room.id))
            .where(Room.hotel_id == hotel_id)
            .group_by(Room.room_type)
        )
        return Counter({room_type: count for room_type, count in result.all()})

    async def _active_channels(self, hotel_id: str) -> list[Channel]:
        result = await self.db.execute(
            select(Channel)
            .where(Channel.hotel_id == hotel_id, Channel.status == ChannelStatus.ACTIVE)
            .order_by(Channel.created_at, Channel.id)
        )
        return list(result.scalars().all())

    async def _plans_by_channel(self, channel_ids: list[UUID]) -> dict[tuple[UUID, str], RatePlan]:
        if not channel_ids:
            return {}
        result = await self.db.execute(
            select(RatePlan).where(RatePlan.channel_id.in_(channel_ids), RatePlan.is_active.is_(True))
        )
        return {(plan.channel_id, plan.room_type): plan for plan in result.scalars().all()}

    async def _mappings_by_channel(self, channel_ids: list[UUID]) -> dict[tuple[UUID, str], RoomMapping]:
        if not channel_ids:
            return {}
        result = await self.db.execute(
            select(RoomMapping).where(RoomMapping.channel_id.in_(channel_ids))
        )
        return {(mapping.channel_id, mapping.room_type): mapping for mapping in result.scalars().all()}

    async def generate_for_date_range(self, hotel_id: str, start: date, end: date) -> list[InventoryRecord]:
        """
        Generate inventory records for every active channel of a hotel.

        One record is produced per (date, channel, room type) where the hotel
        has rooms of that type and the channel has an active rate plan for it.
        Absent rooms or plans are a valid configuration and are skipped
        silently.

        Args:
            hotel_id: Owning hotel
            start: First date, inclusive
            end: Last date, inclusive

        Returns:
            Records ordered by date, then channel creation order, then room type
        """
        if start > end:
            return []

        room_counts = await self._room_counts(hotel_id)
        channels = await self._active_channels(hotel_id)
        channel_ids = [channel.id for channel in channels]
        plans = await self._plans_by_channel(channel_ids)
        mappings = await self._mappings_by_channel(channel_ids)

        room_types = [room_type.value for room_type in RoomType if room_counts.get(room_type.value, 0) > 0]

        records: list[InventoryRecord] = []
        for day in iter_dates(start, end):
            for channel in channels:
                buffer = channel.inventory_buffer
                for room_type in room_types:
                    plan = plans.get((channel.id, room_type))
                    if plan is None:
                        continue

                    total_rooms = room_counts[room_type]
                    mapping = mappings.get((channel.id, room_type))
                    records.append(InventoryRecord(
                        channel_id=channel.id,
                        rate_plan_id=plan.id,
                        room_type=room_type,
                        date=day,
                        total_rooms=total_rooms,
                        available_rooms=max(0, total_rooms - buffer),
                        sell_rate=self.rate_calculator.calculate_rate(plan, day),
                        external_room_id=mapping.external_room_id if mapping else None,
                        external_rate_plan_id=mapping.external_rate_plan_id if mapping else None,
                    ))

        logger.info(
            "Inventory generated",
            extra={
                "hotel_id": hotel_id,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "channels": len(channels),
                "records": len(records)
            }
        )
        metrics_collector.record_inventory_generated(len(records))

        return records
