"""Per-channel booking and synchronization analytics."""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.channel import Channel, ChannelStatus
from ..models.channel_booking import ChannelBooking, ChannelBookingStatus
from ..models.sync_log import SyncLog, SyncStatus
from ..schemas.analytics import ChannelAnalytics, HotelAnalytics

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


class AnalyticsService:
    """Read-only aggregates over a hotel's channels."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def hotel_analytics(self, hotel_id: str) -> HotelAnalytics:
        channels = list((await self.db.execute(
            select(Channel)
            .where(Channel.hotel_id == hotel_id)
            .order_by(Channel.created_at, Channel.id)
        )).scalars().all())

        cancelled = ChannelBooking.status == ChannelBookingStatus.CANCELLED
        booking_rows = await self.db.execute(
            select(
                ChannelBooking.channel_id,
                func.count(ChannelBooking.id),
                func.sum(case((cancelled, 1), else_=0)),
                func.sum(case((cancelled, 0), else_=ChannelBooking.total_amount)),
                func.sum(case((cancelled, 0), else_=ChannelBooking.commission_amount)),
            )
            .where(ChannelBooking.hotel_id == hotel_id)
            .group_by(ChannelBooking.channel_id)
        )
        bookings = {
            channel_id: (int(count or 0), int(cancelled_count or 0), _money(revenue), _money(commission))
            for channel_id, count, cancelled_count, revenue, commission in booking_rows.all()
        }

        sync_rows = await self.db.execute(
            select(SyncLog.channel_id, SyncLog.status, func.count(SyncLog.id))
            .where(SyncLog.hotel_id == hotel_id, SyncLog.channel_id.is_not(None))
            .group_by(SyncLog.channel_id, SyncLog.status)
        )
        syncs: dict = defaultdict(dict)
        for channel_id, status, count in sync_rows.all():
            syncs[channel_id][SyncStatus(status)] = int(count)

        channel_stats = []
        for channel in channels:
            count, cancelled_count, revenue, commission = bookings.get(
                channel.id, (0, 0, _money(0), _money(0))
            )
            by_status = syncs.get(channel.id, {})
            channel_stats.append(ChannelAnalytics(
                channel_id=str(channel.id),
                channel_type=channel.channel_type,
                display_name=channel.display_name,
                status=ChannelStatus(channel.status).value,
                bookings=count - cancelled_count,
                cancelled_bookings=cancelled_count,
                revenue=revenue,
                commission=commission,
                syncs_succeeded=by_status.get(SyncStatus.SUCCESS, 0),
                syncs_failed=by_status.get(SyncStatus.FAILED, 0),
                syncs_partial=by_status.get(SyncStatus.PARTIAL, 0),
                syncs_pending=by_status.get(SyncStatus.PENDING, 0),
                last_sync_at=channel.last_sync_at,
            ))

        logger.debug(
            "Analytics computed",
            extra={"hotel_id": hotel_id, "channels": len(channel_stats)}
        )

        return HotelAnalytics(
            hotel_id=hotel_id,
            total_channels=len(channel_stats),
            active_channels=sum(1 for stats in channel_stats if stats.status == ChannelStatus.ACTIVE.value),
            total_bookings=sum(stats.bookings for stats in channel_stats),
            total_revenue=sum((stats.revenue for stats in channel_stats), _money(0)),
            total_commission=sum((stats.commission for stats in channel_stats), _money(0)),
            channels=channel_stats,
        )
