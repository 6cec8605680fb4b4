"""Channel booking service for reservations pulled from OTAs."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.base import ReservationData
from ..core.exceptions import NotFoundError
from ..models.channel import Channel
from ..models.channel_booking import ChannelBooking, ChannelBookingStatus

logger = logging.getLogger(__name__)


def commission_for(total: Decimal, commission_rate) -> Decimal:
    """Commission owed on ``total`` at ``commission_rate`` percent."""
    try:
        rate = Decimal(str(commission_rate or 0))
    except ArithmeticError:
        rate = Decimal("0")
    return (total * rate / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class ChannelBookingService:
    """Persistence of OTA reservations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_booking(self, booking_id: UUID, hotel_id: str) -> ChannelBooking:
        """
        Load a booking of a hotel.

        Raises:
            NotFoundError: If the booking does not exist for that hotel
        """
        result = await self.db.execute(
            select(ChannelBooking).where(ChannelBooking.id == booking_id, ChannelBooking.hotel_id == hotel_id)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("ChannelBooking", str(booking_id))
        return booking

    async def upsert_from_reservations(
        self,
        channel: Channel,
        reservations: Iterable[ReservationData],
    ) -> tuple[int, int]:
        """
        Insert or update bookings keyed on (channel, external reservation id).

        A reservation already confirmed locally is not reset to new by a
        later pull. The caller commits.

        Returns:
            (created, updated)
        """
        reservations = list(reservations)
        if not reservations:
            return 0, 0

        external_ids = [reservation.external_reservation_id for reservation in reservations]
        result = await self.db.execute(
            select(ChannelBooking).where(
                ChannelBooking.channel_id == channel.id,
                ChannelBooking.external_reservation_id.in_(external_ids)
            )
        )
        existing = {booking.external_reservation_id: booking for booking in result.scalars().all()}

        commission_rate = (channel.settings or {}).get("commission_rate")
        created = updated = 0

        for reservation in reservations:
            status = ChannelBookingStatus(reservation.status)
            booking = existing.get(reservation.external_reservation_id)

            if booking is None:
                booking = ChannelBooking(
                    hotel_id=channel.hotel_id,
                    channel_id=channel.id,
                    external_reservation_id=reservation.external_reservation_id,
                    status=status,
                )
                self.db.add(booking)
                existing[reservation.external_reservation_id] = booking
                created += 1
            else:
                if not (booking.status == ChannelBookingStatus.CONFIRMED and status == ChannelBookingStatus.NEW):
                    booking.status = status
                updated += 1

            booking.guest_name = reservation.guest_name
            booking.guest_email = reservation.guest_email
            booking.check_in = reservation.check_in
            booking.check_out = reservation.check_out
            booking.room_type = reservation.room_type
            booking.total_amount = reservation.total_amount
            booking.currency = reservation.currency
            booking.commission_amount = commission_for(reservation.total_amount, commission_rate)
            booking.raw_payload = reservation.raw

        logger.info(
            "Channel bookings upserted",
            extra={
                "channel_id": str(channel.id),
                "hotel_id": channel.hotel_id,
                "created": created,
                "updated": updated
            }
        )

        return created, updated

    async def list_for_hotel(
        self,
        hotel_id: str,
        limit: int = 50,
        offset: int = 0,
        channel_id: Optional[UUID] = None,
        status: Optional[ChannelBookingStatus] = None,
    ) -> tuple[list[ChannelBooking], int]:
        """
        Page through a hotel's OTA bookings, newest first.

        Returns:
            (rows, total matching rows)
        """
        conditions = [ChannelBooking.hotel_id == hotel_id]
        if channel_id is not None:
            conditions.append(ChannelBooking.channel_id == channel_id)
        if status is not None:
            conditions.append(ChannelBooking.status == ChannelBookingStatus(status))

        total = await self.db.scalar(select(func.count(ChannelBooking.id)).where(*conditions))

        result = await self.db.execute(
            select(ChannelBooking)
            .where(*conditions)
            .order_by(ChannelBooking.created_at.desc(), ChannelBooking.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), int(total or 0)
