"""Sync dispatcher orchestrating inventory pushes and reservation pulls."""

import logging
import time
from datetime import date, timedelta
from typing import Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.base import AdapterResult
from ..adapters.registry import AdapterRegistry
from ..core.config import Settings, settings as default_settings
from ..core.database import utc_now
from ..core.exceptions import (
    ChannelConfigurationError,
    ChannelNotActiveError,
    ChannelOwnershipError,
    NotFoundError,
    ProblemDetailsException,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..models.channel import Channel, ChannelStatus
from ..models.channel_booking import ChannelBooking, ChannelBookingStatus
from ..models.sync_log import SyncDirection, SyncLog, SyncStatus, SyncType
from ..schemas.booking import PullReservationsResponse
from ..schemas.sync import ChannelSyncResult
from .channel_booking_service import ChannelBookingService
from .inventory_generator import InventoryGenerator, InventoryRecord
from .sync_log_service import SyncLogService

logger = logging.getLogger(__name__)


def _inventory_request_summary(records: Sequence[InventoryRecord]) -> dict:
    dates = sorted({record.date for record in records})
    return {
        "record_count": len(records),
        "start_date": dates[0].isoformat() if dates else None,
        "end_date": dates[-1].isoformat() if dates else None,
        "room_types": sorted({record.room_type for record in records}),
    }


class SyncDispatcher:
    """
    Runs synchronization attempts and records each one in the audit log.

    Every attempt writes a pending sync log before the OTA is contacted and
    completes it exactly once afterwards, including when the adapter raises.
    Channels are processed sequentially; nothing is retried automatically.
    """

    def __init__(
        self,
        db: AsyncSession,
        adapters: AdapterRegistry,
        inventory_generator: Optional[InventoryGenerator] = None,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        self.adapters = adapters
        self.inventory_generator = inventory_generator or InventoryGenerator(db)
        self.settings = settings or default_settings
        self.today = today or date.today
        self.sync_logs = SyncLogService(db)
        self.bookings = ChannelBookingService(db)

    async def _load_channel(self, channel_id: UUID, hotel_id: Optional[str] = None) -> Channel:
        result = await self.db.execute(select(Channel).where(Channel.id == channel_id))
        channel = result.scalar_one_or_none()
        if not channel:
            raise NotFoundError("Channel", str(channel_id))
        if hotel_id is not None and channel.hotel_id != hotel_id:
            raise ChannelOwnershipError(str(channel_id), hotel_id)
        return channel

    @staticmethod
    def _require_active(channel: Channel) -> None:
        if channel.status != ChannelStatus.ACTIVE:
            raise ChannelNotActiveError(str(channel.id), ChannelStatus(channel.status).value)

    async def _fail_log(self, sync_log: SyncLog, records: int, error: Exception) -> None:
        await self.db.rollback()
        await self.sync_logs.complete(
            sync_log,
            SyncStatus.FAILED,
            records_successful=0,
            records_failed=records,
            error_message=f"{type(error).__name__}: {error}",
        )

    async def sync_inventory_to_channel(
        self,
        channel_id: UUID,
        records: Sequence[InventoryRecord],
        hotel_id: Optional[str] = None,
    ) -> ChannelSyncResult:
        """
        Push inventory records to one channel.

        Args:
            channel_id: Target channel
            records: Inventory records; only those of this channel are sent
            hotel_id: When given, the channel must belong to this hotel

        Returns:
            ChannelSyncResult describing the attempt

        Raises:
            NotFoundError: If the channel does not exist
            ChannelOwnershipError: If the channel belongs to another hotel
            ChannelNotActiveError: If the channel is not active
            ChannelConfigurationError: If credentials or room mappings are missing
        """
        channel = await self._load_channel(channel_id, hotel_id)
        self._require_active(channel)

        adapter = self.adapters.for_channel(channel)
        adapter.ensure_configured()

        channel_records = [record for record in records if record.channel_id == channel.id]
        unmapped = sorted({record.room_type for record in channel_records if not record.external_room_id})
        if unmapped:
            raise ChannelConfigurationError(
                detail=f"Room types without a room mapping: {', '.join(unmapped)}",
                channel_id=str(channel.id),
                missing_fields=[f"room_mappings.{room_type}" for room_type in unmapped],
            )

        channel_type = channel.channel_type
        record_count = len(channel_records)
        sync_log = await self.sync_logs.start(
            hotel_id=channel.hotel_id,
            channel_id=channel.id,
            sync_type=SyncType.INVENTORY,
            direction=SyncDirection.PUSH,
            records_processed=record_count,
            request_payload=_inventory_request_summary(channel_records),
        )

        started = time.perf_counter()
        try:
            result = await adapter.push_inventory(channel_records)
        except Exception as e:
            logger.error(
                "Inventory push raised",
                extra={
                    "channel_id": str(channel.id),
                    "sync_log_id": str(sync_log.id),
                    "error": str(e)
                },
                exc_info=True
            )
            await self._fail_log(sync_log, record_count, e)
            metrics_collector.record_sync_attempt(
                channel_type, SyncType.INVENTORY.value, SyncStatus.FAILED.value,
                time.perf_counter() - started
            )
            raise

        status = SyncStatus.SUCCESS if result.success else SyncStatus.FAILED
        await self.sync_logs.complete(
            sync_log,
            status,
            records_successful=record_count if result.success else 0,
            records_failed=0 if result.success else record_count,
            response_payload=result.to_payload(),
            error_message=None if result.success else (result.error or result.message),
        )

        if result.success:
            channel.last_sync_at = utc_now()
            await self.db.commit()

        metrics_collector.record_sync_attempt(
            channel.channel_type, SyncType.INVENTORY.value, status.value, time.perf_counter() - started
        )

        logger.info(
            "Inventory sync finished",
            extra={
                "channel_id": str(channel.id),
                "hotel_id": channel.hotel_id,
                "sync_log_id": str(sync_log.id),
                "status": status.value,
                "records": record_count
            }
        )

        return ChannelSyncResult(
            channel_id=channel.id,
            channel_type=channel.channel_type,
            display_name=channel.display_name,
            success=result.success,
            message=result.message,
            sync_log_id=str(sync_log.id),
            records_processed=record_count,
            retry_after=result.retry_after,
        )

    async def _auto_sync_channels(self, hotel_id: str) -> list[Channel]:
        result = await self.db.execute(
            select(Channel)
            .where(Channel.hotel_id == hotel_id, Channel.status == ChannelStatus.ACTIVE)
            .order_by(Channel.created_at, Channel.id)
        )
        return [channel for channel in result.scalars().all() if channel.auto_sync]

    async def sync_all_channels(self, hotel_id: str) -> list[ChannelSyncResult]:
        """
        Push the forward inventory window to every auto-sync channel of a hotel.

        One channel's failure, raised or reported, never stops the others;
        it becomes a failed entry in the returned list.
        """
        start = self.today()
        end = start + timedelta(days=self.settings.sync_window_days - 1)
        records = await self.inventory_generator.generate_for_date_range(hotel_id, start, end)

        channels = [
            (channel.id, channel.channel_type, channel.display_name)
            for channel in await self._auto_sync_channels(hotel_id)
        ]

        results: list[ChannelSyncResult] = []
        for channel_id, channel_type, display_name in channels:
            try:
                result = await self.sync_inventory_to_channel(channel_id, records, hotel_id=hotel_id)
            except Exception as e:
                message = e.detail if isinstance(e, ProblemDetailsException) else str(e)
                logger.warning(
                    "Channel sync failed",
                    extra={
                        "channel_id": str(channel_id),
                        "hotel_id": hotel_id,
                        "error": message
                    }
                )
                await self.db.rollback()
                result = ChannelSyncResult(
                    channel_id=channel_id,
                    channel_type=channel_type,
                    display_name=display_name,
                    success=False,
                    message=message,
                )
            results.append(result)

        logger.info(
            "Hotel inventory sync finished",
            extra={
                "hotel_id": hotel_id,
                "channels": len(results),
                "succeeded": sum(1 for result in results if result.success)
            }
        )

        return results

    def _manual_range(self, start: Optional[date], end: Optional[date]) -> tuple[date, date]:
        start = start or self.today()
        end = end or start + timedelta(days=self.settings.manual_sync_days)
        if start > end:
            raise ValidationError(
                detail="start_date must not be after end_date",
                errors={"start_date": start.isoformat(), "end_date": end.isoformat()}
            )
        return start, end

    async def sync_channel(
        self,
        channel_id: UUID,
        hotel_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> tuple[Channel, ChannelSyncResult]:
        """
        Push one channel's inventory over a date range.

        The range defaults to today through ``manual_sync_days`` ahead.

        Returns:
            (channel, sync result)
        """
        channel = await self._load_channel(channel_id, hotel_id)
        start, end = self._manual_range(start, end)

        records = await self.inventory_generator.generate_for_date_range(hotel_id, start, end)
        channel_records = [record for record in records if record.channel_id == channel.id]

        result = await self.sync_inventory_to_channel(channel.id, channel_records, hotel_id=hotel_id)
        return channel, result

    async def pull_reservations(
        self,
        channel_id: UUID,
        hotel_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> PullReservationsResponse:
        """
        Fetch reservations from a channel and upsert them as channel bookings.

        The log ends ``partial`` when some entries could not be parsed.
        """
        channel = await self._load_channel(channel_id, hotel_id)
        self._require_active(channel)
        start, end = self._manual_range(start, end)

        adapter = self.adapters.for_channel(channel)
        adapter.ensure_configured()

        channel_type = channel.channel_type
        sync_log = await self.sync_logs.start(
            hotel_id=hotel_id,
            channel_id=channel.id,
            sync_type=SyncType.RESERVATION,
            direction=SyncDirection.PULL,
            request_payload={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )

        started = time.perf_counter()
        try:
            result = await adapter.pull_reservations(start, end)
        except Exception as e:
            logger.error(
                "Reservation pull raised",
                extra={"channel_id": str(channel.id), "sync_log_id": str(sync_log.id), "error": str(e)},
                exc_info=True
            )
            await self._fail_log(sync_log, 0, e)
            metrics_collector.record_sync_attempt(
                channel_type, SyncType.RESERVATION.value, SyncStatus.FAILED.value,
                time.perf_counter() - started
            )
            raise

        if not result.success:
            await self.sync_logs.complete(
                sync_log,
                SyncStatus.FAILED,
                response_payload=result.to_payload(),
                error_message=result.error or result.message,
            )
            metrics_collector.record_sync_attempt(
                channel.channel_type, SyncType.RESERVATION.value, SyncStatus.FAILED.value,
                time.perf_counter() - started
            )
            return PullReservationsResponse(
                success=False,
                message=result.message,
                sync_log_id=str(sync_log.id),
                fetched=0,
                created=0,
                updated=0,
                skipped=0,
            )

        data = result.data or {}
        reservations = data.get("reservations", [])
        skipped = data.get("skipped", [])

        try:
            created, updated = await self.bookings.upsert_from_reservations(channel, reservations)
            await self.db.flush()
        except Exception as e:
            logger.error(
                "Storing pulled reservations failed",
                extra={"channel_id": str(channel.id), "sync_log_id": str(sync_log.id), "error": str(e)},
                exc_info=True
            )
            await self._fail_log(sync_log, len(reservations) + len(skipped), e)
            raise

        status = SyncStatus.PARTIAL if skipped else SyncStatus.SUCCESS
        await self.sync_logs.complete(
            sync_log,
            status,
            records_processed=len(reservations) + len(skipped),
            records_successful=len(reservations),
            records_failed=len(skipped),
            response_payload=AdapterResult.ok(
                result.message,
                data={"created": created, "updated": updated, "skipped": skipped},
                status_code=result.status_code,
            ).to_payload(),
            error_message=f"{len(skipped)} reservations could not be parsed" if skipped else None,
        )

        metrics_collector.record_reservations_pulled(channel.channel_type, len(reservations))
        metrics_collector.record_sync_attempt(
            channel.channel_type, SyncType.RESERVATION.value, status.value, time.perf_counter() - started
        )

        return PullReservationsResponse(
            success=True,
            message=result.message,
            sync_log_id=str(sync_log.id),
            fetched=len(reservations),
            created=created,
            updated=updated,
            skipped=len(skipped),
        )

    async def update_booking_status(
        self,
        booking_id: UUID,
        hotel_id: str,
        status: str,
    ) -> tuple[ChannelBooking, AdapterResult, SyncLog]:
        """
        Report a confirmation or cancellation to the booking's OTA.

        The local booking status changes only when the OTA accepts it.

        Returns:
            (booking, adapter result, completed sync log)
        """
        booking = await self.bookings.get_booking(booking_id, hotel_id)
        channel = await self._load_channel(booking.channel_id, hotel_id)
        self._require_active(channel)

        adapter = self.adapters.for_channel(channel)
        adapter.ensure_configured()

        status = getattr(status, "value", status)
        if status not in (ChannelBookingStatus.CONFIRMED.value, ChannelBookingStatus.CANCELLED.value):
            raise ValidationError(
                detail=f"Reservation status must be confirmed or cancelled, got '{status}'",
                errors={"status": status}
            )

        channel_type = channel.channel_type
        sync_log = await self.sync_logs.start(
            hotel_id=hotel_id,
            channel_id=channel.id,
            sync_type=SyncType.RESERVATION,
            direction=SyncDirection.PUSH,
            records_processed=1,
            request_payload={
                "booking_id": str(booking.id),
                "external_reservation_id": booking.external_reservation_id,
                "status": status,
            },
        )

        started = time.perf_counter()
        try:
            result = await adapter.update_reservation_status(booking.external_reservation_id, status)
        except Exception as e:
            logger.error(
                "Reservation status update raised",
                extra={"booking_id": str(booking.id), "sync_log_id": str(sync_log.id), "error": str(e)},
                exc_info=True
            )
            await self._fail_log(sync_log, 1, e)
            metrics_collector.record_sync_attempt(
                channel_type, SyncType.RESERVATION.value, SyncStatus.FAILED.value,
                time.perf_counter() - started
            )
            raise

        if result.success:
            booking.status = ChannelBookingStatus(status)

        log_status = SyncStatus.SUCCESS if result.success else SyncStatus.FAILED
        sync_log = await self.sync_logs.complete(
            sync_log,
            log_status,
            records_successful=1 if result.success else 0,
            records_failed=0 if result.success else 1,
            response_payload=result.to_payload(),
            error_message=None if result.success else (result.error or result.message),
        )
        await self.db.refresh(booking)

        metrics_collector.record_sync_attempt(
            channel.channel_type, SyncType.RESERVATION.value, log_status.value, time.perf_counter() - started
        )

        return booking, result, sync_log
