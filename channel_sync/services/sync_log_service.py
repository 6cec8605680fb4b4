"""Sync audit log service."""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import utc_now
from ..core.exceptions import NotFoundError, SyncLogStateError
from ..core.observability import metrics_collector
from ..models.sync_log import SyncDirection, SyncLog, SyncStatus, SyncType

logger = logging.getLogger(__name__)

STALE_PENDING_MESSAGE = "Sync did not complete; marked failed by reconciliation"


class SyncLogService:
    """Append and complete sync log rows, and read them back per hotel."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start(
        self,
        hotel_id: str,
        channel_id: Optional[UUID],
        sync_type: SyncType,
        direction: SyncDirection,
        records_processed: int = 0,
        request_payload: Any = None,
    ) -> SyncLog:
        """
        Create a pending row and commit it before any network call is made.

        Returns:
            The committed pending SyncLog
        """
        sync_log = SyncLog(
            hotel_id=hotel_id,
            channel_id=channel_id,
            sync_type=sync_type,
            direction=direction,
            status=SyncStatus.PENDING,
            started_at=utc_now(),
            records_processed=records_processed,
            request_payload=request_payload,
        )
        self.db.add(sync_log)
        await self.db.commit()
        await self.db.refresh(sync_log)

        logger.info(
            "Sync started",
            extra={
                "sync_log_id": str(sync_log.id),
                "hotel_id": hotel_id,
                "channel_id": str(channel_id) if channel_id else None,
                "sync_type": sync_type.value,
                "direction": direction.value
            }
        )

        return sync_log

    async def complete(
        self,
        sync_log: SyncLog,
        status: SyncStatus,
        records_successful: int = 0,
        records_failed: int = 0,
        records_processed: Optional[int] = None,
        response_payload: Any = None,
        error_message: Optional[str] = None,
    ) -> SyncLog:
        """
        Make the single terminal transition of a pending row.

        Raises:
            ValueError: If ``status`` is pending
            SyncLogStateError: If the row is already terminal
        """
        if not SyncStatus(status).is_terminal:
            raise ValueError("A sync log can only be completed with a terminal status")

        await self.db.refresh(sync_log)
        if SyncStatus(sync_log.status).is_terminal:
            raise SyncLogStateError(str(sync_log.id), SyncStatus(sync_log.status).value)

        sync_log.status = SyncStatus(status)
        sync_log.completed_at = utc_now()
        if records_processed is not None:
            sync_log.records_processed = records_processed
        sync_log.records_successful = records_successful
        sync_log.records_failed = records_failed
        sync_log.response_payload = response_payload
        sync_log.error_message = error_message

        await self.db.commit()
        await self.db.refresh(sync_log)

        log = logger.info if sync_log.status == SyncStatus.SUCCESS else logger.warning
        log(
            "Sync completed",
            extra={
                "sync_log_id": str(sync_log.id),
                "status": sync_log.status,
                "records_processed": sync_log.records_processed,
                "records_failed": sync_log.records_failed,
                "error_message": error_message
            }
        )

        return sync_log

    async def get_sync_log(self, sync_log_id: UUID, hotel_id: str) -> SyncLog:
        """
        Load one sync log of a hotel.

        Raises:
            NotFoundError: If the row does not exist for that hotel
        """
        result = await self.db.execute(
            select(SyncLog).where(SyncLog.id == sync_log_id, SyncLog.hotel_id == hotel_id)
        )
        sync_log = result.scalar_one_or_none()
        if not sync_log:
            raise NotFoundError("SyncLog", str(sync_log_id))
        return sync_log

    async def list_for_hotel(
        self,
        hotel_id: str,
        limit: int = 50,
        offset: int = 0,
        channel_id: Optional[UUID] = None,
        status: Optional[SyncStatus] = None,
    ) -> tuple[list[SyncLog], int]:
        """
        Page through a hotel's sync logs, newest first.

        Returns:
            (rows, total matching rows)
        """
        conditions = [SyncLog.hotel_id == hotel_id]
        if channel_id is not None:
            conditions.append(SyncLog.channel_id == channel_id)
        if status is not None:
            conditions.append(SyncLog.status == SyncStatus(status))

        total = await self.db.scalar(select(func.count(SyncLog.id)).where(*conditions))

        result = await self.db.execute(
            select(SyncLog)
            .where(*conditions)
            .order_by(SyncLog.started_at.desc(), SyncLog.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), int(total or 0)

    async def reconcile_stale_pending(
        self,
        older_than: timedelta,
        hotel_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Demote rows left pending longer than ``older_than`` to failed.

        Args:
            older_than: Age after which a pending row is considered abandoned
            hotel_id: Restrict the sweep to one hotel
            now: Reference time, defaults to the current UTC time

        Returns:
            Number of rows demoted
        """
        cutoff = (now or utc_now()) - older_than
        conditions = [SyncLog.status == SyncStatus.PENDING, SyncLog.started_at < cutoff]
        if hotel_id is not None:
            conditions.append(SyncLog.hotel_id == hotel_id)

        result = await self.db.execute(
            update(SyncLog)
            .where(*conditions)
            .values(
                status=SyncStatus.FAILED,
                completed_at=utc_now(),
                error_message=STALE_PENDING_MESSAGE,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        reconciled = result.rowcount or 0
        if reconciled:
            logger.warning(
                "Stale pending sync logs reconciled",
                extra={
                    "count": reconciled,
                    "hotel_id": hotel_id,
                    "older_than_seconds": int(older_than.total_seconds())
                }
            )
            metrics_collector.record_stale_logs_reconciled(reconciled)

        return reconciled
