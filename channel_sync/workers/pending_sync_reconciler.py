"""Background worker that fails sync logs abandoned in pending."""

import logging
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import async_session_factory
from ..services.sync_log_service import SyncLogService
from .base import BaseWorker

logger = logging.getLogger(__name__)


class PendingSyncReconciler(BaseWorker):
    """
    Periodically demotes sync logs stuck in pending to failed.

    A row stays pending only when the process died between writing it and
    completing it, so anything older than the timeout is treated as lost.
    """

    def __init__(
        self,
        timeout_minutes: int = 60,
        interval_seconds: int = 300,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
    ):
        super().__init__(name="PendingSyncReconciler", interval_seconds=interval_seconds)
        self.timeout = timedelta(minutes=timeout_minutes)
        self.session_factory = session_factory or async_session_factory
        self.last_reconciled = 0

    async def process(self) -> None:
        async with self.session_factory() as db:
            try:
                self.last_reconciled = await SyncLogService(db).reconcile_stale_pending(self.timeout)
            except Exception:
                await db.rollback()
                raise

        if self.last_reconciled:
            logger.info(
                "Reconciled stale pending sync logs",
                extra={"worker": self.name, "reconciled": self.last_reconciled}
            )
