"""Worker manager for coordinating background tasks."""

import asyncio
import logging
from typing import Dict

from ..core.config import Settings, settings as default_settings
from .base import BaseWorker
from .pending_sync_reconciler import PendingSyncReconciler

logger = logging.getLogger(__name__)


class WorkerManager:
    """
    Manages background workers for the application.

    Only workers enabled in settings are registered.
    """

    def __init__(self, settings: Settings = default_settings):
        self.workers: Dict[str, BaseWorker] = {}
        self._setup_workers(settings)

    def _setup_workers(self, settings: Settings) -> None:
        if settings.pending_sync_reconcile_enabled:
            self.workers["pending_sync_reconciler"] = PendingSyncReconciler(
                timeout_minutes=settings.pending_sync_timeout_minutes,
                interval_seconds=settings.pending_sync_reconcile_interval_seconds,
            )

        logger.info("Initialized workers", extra={"workers": sorted(self.workers)})

    async def start_all(self) -> None:
        """Start all registered workers."""
        for name, worker in self.workers.items():
            try:
                await worker.start()
            except Exception as e:
                logger.error(
                    "Failed to start worker",
                    exc_info=True,
                    extra={"worker": name, "error": str(e)}
                )

    async def stop_all(self) -> None:
        """Stop all workers gracefully."""
        results = await asyncio.gather(
            *(worker.stop() for worker in self.workers.values()),
            return_exceptions=True
        )

        for name, result in zip(self.workers.keys(), results):
            if isinstance(result, Exception):
                logger.error("Error stopping worker", extra={"worker": name, "error": str(result)})

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not registered
        """
        return self.workers[name]

    def get_worker_status(self) -> Dict[str, bool]:
        """Map worker names to their running state."""
        return {name: worker.is_running for name, worker in self.workers.items()}


# Global worker manager instance
worker_manager = WorkerManager()
