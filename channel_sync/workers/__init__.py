"""Background workers for the channel sync service."""

from .pending_sync_reconciler import PendingSyncReconciler

__all__ = ["PendingSyncReconciler"]
