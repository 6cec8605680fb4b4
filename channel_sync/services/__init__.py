"""Service layer package."""

from .analytics_service import AnalyticsService
from .channel_booking_service import ChannelBookingService
from .channel_registry import ChannelRegistry
from .inventory_generator import InventoryGenerator, InventoryRecord
from .rate_calculator import RateCalculator
from .sync_dispatcher import SyncDispatcher
from .sync_log_service import SyncLogService

__all__ = [
    "AnalyticsService",
    "ChannelBookingService",
    "ChannelRegistry",
    "InventoryGenerator",
    "InventoryRecord",
    "RateCalculator",
    "SyncDispatcher",
    "SyncLogService",
]
