"""FastAPI dependencies for database sessions, hotel scoping and channel services."""

from typing import Optional

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.registry import AdapterRegistry
from ..services.analytics_service import AnalyticsService
from ..services.channel_booking_service import ChannelBookingService
from ..services.channel_registry import ChannelRegistry
from ..services.inventory_generator import InventoryGenerator
from ..services.rate_calculator import RateCalculator
from ..services.sync_dispatcher import SyncDispatcher
from ..services.sync_log_service import SyncLogService
from .channel_catalog import ChannelCatalog
from .config import settings
from .database import get_db
from .exceptions import MissingHotelError
from .middleware import HOTEL_HEADER


async def get_hotel_id(
    x_hotel_id: Optional[str] = Header(None, alias=HOTEL_HEADER),
    hotel_id: Optional[str] = Query(None, alias="hotelId"),
) -> str:
    """
    Resolve the calling hotel from the X-Hotel-ID header or the hotelId query parameter.

    Raises:
        MissingHotelError: If neither is present
    """
    value = (x_hotel_id or hotel_id or "").strip()
    if not value:
        raise MissingHotelError(f"Hotel ID required: send the {HOTEL_HEADER} header or the hotelId query parameter")
    return value


def get_channel_catalog(request: Request) -> ChannelCatalog:
    """Channel catalog loaded at startup."""
    return request.app.state.channel_catalog


def get_adapter_registry(request: Request) -> AdapterRegistry:
    """Adapter registry built from the catalog at startup."""
    return request.app.state.adapter_registry


def get_channel_registry(
    db: AsyncSession = Depends(get_db),
    catalog: ChannelCatalog = Depends(get_channel_catalog),
    adapters: AdapterRegistry = Depends(get_adapter_registry),
) -> ChannelRegistry:
    return ChannelRegistry(db, catalog, adapters)


def get_sync_dispatcher(
    db: AsyncSession = Depends(get_db),
    adapters: AdapterRegistry = Depends(get_adapter_registry),
) -> SyncDispatcher:
    generator = InventoryGenerator(db, RateCalculator(settings.weekend_days))
    return SyncDispatcher(db, adapters, inventory_generator=generator, settings=settings)


def get_sync_log_service(db: AsyncSession = Depends(get_db)) -> SyncLogService:
    return SyncLogService(db)


def get_channel_booking_service(db: AsyncSession = Depends(get_db)) -> ChannelBookingService:
    return ChannelBookingService(db)


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)
