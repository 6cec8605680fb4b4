"""FastAPI routers package."""

from .analytics import router as analytics_router
from .bookings import router as bookings_router
from .channels import router as channels_router
from .health import router as health_router
from .metrics import router as metrics_router
from .sync import router as sync_router

__all__ = [
    "analytics_router",
    "bookings_router",
    "channels_router",
    "health_router",
    "metrics_router",
    "sync_router",
]
