"""Test configuration and fixtures."""

import os

# Point the application engine at SQLite before any channel_sync module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from decimal import Decimal
from typing import Callable, Union

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from channel_sync.adapters.registry import AdapterRegistry
from channel_sync.core.channel_catalog import load_channel_catalog
from channel_sync.core.config import settings
from channel_sync.core.database import Base, get_db
from channel_sync.models import *  # noqa: F403 - Import all models
from channel_sync.models import Channel, ChannelStatus, RatePlan, Room, RoomMapping

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

HOTEL_ID = "hotel-1"
OTHER_HOTEL_ID = "hotel-2"

OtaResponse = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeOta:
    """
    In-process OTA endpoint served through httpx.MockTransport.

    Responses are queued per URL path; the last queued response for a path
    keeps answering once the queue is drained. Queue an exception instance
    to have the transport raise it.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._responses: dict[str, list[OtaResponse]] = {}

    def respond(self, path: str, *responses: OtaResponse) -> None:
        self._responses[path] = list(responses)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._responses.get(request.url.path)
        if not queue:
            return httpx.Response(200, text="<OK/>")

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def fake_ota():
    """Stubbed OTA server; every call answers 200 unless told otherwise."""
    return FakeOta()


@pytest.fixture
def channel_catalog():
    return load_channel_catalog()


@pytest.fixture
def adapter_registry(channel_catalog, fake_ota):
    """Adapter registry whose OTA-XML traffic goes to the fake OTA."""
    return AdapterRegistry.from_catalog(channel_catalog, settings, transport=fake_ota.transport)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, channel_catalog, adapter_registry):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError
    from fastapi.middleware.cors import CORSMiddleware

    from channel_sync.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        validation_exception_handler,
    )
    from channel_sync.routers import analytics, bookings, channels, health, metrics, sync

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Channel Sync API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Simplified for tests
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Add inline health endpoints (like in main app)
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "channel-sync-api",
            "version": "1.0.0",
            "environment": "test",
        }

    @app.get("/ready")
    async def readiness_check():
        return {
            "status": "ready",
            "service": "channel-sync-api",
            "checks": {
                "database": "ok",
                "channel_catalog": "ok",
            },
        }

    @app.get("/info")
    async def service_info():
        return {
            "service": "channel-sync-api",
            "version": "1.0.0",
            "description": "OTA channel synchronization engine",
            "environment": "test",
            "supported_channels": [channel.id for channel in channel_catalog],
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "metrics": "/metrics",
                "docs": None,
            },
        }

    app.state.channel_catalog = channel_catalog
    app.state.adapter_registry = adapter_registry

    # Register API routers
    app.include_router(health.router)
    app.include_router(channels.router)
    app.include_router(sync.router)
    app.include_router(bookings.router)
    app.include_router(analytics.router)
    app.include_router(metrics.router)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    from httpx import ASGITransport
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def hotel_headers():
    return {"X-Hotel-ID": HOTEL_ID}


@pytest.fixture
def sample_channel_data():
    """Sample channel creation payload."""
    return {
        "channel_type": "booking_com",
        "display_name": "Booking.com main",
        "property_id": "1234567",
        "credentials": {"username": "hotel-user", "password": "s3cret"},
        "status": "active",
        "settings": {"auto_sync": True, "inventory_buffer": 0},
    }


@pytest.fixture
def sample_rate_plan_data():
    """Sample rate plan payload."""
    return {
        "room_type": "standard",
        "name": "Standard flexible",
        "base_rate": "2000.00",
        "weekend_surcharge": "500.00",
        "tax_rate": "12.00",
        "discount_percentage": "0",
        "seasonal_rates": [
            {"start_date": "2025-12-20", "end_date": "2025-12-31", "rate": "5000.00"}
        ],
    }


async def add_rooms(session: AsyncSession, hotel_id: str = HOTEL_ID, **counts: int) -> None:
    """Insert rooms per type, e.g. ``add_rooms(session, standard=3, deluxe=2)``."""
    number = 100
    for room_type, count in counts.items():
        for _ in range(count):
            number += 1
            session.add(Room(hotel_id=hotel_id, number=str(number), room_type=room_type))
    await session.commit()


async def add_channel(
    session: AsyncSession,
    hotel_id: str = HOTEL_ID,
    channel_type: str = "booking_com",
    property_id: str | None = "1234567",
    status: ChannelStatus = ChannelStatus.ACTIVE,
    credentials: dict | None = None,
    settings: dict | None = None,
    rates: dict[str, str] | None = None,
    mapped: bool = True,
    display_name: str | None = None,
) -> Channel:
    """
    Insert a channel with one rate plan (and optionally one mapping) per room type in ``rates``.

    ``rates`` maps room type to base rate; it defaults to standard and deluxe.
    """
    channel = Channel(
        hotel_id=hotel_id,
        channel_type=channel_type,
        display_name=display_name or f"{channel_type} {property_id}",
        property_id=property_id,
        credentials=credentials if credentials is not None else {"username": "hotel-user", "password": "s3cret"},
        status=status,
        settings=settings if settings is not None else {"auto_sync": True, "inventory_buffer": 0},
    )
    session.add(channel)
    await session.flush()

    rates = rates if rates is not None else {"standard": "2000.00", "deluxe": "3500.00"}
    for room_type, base_rate in rates.items():
        session.add(RatePlan(
            channel_id=channel.id,
            room_type=room_type,
            name=f"{room_type} flexible",
            base_rate=Decimal(base_rate),
            weekend_surcharge=Decimal("500.00"),
            tax_rate=Decimal("0"),
            discount_percentage=Decimal("0"),
            seasonal_rates=[],
            is_active=True,
        ))
        if mapped:
            session.add(RoomMapping(
                channel_id=channel.id,
                room_type=room_type,
                external_room_id=f"EXT-{room_type.upper()}",
                external_rate_plan_id=f"RP-{room_type.upper()}",
            ))

    await session.commit()
    await session.refresh(channel)
    return channel


@pytest.fixture
def hotel_id():
    return HOTEL_ID


@pytest.fixture
def make_rooms(test_session):
    """Factory fixture: ``await make_rooms(standard=3, deluxe=2)``."""
    async def _make(hotel_id: str = HOTEL_ID, **counts: int) -> None:
        await add_rooms(test_session, hotel_id, **counts)
    return _make


@pytest.fixture
def make_channel(test_session):
    """Factory fixture wrapping ``add_channel`` for the test session."""
    async def _make(**kwargs) -> Channel:
        return await add_channel(test_session, **kwargs)
    return _make
