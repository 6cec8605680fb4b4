#!/usr/bin/env python3
"""Setup script for the channel sync API."""

import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add the project root to the Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from channel_sync.core.database import async_session_factory, close_db
from channel_sync.models import Channel, ChannelStatus, RatePlan, Room, RoomMapping

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_HOTEL_ID = "demo-hotel"

SAMPLE_ROOMS = {
    "standard": 10,
    "deluxe": 6,
    "suite": 2,
}

SAMPLE_RATES = {
    "standard": Decimal("2500.00"),
    "deluxe": Decimal("4000.00"),
    "suite": Decimal("7500.00"),
}


def setup_database() -> None:
    """Apply the Alembic migrations up to head."""
    logger.info("Setting up database...")

    alembic_cfg = Config(str(project_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create a demo hotel with rooms and an inactive Booking.com channel."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = await db.execute(
                select(func.count(Room.id)).where(Room.hotel_id == SAMPLE_HOTEL_ID)
            )
            if existing.scalar() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            number = 100
            for room_type, count in SAMPLE_ROOMS.items():
                for _ in range(count):
                    number += 1
                    db.add(Room(hotel_id=SAMPLE_HOTEL_ID, number=str(number), room_type=room_type))

            # Inactive until real credentials are entered and a connection test passes
            channel = Channel(
                hotel_id=SAMPLE_HOTEL_ID,
                channel_type="booking_com",
                display_name="Booking.com (demo)",
                property_id="0000000",
                credentials={"username": "change-me", "password": "change-me"},
                status=ChannelStatus.INACTIVE,
                settings={"auto_sync": True, "inventory_buffer": 1, "commission_rate": 15},
            )
            db.add(channel)
            await db.flush()

            for room_type, base_rate in SAMPLE_RATES.items():
                db.add(RatePlan(
                    channel_id=channel.id,
                    room_type=room_type,
                    name=f"{room_type.title()} flexible",
                    base_rate=base_rate,
                    weekend_surcharge=Decimal("500.00"),
                    seasonal_rates=[
                        {"start_date": "2025-12-20", "end_date": "2026-01-05", "rate": str(base_rate * 2)}
                    ],
                ))
                db.add(RoomMapping(
                    channel_id=channel.id,
                    room_type=room_type,
                    external_room_id=f"BKG-{room_type.upper()}",
                    external_rate_plan_id=f"BKG-RP-{room_type.upper()}",
                ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def seed() -> None:
    try:
        await create_sample_data()
    finally:
        await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting channel sync API setup...")

    # The migration environment runs its own event loop
    setup_database()

    asyncio.run(seed())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: uvicorn channel_sync.main:app --reload")


if __name__ == "__main__":
    main()
