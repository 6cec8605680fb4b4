"""Channel registry service for OTA connections, rate plans and room mappings."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.base import AdapterResult
from ..adapters.ota_xml import OtaXmlAdapter
from ..adapters.registry import AdapterRegistry
from ..core.channel_catalog import ChannelCatalog
from ..core.exceptions import (
    ChannelOwnershipError,
    ConflictError,
    ConnectionTestFailedError,
    NotFoundError,
    ValidationError,
)
from ..models.channel import Channel, ChannelStatus
from ..models.channel_booking import ChannelBooking
from ..models.rate_plan import RatePlan
from ..models.room_mapping import RoomMapping
from ..models.sync_log import SyncLog
from ..schemas.channel import CreateChannelRequest, UpdateChannelRequest
from ..schemas.rate_plan import CreateRatePlanRequest, CreateRoomMappingRequest, UpdateRatePlanRequest

logger = logging.getLogger(__name__)


class DuplicateChannelError(ConflictError):
    """Exception when a hotel already has a channel for the same OTA property."""

    def __init__(self, hotel_id: str, channel_type: str, property_id: Optional[str]):
        super().__init__(
            detail=f"Hotel {hotel_id} already has a {channel_type} channel for property {property_id}",
            conflicting_resource={
                "hotel_id": hotel_id,
                "channel_type": channel_type,
                "property_id": property_id
            }
        )
        self.problem_details.update({
            "code": "CHANNEL_EXISTS",
            "retryable": False
        })


class DuplicateRoomTypeError(ConflictError):
    """Exception when a channel already has a rate plan or mapping for a room type."""

    def __init__(self, resource: str, channel_id: str, room_type: str):
        super().__init__(
            detail=f"Channel {channel_id} already has a {resource} for room type '{room_type}'",
            conflicting_resource={
                "channel_id": channel_id,
                "room_type": room_type
            }
        )
        self.problem_details.update({
            "code": f"{resource.upper().replace(' ', '_')}_EXISTS",
            "retryable": False
        })


def _seasonal_payload(entries) -> list[dict]:
    return [entry.model_dump(mode="json") for entry in entries]


class ChannelRegistry:
    """CRUD over a hotel's channels and their pricing configuration."""

    def __init__(self, db: AsyncSession, catalog: ChannelCatalog, adapters: AdapterRegistry):
        self.db = db
        self.catalog = catalog
        self.adapters = adapters

    # Channels

    async def get_channel(self, channel_id: UUID) -> Channel:
        """
        Load a channel regardless of owner.

        Raises:
            NotFoundError: If the channel does not exist
        """
        result = await self.db.execute(select(Channel).where(Channel.id == channel_id))
        channel = result.scalar_one_or_none()
        if not channel:
            raise NotFoundError("Channel", str(channel_id))
        return channel

    async def get_owned_channel(self, channel_id: UUID, hotel_id: str) -> Channel:
        """
        Load a channel and verify that ``hotel_id`` owns it.

        Raises:
            NotFoundError: If the channel does not exist
            ChannelOwnershipError: If another hotel owns the channel
        """
        channel = await self.get_channel(channel_id)
        if channel.hotel_id != hotel_id:
            logger.warning(
                "Channel ownership check failed",
                extra={
                    "channel_id": str(channel_id),
                    "hotel_id": hotel_id,
                    "owner_hotel_id": channel.hotel_id
                }
            )
            raise ChannelOwnershipError(str(channel_id), hotel_id)
        return channel

    async def list_channels(self, hotel_id: str) -> list[Channel]:
        result = await self.db.execute(
            select(Channel)
            .where(Channel.hotel_id == hotel_id)
            .order_by(Channel.created_at, Channel.id)
        )
        return list(result.scalars().all())

    async def _ensure_unique(
        self,
        hotel_id: str,
        channel_type: str,
        property_id: Optional[str],
        exclude_id: Optional[UUID] = None,
    ) -> None:
        query = select(Channel.id).where(
            Channel.hotel_id == hotel_id,
            Channel.channel_type == channel_type,
        )
        if property_id is None:
            query = query.where(Channel.property_id.is_(None))
        else:
            query = query.where(Channel.property_id == property_id)
        if exclude_id is not None:
            query = query.where(Channel.id != exclude_id)

        if await self.db.scalar(query.limit(1)) is not None:
            raise DuplicateChannelError(hotel_id, channel_type, property_id)

    async def create_channel(self, hotel_id: str, request: CreateChannelRequest) -> Channel:
        """
        Connect a new OTA channel for a hotel.

        Channels whose adapter speaks a real protocol are connection-tested
        before anything is persisted.

        Raises:
            ValidationError: If the channel type is not in the catalog
            ConnectionTestFailedError: If the pre-save connection test fails
            DuplicateChannelError: If the hotel already connected that property
        """
        entry = self.catalog.get(request.channel_type)
        if entry is None:
            raise ValidationError(
                detail=f"Unsupported channel type: {request.channel_type}",
                errors={"channel_type": f"must be one of {', '.join(c.id for c in self.catalog)}"}
            )

        await self._ensure_unique(hotel_id, request.channel_type, request.property_id)

        channel_settings = request.settings.model_dump()
        if channel_settings.get("commission_rate") is None:
            channel_settings["commission_rate"] = entry.commission

        channel = Channel(
            hotel_id=hotel_id,
            channel_type=request.channel_type,
            display_name=request.display_name,
            property_id=request.property_id,
            api_endpoint=request.api_endpoint,
            credentials=dict(request.credentials),
            status=request.status,
            settings=channel_settings,
        )

        adapter = self.adapters.for_channel(channel)
        if isinstance(adapter, OtaXmlAdapter):
            result = await adapter.test_connection()
            if not result.success:
                logger.warning(
                    "Channel creation rejected - connection test failed",
                    extra={
                        "hotel_id": hotel_id,
                        "channel_type": request.channel_type,
                        "adapter_message": result.message
                    }
                )
                raise ConnectionTestFailedError(request.channel_type, result.message)

        self.db.add(channel)
        await self.db.commit()
        await self.db.refresh(channel)

        logger.info(
            "Channel created",
            extra={
                "channel_id": str(channel.id),
                "hotel_id": hotel_id,
                "channel_type": channel.channel_type,
                "status": channel.status
            }
        )

        return channel

    async def update_channel(self, channel_id: UUID, hotel_id: str, request: UpdateChannelRequest) -> Channel:
        channel = await self.get_owned_channel(channel_id, hotel_id)
        changes = request.model_dump(exclude_unset=True)

        if "property_id" in changes and changes["property_id"] != channel.property_id:
            await self._ensure_unique(hotel_id, channel.channel_type, changes["property_id"], exclude_id=channel.id)

        for field in ("display_name", "property_id", "api_endpoint", "status"):
            if field in changes:
                setattr(channel, field, changes[field])

        if request.credentials is not None:
            channel.credentials = dict(request.credentials)

        if request.settings is not None:
            merged = dict(channel.settings or {})
            merged.update(request.settings.model_dump(exclude_unset=True))
            channel.settings = merged

        await self.db.commit()
        await self.db.refresh(channel)

        logger.info(
            "Channel updated",
            extra={
                "channel_id": str(channel.id),
                "hotel_id": hotel_id,
                "fields": sorted(changes.keys())
            }
        )

        return channel

    async def delete_channel(self, channel_id: UUID, hotel_id: str) -> None:
        """Delete a channel with its rate plans, mappings and bookings; sync logs are kept."""
        channel = await self.get_owned_channel(channel_id, hotel_id)

        await self.db.execute(delete(RatePlan).where(RatePlan.channel_id == channel.id))
        await self.db.execute(delete(RoomMapping).where(RoomMapping.channel_id == channel.id))
        await self.db.execute(delete(ChannelBooking).where(ChannelBooking.channel_id == channel.id))
        await self.db.execute(
            update(SyncLog).where(SyncLog.channel_id == channel.id).values(channel_id=None)
        )
        await self.db.execute(delete(Channel).where(Channel.id == channel.id))
        await self.db.commit()

        logger.info(
            "Channel deleted",
            extra={"channel_id": str(channel_id), "hotel_id": hotel_id}
        )

    async def test_connection(self, channel_id: UUID, hotel_id: str) -> tuple[Channel, AdapterResult]:
        """
        Run the adapter's connection test; a failure demotes the channel to error.

        Returns:
            (channel, adapter result)
        """
        channel = await self.get_owned_channel(channel_id, hotel_id)
        result = await self.adapters.for_channel(channel).test_connection()

        if not result.success and channel.status != ChannelStatus.ERROR:
            channel.status = ChannelStatus.ERROR
            await self.db.commit()
            await self.db.refresh(channel)

            logger.warning(
                "Channel demoted to error after failed connection test",
                extra={
                    "channel_id": str(channel.id),
                    "hotel_id": hotel_id,
                    "adapter_message": result.message
                }
            )

        return channel, result

    async def fetch_external_rooms(self, channel_id: UUID, hotel_id: str) -> tuple[Channel, AdapterResult]:
        """
        Fetch the OTA's room types and rate plans for the channel's property.

        Each room in a successful result carries ``mapped_room_type``, the
        local room type already mapped to it, or None.

        Returns:
            (channel, adapter result)
        """
        channel = await self.get_owned_channel(channel_id, hotel_id)
        result = await self.adapters.for_channel(channel).fetch_room_rates()
        if not result.success:
            return channel, result

        mappings = await self.db.execute(
            select(RoomMapping.external_room_id, RoomMapping.room_type)
            .where(RoomMapping.channel_id == channel.id)
        )
        mapped = dict(mappings.all())
        for room in result.data["rooms"]:
            room["mapped_room_type"] = mapped.get(room["external_room_id"])

        logger.info(
            "External rooms fetched",
            extra={
                "channel_id": str(channel.id),
                "hotel_id": hotel_id,
                "rooms": len(result.data["rooms"])
            }
        )
        return channel, result

    # Rate plans

    async def list_rate_plans(self, channel_id: UUID, hotel_id: str) -> list[RatePlan]:
        await self.get_owned_channel(channel_id, hotel_id)
        result = await self.db.execute(
            select(RatePlan)
            .where(RatePlan.channel_id == channel_id)
            .order_by(RatePlan.room_type)
        )
        return list(result.scalars().all())

    async def get_rate_plan(self, channel_id: UUID, plan_id: UUID, hotel_id: str) -> RatePlan:
        await self.get_owned_channel(channel_id, hotel_id)
        result = await self.db.execute(
            select(RatePlan).where(RatePlan.id == plan_id, RatePlan.channel_id == channel_id)
        )
        plan = result.scalar_one_or_none()
        if not plan:
            raise NotFoundError("RatePlan", str(plan_id))
        return plan

    async def create_rate_plan(self, channel_id: UUID, hotel_id: str, request: CreateRatePlanRequest) -> RatePlan:
        """
        Create the rate plan of one room type on a channel.

        Raises:
            DuplicateRoomTypeError: If the room type already has a plan
        """
        await self.get_owned_channel(channel_id, hotel_id)

        existing = await self.db.scalar(
            select(RatePlan.id).where(
                RatePlan.channel_id == channel_id,
                RatePlan.room_type == request.room_type.value
            )
        )
        if existing is not None:
            raise DuplicateRoomTypeError("rate plan", str(channel_id), request.room_type.value)

        plan = RatePlan(
            channel_id=channel_id,
            room_type=request.room_type.value,
            name=request.name,
            base_rate=request.base_rate,
            weekend_surcharge=request.weekend_surcharge,
            tax_rate=request.tax_rate,
            discount_percentage=request.discount_percentage,
            seasonal_rates=_seasonal_payload(request.seasonal_rates),
            is_active=request.is_active,
        )
        self.db.add(plan)
        await self.db.commit()
        await self.db.refresh(plan)

        logger.info(
            "Rate plan created",
            extra={
                "rate_plan_id": str(plan.id),
                "channel_id": str(channel_id),
                "room_type": plan.room_type
            }
        )

        return plan

    async def update_rate_plan(
        self,
        channel_id: UUID,
        plan_id: UUID,
        hotel_id: str,
        request: UpdateRatePlanRequest,
    ) -> RatePlan:
        plan = await self.get_rate_plan(channel_id, plan_id, hotel_id)
        changes = request.model_dump(exclude_unset=True, exclude={"seasonal_rates"})

        for field, value in changes.items():
            if value is not None:
                setattr(plan, field, value)
        if request.seasonal_rates is not None:
            plan.seasonal_rates = _seasonal_payload(request.seasonal_rates)

        await self.db.commit()
        await self.db.refresh(plan)

        logger.info(
            "Rate plan updated",
            extra={"rate_plan_id": str(plan.id), "channel_id": str(channel_id)}
        )

        return plan

    async def delete_rate_plan(self, channel_id: UUID, plan_id: UUID, hotel_id: str) -> None:
        plan = await self.get_rate_plan(channel_id, plan_id, hotel_id)
        await self.db.delete(plan)
        await self.db.commit()

        logger.info(
            "Rate plan deleted",
            extra={"rate_plan_id": str(plan_id), "channel_id": str(channel_id)}
        )

    # Room mappings

    async def list_room_mappings(self, channel_id: UUID, hotel_id: str) -> list[RoomMapping]:
        await self.get_owned_channel(channel_id, hotel_id)
        result = await self.db.execute(
            select(RoomMapping)
            .where(RoomMapping.channel_id == channel_id)
            .order_by(RoomMapping.room_type)
        )
        return list(result.scalars().all())

    async def create_room_mapping(
        self,
        channel_id: UUID,
        hotel_id: str,
        request: CreateRoomMappingRequest,
    ) -> RoomMapping:
        await self.get_owned_channel(channel_id, hotel_id)

        existing = await self.db.scalar(
            select(RoomMapping.id).where(
                RoomMapping.channel_id == channel_id,
                RoomMapping.room_type == request.room_type.value
            )
        )
        if existing is not None:
            raise DuplicateRoomTypeError("room mapping", str(channel_id), request.room_type.value)

        mapping = RoomMapping(
            channel_id=channel_id,
            room_type=request.room_type.value,
            room_id=request.room_id,
            external_room_id=request.external_room_id,
            external_rate_plan_id=request.external_rate_plan_id,
        )
        self.db.add(mapping)
        await self.db.commit()
        await self.db.refresh(mapping)

        logger.info(
            "Room mapping created",
            extra={
                "room_mapping_id": str(mapping.id),
                "channel_id": str(channel_id),
                "room_type": mapping.room_type,
                "external_room_id": mapping.external_room_id
            }
        )

        return mapping

    async def delete_room_mapping(self, channel_id: UUID, mapping_id: UUID, hotel_id: str) -> None:
        await self.get_owned_channel(channel_id, hotel_id)
        result = await self.db.execute(
            select(RoomMapping).where(RoomMapping.id == mapping_id, RoomMapping.channel_id == channel_id)
        )
        mapping = result.scalar_one_or_none()
        if not mapping:
            raise NotFoundError("RoomMapping", str(mapping_id))

        await self.db.delete(mapping)
        await self.db.commit()

        logger.info(
            "Room mapping deleted",
            extra={"room_mapping_id": str(mapping_id), "channel_id": str(channel_id)}
        )
