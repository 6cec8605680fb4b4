"""Channel router for OTA connections, rate plans and room mappings."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse

from ..core.channel_catalog import ChannelCatalog
from ..core.dependencies import get_channel_catalog, get_channel_registry, get_hotel_id
from ..core.exceptions import ProblemDetailsException
from ..schemas.channel import (
    Channel,
    ConnectionTestResponse,
    CreateChannelRequest,
    ExternalRoomsResponse,
    SupportedChannel,
    UpdateChannelRequest,
)
from ..schemas.rate_plan import (
    CreateRatePlanRequest,
    CreateRoomMappingRequest,
    RatePlan,
    RoomMapping,
    UpdateRatePlanRequest,
)
from ..services.channel_registry import ChannelRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/channels", tags=["channels"])


def _internal_error(message: str, error: Exception, **context) -> HTTPException:
    logger.error(
        message,
        extra={**context, "error": str(error)},
        exc_info=True
    )
    return HTTPException(
        status_code=500,
        detail="Internal server error"
    )


@router.get("/supported", response_model=list[SupportedChannel])
async def list_supported_channels(
    catalog: ChannelCatalog = Depends(get_channel_catalog),
) -> JSONResponse:
    """List the OTA types this service can connect."""
    return JSONResponse(status_code=200, content=catalog.public_listing())


@router.get("", response_model=list[Channel])
async def list_channels(
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        channels = await registry.list_channels(hotel_id)
        return JSONResponse(
            status_code=200,
            content=[Channel.from_model(channel).model_dump(mode="json") for channel in channels]
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error listing channels", e, hotel_id=hotel_id)


@router.post("", response_model=Channel, status_code=201)
async def create_channel(
    request: CreateChannelRequest,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    """
    Connect a new OTA channel.

    OTA-XML channels are connection-tested first and rejected with 400 when
    the test fails.
    """
    try:
        channel = await registry.create_channel(hotel_id, request)
        return JSONResponse(
            status_code=201,
            content=Channel.from_model(channel).model_dump(mode="json")
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error(
            "Unexpected error creating channel", e,
            hotel_id=hotel_id, channel_type=request.channel_type
        )


@router.get("/{channel_id}", response_model=Channel)
async def get_channel(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        channel = await registry.get_owned_channel(channel_id, hotel_id)
        return JSONResponse(status_code=200, content=Channel.from_model(channel).model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error loading channel", e, channel_id=str(channel_id))


@router.put("/{channel_id}", response_model=Channel)
async def update_channel(
    channel_id: UUID,
    request: UpdateChannelRequest,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        channel = await registry.update_channel(channel_id, hotel_id, request)
        return JSONResponse(status_code=200, content=Channel.from_model(channel).model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error updating channel", e, channel_id=str(channel_id))


@router.delete("/{channel_id}", status_code=204)
async def delete_channel(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> Response:
    try:
        await registry.delete_channel(channel_id, hotel_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error deleting channel", e, channel_id=str(channel_id))


@router.post("/{channel_id}/test-connection", response_model=ConnectionTestResponse)
async def test_channel_connection(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    """
    Test the channel's OTA connection.

    A failed test moves the channel to the error status; the response is
    still 200 and carries the adapter's message.
    """
    try:
        channel, result = await registry.test_connection(channel_id, hotel_id)
        response_data = ConnectionTestResponse(
            success=result.success,
            message=result.message,
            channel_status=channel.status,
            data=result.to_payload()["data"],
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error testing channel connection", e, channel_id=str(channel_id))


@router.get("/{channel_id}/external-rooms", response_model=ExternalRoomsResponse)
async def list_external_rooms(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    """
    List the room types and rate plans the OTA holds for the channel's property.

    Use these identifiers when creating room mappings. An OTA failure is
    reported with 200 and success false.
    """
    try:
        _, result = await registry.fetch_external_rooms(channel_id, hotel_id)
        response_data = ExternalRoomsResponse(
            success=result.success,
            message=result.message,
            rooms=result.data["rooms"] if result.success else [],
            retry_after=result.retry_after,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error fetching external rooms", e, channel_id=str(channel_id))


# Rate plans

@router.get("/{channel_id}/rate-plans", response_model=list[RatePlan])
async def list_rate_plans(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        plans = await registry.list_rate_plans(channel_id, hotel_id)
        return JSONResponse(
            status_code=200,
            content=[RatePlan.model_validate(plan).model_dump(mode="json") for plan in plans]
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error listing rate plans", e, channel_id=str(channel_id))


@router.post("/{channel_id}/rate-plans", response_model=RatePlan, status_code=201)
async def create_rate_plan(
    channel_id: UUID,
    request: CreateRatePlanRequest,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        plan = await registry.create_rate_plan(channel_id, hotel_id, request)
        return JSONResponse(status_code=201, content=RatePlan.model_validate(plan).model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error(
            "Unexpected error creating rate plan", e,
            channel_id=str(channel_id), room_type=request.room_type.value
        )


@router.put("/{channel_id}/rate-plans/{plan_id}", response_model=RatePlan)
async def update_rate_plan(
    channel_id: UUID,
    plan_id: UUID,
    request: UpdateRatePlanRequest,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        plan = await registry.update_rate_plan(channel_id, plan_id, hotel_id, request)
        return JSONResponse(status_code=200, content=RatePlan.model_validate(plan).model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error updating rate plan", e, rate_plan_id=str(plan_id))


@router.delete("/{channel_id}/rate-plans/{plan_id}", status_code=204)
async def delete_rate_plan(
    channel_id: UUID,
    plan_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> Response:
    try:
        await registry.delete_rate_plan(channel_id, plan_id, hotel_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error deleting rate plan", e, rate_plan_id=str(plan_id))


# Room mappings

@router.get("/{channel_id}/room-mappings", response_model=list[RoomMapping])
async def list_room_mappings(
    channel_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        mappings = await registry.list_room_mappings(channel_id, hotel_id)
        return JSONResponse(
            status_code=200,
            content=[RoomMapping.model_validate(mapping).model_dump(mode="json") for mapping in mappings]
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error listing room mappings", e, channel_id=str(channel_id))


@router.post("/{channel_id}/room-mappings", response_model=RoomMapping, status_code=201)
async def create_room_mapping(
    channel_id: UUID,
    request: CreateRoomMappingRequest,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> JSONResponse:
    try:
        mapping = await registry.create_room_mapping(channel_id, hotel_id, request)
        return JSONResponse(status_code=201, content=RoomMapping.model_validate(mapping).model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error creating room mapping", e, channel_id=str(channel_id))


@router.delete("/{channel_id}/room-mappings/{mapping_id}", status_code=204)
async def delete_room_mapping(
    channel_id: UUID,
    mapping_id: UUID,
    hotel_id: str = Depends(get_hotel_id),
    registry: ChannelRegistry = Depends(get_channel_registry),
) -> Response:
    try:
        await registry.delete_room_mapping(channel_id, mapping_id, hotel_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("Unexpected error deleting room mapping", e, room_mapping_id=str(mapping_id))
