"""Unit tests for the OTA-XML protocol adapter."""

import base64
import xml.etree.ElementTree as ET
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from email.utils import format_datetime
from uuid import uuid4

import httpx
import pytest

from channel_sync.adapters import OtaXmlAdapter, UnsupportedProtocolAdapter
from channel_sync.adapters.ota_xml import (
    HOTEL_INFO_PATH,
    INVENTORY_NOTIFICATION_PATH,
    RESERVATION_NOTIFICATION_PATH,
    RESERVATIONS_SUMMARY_PATH,
    ROOM_RATES_PATH,
    parse_retry_after,
)
from channel_sync.adapters.ota_xml_messages import OTA_NAMESPACE
from channel_sync.core.config import settings
from channel_sync.core.exceptions import ChannelConfigurationError
from channel_sync.models import Channel, ChannelStatus
from channel_sync.services.inventory_generator import InventoryRecord

NS = {"ota": OTA_NAMESPACE}


def make_channel(**overrides) -> Channel:
    values = {
        "id": uuid4(),
        "hotel_id": "hotel-1",
        "channel_type": "booking_com",
        "display_name": "Booking.com",
        "property_id": "1234567",
        "api_endpoint": None,
        "credentials": {"username": "hotel-user", "password": "s3cret"},
        "status": ChannelStatus.ACTIVE,
        "settings": {},
    }
    values.update(overrides)
    return Channel(**values)


def make_record(channel: Channel, day: date, room_type: str = "standard", available: int = 3) -> InventoryRecord:
    return InventoryRecord(
        channel_id=channel.id,
        rate_plan_id=uuid4(),
        room_type=room_type,
        date=day,
        total_rooms=available,
        available_rooms=available,
        sell_rate=Decimal("2000.00"),
        external_room_id=f"EXT-{room_type.upper()}",
        external_rate_plan_id=f"RP-{room_type.upper()}",
    )


@pytest.fixture
def booking_entry(channel_catalog):
    return channel_catalog.get("booking_com")


@pytest.fixture
def adapter_for(booking_entry, fake_ota):
    def _build(**overrides) -> OtaXmlAdapter:
        return OtaXmlAdapter(make_channel(**overrides), booking_entry, settings, transport=fake_ota.transport)
    return _build


@pytest.mark.asyncio
async def test_connection_sends_basic_auth(adapter_for, fake_ota):
    adapter = adapter_for()

    result = await adapter.test_connection()

    assert result.success is True
    request = fake_ota.requests_to(HOTEL_INFO_PATH)[0]
    expected = base64.b64encode(b"hotel-user:s3cret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    assert request.headers["Content-Type"] == "application/xml"
    assert request.headers["User-Agent"] == settings.ota_user_agent
    assert request.url.host == "supply-xml.booking.com"
    assert ET.fromstring(request.content).findtext("hotel_id") == "1234567"


@pytest.mark.asyncio
async def test_connection_uses_endpoint_override(adapter_for, fake_ota):
    adapter = adapter_for(api_endpoint="https://sandbox.example.com/")

    await adapter.test_connection()

    assert str(fake_ota.requests[0].url) == f"https://sandbox.example.com{HOTEL_INFO_PATH}"


@pytest.mark.asyncio
async def test_connection_reports_missing_configuration(adapter_for, fake_ota):
    adapter = adapter_for(property_id=None, credentials={"username": "hotel-user"})

    result = await adapter.test_connection()

    assert result.success is False
    assert "property_id" in result.message
    assert "credentials.password" in result.message
    assert result.data == {"missing_fields": ["property_id", "credentials.password"]}
    assert fake_ota.requests == []


@pytest.mark.asyncio
async def test_connection_authentication_failure(adapter_for, fake_ota):
    fake_ota.respond(HOTEL_INFO_PATH, httpx.Response(401, text="bad credentials"))

    result = await adapter_for().test_connection()

    assert result.success is False
    assert result.status_code == 401
    assert "authentication failed" in result.message
    assert result.error == "bad credentials"


@pytest.mark.asyncio
async def test_connection_timeout_is_a_failure(adapter_for, fake_ota):
    fake_ota.respond(HOTEL_INFO_PATH, httpx.ReadTimeout("timed out"))

    result = await adapter_for().test_connection()

    assert result.success is False
    assert result.error == "timeout"
    assert "timed out" in result.message


@pytest.mark.asyncio
async def test_connection_error_is_a_failure(adapter_for, fake_ota):
    fake_ota.respond(HOTEL_INFO_PATH, httpx.ConnectError("connection refused"))

    result = await adapter_for().test_connection()

    assert result.success is False
    assert result.error == "ConnectError"


@pytest.mark.asyncio
async def test_push_inventory_sends_one_document_per_date(adapter_for, fake_ota):
    adapter = adapter_for()
    channel = adapter.channel
    day_one, day_two = date(2025, 1, 6), date(2025, 1, 7)
    records = [
        make_record(channel, day_two, "standard"),
        make_record(channel, day_one, "standard"),
        make_record(channel, day_one, "deluxe", available=2),
        make_record(channel, day_two, "deluxe", available=2),
    ]

    result = await adapter.push_inventory(records)

    assert result.success is True
    assert result.data["dates_sent"] == 2
    assert result.data["dates_failed"] == 0

    requests = fake_ota.requests_to(INVENTORY_NOTIFICATION_PATH)
    assert len(requests) == 2

    starts = []
    for request in requests:
        root = ET.fromstring(request.content)
        controls = root.findall(".//ota:StatusApplicationControl", NS)
        assert len(controls) == 2
        starts.append(controls[0].get("Start"))
        assert [control.get("InvTypeCode") for control in controls] == ["EXT-STANDARD", "EXT-DELUXE"]
    assert starts == ["2025-01-06", "2025-01-07"]


@pytest.mark.asyncio
async def test_push_inventory_sends_counts_without_rates(adapter_for, fake_ota):
    adapter = adapter_for()
    record = make_record(adapter.channel, date(2025, 1, 6))

    await adapter.push_inventory([record])

    request = fake_ota.requests_to(INVENTORY_NOTIFICATION_PATH)[0]
    root = ET.fromstring(request.content)
    assert root.find(".//ota:InvCount", NS).get("Count") == "3"
    assert root.findall(".//ota:Rate", NS) == []
    assert root.findall(".//ota:BaseByGuestAmt", NS) == []
    assert b"2000.00" not in request.content


@pytest.mark.asyncio
async def test_push_inventory_continues_after_failed_date(adapter_for, fake_ota):
    fake_ota.respond(
        INVENTORY_NOTIFICATION_PATH,
        httpx.Response(200, text="<OK/>"),
        httpx.Response(500, text="server error"),
        httpx.Response(200, text="<OK/>"),
    )
    adapter = adapter_for()
    records = [make_record(adapter.channel, date(2025, 1, 6) + timedelta(days=offset)) for offset in range(3)]

    result = await adapter.push_inventory(records)

    assert result.success is False
    assert len(fake_ota.requests_to(INVENTORY_NOTIFICATION_PATH)) == 3
    assert [batch["success"] for batch in result.data["batches"]] == [True, False, True]
    assert result.data["batches"][1]["status_code"] == 500
    assert result.data["dates_failed"] == 1
    assert "1 of 3 dates" in result.message
    assert "2025-01-07" in result.error


@pytest.mark.asyncio
async def test_push_inventory_timeout(adapter_for, fake_ota):
    fake_ota.respond(INVENTORY_NOTIFICATION_PATH, httpx.ReadTimeout("timed out"))
    adapter = adapter_for()

    result = await adapter.push_inventory([make_record(adapter.channel, date(2025, 1, 6))])

    assert result.success is False
    assert result.data["batches"][0]["status_code"] is None
    assert "timed out" in result.data["batches"][0]["error"]


@pytest.mark.asyncio
async def test_push_inventory_surfaces_retry_after(adapter_for, fake_ota):
    fake_ota.respond(
        INVENTORY_NOTIFICATION_PATH,
        httpx.Response(429, headers={"Retry-After": "120"}, text="slow down"),
    )
    adapter = adapter_for()

    result = await adapter.push_inventory([make_record(adapter.channel, date(2025, 1, 6))])

    assert result.success is False
    assert result.retry_after == 120


@pytest.mark.asyncio
async def test_push_inventory_with_no_records(adapter_for, fake_ota):
    result = await adapter_for().push_inventory([])

    assert result.success is True
    assert result.message == "No inventory records to push"
    assert fake_ota.requests == []


@pytest.mark.asyncio
async def test_push_inventory_requires_configuration(adapter_for):
    adapter = adapter_for(property_id=None)

    with pytest.raises(ChannelConfigurationError) as exc_info:
        await adapter.push_inventory([make_record(adapter.channel, date(2025, 1, 6))])

    assert exc_info.value.problem_details["missing_fields"] == ["property_id"]


@pytest.mark.asyncio
async def test_pull_reservations_uses_secure_endpoint(adapter_for, fake_ota):
    fake_ota.respond(
        RESERVATIONS_SUMMARY_PATH,
        httpx.Response(200, content=(
            b"<reservations><reservation><id>R1</id>"
            b"<room><arrival_date>2025-02-01</arrival_date><departure_date>2025-02-02</departure_date></room>"
            b"</reservation><reservation><id>R2</id></reservation></reservations>"
        )),
    )

    result = await adapter_for().pull_reservations(date(2025, 2, 1), date(2025, 2, 28))

    assert result.success is True
    request = fake_ota.requests_to(RESERVATIONS_SUMMARY_PATH)[0]
    assert request.url.host == "secure-supply-xml.booking.com"
    assert [reservation.external_reservation_id for reservation in result.data["reservations"]] == ["R1"]
    assert result.data["skipped"][0]["reservation_id"] == "R2"


@pytest.mark.asyncio
async def test_pull_reservations_malformed_body(adapter_for, fake_ota):
    fake_ota.respond(RESERVATIONS_SUMMARY_PATH, httpx.Response(200, text="<reservations>"))

    result = await adapter_for().pull_reservations(date(2025, 2, 1), date(2025, 2, 28))

    assert result.success is False
    assert result.message == "Reservations response was not valid XML"


@pytest.mark.asyncio
async def test_update_reservation_status(adapter_for, fake_ota):
    result = await adapter_for().update_reservation_status("RES-1001", "cancelled")

    assert result.success is True
    request = fake_ota.requests_to(RESERVATION_NOTIFICATION_PATH)[0]
    assert request.url.host == "secure-supply-xml.booking.com"
    root = ET.fromstring(request.content)
    assert root.find(".//ota:ResStatus", NS).text == "Cancelled"


@pytest.mark.asyncio
async def test_update_reservation_status_rejected(adapter_for, fake_ota):
    fake_ota.respond(
        RESERVATION_NOTIFICATION_PATH,
        httpx.Response(503, headers={"Retry-After": "30"}, text="maintenance"),
    )

    result = await adapter_for().update_reservation_status("RES-1001", "confirmed")

    assert result.success is False
    assert result.status_code == 503
    assert result.retry_after == 30


@pytest.mark.asyncio
async def test_fetch_room_rates_uses_general_endpoint(adapter_for, fake_ota):
    fake_ota.respond(
        ROOM_RATES_PATH,
        httpx.Response(200, content=(
            b'<roomrates><room id="101" hotel_id="1234567"><info room_name="Deluxe Double"/>'
            b'<rates><rate id="9001" rate_name="Flexible"/><rate id="9002" rate_name="Non-refundable"/></rates>'
            b"</room></roomrates>"
        )),
    )

    result = await adapter_for().fetch_room_rates()

    assert result.success is True
    request = fake_ota.requests_to(ROOM_RATES_PATH)[0]
    assert request.url.host == "supply-xml.booking.com"
    assert ET.fromstring(request.content).findtext("hotel_id") == "1234567"
    assert result.data["rooms"] == [{
        "external_room_id": "101",
        "name": "Deluxe Double",
        "rate_plans": [
            {"external_rate_plan_id": "9001", "name": "Flexible"},
            {"external_rate_plan_id": "9002", "name": "Non-refundable"},
        ],
    }]


@pytest.mark.asyncio
async def test_fetch_room_rates_rejected(adapter_for, fake_ota):
    fake_ota.respond(ROOM_RATES_PATH, httpx.Response(500, text="upstream error"))

    result = await adapter_for().fetch_room_rates()

    assert result.success is False
    assert result.status_code == 500
    assert result.message == "fetch_room_rates failed with HTTP 500"


@pytest.mark.asyncio
async def test_fetch_room_rates_malformed_body(adapter_for, fake_ota):
    fake_ota.respond(ROOM_RATES_PATH, httpx.Response(200, text="<roomrates><room>"))

    result = await adapter_for().fetch_room_rates()

    assert result.success is False
    assert result.message == "Room rates response was not valid XML"


@pytest.mark.asyncio
async def test_unsupported_adapter_reports_not_implemented():
    adapter = UnsupportedProtocolAdapter(make_channel(channel_type="expedia"))

    for result in (
        await adapter.test_connection(),
        await adapter.push_inventory([]),
        await adapter.pull_reservations(date(2025, 1, 1), date(2025, 1, 2)),
        await adapter.update_reservation_status("R1", "confirmed"),
        await adapter.fetch_room_rates(),
    ):
        assert result.success is False
        assert result.error == "not_implemented"
        assert "expedia" in result.message


def test_parse_retry_after():
    now = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)

    assert parse_retry_after("45") == 45
    assert parse_retry_after(format_datetime(now + timedelta(seconds=90), usegmt=True), now=now) == 90
    assert parse_retry_after(format_datetime(now - timedelta(seconds=90), usegmt=True), now=now) == 0
    assert parse_retry_after("soon") is None
    assert parse_retry_after(None) is None
