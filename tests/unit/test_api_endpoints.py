"""Integration tests for API endpoints."""

from datetime import date, timedelta

import httpx
import pytest

from channel_sync.adapters.ota_xml import (
    HOTEL_INFO_PATH,
    INVENTORY_NOTIFICATION_PATH,
    RESERVATION_NOTIFICATION_PATH,
    RESERVATIONS_SUMMARY_PATH,
    ROOM_RATES_PATH,
)
from channel_sync.models import ChannelStatus

SUMMARY_XML = (
    b"<reservations><reservation><id>RES-77</id><status>new</status><total_price>3000</total_price>"
    b"<customer><first_name>Lena</first_name><last_name>Park</last_name></customer>"
    b"<room><id>EXT-STANDARD</id><arrival_date>2025-02-01</arrival_date>"
    b"<departure_date>2025-02-02</departure_date></room></reservation></reservations>"
)


@pytest.mark.asyncio
async def test_supported_channels_listing(test_client):
    """The catalog listing needs no hotel and exposes no protocol internals."""
    response = await test_client.get("/v1/channels/supported")

    assert response.status_code == 200
    data = response.json()
    assert [entry["id"] for entry in data][:2] == ["booking_com", "makemytrip"]
    assert data[0] == {
        "id": "booking_com",
        "name": "Booking.com",
        "endpoint": "https://supply-xml.booking.com",
        "commission": 15,
    }


@pytest.mark.asyncio
async def test_hotel_id_is_required(test_client):
    response = await test_client.get("/v1/channels")

    assert response.status_code == 400
    data = response.json()
    assert data["status"] == 400
    assert data["title"] == "Hotel Required"


@pytest.mark.asyncio
async def test_hotel_id_from_query_parameter(test_client, make_channel):
    await make_channel()

    response = await test_client.get("/v1/channels", params={"hotelId": "hotel-1"})

    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_create_channel_endpoint(test_client, hotel_headers, sample_channel_data, fake_ota):
    response = await test_client.post("/v1/channels", json=sample_channel_data, headers=hotel_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["channel_type"] == "booking_com"
    assert data["hotel_id"] == "hotel-1"
    assert data["status"] == "active"
    assert data["credential_fields"] == ["password", "username"]
    assert "credentials" not in data
    assert data["settings"]["commission_rate"] == 15
    assert len(fake_ota.requests_to(HOTEL_INFO_PATH)) == 1


@pytest.mark.asyncio
async def test_create_channel_connection_failure(test_client, hotel_headers, sample_channel_data, fake_ota):
    fake_ota.respond(HOTEL_INFO_PATH, httpx.Response(401, text="denied"))

    response = await test_client.post("/v1/channels", json=sample_channel_data, headers=hotel_headers)

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "CONNECTION_TEST_FAILED"

    listing = await test_client.get("/v1/channels", headers=hotel_headers)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_create_channel_duplicate(test_client, hotel_headers, sample_channel_data):
    first = await test_client.post("/v1/channels", json=sample_channel_data, headers=hotel_headers)
    assert first.status_code == 201

    response = await test_client.post("/v1/channels", json=sample_channel_data, headers=hotel_headers)

    assert response.status_code == 409
    assert response.json()["code"] == "CHANNEL_EXISTS"


@pytest.mark.asyncio
async def test_create_channel_invalid_data(test_client, hotel_headers):
    invalid_data = {
        "channel_type": "booking_com",
        "display_name": "",  # Empty name should fail validation
    }

    response = await test_client.post("/v1/channels", json=invalid_data, headers=hotel_headers)

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data
    assert any(violation["path"].endswith("display_name") for violation in data["violations"])


@pytest.mark.asyncio
async def test_get_channel_of_other_hotel(test_client, make_channel):
    channel = await make_channel(hotel_id="hotel-2")

    response = await test_client.get(f"/v1/channels/{channel.id}", headers={"X-Hotel-ID": "hotel-1"})

    assert response.status_code == 403
    assert response.json()["code"] == "CHANNEL_NOT_OWNED"


@pytest.mark.asyncio
async def test_get_unknown_channel(test_client, hotel_headers):
    response = await test_client.get(
        "/v1/channels/00000000-0000-0000-0000-000000000000", headers=hotel_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_and_delete_channel(test_client, hotel_headers, make_channel):
    channel = await make_channel()

    response = await test_client.put(
        f"/v1/channels/{channel.id}",
        json={"display_name": "Renamed", "settings": {"inventory_buffer": 2}},
        headers=hotel_headers,
    )
    assert response.status_code == 200
    assert response.json()["display_name"] == "Renamed"
    assert response.json()["settings"]["inventory_buffer"] == 2

    response = await test_client.delete(f"/v1/channels/{channel.id}", headers=hotel_headers)
    assert response.status_code == 204

    response = await test_client.get(f"/v1/channels/{channel.id}", headers=hotel_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_partial_settings_update_keeps_other_settings(test_client, hotel_headers, make_channel):
    channel = await make_channel(settings={"auto_sync": False, "rate_parity": True, "inventory_buffer": 1})

    response = await test_client.put(
        f"/v1/channels/{channel.id}",
        json={"settings": {"inventory_buffer": 2}},
        headers=hotel_headers,
    )

    assert response.status_code == 200
    assert response.json()["settings"] == {
        "auto_sync": False,
        "rate_parity": True,
        "inventory_buffer": 2,
        "commission_rate": None,
    }

    reloaded = await test_client.get(f"/v1/channels/{channel.id}", headers=hotel_headers)
    assert reloaded.json()["settings"]["auto_sync"] is False


@pytest.mark.asyncio
async def test_connection_test_endpoint(test_client, hotel_headers, make_channel, fake_ota):
    channel = await make_channel()
    fake_ota.respond(HOTEL_INFO_PATH, httpx.Response(403, text="forbidden"))

    response = await test_client.post(f"/v1/channels/{channel.id}/test-connection", headers=hotel_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["channel_status"] == "error"


@pytest.mark.asyncio
async def test_external_rooms_endpoint(test_client, hotel_headers, make_channel, fake_ota):
    channel = await make_channel(rates={"standard": "2000"})
    fake_ota.respond(
        ROOM_RATES_PATH,
        httpx.Response(200, content=(
            b'<roomrates><room id="EXT-STANDARD"><info room_name="Standard King"/>'
            b'<rates><rate id="RP-STANDARD" rate_name="Flexible"/></rates></room>'
            b'<room id="EXT-SUITE"><info room_name="Suite"/></room></roomrates>'
        )),
    )

    response = await test_client.get(f"/v1/channels/{channel.id}/external-rooms", headers=hotel_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Fetched 2 room types"
    assert data["rooms"][0] == {
        "external_room_id": "EXT-STANDARD",
        "name": "Standard King",
        "rate_plans": [{"external_rate_plan_id": "RP-STANDARD", "name": "Flexible"}],
        "mapped_room_type": "standard",
    }
    assert data["rooms"][1]["mapped_room_type"] is None
    assert len(fake_ota.requests_to(ROOM_RATES_PATH)) == 1


@pytest.mark.asyncio
async def test_external_rooms_of_other_hotel(test_client, make_channel, fake_ota):
    channel = await make_channel(hotel_id="hotel-2")

    response = await test_client.get(
        f"/v1/channels/{channel.id}/external-rooms", headers={"X-Hotel-ID": "hotel-1"}
    )

    assert response.status_code == 403
    assert response.json()["code"] == "CHANNEL_NOT_OWNED"
    assert fake_ota.requests_to(ROOM_RATES_PATH) == []


@pytest.mark.asyncio
async def test_external_rooms_reports_ota_failure(test_client, hotel_headers, make_channel, fake_ota):
    channel = await make_channel()
    fake_ota.respond(ROOM_RATES_PATH, httpx.Response(401, text="denied"))

    response = await test_client.get(f"/v1/channels/{channel.id}/external-rooms", headers=hotel_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert "authentication failed" in data["message"]
    assert data["rooms"] == []

    listing = await test_client.get(f"/v1/channels/{channel.id}", headers=hotel_headers)
    assert listing.json()["status"] == "active"


@pytest.mark.asyncio
async def test_rate_plan_endpoints(test_client, hotel_headers, make_channel, sample_rate_plan_data):
    channel = await make_channel(rates={})

    response = await test_client.post(
        f"/v1/channels/{channel.id}/rate-plans", json=sample_rate_plan_data, headers=hotel_headers
    )
    assert response.status_code == 201
    plan = response.json()
    assert plan["base_rate"] == "2000.00"
    assert plan["seasonal_rates"][0]["start_date"] == "2025-12-20"

    response = await test_client.post(
        f"/v1/channels/{channel.id}/rate-plans", json=sample_rate_plan_data, headers=hotel_headers
    )
    assert response.status_code == 409

    response = await test_client.put(
        f"/v1/channels/{channel.id}/rate-plans/{plan['id']}",
        json={"discount_percentage": "-10"},
        headers=hotel_headers,
    )
    assert response.status_code == 200
    assert response.json()["discount_percentage"] == "-10.00"

    response = await test_client.get(f"/v1/channels/{channel.id}/rate-plans", headers=hotel_headers)
    assert [p["id"] for p in response.json()] == [plan["id"]]

    response = await test_client.delete(
        f"/v1/channels/{channel.id}/rate-plans/{plan['id']}", headers=hotel_headers
    )
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_rate_plan_rejects_inverted_season(test_client, hotel_headers, make_channel, sample_rate_plan_data):
    channel = await make_channel(rates={})
    sample_rate_plan_data["seasonal_rates"] = [
        {"start_date": "2025-12-31", "end_date": "2025-12-20", "rate": "5000"}
    ]

    response = await test_client.post(
        f"/v1/channels/{channel.id}/rate-plans", json=sample_rate_plan_data, headers=hotel_headers
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_room_mapping_endpoints(test_client, hotel_headers, make_channel):
    channel = await make_channel(rates={})

    response = await test_client.post(
        f"/v1/channels/{channel.id}/room-mappings",
        json={"room_type": "deluxe", "external_room_id": "BKG-DLX", "external_rate_plan_id": "BKG-RP"},
        headers=hotel_headers,
    )
    assert response.status_code == 201
    mapping = response.json()

    response = await test_client.get(f"/v1/channels/{channel.id}/room-mappings", headers=hotel_headers)
    assert [m["external_room_id"] for m in response.json()] == ["BKG-DLX"]

    response = await test_client.delete(
        f"/v1/channels/{channel.id}/room-mappings/{mapping['id']}", headers=hotel_headers
    )
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_bulk_inventory_sync(test_client, hotel_headers, make_rooms, make_channel, fake_ota):
    await make_rooms(standard=2)
    channel = await make_channel(rates={"standard": "2000"})

    response = await test_client.post("/v1/sync-inventory", headers=hotel_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["syncedChannels"] == 1
    assert data["results"][0]["channel_id"] == str(channel.id)
    assert data["results"][0]["success"] is True
    assert len(fake_ota.requests_to(INVENTORY_NOTIFICATION_PATH)) > 0


@pytest.mark.asyncio
async def test_bulk_inventory_sync_reports_failures_with_200(test_client, hotel_headers, make_rooms, make_channel, fake_ota):
    await make_rooms(standard=1)
    await make_channel(rates={"standard": "2000"})
    fake_ota.respond(INVENTORY_NOTIFICATION_PATH, httpx.Response(500, text="down"))

    response = await test_client.post("/v1/sync-inventory", headers=hotel_headers)

    assert response.status_code == 200
    assert response.json()["results"][0]["success"] is False


@pytest.mark.asyncio
async def test_manual_channel_sync(test_client, hotel_headers, make_rooms, make_channel, fake_ota):
    await make_rooms(standard=2, deluxe=1)
    channel = await make_channel()
    start = date.today()

    response = await test_client.post(
        f"/v1/channels/{channel.id}/sync",
        json={"start_date": start.isoformat(), "end_date": (start + timedelta(days=1)).isoformat()},
        headers=hotel_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["records_synced"] == 4
    assert data["channel_name"] == channel.display_name
    assert len(fake_ota.requests_to(INVENTORY_NOTIFICATION_PATH)) == 2


@pytest.mark.asyncio
async def test_manual_sync_of_inactive_channel(test_client, hotel_headers, make_channel):
    channel = await make_channel(status=ChannelStatus.INACTIVE)

    response = await test_client.post(f"/v1/channels/{channel.id}/sync", headers=hotel_headers)

    assert response.status_code == 409
    assert response.json()["code"] == "CHANNEL_NOT_ACTIVE"


@pytest.mark.asyncio
async def test_manual_sync_without_mapping(test_client, hotel_headers, make_rooms, make_channel):
    await make_rooms(standard=1)
    channel = await make_channel(mapped=False, rates={"standard": "2000"})

    response = await test_client.post(f"/v1/channels/{channel.id}/sync", headers=hotel_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "CHANNEL_MISCONFIGURED"


@pytest.mark.asyncio
async def test_sync_logs_listing_and_reconcile(test_client, hotel_headers, make_rooms, make_channel):
    await make_rooms(standard=1)
    channel = await make_channel(rates={"standard": "2000"})
    await test_client.post(
        f"/v1/channels/{channel.id}/sync",
        json={"start_date": "2025-01-06", "end_date": "2025-01-06"},
        headers=hotel_headers,
    )

    response = await test_client.get("/v1/sync-logs", headers=hotel_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["status"] == "success"
    assert data["items"][0]["channel_id"] == str(channel.id)

    response = await test_client.get("/v1/sync-logs", params={"status": "pending"}, headers=hotel_headers)
    assert response.json()["total"] == 0

    response = await test_client.get("/v1/sync-logs", headers={"X-Hotel-ID": "hotel-2"})
    assert response.json()["total"] == 0

    response = await test_client.post(
        "/v1/sync-logs/reconcile", params={"older_than_minutes": 30}, headers=hotel_headers
    )
    assert response.status_code == 200
    assert response.json() == {"reconciled": 0, "older_than_minutes": 30}


@pytest.mark.asyncio
async def test_pull_reservations_and_update_status(test_client, hotel_headers, make_channel, fake_ota):
    channel = await make_channel(settings={"auto_sync": True, "commission_rate": 10})
    fake_ota.respond(RESERVATIONS_SUMMARY_PATH, httpx.Response(200, content=SUMMARY_XML))

    response = await test_client.post(
        f"/v1/channels/{channel.id}/pull-reservations",
        json={"start_date": "2025-02-01", "end_date": "2025-02-28"},
        headers=hotel_headers,
    )
    assert response.status_code == 200
    assert response.json()["created"] == 1

    response = await test_client.get("/v1/bookings", headers=hotel_headers)
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 1
    booking = page["items"][0]
    assert booking["guest_name"] == "Lena Park"
    assert booking["commission_amount"] == "300.00"

    response = await test_client.post(
        f"/v1/bookings/{booking['id']}/status", json={"status": "confirmed"}, headers=hotel_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["booking"]["status"] == "confirmed"
    assert len(fake_ota.requests_to(RESERVATION_NOTIFICATION_PATH)) == 1


@pytest.mark.asyncio
async def test_booking_status_rejects_unknown_value(test_client, hotel_headers):
    response = await test_client.post(
        "/v1/bookings/00000000-0000-0000-0000-000000000000/status",
        json={"status": "modified"},
        headers=hotel_headers,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_analytics_endpoint(test_client, hotel_headers, make_rooms, make_channel, fake_ota):
    await make_rooms(standard=1)
    channel = await make_channel(rates={"standard": "2000"}, settings={"auto_sync": True, "commission_rate": 10})
    fake_ota.respond(RESERVATIONS_SUMMARY_PATH, httpx.Response(200, content=SUMMARY_XML))
    await test_client.post(
        f"/v1/channels/{channel.id}/pull-reservations",
        json={"start_date": "2025-02-01", "end_date": "2025-02-28"},
        headers=hotel_headers,
    )

    response = await test_client.get("/v1/analytics", headers=hotel_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_channels"] == 1
    assert data["active_channels"] == 1
    assert data["total_bookings"] == 1
    assert data["total_revenue"] == "3000.00"
    assert data["total_commission"] == "300.00"
    assert data["channels"][0]["syncs_succeeded"] == 1
