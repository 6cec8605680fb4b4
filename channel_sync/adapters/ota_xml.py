"""OTA-XML protocol adapter (HTTPS, Basic authentication)."""

from collections import defaultdict
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any, Optional, Sequence

import httpx

from ..core.channel_catalog import SupportedChannel
from ..core.config import Settings
from ..core.observability import get_logger, metrics_collector
from .base import AdapterResult, ProtocolAdapter
from .ota_xml_messages import (
    InventoryLine,
    ReservationParseError,
    RoomRatesParseError,
    build_hotel_info_request,
    build_inventory_notification,
    build_reservation_status_notification,
    build_reservations_summary_request,
    build_room_rates_request,
    parse_reservations,
    parse_room_rates,
)

if TYPE_CHECKING:
    from ..models.channel import Channel
    from ..services.inventory_generator import InventoryRecord

logger = get_logger(__name__)

HOTEL_INFO_PATH = "/hotels/xml/hotelinfo"
INVENTORY_NOTIFICATION_PATH = "/ota/OTA_HotelInvNotif"
RESERVATIONS_SUMMARY_PATH = "/xml/reservationssummary"
RESERVATION_NOTIFICATION_PATH = "/ota/OTA_HotelResNotif"
ROOM_RATES_PATH = "/hotels/xml/roomrates"

RETRY_AFTER_STATUSES = (429, 503)
MAX_ERROR_BODY = 500


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Interpret a Retry-After header given as delta-seconds or an HTTP date."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        moment = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0, int((moment - now).total_seconds()))


class OtaXmlAdapter(ProtocolAdapter):
    """
    Adapter for channels speaking the OTA XML message family.

    Inventory and property calls go to the general endpoint; reservation
    calls go to the separate secure endpoint.
    """

    required_credentials = ("username", "password")

    def __init__(
        self,
        channel: "Channel",
        catalog_entry: SupportedChannel,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(channel)
        self.catalog_entry = catalog_entry
        self.settings = settings
        self.transport = transport
        self.logger = logger.with_context(
            channel_id=str(channel.id),
            channel_type=channel.channel_type,
        )

    @property
    def base_url(self) -> str:
        return (self.channel.api_endpoint or self.catalog_entry.endpoint).rstrip("/")

    @property
    def secure_base_url(self) -> str:
        return (self.catalog_entry.secure_endpoint or self.catalog_entry.endpoint).rstrip("/")

    @property
    def username(self) -> str:
        return str((self.channel.credentials or {}).get("username") or "")

    @property
    def property_id(self) -> str:
        return self.channel.property_id or ""

    def _client(self, base_url: str) -> httpx.AsyncClient:
        credentials = self.channel.credentials or {}
        return httpx.AsyncClient(
            base_url=base_url,
            auth=httpx.BasicAuth(str(credentials.get("username") or ""), str(credentials.get("password") or "")),
            timeout=self.settings.ota_request_timeout_seconds,
            headers={
                "Content-Type": "application/xml",
                "Accept": "application/xml",
                "User-Agent": self.settings.ota_user_agent,
            },
            transport=self.transport,
        )

    async def _post(
        self,
        client: httpx.AsyncClient,
        path: str,
        body: bytes,
        operation: str,
    ) -> tuple[Optional[httpx.Response], Optional[AdapterResult]]:
        """
        POST one document and classify the outcome.

        Returns:
            (response, None) on HTTP 200, otherwise (response or None, failure)
        """
        try:
            response = await client.post(path, content=body)
        except httpx.TimeoutException:
            self.logger.warning("OTA request timed out", operation=operation, path=path)
            metrics_collector.record_ota_call(self.channel_type, operation, False)
            return None, AdapterResult.failure(
                f"{operation} timed out after {self.settings.ota_request_timeout_seconds:g}s",
                error="timeout",
            )
        except httpx.HTTPError as e:
            self.logger.warning("OTA request failed", operation=operation, path=path, error=str(e))
            metrics_collector.record_ota_call(self.channel_type, operation, False)
            return None, AdapterResult.failure(f"{operation} failed: {e}", error=type(e).__name__)

        if response.status_code == 200:
            metrics_collector.record_ota_call(self.channel_type, operation, True)
            return response, None

        retry_after = None
        if response.status_code in RETRY_AFTER_STATUSES:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))

        self.logger.warning(
            "OTA request rejected",
            operation=operation,
            path=path,
            status_code=response.status_code,
            retry_after=retry_after,
        )
        metrics_collector.record_ota_call(self.channel_type, operation, False)

        if response.status_code in (401, 403):
            message = f"{operation} rejected: authentication failed (HTTP {response.status_code})"
        else:
            message = f"{operation} failed with HTTP {response.status_code}"

        return response, AdapterResult.failure(
            message,
            error=response.text[:MAX_ERROR_BODY] or message,
            retry_after=retry_after,
            status_code=response.status_code,
        )

    async def test_connection(self) -> AdapterResult:
        missing = self.missing_configuration()
        if missing:
            return AdapterResult.failure(
                f"Missing required configuration: {', '.join(missing)}",
                data={"missing_fields": missing},
            )

        async with self._client(self.base_url) as client:
            response, failure = await self._post(
                client,
                HOTEL_INFO_PATH,
                build_hotel_info_request(self.property_id),
                "test_connection",
            )

        if failure is not None:
            return failure

        self.logger.info("OTA connection test succeeded")
        return AdapterResult.ok("Connection successful", status_code=response.status_code)

    def _lines_by_date(self, records: Sequence["InventoryRecord"]) -> dict[date, list[InventoryLine]]:
        grouped: dict[date, list[InventoryLine]] = defaultdict(list)
        for record in records:
            grouped[record.date].append(InventoryLine(
                inv_type_code=record.external_room_id or record.room_type,
                rate_plan_code=record.external_rate_plan_id or str(record.rate_plan_id),
                count=record.available_rooms,
            ))
        return dict(sorted(grouped.items()))

    async def push_inventory(self, records: Sequence["InventoryRecord"]) -> AdapterResult:
        """
        Send one inventory notification per date, oldest first.

        Only availability counts are sent. Rates computed for the records
        (``sell_rate``) stay local; prices are maintained on the OTA side.

        A failed date does not stop later dates. The result succeeds only when
        every date was accepted; ``data["batches"]`` holds each date's outcome.
        """
        self.ensure_configured()

        grouped = self._lines_by_date(records)
        if not grouped:
            return AdapterResult.ok("No inventory records to push", data={"batches": []})

        batches: list[dict[str, Any]] = []
        retry_after: Optional[int] = None

        async with self._client(self.base_url) as client:
            for day, lines in grouped.items():
                document = build_inventory_notification(self.username, self.property_id, day, lines)
                response, failure = await self._post(
                    client,
                    INVENTORY_NOTIFICATION_PATH,
                    document,
                    "push_inventory",
                )
                batch = {
                    "date": day.isoformat(),
                    "lines": len(lines),
                    "success": failure is None,
                    "status_code": response.status_code if response is not None else None,
                }
                if failure is not None:
                    batch["error"] = failure.message
                    if failure.retry_after is not None:
                        retry_after = max(retry_after or 0, failure.retry_after)
                batches.append(batch)

        failed = [batch for batch in batches if not batch["success"]]
        data = {"batches": batches, "dates_sent": len(batches), "dates_failed": len(failed)}

        if failed:
            self.logger.warning(
                "Inventory push partially rejected",
                dates_sent=len(batches),
                dates_failed=len(failed),
            )
            return AdapterResult.failure(
                f"Inventory update failed for {len(failed)} of {len(batches)} dates",
                error="; ".join(f"{batch['date']}: {batch['error']}" for batch in failed),
                data=data,
                retry_after=retry_after,
            )

        self.logger.info("Inventory push accepted", dates_sent=len(batches), records=len(records))
        return AdapterResult.ok(
            f"Inventory updated for {len(batches)} dates",
            data=data,
        )

    async def pull_reservations(self, start: date, end: date) -> AdapterResult:
        """Fetch and parse the reservations summary for the stay window."""
        self.ensure_configured()

        async with self._client(self.secure_base_url) as client:
            response, failure = await self._post(
                client,
                RESERVATIONS_SUMMARY_PATH,
                build_reservations_summary_request(self.property_id, start, end),
                "pull_reservations",
            )

        if failure is not None:
            return failure

        try:
            parsed = parse_reservations(response.content)
        except ReservationParseError as e:
            self.logger.error("Reservation summary could not be parsed", error=str(e))
            return AdapterResult.failure(
                "Reservations response was not valid XML",
                error=str(e),
                status_code=response.status_code,
            )

        self.logger.info(
            "Reservations fetched",
            fetched=len(parsed.reservations),
            skipped=len(parsed.skipped),
        )
        return AdapterResult.ok(
            f"Fetched {len(parsed.reservations)} reservations",
            data={"reservations": parsed.reservations, "skipped": parsed.skipped},
            status_code=response.status_code,
        )

    async def update_reservation_status(self, reservation_id: str, status: str) -> AdapterResult:
        self.ensure_configured()

        document = build_reservation_status_notification(self.username, reservation_id, status)

        async with self._client(self.secure_base_url) as client:
            response, failure = await self._post(
                client,
                RESERVATION_NOTIFICATION_PATH,
                document,
                "update_reservation_status",
            )

        if failure is not None:
            return failure

        self.logger.info("Reservation status reported", reservation_id=reservation_id, status=status)
        return AdapterResult.ok(
            f"Reservation {reservation_id} marked {status}",
            status_code=response.status_code,
        )

    async def fetch_room_rates(self) -> AdapterResult:
        """Fetch the property's room types with their rate plans from the general endpoint."""
        self.ensure_configured()

        async with self._client(self.base_url) as client:
            response, failure = await self._post(
                client,
                ROOM_RATES_PATH,
                build_room_rates_request(self.property_id),
                "fetch_room_rates",
            )

        if failure is not None:
            return failure

        try:
            rooms = parse_room_rates(response.content)
        except RoomRatesParseError as e:
            self.logger.error("Room rates response could not be parsed", error=str(e))
            return AdapterResult.failure(
                "Room rates response was not valid XML",
                error=str(e),
                status_code=response.status_code,
            )

        self.logger.info("Room rates fetched", rooms=len(rooms))
        return AdapterResult.ok(
            f"Fetched {len(rooms)} room types",
            data={"rooms": rooms},
            status_code=response.status_code,
        )
