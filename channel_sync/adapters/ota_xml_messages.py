"""XML documents exchanged with OTA-XML channels."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from .base import ReservationData

OTA_NAMESPACE = "http://www.opentravel.org/OTA/2003/05"
OTA_VERSION = "1.0"

# OTA code table values used in the messages below
REQUESTOR_TYPE_COMPANY = "22"
UNIQUE_ID_TYPE_RESERVATION = "14"
COUNT_TYPE_AVAILABLE = "2"

RESERVATION_STATUS_CODES = {
    "confirmed": "Confirmed",
    "cancelled": "Cancelled",
}

_STATUS_ALIASES = {
    "new": "new",
    "booked": "new",
    "modified": "modified",
    "confirmed": "confirmed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
}


@dataclass(frozen=True)
class InventoryLine:
    """Availability for one (room type, rate plan) pair on one date."""

    inv_type_code: str
    rate_plan_code: str
    count: int


@dataclass
class ParsedReservations:
    """Reservations read from a summary document plus the entries that were rejected."""

    reservations: list[ReservationData] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)


class ReservationParseError(ValueError):
    """Raised when a reservation summary is not well-formed XML."""


class RoomRatesParseError(ValueError):
    """Raised when a room rates document is not well-formed XML."""


def _timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="seconds").replace("+00:00", "Z")


def _to_string(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _ota_root(tag: str, username: str, now: Optional[datetime]) -> ET.Element:
    root = ET.Element(tag, {
        "xmlns": OTA_NAMESPACE,
        "Version": OTA_VERSION,
        "TimeStamp": _timestamp(now),
    })
    pos = ET.SubElement(root, "POS")
    source = ET.SubElement(pos, "Source")
    ET.SubElement(source, "RequestorID", {"Type": REQUESTOR_TYPE_COMPANY, "ID": username})
    return root


def _simple_request(**children: str) -> bytes:
    root = ET.Element("request")
    for tag, text in children.items():
        ET.SubElement(root, tag).text = text
    return _to_string(root)


def build_hotel_info_request(property_id: str) -> bytes:
    """Property info request used as a lightweight connection check."""
    return _simple_request(hotel_id=property_id)


def build_room_rates_request(property_id: str) -> bytes:
    return _simple_request(hotel_id=property_id)


def build_reservations_summary_request(property_id: str, start: date, end: date) -> bytes:
    return _simple_request(
        hotel_id=property_id,
        checkin_date=start.isoformat(),
        checkout_date=end.isoformat(),
    )


def build_inventory_notification(
    username: str,
    property_id: str,
    day: date,
    lines: Iterable[InventoryLine],
    now: Optional[datetime] = None,
) -> bytes:
    """
    Build an OTA_HotelInvNotifRQ carrying one date's availability.

    Each line becomes one Inventory element with a single-day
    StatusApplicationControl and an InvCount of the available rooms.
    """
    root = _ota_root("OTA_HotelInvNotifRQ", username, now)
    inventories = ET.SubElement(root, "Inventories", {"HotelCode": property_id})
    day_text = day.isoformat()

    for line in lines:
        inventory = ET.SubElement(inventories, "Inventory")
        ET.SubElement(inventory, "StatusApplicationControl", {
            "Start": day_text,
            "End": day_text,
            "InvTypeCode": line.inv_type_code,
            "RatePlanCode": line.rate_plan_code,
        })
        counts = ET.SubElement(inventory, "InvCounts")
        ET.SubElement(counts, "InvCount", {
            "Count": str(max(0, int(line.count))),
            "CountType": COUNT_TYPE_AVAILABLE,
        })

    return _to_string(root)


def build_reservation_status_notification(
    username: str,
    reservation_id: str,
    status: str,
    now: Optional[datetime] = None,
) -> bytes:
    """
    Build an OTA_HotelResNotifRQ confirming or cancelling a reservation.

    Raises:
        ValueError: If status is not confirmed or cancelled
    """
    try:
        status_code = RESERVATION_STATUS_CODES[status]
    except KeyError:
        raise ValueError(f"Unsupported reservation status: {status}") from None

    root = _ota_root("OTA_HotelResNotifRQ", username, now)
    reservations = ET.SubElement(root, "HotelReservations")
    reservation = ET.SubElement(reservations, "HotelReservation")
    ET.SubElement(reservation, "UniqueID", {"Type": UNIQUE_ID_TYPE_RESERVATION, "ID": reservation_id})
    ET.SubElement(reservation, "ResStatus").text = status_code
    return _to_string(root)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _element_to_dict(element: ET.Element) -> dict[str, Any]:
    result: dict[str, Any] = dict(element.attrib)
    for child in element:
        key = _local_name(child.tag)
        value: Any = _element_to_dict(child) if len(child) else (child.text or "").strip()
        if key in result:
            existing = result[key]
            result[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            result[key] = value
    return result


def _parse_reservation(element: ET.Element) -> ReservationData:
    reservation_id = _child_text(element, "id") or element.get("id")
    if not reservation_id:
        raise ValueError("reservation id missing")

    room = _child(element, "room")
    customer = _child(element, "customer")
    if room is None:
        raise ValueError("room element missing")

    try:
        check_in = date.fromisoformat(_child_text(room, "arrival_date") or "")
        check_out = date.fromisoformat(_child_text(room, "departure_date") or "")
    except ValueError:
        raise ValueError("arrival or departure date invalid") from None
    if check_out < check_in:
        raise ValueError("departure precedes arrival")

    try:
        total = Decimal(_child_text(element, "total_price") or "0")
    except InvalidOperation:
        raise ValueError("total_price is not a number") from None
    if not total.is_finite() or total < 0:
        raise ValueError("total_price is not a valid amount")

    guest_name = None
    guest_email = None
    if customer is not None:
        parts = [_child_text(customer, "first_name"), _child_text(customer, "last_name")]
        guest_name = " ".join(part for part in parts if part) or None
        guest_email = _child_text(customer, "email")
    guest_name = guest_name or _child_text(room, "guest_name") or "Unknown Guest"

    raw_status = (_child_text(element, "status") or "new").lower()

    return ReservationData(
        external_reservation_id=reservation_id,
        status=_STATUS_ALIASES.get(raw_status, "new"),
        guest_name=guest_name,
        guest_email=guest_email,
        check_in=check_in,
        check_out=check_out,
        room_type=_child_text(room, "id"),
        total_amount=total.quantize(Decimal("0.01")),
        currency=(_child_text(element, "currencycode") or "EUR").upper()[:3],
        raw=_element_to_dict(element),
    )


def parse_reservations(document: str | bytes) -> ParsedReservations:
    """
    Parse a reservations summary document.

    Entries that cannot be interpreted are collected in ``skipped`` with a
    reason instead of failing the whole document.

    Raises:
        ReservationParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise ReservationParseError(f"Malformed reservations document: {e}") from e

    parsed = ParsedReservations()
    elements = [root] if _local_name(root.tag) == "reservation" else [
        element for element in root.iter() if _local_name(element.tag) == "reservation"
    ]

    for index, element in enumerate(elements):
        try:
            parsed.reservations.append(_parse_reservation(element))
        except ValueError as e:
            parsed.skipped.append({
                "index": index,
                "reservation_id": _child_text(element, "id"),
                "reason": str(e),
            })

    return parsed


def _attr_or_child(element: ET.Element, *names: str) -> Optional[str]:
    for name in names:
        value = (element.get(name) or "").strip() or _child_text(element, name)
        if value:
            return value
    return None


def parse_room_rates(document: str | bytes) -> list[dict[str, Any]]:
    """
    Parse a room rates document into the property's room types and rate plans.

    Identifiers and names are read from attributes or child elements; a room
    without an id is ignored, as is a rate without one.

    Raises:
        RoomRatesParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise RoomRatesParseError(f"Malformed room rates document: {e}") from e

    rooms = []
    for element in root.iter():
        if _local_name(element.tag) != "room":
            continue
        room_id = _attr_or_child(element, "id", "room_id")
        if not room_id:
            continue

        info = _child(element, "info")
        name = _attr_or_child(element, "room_name", "name")
        if name is None and info is not None:
            name = _attr_or_child(info, "room_name", "name")

        rate_plans = []
        for rate in element.iter():
            if _local_name(rate.tag) != "rate":
                continue
            rate_id = _attr_or_child(rate, "id", "rate_id")
            if rate_id:
                rate_plans.append({
                    "external_rate_plan_id": rate_id,
                    "name": _attr_or_child(rate, "rate_name", "name"),
                })

        rooms.append({
            "external_room_id": room_id,
            "name": name,
            "rate_plans": rate_plans,
        })

    return rooms
