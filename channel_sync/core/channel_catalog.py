"""Supported OTA channel catalog.

The catalog is loaded once at application startup and handed to the
components that need it. Entries are immutable.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from pydantic import BaseModel, Field, TypeAdapter

logger = logging.getLogger(__name__)

OTA_XML_PROTOCOL = "ota_xml"


class SupportedChannelEntry(BaseModel):
    """Validation schema for one catalog entry read from JSON."""

    id: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=100)
    endpoint: str = Field(..., min_length=1)
    secure_endpoint: str | None = None
    commission: float = Field(..., ge=0, le=100)
    protocol: str | None = None


@dataclass(frozen=True)
class SupportedChannel:
    """One OTA type the service knows how to list and connect."""

    id: str
    name: str
    endpoint: str
    commission: float
    secure_endpoint: str | None = None
    protocol: str | None = None

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "endpoint": self.endpoint,
            "commission": self.commission,
        }


DEFAULT_SUPPORTED_CHANNELS: tuple[SupportedChannel, ...] = (
    SupportedChannel(
        id="booking_com",
        name="Booking.com",
        endpoint="https://supply-xml.booking.com",
        secure_endpoint="https://secure-supply-xml.booking.com",
        commission=15,
        protocol=OTA_XML_PROTOCOL,
    ),
    SupportedChannel(id="makemytrip", name="MakeMyTrip", endpoint="https://partners.makemytrip.com/api", commission=18),
    SupportedChannel(id="agoda", name="Agoda", endpoint="https://affiliates.agoda.com/xmlapi", commission=16),
    SupportedChannel(id="expedia", name="Expedia", endpoint="https://www.expediaconnectivity.com/eqc", commission=15),
    SupportedChannel(id="goibibo", name="Goibibo", endpoint="https://partners.goibibo.com/api", commission=20),
    SupportedChannel(id="cleartrip", name="Cleartrip", endpoint="https://partners.cleartrip.com/api", commission=17),
    SupportedChannel(id="traveloka", name="Traveloka", endpoint="https://affiliates.traveloka.com/api", commission=18),
    SupportedChannel(id="airbnb", name="Airbnb", endpoint="https://api.airbnb.com/v3", commission=3),
)


class ChannelCatalog:
    """Read-only, ordered lookup of supported channels keyed by type code."""

    def __init__(self, channels: tuple[SupportedChannel, ...]):
        entries: dict[str, SupportedChannel] = {}
        for channel in channels:
            if channel.id in entries:
                raise ValueError(f"Duplicate channel type in catalog: {channel.id}")
            entries[channel.id] = channel
        self._entries: Mapping[str, SupportedChannel] = MappingProxyType(entries)

    def __iter__(self) -> Iterator[SupportedChannel]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, channel_type: object) -> bool:
        return channel_type in self._entries

    def get(self, channel_type: str) -> SupportedChannel | None:
        return self._entries.get(channel_type)

    def public_listing(self) -> list[dict]:
        """Return the catalog in the shape exposed by the API."""
        return [channel.to_public_dict() for channel in self]


_entries_adapter = TypeAdapter(list[SupportedChannelEntry])


def load_channel_catalog(path: str | None = None) -> ChannelCatalog:
    """
    Build the channel catalog.

    Args:
        path: Optional JSON file holding a list of catalog entries. When
            omitted the built-in catalog is used.

    Returns:
        ChannelCatalog: Immutable catalog instance
    """
    if not path:
        return ChannelCatalog(DEFAULT_SUPPORTED_CHANNELS)

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    entries = _entries_adapter.validate_python(raw)
    channels = tuple(
        SupportedChannel(
            id=entry.id,
            name=entry.name,
            endpoint=entry.endpoint,
            commission=entry.commission,
            secure_endpoint=entry.secure_endpoint,
            protocol=entry.protocol,
        )
        for entry in entries
    )

    logger.info(
        "Loaded channel catalog from file",
        extra={"path": path, "channel_count": len(channels)}
    )

    return ChannelCatalog(channels)
