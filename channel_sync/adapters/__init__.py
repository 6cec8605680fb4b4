"""OTA protocol adapters."""

from .base import AdapterResult, ProtocolAdapter, ReservationData
from .ota_xml import OtaXmlAdapter
from .registry import AdapterRegistry
from .unsupported import UnsupportedProtocolAdapter

__all__ = [
    "AdapterRegistry",
    "AdapterResult",
    "OtaXmlAdapter",
    "ProtocolAdapter",
    "ReservationData",
    "UnsupportedProtocolAdapter",
]
