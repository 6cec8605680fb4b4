"""Selection of a protocol adapter by channel type code."""

from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping, Optional

import httpx

from ..core.channel_catalog import OTA_XML_PROTOCOL, ChannelCatalog, SupportedChannel
from ..core.config import Settings
from ..core.exceptions import ChannelConfigurationError
from .base import ProtocolAdapter
from .ota_xml import OtaXmlAdapter
from .unsupported import UnsupportedProtocolAdapter

if TYPE_CHECKING:
    from ..models.channel import Channel

AdapterFactory = Callable[["Channel"], ProtocolAdapter]


class AdapterRegistry:
    """Maps catalog type codes to adapter factories."""

    def __init__(self, catalog: ChannelCatalog, factories: Mapping[str, AdapterFactory]):
        self.catalog = catalog
        self._factories = MappingProxyType(dict(factories))

    @classmethod
    def from_catalog(
        cls,
        catalog: ChannelCatalog,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AdapterRegistry":
        """
        Build a registry with one factory per catalog entry.

        Entries declaring the OTA-XML protocol get OtaXmlAdapter; the rest get
        UnsupportedProtocolAdapter.

        Args:
            catalog: Supported channel catalog
            settings: Application settings (timeouts, user agent)
            transport: Optional httpx transport, used to stub OTA traffic
        """
        factories: dict[str, AdapterFactory] = {}
        for entry in catalog:
            factories[entry.id] = cls._factory_for(entry, settings, transport)
        return cls(catalog, factories)

    @staticmethod
    def _factory_for(
        entry: SupportedChannel,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport],
    ) -> AdapterFactory:
        if entry.protocol == OTA_XML_PROTOCOL:
            return lambda channel: OtaXmlAdapter(channel, entry, settings, transport=transport)
        return UnsupportedProtocolAdapter

    def supports(self, channel_type: str) -> bool:
        return channel_type in self._factories

    def for_channel(self, channel: "Channel") -> ProtocolAdapter:
        """
        Return a fresh adapter bound to ``channel``.

        Raises:
            ChannelConfigurationError: If the channel type is not in the catalog
        """
        factory = self._factories.get(channel.channel_type)
        if factory is None:
            raise ChannelConfigurationError(
                detail=f"Unsupported channel type: {channel.channel_type}",
                channel_id=str(channel.id) if channel.id else None,
            )
        return factory(channel)
