"""Placeholder adapter for catalog channels without a protocol implementation."""

from datetime import date
from typing import TYPE_CHECKING, Sequence

from ..core.observability import get_logger
from .base import AdapterResult, ProtocolAdapter

if TYPE_CHECKING:
    from ..services.inventory_generator import InventoryRecord

logger = get_logger(__name__)


class UnsupportedProtocolAdapter(ProtocolAdapter):
    """Every operation reports failure; nothing is sent over the network."""

    def _not_implemented(self, operation: str) -> AdapterResult:
        logger.info("Channel operation not implemented", channel_type=self.channel_type, operation=operation)
        return AdapterResult.failure(
            f"{operation} is not implemented for channel type '{self.channel_type}'",
            error="not_implemented",
        )

    async def test_connection(self) -> AdapterResult:
        return self._not_implemented("test_connection")

    async def push_inventory(self, records: Sequence["InventoryRecord"]) -> AdapterResult:
        return self._not_implemented("push_inventory")

    async def pull_reservations(self, start: date, end: date) -> AdapterResult:
        return self._not_implemented("pull_reservations")

    async def update_reservation_status(self, reservation_id: str, status: str) -> AdapterResult:
        return self._not_implemented("update_reservation_status")

    async def fetch_room_rates(self) -> AdapterResult:
        return self._not_implemented("fetch_room_rates")
