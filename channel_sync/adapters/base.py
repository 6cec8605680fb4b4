"""Protocol adapter interface shared by every OTA channel type."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional, Sequence

from ..core.exceptions import ChannelConfigurationError

if TYPE_CHECKING:
    from ..models.channel import Channel
    from ..services.inventory_generator import InventoryRecord


@dataclass
class AdapterResult:
    """Uniform outcome of one adapter operation."""

    success: bool
    message: str = ""
    error: Optional[str] = None
    data: Any = None
    retry_after: Optional[int] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, message: str, data: Any = None, status_code: Optional[int] = None) -> "AdapterResult":
        return cls(success=True, message=message, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        message: str,
        error: Optional[str] = None,
        data: Any = None,
        retry_after: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> "AdapterResult":
        return cls(
            success=False,
            message=message,
            error=error or message,
            data=data,
            retry_after=retry_after,
            status_code=status_code,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe form stored as a sync log response payload."""
        return {
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
            "data": _jsonable(self.data),
        }


@dataclass(frozen=True)
class ReservationData:
    """One reservation as reported by an OTA."""

    external_reservation_id: str
    status: str
    guest_name: str
    check_in: date
    check_out: date
    total_amount: Decimal
    currency: str
    guest_email: Optional[str] = None
    room_type: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "external_reservation_id": self.external_reservation_id,
            "status": self.status,
            "guest_name": self.guest_name,
            "guest_email": self.guest_email,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "room_type": self.room_type,
            "total_amount": str(self.total_amount),
            "currency": self.currency,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, ReservationData):
        return value.to_payload()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class ProtocolAdapter(ABC):
    """
    Translator between the internal inventory/reservation model and one
    OTA's wire protocol.

    Expected remote failures (rejected credentials, timeouts, non-200
    responses, malformed payloads) are returned as failed results and never
    raised. Missing configuration raises ChannelConfigurationError.
    """

    #: Credential keys that must be present for the adapter to talk to the OTA
    required_credentials: tuple[str, ...] = ()

    def __init__(self, channel: "Channel"):
        self.channel = channel

    @property
    def channel_type(self) -> str:
        return self.channel.channel_type

    def missing_configuration(self) -> list[str]:
        """Return the names of required configuration fields that are empty."""
        missing = []
        if not (self.channel.property_id or "").strip():
            missing.append("property_id")
        credentials = self.channel.credentials or {}
        for key in self.required_credentials:
            if not str(credentials.get(key) or "").strip():
                missing.append(f"credentials.{key}")
        return missing

    def ensure_configured(self) -> None:
        """
        Raise ChannelConfigurationError when required fields are missing.

        Raises:
            ChannelConfigurationError: If property id or credentials are absent
        """
        missing = self.missing_configuration()
        if missing:
            raise ChannelConfigurationError(
                detail=f"Channel is missing required configuration: {', '.join(missing)}",
                channel_id=str(self.channel.id) if self.channel.id else None,
                missing_fields=missing,
            )

    @abstractmethod
    async def test_connection(self) -> AdapterResult:
        """Check that the OTA accepts the channel's credentials."""

    @abstractmethod
    async def push_inventory(self, records: Sequence["InventoryRecord"]) -> AdapterResult:
        """Send availability counts to the OTA; rates are not transmitted."""

    @abstractmethod
    async def pull_reservations(self, start: date, end: date) -> AdapterResult:
        """Fetch reservations for the inclusive stay window."""

    @abstractmethod
    async def update_reservation_status(self, reservation_id: str, status: str) -> AdapterResult:
        """Report a confirmation or cancellation back to the OTA."""

    @abstractmethod
    async def fetch_room_rates(self) -> AdapterResult:
        """List the OTA's room types and rate plans for the property."""
