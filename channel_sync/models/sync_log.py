"""Synchronization audit log model definition."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utc_now


class SyncType(str, Enum):
    """What a synchronization attempt carried."""
    INVENTORY = "inventory"
    RESERVATION = "reservation"


class SyncDirection(str, Enum):
    """Direction of a synchronization attempt relative to the hotel."""
    PUSH = "push"
    PULL = "pull"


class SyncStatus(str, Enum):
    """Sync log status enumeration."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"

    @property
    def is_terminal(self) -> bool:
        return self is not SyncStatus.PENDING


class SyncLog(Base):
    """
    One row per synchronization attempt.

    Created as pending before the network call and completed exactly once.
    """

    __tablename__ = "channel_sync_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    hotel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Logs outlive the channel they describe
    channel_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("ota_channels.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    sync_type: Mapped[SyncType] = mapped_column(String(20), nullable=False)
    direction: Mapped[SyncDirection] = mapped_column(String(10), nullable=False)
    status: Mapped[SyncStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SyncStatus.PENDING,
        index=True
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_successful: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    request_payload: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    response_payload: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("records_processed >= 0", name="ck_sync_log_processed_non_negative"),
        CheckConstraint("records_successful >= 0", name="ck_sync_log_successful_non_negative"),
        CheckConstraint("records_failed >= 0", name="ck_sync_log_failed_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'success', 'failed', 'partial')",
            name="ck_sync_log_status_valid"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SyncLog(id={self.id}, channel_id={self.channel_id}, sync_type={self.sync_type}, "
            f"direction={self.direction}, status={self.status})>"
        )
