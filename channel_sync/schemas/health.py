"""Health-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: HealthStatus = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    channel_types: int = Field(0, ge=0, description="Channel types loaded from the catalog")
    version: str = Field("1.0.0", description="API version")


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str = Field(..., description="ready or not_ready")
    service: str
    checks: dict[str, str] = Field(..., description="Per-dependency check outcome")
