"""Common Pydantic schemas."""

from datetime import date
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, model_validator


def _id_to_str(value: Any) -> Any:
    return str(value) if value is not None else value


# UUID primary keys rendered as strings in responses
IdStr = Annotated[str, BeforeValidator(_id_to_str)]


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(None, description="Application-specific error code")
    retryable: Optional[bool] = Field(None, description="Whether the operation can be retried")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


class PaginatedResponse(BaseModel):
    """Base class for offset-paginated responses."""

    total: int = Field(..., ge=0, description="Total matching rows")
    limit: int = Field(..., ge=1, description="Page size")
    offset: int = Field(..., ge=0, description="Rows skipped")


class DateRange(BaseModel):
    """Optional inclusive date range; missing ends are filled by the caller."""

    start_date: Optional[date] = Field(None, description="First day (inclusive)")
    end_date: Optional[date] = Field(None, description="Last day (inclusive)")

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self
