"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if detail:
            self.problem_details["detail"] = detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers
        )


class ValidationError(ProblemDetailsException):
    """Exception for request validation errors."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://example.com/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )


class MissingHotelError(ProblemDetailsException):
    """Exception when a hotel-scoped request does not identify its hotel."""

    def __init__(self, detail: str = "Hotel ID required"):
        super().__init__(
            status_code=400,
            title="Hotel Required",
            detail=detail,
            type_uri="https://example.com/problems/hotel-required",
        )


class AuthorizationError(ProblemDetailsException):
    """Exception for authorization errors."""

    def __init__(
        self,
        detail: str = "Insufficient permissions to access this resource",
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=403,
            title="Access Forbidden",
            detail=detail,
            type_uri="https://example.com/problems/access-forbidden",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://example.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri="https://example.com/problems/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


class InternalServerError(ProblemDetailsException):
    """Exception for internal server errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred while processing the request",
        error_id: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not error_id:
            error_id = str(uuid.uuid4())

        extensions = {
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        super().__init__(
            status_code=500,
            title="Internal Server Error",
            detail=detail,
            type_uri="https://example.com/problems/internal-server-error",
            instance=instance,
            extensions=extensions,
        )


# Channel synchronization exceptions

class ChannelOwnershipError(AuthorizationError):
    """Exception when a channel is addressed through a hotel that does not own it."""

    def __init__(self, channel_id: str, hotel_id: str):
        super().__init__(
            detail=f"Channel {channel_id} does not belong to hotel {hotel_id}",
            extensions={
                "code": "CHANNEL_NOT_OWNED",
                "channel_id": channel_id,
                "hotel_id": hotel_id,
            },
        )


class ChannelNotActiveError(ProblemDetailsException):
    """Exception when a sync is requested for a channel that is not active."""

    def __init__(self, channel_id: str, status: str):
        super().__init__(
            status_code=409,
            title="Channel Not Active",
            detail=f"Channel {channel_id} is '{status}'; only active channels can be synchronized",
            type_uri="https://example.com/problems/channel-not-active",
            extensions={
                "code": "CHANNEL_NOT_ACTIVE",
                "channel_id": channel_id,
                "channel_status": status,
                "retryable": False,
            },
        )


class ChannelConfigurationError(ProblemDetailsException):
    """Exception for channel configuration that makes an OTA call impossible."""

    def __init__(
        self,
        detail: str,
        channel_id: Optional[str] = None,
        missing_fields: Optional[list[str]] = None,
    ):
        extensions: Dict[str, Any] = {"code": "CHANNEL_MISCONFIGURED", "retryable": False}
        if channel_id:
            extensions["channel_id"] = channel_id
        if missing_fields:
            extensions["missing_fields"] = missing_fields

        super().__init__(
            status_code=400,
            title="Channel Configuration Error",
            detail=detail,
            type_uri="https://example.com/problems/channel-configuration",
            extensions=extensions,
        )


class ConnectionTestFailedError(ProblemDetailsException):
    """Exception when a new channel fails its pre-save connection test."""

    def __init__(self, channel_type: str, message: str):
        super().__init__(
            status_code=400,
            title="Connection Test Failed",
            detail=f"Connection test against {channel_type} failed: {message}",
            type_uri="https://example.com/problems/connection-test-failed",
            extensions={
                "code": "CONNECTION_TEST_FAILED",
                "channel_type": channel_type,
            },
        )


class SyncLogStateError(ConflictError):
    """Exception when a terminal sync log is asked to transition again."""

    def __init__(self, sync_log_id: str, status: str):
        super().__init__(
            detail=f"Sync log {sync_log_id} is already '{status}' and cannot be updated",
            conflicting_resource={"sync_log_id": sync_log_id, "status": status},
        )
        self.problem_details.update({
            "code": "SYNC_LOG_TERMINAL",
            "retryable": False
        })


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", str(request.url.path))
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )

    problem_details = {
        "type": "https://example.com/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request validation failures as Problem Details with per-field violations.

    Args:
        request: FastAPI request object
        exc: Validation error raised while parsing the request

    Returns:
        JSONResponse: 422 Problem Details response
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]

    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "violation_count": len(violations)}
    )

    return JSONResponse(
        status_code=422,
        content={
            "type": "https://example.com/problems/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "The request data failed validation",
            "instance": str(request.url.path),
            "violations": violations,
        },
        media_type="application/problem+json",
    )
