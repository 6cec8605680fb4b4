"""Custom middleware for request tracking, tracing, and logging."""

import re
import time
import uuid
import logging
from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog

from .config import settings
from .observability import metrics_collector

logger = logging.getLogger(__name__)

HOTEL_HEADER = "X-Hotel-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    The request ID is taken from the X-Request-ID header or generated. It is
    echoed on the response and bound into the structlog context so adapter
    logs for outbound OTA calls carry the same correlation ID.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        hotel_id = request.headers.get(HOTEL_HEADER)
        if hotel_id:
            structlog.contextvars.bind_contextvars(hotel_id=hotel_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[self.header_name] = request_id
        return response


class TraceContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that handles W3C Trace Context headers.

    https://www.w3.org/TR/trace-context/
    """

    traceparent_pattern = re.compile(
        r"^([0-9a-f]{2})-([0-9a-f]{32})-([0-9a-f]{16})-([0-9a-f]{2})$"
    )

    def _parse_traceparent(self, traceparent: str) -> Optional[dict]:
        """Parse W3C traceparent header."""
        match = self.traceparent_pattern.match(traceparent)
        if not match:
            return None

        version, trace_id, parent_id, flags = match.groups()

        # Only version 00 is defined; all-zero ids are invalid
        if version != "00" or trace_id == "0" * 32 or parent_id == "0" * 16:
            return None

        return {"trace_id": trace_id, "parent_id": parent_id, "flags": flags}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        traceparent = request.headers.get("traceparent")
        tracestate = request.headers.get("tracestate")

        trace_context = self._parse_traceparent(traceparent) if traceparent else None

        if trace_context:
            trace_id = trace_context["trace_id"]
            parent_span_id = trace_context["parent_id"]
            flags = trace_context["flags"]
        else:
            trace_id = uuid.uuid4().hex
            parent_span_id = None
            flags = "01"

        span_id = uuid.uuid4().hex[:16]

        request.state.trace_context = {
            "trace_id": trace_id,
            "span_id": span_id,
            "parent_span_id": parent_span_id,
            "flags": flags,
            "tracestate": tracestate,
        }

        response = await call_next(request)

        response.headers["traceparent"] = f"00-{trace_id}-{span_id}-{flags}"
        if tracestate:
            response.headers["tracestate"] = tracestate

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs HTTP requests and responses.

    Records timing, status code, the calling hotel and correlation IDs, and
    feeds the Prometheus request metrics.
    """

    def __init__(self, app: ASGIApp, skip_paths: Optional[list] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or ["/health", "/ready", "/metrics", "/favicon.ico"]

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    def _endpoint_label(self, request: Request) -> str:
        # Route templates keep metric cardinality bounded
        route = request.scope.get("route")
        return getattr(route, "path", request.url.path)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        trace_context = getattr(request.state, "trace_context", {})

        log_data = {
            "request_id": getattr(request.state, "request_id", "unknown"),
            "trace_id": trace_context.get("trace_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
            "hotel_id": request.headers.get(HOTEL_HEADER),
            "client_ip": self._get_client_ip(request),
        }

        logger.debug("HTTP request started", extra=log_data)

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        status_code = response.status_code
        log_data.update({
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 2),
        })

        metrics_collector.record_request(
            request.method, self._endpoint_label(request), status_code, duration
        )

        if status_code >= 500:
            logger.error("HTTP request completed with server error", extra=log_data)
        elif status_code >= 400:
            logger.warning("HTTP request completed with client error", extra=log_data)
        else:
            logger.info("HTTP request completed successfully", extra=log_data)

        return response


def setup_middleware(app, enable_logging: bool = True) -> None:
    """
    Setup all middleware on the FastAPI app.

    Args:
        app: FastAPI application instance
        enable_logging: Whether to enable request logging middleware
    """
    # Last added runs first
    if enable_logging:
        app.add_middleware(LoggingMiddleware)

    app.add_middleware(TraceContextMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.debug(
        "Middleware configured",
        extra={"logging_enabled": enable_logging, "environment": settings.environment}
    )
