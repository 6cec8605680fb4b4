"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry
import structlog

from .config import settings

SERVICE_NAME = "channel-sync-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Synchronization metrics
SYNC_ATTEMPTS = Counter(
    'channel_sync_attempts_total',
    'Synchronization attempts by terminal status',
    ['channel_type', 'sync_type', 'status'],
    registry=REGISTRY
)

SYNC_DURATION = Histogram(
    'channel_sync_duration_seconds',
    'Duration of a single channel synchronization attempt',
    ['channel_type', 'sync_type'],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
    registry=REGISTRY
)

OTA_CALLS = Counter(
    'ota_calls_total',
    'Outbound OTA protocol calls',
    ['channel_type', 'operation', 'outcome'],
    registry=REGISTRY
)

INVENTORY_RECORDS_GENERATED = Counter(
    'inventory_records_generated_total',
    'Inventory records produced by the inventory generator',
    registry=REGISTRY
)

RESERVATIONS_PULLED = Counter(
    'channel_reservations_pulled_total',
    'Reservations pulled from OTA channels',
    ['channel_type'],
    registry=REGISTRY
)

STALE_SYNC_LOGS_RECONCILED = Counter(
    'channel_sync_logs_reconciled_total',
    'Pending sync logs demoted to failed by the reconciliation sweep',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _service_resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_service_resource())

    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_service_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy():
    """Instrument SQLAlchemy with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Collector for synchronization metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_sync_attempt(channel_type: str, sync_type: str, status: str, duration_seconds: float):
        """Record the terminal outcome of one sync attempt."""
        SYNC_ATTEMPTS.labels(channel_type=channel_type, sync_type=sync_type, status=status).inc()
        SYNC_DURATION.labels(channel_type=channel_type, sync_type=sync_type).observe(duration_seconds)

    @staticmethod
    def record_ota_call(channel_type: str, operation: str, success: bool):
        OTA_CALLS.labels(
            channel_type=channel_type,
            operation=operation,
            outcome="success" if success else "failure",
        ).inc()

    @staticmethod
    def record_inventory_generated(count: int):
        INVENTORY_RECORDS_GENERATED.inc(count)

    @staticmethod
    def record_reservations_pulled(channel_type: str, count: int):
        RESERVATIONS_PULLED.labels(channel_type=channel_type).inc(count)

    @staticmethod
    def record_stale_logs_reconciled(count: int):
        STALE_SYNC_LOGS_RECONCILED.inc(count)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Structured logger with business context."""

    def __init__(self, name_or_logger):
        if isinstance(name_or_logger, str):
            self.logger = structlog.get_logger(name_or_logger)
        else:
            self.logger = name_or_logger

    def info(self, message: str, **kwargs):
        """Log info message with context."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with context."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with context."""
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message with context."""
        self.logger.debug(message, **kwargs)

    def with_context(self, **kwargs) -> "StructuredLogger":
        """Add context to logger."""
        return StructuredLogger(self.logger.bind(**kwargs))


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)
