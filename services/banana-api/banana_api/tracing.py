"""
OpenTelemetry instrumentation for the banana API service.

Provides exporter setup, FastAPI instrumentation and a small helper for
custom spans around handler work.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from .logging_config import get_logger

logger = get_logger(__name__)

tracer = trace.get_tracer("grafana_banana")


def configure_opentelemetry(
    service_name: str,
    service_version: str = "1.0.0",
    otlp_endpoint: str = "http://tempo:4317",
    environment: str = "production",
    enable_tracing: bool = True,
) -> None:
    """
    Configure OpenTelemetry tracing for the service.

    Args:
        service_name: Name of the service
        service_version: Version of the service
        otlp_endpoint: OTLP gRPC endpoint (Tempo in the compose stack)
        environment: Deployment environment attribute
        enable_tracing: Whether to export traces (disabled for local dev and tests)
    """
    if not enable_tracing:
        logger.info("Tracing export disabled")
        return

    resource = Resource.create(
        {
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": environment,
        }
    )

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(tracer_provider)

    logger.info("Tracing configured", otlp_endpoint=otlp_endpoint)


def instrument_fastapi(app: FastAPI, excluded_urls: Optional[str] = None) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: FastAPI application instance
        excluded_urls: Comma-separated list of URL patterns to exclude from tracing
    """
    if excluded_urls is None:
        excluded_urls = "/health,/metrics"

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=excluded_urls,
        tracer_provider=trace.get_tracer_provider(),
    )


@contextmanager
def trace_operation(
    operation_name: str,
    attributes: Optional[Dict[str, Any]] = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for tracing operations with attributes.

    Exceptions are recorded on the span and re-raised.

    Example:
        with trace_operation("GetProductionData", {"analytics.query_year": 2025}) as span:
            rows = build_rows()
            span.set_attribute("analytics.records_returned", len(rows))
    """
    with tracer.start_as_current_span(operation_name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def add_span_event(name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
    """Add an event to the current span if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})


def current_trace_ids() -> Dict[str, Optional[str]]:
    """
    Return hex trace and span IDs of the current span.

    Both values are None when no span is active.
    """
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return {"traceId": None, "spanId": None}
    return {
        "traceId": format(context.trace_id, "032x"),
        "spanId": format(context.span_id, "016x"),
    }
