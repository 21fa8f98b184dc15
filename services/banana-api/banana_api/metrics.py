"""
Prometheus metrics for the banana API service.

Tracks HTTP traffic, per-endpoint API usage, forecast requests and
requests refused by the security layer.
"""

import time
from contextlib import contextmanager
from typing import Iterator

from fastapi import Response
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               generate_latest)

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
)

# API metrics
api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["endpoint"],
)

api_requests_active = Gauge(
    "api_requests_active",
    "Number of active API requests",
)

api_request_duration_ms = Histogram(
    "api_request_duration_ms",
    "API request duration in milliseconds",
    ["endpoint", "status"],
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500),
)

weather_forecast_requests_total = Counter(
    "weather_forecast_requests_total",
    "Number of weather forecast requests",
)

# Security metrics
rate_limit_rejections_total = Counter(
    "rate_limit_rejections_total",
    "Requests rejected by the rate limiter",
    ["policy"],
)

security_rejections_total = Counter(
    "security_rejections_total",
    "Requests rejected by the security layer",
    ["reason"],
)


def track_request_metrics(
    method: str, endpoint: str, status_code: int, duration: float
):
    """Track HTTP request metrics."""
    http_requests_total.labels(
        method=method, endpoint=endpoint, status=status_code
    ).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )


def track_api_request_started(endpoint: str):
    """Count an API request and mark it active."""
    api_requests_total.labels(endpoint=endpoint).inc()
    api_requests_active.inc()


def track_api_request_finished(endpoint: str, status: str, duration_ms: float):
    """Record API request duration and release the active slot."""
    api_requests_active.dec()
    api_request_duration_ms.labels(endpoint=endpoint, status=status).observe(
        duration_ms
    )


@contextmanager
def track_api_request(endpoint: str) -> Iterator[None]:
    """
    Wrap one handler invocation with the API request metrics.

    The active gauge is released even when the handler raises.
    """
    track_api_request_started(endpoint)
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        track_api_request_finished(endpoint, status, duration_ms)


def track_forecast_request():
    """Track weather forecast requests."""
    weather_forecast_requests_total.inc()


def track_rate_limit_rejection(policy: str):
    """Track a request refused by a rate limit policy."""
    rate_limit_rejections_total.labels(policy=policy).inc()


def track_security_rejection(reason: str):
    """Track a request refused by the security middleware."""
    security_rejections_total.labels(reason=reason).inc()


async def metrics_endpoint():
    """
    Prometheus metrics endpoint.

    Returns:
        Response with Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
