"""
Grafana-banana API - Main FastAPI Application.

Serves mock weather forecasts and banana analytics behind a fixed middleware
chain (security headers, rate limiting, content scan) and exposes metrics,
traces and structured logs for the Grafana/Prometheus/Tempo/Loki stack.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from .config import settings
from .exceptions import (AnalyticsBackendUnavailableException,
                         RateLimitExceededException, ValidationException)
from .logging_config import get_logger, get_request_id, setup_logging
from .metrics import metrics_endpoint, track_request_metrics
from .middleware import (ErrorHandlingMiddleware, PrometheusMiddleware,
                         RequestLoggingMiddleware)
from .models import error_response
from .rate_limiter import (GLOBAL_POLICY, GlobalRateLimitMiddleware,
                           rate_limit_response, rate_limiters)
from .routers import analytics_router, diagnostics_router, forecast_router, health_router
from .security import (InputValidationMiddleware, PatternScanner,
                       SecurityHeadersMiddleware, configure_cors)
from .tracing import configure_opentelemetry, instrument_fastapi

setup_logging(
    log_level=settings.LOG_LEVEL,
    service_name=settings.SERVICE_NAME,
    use_json=settings.JSON_LOGS,
)
logger = get_logger(__name__)

configure_opentelemetry(
    service_name=settings.SERVICE_NAME,
    service_version=settings.SERVICE_VERSION,
    otlp_endpoint=settings.OTLP_ENDPOINT,
    environment=settings.ENVIRONMENT,
    enable_tracing=settings.ENABLE_TRACING,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Logs the effective configuration on startup and drops rate limiter
    state on shutdown.
    """
    logger.info(
        "Starting Grafana-banana API",
        service_name=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
        tracing_enabled=settings.ENABLE_TRACING,
        analytics_mock_mode=settings.ANALYTICS_MOCK_MODE,
        denylist_patterns=len(settings.DENYLIST_PATTERNS),
    )

    yield

    logger.info("Shutting down Grafana-banana API")
    rate_limiters.reset()


app = FastAPI(
    title="Grafana-banana API",
    description="Mock weather and banana analytics API wired for observability",
    version=settings.SERVICE_VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware (order matters - last added runs first):
# metrics -> logging -> security headers -> errors -> rate limit -> content scan -> CORS
configure_cors(app, settings.CORS_ALLOWED_ORIGINS)
app.add_middleware(
    InputValidationMiddleware,
    scanner=PatternScanner(settings.DENYLIST_PATTERNS),
    max_body_bytes=settings.MAX_REQUEST_BODY_BYTES,
)
app.add_middleware(
    GlobalRateLimitMiddleware,
    registry=rate_limiters,
    policy_name=GLOBAL_POLICY,
    exempt_paths=settings.RATE_LIMIT_EXEMPT_PATHS,
)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(SecurityHeadersMiddleware, is_development=settings.is_development)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(PrometheusMiddleware, track_func=track_request_metrics)

instrument_fastapi(app, excluded_urls="/health,/metrics")

app.include_router(health_router.router)
app.include_router(forecast_router.router)
app.include_router(analytics_router.router)
app.include_router(diagnostics_router.router)
app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "status": "operational",
        "health": "/health",
        "metrics": "/metrics",
    }


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    """Map domain validation failures to 400."""
    logger.info(
        "Validation failed",
        path=request.url.path,
        field=exc.field_name,
        reason=exc.reason,
    )
    return error_response(400, "validation_error", exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Map malformed or out-of-range parameters to 400."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(400, "validation_error", problems)


@app.exception_handler(RateLimitExceededException)
async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
):
    """Map route-level rate limit rejections to 429."""
    return rate_limit_response(exc)


@app.exception_handler(AnalyticsBackendUnavailableException)
async def analytics_unavailable_handler(
    request: Request, exc: AnalyticsBackendUnavailableException
):
    """Map a missing analytics backend to 503."""
    logger.error("Analytics backend unavailable", path=request.url.path)
    return error_response(
        503, "service_unavailable", "Analytics are temporarily unavailable"
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last resort for exceptions raised outside ErrorHandlingMiddleware.

    Route errors are answered by the middleware; this only sees failures in
    the outer metrics and logging layers.
    """
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )

    return error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred",
        request_id=get_request_id() or request.headers.get("X-Request-ID"),
    )
