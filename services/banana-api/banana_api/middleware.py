"""
Middleware components for request logging, error handling and HTTP metrics.

Provides request tracing with X-Request-ID, request/response logging and
Prometheus request metrics for every endpoint.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import (clear_request_id, get_logger, get_request_id,
                             sanitize_for_logging, set_request_id)
from .models import error_response

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request and response with timing and a request ID.

    The ID is taken from the X-Request-ID header when present, bound to the
    logging context for the duration of the request and echoed back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming_id = request.headers.get("X-Request-ID")
        request_id = set_request_id(sanitize_for_logging(incoming_id)[:64] or None)

        start_time = time.perf_counter()
        path = sanitize_for_logging(request.url.path)

        logger.info(
            "Request started",
            method=request.method,
            path=path,
            client_host=request.client.host if request.client else None,
            user_agent=sanitize_for_logging(request.headers.get("user-agent")),
        )

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "Request completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            return response
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                method=request.method,
                path=path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
            )
            raise
        finally:
            clear_request_id()


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turn unhandled exceptions into a generic 500 response.

    Sits inside the security headers and request logging middleware, so the
    500 still carries security headers and the request ID. Exception details
    are logged, never returned.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled exception",
                method=request.method,
                path=sanitize_for_logging(request.url.path),
                error=str(exc),
                exc_info=exc,
            )
            return error_response(
                500,
                "internal_server_error",
                "An unexpected error occurred",
                request_id=get_request_id(),
            )


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Track Prometheus metrics for all HTTP requests.

    Tracks:
    - Request count by method, endpoint, and status code
    - Request duration by method and endpoint
    """

    def __init__(self, app: ASGIApp, track_func: Callable):
        """
        Initialize the middleware.

        Args:
            app: FastAPI application
            track_func: Function to call for tracking metrics (method, endpoint, status, duration)
        """
        super().__init__(app)
        self.track_func = track_func

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # Route templates keep label cardinality bounded (/production/{year})
            route = request.scope.get("route")
            endpoint = getattr(route, "path", None) or "unmatched"
            self.track_func(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
                duration=time.perf_counter() - start_time,
            )
