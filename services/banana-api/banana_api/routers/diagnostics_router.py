"""
Observability diagnostics router.

Endpoints used to check the monitoring stack end to end: a pointer to the
custom metrics, a traced request with artificial latency and a request that
always fails.
"""

import asyncio
import random
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..config import settings
from ..logging_config import get_logger
from ..rate_limiter import STRICT_POLICY, require_rate_limit
from ..tracing import add_span_event, current_trace_ids, trace_operation

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["diagnostics"],
    dependencies=[Depends(require_rate_limit(STRICT_POLICY))],
)


@router.get("/metrics/custom", name="GetCustomMetrics")
async def custom_metrics():
    """Describe the service and where its metrics are exposed."""
    logger.info("Custom metrics endpoint called")

    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime": datetime.now(timezone.utc).isoformat(),
        "metrics": {
            "requestsTotal": "Available at /metrics",
            "activeRequests": "Available at /metrics",
            "requestDuration": "Available at /metrics",
        },
    }


@router.get("/trace/test", name="TestTracing")
async def trace_test():
    """Emit a span with events around a short random delay."""
    with trace_operation("TraceTest", {"test.endpoint": "trace-test"}):
        logger.info("Testing distributed tracing")
        add_span_event("Starting trace test")

        await asyncio.sleep(random.randint(10, 100) / 1000)

        add_span_event("Trace test completed")
        ids = current_trace_ids()

    return {"message": "Tracing test completed", **ids}


@router.get("/error/test", name="TestError")
async def error_test():
    """Raise on purpose to exercise error tracking."""
    logger.warning("Testing error tracking - this is intentional")
    raise RuntimeError("This is a test exception for observability testing")
