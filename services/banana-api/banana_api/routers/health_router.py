"""
Health check router.

Provides liveness, readiness and full health endpoints backed by a small
registry of named checks. Each check is tagged; /health/ready only runs the
checks tagged "ready" and /health/live runs none.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, FrozenSet, List, Optional, Tuple

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import settings
from ..logging_config import get_logger
from ..models import HealthCheckResult, HealthResponse

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class HealthCheck:
    """A named check returning (is_healthy, description)."""

    name: str
    probe: Callable[[], Tuple[bool, str]]
    tags: FrozenSet[str] = frozenset()


def _self_check() -> Tuple[bool, str]:
    return True, "API is running"


def _weather_check() -> Tuple[bool, str]:
    return True, "Weather service is available"


def _analytics_check() -> Tuple[bool, str]:
    if settings.ANALYTICS_MOCK_MODE:
        return True, "Analytics served from mock data"
    return False, "Analytics backend is not configured"


HEALTH_CHECKS: List[HealthCheck] = [
    HealthCheck("self", _self_check),
    HealthCheck("weather_service", _weather_check, frozenset({"weather", "service"})),
    HealthCheck("analytics_service", _analytics_check, frozenset({"ready"})),
]


def run_checks(predicate: Optional[Callable[[HealthCheck], bool]] = None) -> JSONResponse:
    """
    Run the registered checks selected by ``predicate``.

    Returns 200 when every selected check passes and 503 otherwise.
    """
    results = {}
    for check in HEALTH_CHECKS:
        if predicate is not None and not predicate(check):
            continue
        try:
            ok, description = check.probe()
        except Exception as e:
            logger.error("Health check raised", check=check.name, error=str(e))
            ok, description = False, "Health check failed"
        results[check.name] = HealthCheckResult(
            status=HEALTHY if ok else UNHEALTHY, description=description
        )

    healthy = all(result.status == HEALTHY for result in results.values())
    body = HealthResponse(
        status=HEALTHY if healthy else UNHEALTHY,
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        checks=results,
    )

    if not healthy:
        logger.warning(
            "Health check failing",
            checks={name: r.status for name, r in results.items()},
        )

    return JSONResponse(
        status_code=200 if healthy else 503,
        content=body.model_dump(),
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check():
    """Run every registered check."""
    return run_checks()


@router.get("/health/ready", response_model=HealthResponse, summary="Readiness check")
async def readiness_check():
    """Run the checks tagged "ready"."""
    return run_checks(lambda check: "ready" in check.tags)


@router.get("/health/live", response_model=HealthResponse, summary="Liveness check")
async def liveness_check():
    """
    Liveness probe.

    Runs no checks: answering at all means the process is alive.
    """
    return run_checks(lambda check: False)
