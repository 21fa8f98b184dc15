"""HTTP routers for the banana API service."""

from . import analytics_router, diagnostics_router, forecast_router, health_router

__all__ = [
    "analytics_router",
    "diagnostics_router",
    "forecast_router",
    "health_router",
]
