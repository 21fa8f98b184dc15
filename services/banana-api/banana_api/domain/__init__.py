"""
Domain layer - value records produced by the forecast and analytics handlers.

These objects are framework-agnostic and immutable once constructed.
"""

from .entities import (
    ABSOLUTE_ZERO_CELSIUS,
    AnalyticsSummary,
    BananaAnalytics,
    ForecastEntry,
    ProductionRecord,
    SalesRecord,
)

__all__ = [
    "ABSOLUTE_ZERO_CELSIUS",
    "AnalyticsSummary",
    "BananaAnalytics",
    "ForecastEntry",
    "ProductionRecord",
    "SalesRecord",
]
