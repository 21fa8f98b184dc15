"""
Banana analytics router.

Serves the mock analytics summary, production by year and sales by region.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from ..metrics import track_api_request
from ..models import AnalyticsResponse, ProductionResponse, SalesResponse
from ..rate_limiter import API_POLICY, require_rate_limit
from ..services import analytics_service

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_rate_limit(API_POLICY))],
)


@router.get("", response_model=AnalyticsResponse, name="GetBananaAnalytics")
async def get_banana_analytics():
    """Full analytics: summary, production rows and sales rows."""
    with track_api_request("/api/analytics"):
        analytics = analytics_service.get_banana_analytics()
        return AnalyticsResponse.from_entity(analytics)


@router.get(
    "/production/{year}",
    response_model=List[ProductionResponse],
    name="GetBananaProduction",
)
async def get_production(
    year: int = Path(..., ge=1, le=9999, description="Production year"),
):
    """Monthly production for every region in a year."""
    with track_api_request("/api/analytics/production"):
        productions = analytics_service.get_production_data(year)
        return [ProductionResponse.from_entity(p) for p in productions]


@router.get("/sales", response_model=List[SalesResponse], name="GetBananaSales")
async def get_sales(
    region: Optional[str] = Query(
        None, max_length=100, description="Region filter, defaults to all"
    ),
):
    """Sales figures per country."""
    with track_api_request("/api/analytics/sales"):
        sales = analytics_service.get_sales_data(region or analytics_service.ALL_REGIONS)
        return [SalesResponse.from_entity(s) for s in sales]
