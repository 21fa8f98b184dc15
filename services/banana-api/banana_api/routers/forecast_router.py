"""
Weather forecast router.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from ..config import settings
from ..logging_config import get_logger
from ..metrics import track_api_request, track_forecast_request
from ..models import ForecastEntryResponse
from ..rate_limiter import API_POLICY, require_rate_limit
from ..services.forecast_service import DEFAULT_FORECAST_DAYS, generate_forecast
from ..tracing import add_span_event

logger = get_logger(__name__)

router = APIRouter(tags=["forecast"])


@router.get(
    "/weatherforecast",
    response_model=List[ForecastEntryResponse],
    name="GetWeatherForecast",
    dependencies=[Depends(require_rate_limit(API_POLICY))],
)
async def get_weather_forecast(
    days: int = Query(
        DEFAULT_FORECAST_DAYS,
        ge=0,
        le=settings.MAX_FORECAST_DAYS,
        description="Number of days to forecast",
    ),
):
    """Generate a randomized forecast for the coming days."""
    with track_api_request("/weatherforecast"):
        track_forecast_request()
        add_span_event("Generating weather forecast")
        logger.info("Generating weather forecast data", days=days)

        forecast = generate_forecast(days)

        add_span_event("Weather forecast generated successfully")
        return [ForecastEntryResponse.from_entity(entry) for entry in forecast]
