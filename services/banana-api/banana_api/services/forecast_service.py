"""
Weather forecast generation.

Produces randomized forecast entries for the next N days. Nothing is stored;
every call builds fresh values.
"""

import random
from datetime import date, timedelta
from typing import List, Optional

from ..domain.entities import ForecastEntry
from ..exceptions import ValidationException
from ..logging_config import get_logger
from ..tracing import trace_operation

logger = get_logger(__name__)

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)

DEFAULT_FORECAST_DAYS = 5

# Half-open range [-20, 55)
MIN_TEMPERATURE_C = -20
MAX_TEMPERATURE_C = 55


def generate_forecast(
    days: int = DEFAULT_FORECAST_DAYS,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> List[ForecastEntry]:
    """
    Generate a forecast for the days following ``today``.

    Args:
        days: Number of entries to produce
        rng: Random source, the module generator when None
        today: Reference date, the local current date when None

    Returns:
        Exactly ``days`` entries dated today + 1 .. today + days

    Raises:
        ValidationException: If days is negative
    """
    if days < 0:
        raise ValidationException("days", days, "must not be negative")

    rng = rng or random.Random()
    today = today or date.today()

    with trace_operation("GenerateWeatherForecast", {"forecast.days": days}) as span:
        forecasts = [
            ForecastEntry(
                date=today + timedelta(days=index),
                temperature_celsius=rng.randrange(MIN_TEMPERATURE_C, MAX_TEMPERATURE_C),
                summary=rng.choice(SUMMARIES),
            )
            for index in range(1, days + 1)
        ]
        span.set_attribute("forecast.entries_returned", len(forecasts))

    logger.info("Generated weather forecast", count=len(forecasts))
    return forecasts
