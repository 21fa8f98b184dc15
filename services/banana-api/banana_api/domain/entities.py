"""
Domain entities for forecast and banana analytics data.

Core value objects returned by the handlers. They validate their own
invariants on creation and cannot be modified afterwards.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..exceptions import ValidationException

ABSOLUTE_ZERO_CELSIUS = -273


def _require_percentage(field_name: str, value: float) -> None:
    if not 0 <= value <= 100:
        raise ValidationException(field_name, value, "must be between 0 and 100")


def _require_non_negative(field_name: str, value: float) -> None:
    if value < 0:
        raise ValidationException(field_name, value, "must not be negative")


@dataclass(frozen=True)
class ForecastEntry:
    """
    A single day of weather forecast.

    Temperatures below absolute zero are rejected on creation.
    """

    date: date
    temperature_celsius: int
    summary: Optional[str] = None

    def __post_init__(self):
        """Validate the temperature on creation."""
        if self.temperature_celsius < ABSOLUTE_ZERO_CELSIUS:
            raise ValidationException(
                "temperature_celsius",
                self.temperature_celsius,
                "Temperature cannot be below absolute zero",
            )

    @property
    def temperature_fahrenheit(self) -> int:
        """Temperature converted to Fahrenheit, rounded to a whole degree."""
        return 32 + round(self.temperature_celsius * 9 / 5)


@dataclass(frozen=True)
class ProductionRecord:
    """Monthly banana production for one region."""

    region: str
    year: int
    month: int
    tons_produced: float
    quality_score: float
    variety_name: str
    export_percentage: float

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValidationException("month", self.month, "must be between 1 and 12")
        _require_non_negative("tons_produced", self.tons_produced)
        _require_percentage("export_percentage", self.export_percentage)


@dataclass(frozen=True)
class SalesRecord:
    """Banana sales figures for one country."""

    country: str
    total_sales: float
    total_units: int
    average_price: float
    market_share_percent: float

    def __post_init__(self):
        _require_non_negative("total_sales", self.total_sales)
        _require_non_negative("total_units", self.total_units)
        _require_non_negative("average_price", self.average_price)
        _require_percentage("market_share_percent", self.market_share_percent)


@dataclass(frozen=True)
class AnalyticsSummary:
    """Totals derived from the production and sales rows of one response."""

    total_production_tons: float
    global_average_quality: float
    total_revenue: float
    countries_served: int
    top_producing_region: str
    most_popular_variety: str


@dataclass(frozen=True)
class BananaAnalytics:
    """
    Full analytics payload.

    The summary is computed from exactly the rows carried here, so the
    totals always agree with the detail rows.
    """

    generated_at: datetime
    data_source: str
    productions: Tuple[ProductionRecord, ...]
    sales: Tuple[SalesRecord, ...]
    summary: AnalyticsSummary
