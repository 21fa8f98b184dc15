"""
Pydantic response models.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON consumed by the Angular frontend.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse

from .domain.entities import (AnalyticsSummary, BananaAnalytics, ForecastEntry,
                              ProductionRecord, SalesRecord)


class CamelModel(BaseModel):
    """Base model serializing by alias."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ForecastEntryResponse(CamelModel):
    """One forecast day."""

    date: date
    temperature_c: int = Field(alias="temperatureC")
    temperature_f: int = Field(alias="temperatureF")
    summary: Optional[str] = None

    @classmethod
    def from_entity(cls, entry: ForecastEntry) -> "ForecastEntryResponse":
        return cls(
            date=entry.date,
            temperature_c=entry.temperature_celsius,
            temperature_f=entry.temperature_fahrenheit,
            summary=entry.summary,
        )


class ProductionResponse(CamelModel):
    """Monthly production row."""

    region: str
    year: int
    month: int
    tons_produced: float = Field(alias="tonsProduced")
    average_quality_score: float = Field(alias="averageQualityScore")
    variety_name: str = Field(alias="varietyName")
    export_percentage: float = Field(alias="exportPercentage")

    @classmethod
    def from_entity(cls, record: ProductionRecord) -> "ProductionResponse":
        return cls(
            region=record.region,
            year=record.year,
            month=record.month,
            tons_produced=record.tons_produced,
            average_quality_score=record.quality_score,
            variety_name=record.variety_name,
            export_percentage=record.export_percentage,
        )


class SalesResponse(CamelModel):
    """Per-country sales row."""

    country: str
    total_sales: float = Field(alias="totalSales")
    total_bunches: int = Field(alias="totalBunches")
    average_price: float = Field(alias="averagePrice")
    market_share: float = Field(alias="marketShare")

    @classmethod
    def from_entity(cls, record: SalesRecord) -> "SalesResponse":
        return cls(
            country=record.country,
            total_sales=record.total_sales,
            total_bunches=record.total_units,
            average_price=record.average_price,
            market_share=record.market_share_percent,
        )


class SummaryResponse(CamelModel):
    """Summary totals of an analytics response."""

    total_production_tons: float = Field(alias="totalProductionTons")
    global_average_quality: float = Field(alias="globalAverageQuality")
    total_revenue: float = Field(alias="totalRevenue")
    countries_served: int = Field(alias="countriesServed")
    top_producing_region: str = Field(alias="topProducingRegion")
    most_popular_variety: str = Field(alias="mostPopularVariety")

    @classmethod
    def from_entity(cls, summary: AnalyticsSummary) -> "SummaryResponse":
        return cls(
            total_production_tons=summary.total_production_tons,
            global_average_quality=summary.global_average_quality,
            total_revenue=summary.total_revenue,
            countries_served=summary.countries_served,
            top_producing_region=summary.top_producing_region,
            most_popular_variety=summary.most_popular_variety,
        )


class AnalyticsResponse(CamelModel):
    """Full analytics payload."""

    generated_at: datetime = Field(alias="generatedAt")
    data_source: str = Field(alias="dataSource")
    productions: List[ProductionResponse]
    sales: List[SalesResponse]
    summary: SummaryResponse

    @classmethod
    def from_entity(cls, analytics: BananaAnalytics) -> "AnalyticsResponse":
        return cls(
            generated_at=analytics.generated_at,
            data_source=analytics.data_source,
            productions=[ProductionResponse.from_entity(p) for p in analytics.productions],
            sales=[SalesResponse.from_entity(s) for s in analytics.sales],
            summary=SummaryResponse.from_entity(analytics.summary),
        )


class HealthCheckResult(BaseModel):
    """Outcome of a single health check."""

    status: str
    description: str


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    service: str
    version: str
    checks: Dict[str, HealthCheckResult] = {}


class ErrorResponse(BaseModel):
    """Error body returned for rejected requests."""

    error: str
    message: str
    request_id: Optional[str] = None


def error_response(
    status_code: int,
    error: str,
    message: str,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """
    Build a JSON error response.

    ``request_id`` is only included when known.
    """
    body = ErrorResponse(error=error, message=message, request_id=request_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )
