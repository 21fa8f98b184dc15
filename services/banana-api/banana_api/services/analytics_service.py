"""
Mock banana analytics.

Stands in for a query against an analytics warehouse. Production, sales and
the combined summary are generated from fixed region, variety and country
lists with plausible random figures. Only mock mode exists; with mock mode
off every operation raises AnalyticsBackendUnavailableException.
"""

import random
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..config import settings
from ..domain.entities import (AnalyticsSummary, BananaAnalytics,
                               ProductionRecord, SalesRecord)
from ..exceptions import AnalyticsBackendUnavailableException, ValidationException
from ..logging_config import get_logger, sanitize_for_logging
from ..tracing import add_span_event, trace_operation

logger = get_logger(__name__)

REGIONS = (
    "Latin America",
    "Southeast Asia",
    "East Africa",
    "Caribbean",
    "Pacific Islands",
    "West Africa",
)

VARIETIES = (
    "Cavendish",
    "Plantain",
    "Red Banana",
    "Lady Finger",
    "Blue Java",
    "Burro",
)

COUNTRIES = (
    "Ecuador",
    "Philippines",
    "India",
    "China",
    "Brazil",
    "Indonesia",
    "Tanzania",
    "Costa Rica",
    "Colombia",
    "Guatemala",
)

ALL_REGIONS = "all"
MOCK_DATA_SOURCE = "Databricks SQL Warehouse (Mock)"


def _ensure_mock_mode(mock_mode: Optional[bool]) -> bool:
    enabled = settings.ANALYTICS_MOCK_MODE if mock_mode is None else mock_mode
    if not enabled:
        raise AnalyticsBackendUnavailableException(
            "no warehouse connection is configured; enable ANALYTICS_MOCK_MODE"
        )
    return enabled


def get_production_data(
    year: int,
    rng: Optional[random.Random] = None,
    mock_mode: Optional[bool] = None,
) -> List[ProductionRecord]:
    """
    Generate monthly production for every region in ``year``.

    Args:
        year: Production year, 1..9999
        rng: Random source, a fresh generator when None
        mock_mode: Override of ANALYTICS_MOCK_MODE

    Returns:
        One record per region and month, in region order then month order
    """
    if not 1 <= year <= 9999:
        raise ValidationException("year", year, "must be between 1 and 9999")

    enabled = _ensure_mock_mode(mock_mode)
    rng = rng or random.Random()

    with trace_operation(
        "GetProductionData",
        {"analytics.query_year": year, "analytics.mock_mode": enabled},
    ) as span:
        productions = [
            ProductionRecord(
                region=region,
                year=year,
                month=month,
                tons_produced=float(rng.randrange(10_000, 500_000)),
                quality_score=round(rng.random() * 2 + 3, 2),
                variety_name=rng.choice(VARIETIES),
                export_percentage=round(rng.random() * 60 + 20, 2),
            )
            for region in REGIONS
            for month in range(1, 13)
        ]
        span.set_attribute("analytics.records_returned", len(productions))

    logger.info("Retrieved production records", year=year, count=len(productions))
    return productions


def get_sales_data(
    region: Optional[str] = ALL_REGIONS,
    rng: Optional[random.Random] = None,
    mock_mode: Optional[bool] = None,
) -> List[SalesRecord]:
    """
    Generate sales figures for every country.

    The region is recorded on the span and in the logs; the mock data
    is the same country list whatever region is asked for.
    """
    region = region or ALL_REGIONS
    enabled = _ensure_mock_mode(mock_mode)
    rng = rng or random.Random()
    safe_region = sanitize_for_logging(region)

    with trace_operation(
        "GetSalesData",
        {"analytics.query_region": safe_region, "analytics.mock_mode": enabled},
    ) as span:
        sales = [
            SalesRecord(
                country=country,
                total_sales=round(rng.random() * 10_000_000 + 500_000, 2),
                total_units=rng.randrange(100_000, 5_000_000),
                average_price=round(rng.random() * 3 + 1, 2),
                market_share_percent=round(rng.random() * 25 + 5, 2),
            )
            for country in COUNTRIES
        ]
        span.set_attribute("analytics.records_returned", len(sales))

    logger.info("Retrieved sales records", region=safe_region, count=len(sales))
    return sales


def summarize(
    productions: Sequence[ProductionRecord], sales: Sequence[SalesRecord]
) -> AnalyticsSummary:
    """
    Compute summary totals from the given rows.

    Quality is averaged weighted by tons produced. Ties for the top region
    and the most popular variety go to the one seen first.
    """
    total_tons = sum(p.tons_produced for p in productions)

    if total_tons > 0:
        average_quality = round(
            sum(p.quality_score * p.tons_produced for p in productions) / total_tons,
            2,
        )
    else:
        average_quality = 0.0

    tons_by_region: Dict[str, float] = defaultdict(float)
    for production in productions:
        tons_by_region[production.region] += production.tons_produced

    top_region = max(tons_by_region, key=tons_by_region.__getitem__, default="")

    variety_counts = Counter(p.variety_name for p in productions).most_common(1)
    top_variety = variety_counts[0][0] if variety_counts else ""

    return AnalyticsSummary(
        total_production_tons=total_tons,
        global_average_quality=average_quality,
        total_revenue=round(sum(s.total_sales for s in sales), 2),
        countries_served=len({s.country for s in sales}),
        top_producing_region=top_region,
        most_popular_variety=top_variety,
    )


def get_banana_analytics(
    rng: Optional[random.Random] = None,
    mock_mode: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> BananaAnalytics:
    """
    Build the full analytics payload for the current year.

    All production rows are returned so the summary totals can be checked
    against them.
    """
    enabled = _ensure_mock_mode(mock_mode)
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    with trace_operation("GetBananaAnalytics", {"analytics.mock_mode": enabled}):
        add_span_event("Generating mock data")
        productions = get_production_data(now.year, rng=rng, mock_mode=enabled)
        sales = get_sales_data(ALL_REGIONS, rng=rng, mock_mode=enabled)
        summary = summarize(productions, sales)

    logger.info(
        "Generated mock analytics",
        production_tons=summary.total_production_tons,
        revenue=summary.total_revenue,
        countries=summary.countries_served,
    )

    return BananaAnalytics(
        generated_at=now,
        data_source=MOCK_DATA_SOURCE,
        productions=tuple(productions),
        sales=tuple(sales),
        summary=summary,
    )
