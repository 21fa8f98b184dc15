"""
Unit tests for the mock analytics handlers.
"""

from datetime import datetime, timezone

import pytest

from banana_api.domain.entities import ProductionRecord, SalesRecord
from banana_api.exceptions import (AnalyticsBackendUnavailableException,
                                   ValidationException)
from banana_api.services import analytics_service
from banana_api.services.analytics_service import (COUNTRIES, REGIONS, VARIETIES,
                                                   get_banana_analytics,
                                                   get_production_data,
                                                   get_sales_data, summarize)


class TestProductionData:
    """Tests for get_production_data."""

    def test_covers_every_region_and_month(self, rng):
        productions = get_production_data(2025, rng=rng)

        assert len(productions) == len(REGIONS) * 12 == 72
        assert {(p.region, p.month) for p in productions} == {
            (region, month) for region in REGIONS for month in range(1, 13)
        }
        assert all(p.year == 2025 for p in productions)

    def test_values_are_plausible(self, rng):
        for p in get_production_data(2025, rng=rng):
            assert 10_000 <= p.tons_produced < 500_000
            assert 3.0 <= p.quality_score <= 5.0
            assert 20.0 <= p.export_percentage <= 80.0
            assert p.variety_name in VARIETIES

    @pytest.mark.parametrize("year", [0, -5, 10_000])
    def test_invalid_year_rejected(self, year, rng):
        with pytest.raises(ValidationException):
            get_production_data(year, rng=rng)

    def test_mock_mode_off_raises(self, rng):
        with pytest.raises(AnalyticsBackendUnavailableException):
            get_production_data(2025, rng=rng, mock_mode=False)


class TestSalesData:
    """Tests for get_sales_data."""

    def test_one_row_per_country(self, rng):
        sales = get_sales_data(rng=rng)
        assert [s.country for s in sales] == list(COUNTRIES)

    def test_values_are_plausible(self, rng):
        for s in get_sales_data("Caribbean", rng=rng):
            assert 500_000 <= s.total_sales <= 10_500_000
            assert 100_000 <= s.total_units < 5_000_000
            assert 1.0 <= s.average_price <= 4.0
            assert 5.0 <= s.market_share_percent <= 30.0

    def test_region_with_newlines_is_accepted(self, rng):
        sales = get_sales_data("East\nAfrica\r", rng=rng)
        assert len(sales) == len(COUNTRIES)

    def test_mock_mode_follows_settings(self, rng, monkeypatch):
        monkeypatch.setattr(analytics_service.settings, "ANALYTICS_MOCK_MODE", False)
        with pytest.raises(AnalyticsBackendUnavailableException):
            get_sales_data(rng=rng)


class TestSummarize:
    """Tests for summary aggregation."""

    def test_hand_computed_summary(self):
        productions = [
            ProductionRecord("A", 2025, 1, 100.0, 4.0, "Cavendish", 50.0),
            ProductionRecord("B", 2025, 1, 300.0, 3.0, "Plantain", 50.0),
            ProductionRecord("A", 2025, 2, 100.0, 5.0, "Plantain", 50.0),
        ]
        sales = [
            SalesRecord("Ecuador", 1000.0, 10, 1.0, 10.0),
            SalesRecord("India", 500.5, 10, 1.0, 10.0),
        ]

        summary = summarize(productions, sales)

        assert summary.total_production_tons == 500.0
        # (4*100 + 3*300 + 5*100) / 500
        assert summary.global_average_quality == 3.6
        assert summary.total_revenue == 1500.5
        assert summary.countries_served == 2
        assert summary.top_producing_region == "B"
        assert summary.most_popular_variety == "Plantain"

    def test_variety_tie_goes_to_first_seen(self):
        productions = [
            ProductionRecord("A", 2025, 1, 100.0, 4.0, "Burro", 50.0),
            ProductionRecord("A", 2025, 2, 100.0, 4.0, "Cavendish", 50.0),
        ]
        assert summarize(productions, []).most_popular_variety == "Burro"

    def test_empty_rows(self):
        summary = summarize([], [])
        assert summary.total_production_tons == 0
        assert summary.global_average_quality == 0.0
        assert summary.countries_served == 0


class TestBananaAnalytics:
    """Tests for the full analytics payload."""

    def test_summary_matches_returned_rows(self, rng):
        analytics = get_banana_analytics(rng=rng)

        assert analytics.summary.total_production_tons == pytest.approx(
            sum(p.tons_produced for p in analytics.productions)
        )
        assert analytics.summary.total_revenue == pytest.approx(
            sum(s.total_sales for s in analytics.sales)
        )
        assert analytics.summary.countries_served == len(COUNTRIES)
        assert analytics.summary.top_producing_region in REGIONS
        assert analytics.summary.most_popular_variety in VARIETIES

    def test_uses_current_year(self, rng):
        now = datetime(2031, 3, 4, tzinfo=timezone.utc)
        analytics = get_banana_analytics(rng=rng, now=now)

        assert analytics.generated_at == now
        assert {p.year for p in analytics.productions} == {2031}
        assert len(analytics.productions) == 72

    def test_mock_data_source(self, rng):
        assert "Mock" in get_banana_analytics(rng=rng).data_source

    def test_mock_mode_off_raises(self, rng):
        with pytest.raises(AnalyticsBackendUnavailableException):
            get_banana_analytics(rng=rng, mock_mode=False)
