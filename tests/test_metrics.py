"""
Tests for the metrics aggregator.

Verifies:
- Listed/sold counts per group and count conservation
- Averages skip absent and non-positive prices
- Price trends and the one-period projection
- Commission buckets per agency and period
- Comparison tables against the operator agency
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.metrics import UNSOLD_PERIOD, compute_metrics, period_key, predict_future_avg_price
from core.models import Prediction, PropertyDetails


class TestCounts:

    def test_totals(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.total_listings == 3
        assert metrics.total_sales == 6

    def test_suburb_counts(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        moggill = metrics.listings_by_suburb["Moggill QLD (4070)"]
        assert (moggill.listed, moggill.sold) == (1, 2)
        assert metrics.listings_by_suburb["Unknown"].sold == 1

    def test_count_conservation(self, sample_properties):
        """Every Listing/Sold record lands in exactly one suburb bucket."""
        metrics = compute_metrics(sample_properties)
        for groups in (metrics.listings_by_suburb, metrics.listings_by_agent, metrics.listings_by_agency):
            assert sum(g.listed for g in groups.values()) == metrics.total_listings
            assert sum(g.sold for g in groups.values()) == metrics.total_sales

    def test_other_categories_counted_nowhere(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        pullenvale = metrics.listings_by_suburb["Pullenvale 4069"]
        assert (pullenvale.listed, pullenvale.sold) == (0, 0)

    def test_agency_keys_are_raw_trimmed_names(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert "Ray White" in metrics.listings_by_agency
        assert "ray white" in metrics.listings_by_agency
        assert "Unknown" in metrics.listings_by_agency


class TestAverages:

    def test_kenmore_average(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.avg_sale_price_by_suburb["Kenmore 4069"] == pytest.approx(600000)

    def test_sold_price_preferred_over_asking(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        # 700000 asking, 750000 sold (over 720000 asking), 800000 sold
        assert metrics.avg_sale_price_by_suburb["Moggill QLD (4070)"] == pytest.approx(750000)

    def test_groups_without_prices_have_no_average(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert "Bellbowrie QLD (4070)" not in metrics.avg_sale_price_by_suburb
        assert "Unknown" not in metrics.avg_sale_price_by_suburb

    def test_overall_average_over_sold_only(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.overall_avg_sale_price == pytest.approx(770000)

    def test_street_and_agent_averages(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.avg_sale_price_by_street_name["Hill St"] == pytest.approx(600000)
        assert metrics.avg_sale_price_by_agent["Bob Jones"] == pytest.approx(675000)


class TestTrendsAndPrediction:

    def test_trend_by_month(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.price_trends_by_suburb["Moggill QLD (4070)"] == {
            "2026-01": 700000,
            "2026-02": 750000,
            "2026-03": 800000,
        }

    def test_projection_and_band(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.predicted_avg_price_by_suburb["Moggill QLD (4070)"] == pytest.approx(850000)
        band = metrics.predicted_confidence_by_suburb["Moggill QLD (4070)"]
        assert band.lower == pytest.approx(765000)
        assert band.upper == pytest.approx(935000)

    def test_suburb_without_dates_uses_average(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.predicted_avg_price_by_suburb["Pullenvale 4069"] == pytest.approx(900000)

    def test_predictions_align_with_averages(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert set(metrics.predicted_avg_price_by_suburb) == set(metrics.avg_sale_price_by_suburb)

    def test_custom_predictor(self, sample_properties):
        metrics = compute_metrics(sample_properties, predict_fn=lambda s: Prediction(1.0, 0.0, 2.0))
        assert set(metrics.predicted_avg_price_by_suburb.values()) == {1.0}

    def test_period_key_prefers_sold_date(self, sample_properties):
        assert period_key(sample_properties[1]) == "2026-02"
        assert period_key(sample_properties[8]) is None


class TestPredictFutureAvgPrice:

    def test_linear_extrapolation(self):
        prediction = predict_future_avg_price([100.0, 200.0, 300.0])
        assert prediction.value == pytest.approx(400)
        assert prediction.lower == pytest.approx(300)
        assert prediction.upper == pytest.approx(500)

    def test_single_point_band_is_ten_percent(self):
        prediction = predict_future_avg_price([500000.0])
        assert prediction.value == pytest.approx(500000)
        assert prediction.lower == pytest.approx(450000)
        assert prediction.upper == pytest.approx(550000)

    def test_never_negative(self):
        prediction = predict_future_avg_price([300.0, 100.0])
        assert prediction.value == 0
        assert prediction.lower == 0

    def test_empty(self):
        assert predict_future_avg_price([]) == Prediction(0.0, 0.0, 0.0)


class TestCommission:

    def test_commission_by_agency_and_period(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        harcourt = metrics.commission_by_agency["Harcourt Success"]
        assert harcourt[UNSOLD_PERIOD] == pytest.approx(17500)
        assert harcourt["2026-02"] == pytest.approx(18750)
        assert harcourt["2026-03"] == pytest.approx(27500)

    def test_top_commission_earners(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert [(e.agent, e.commission) for e in metrics.top_commission_earners] == [
            ("Alice Smith", pytest.approx(63750)),
            ("Bob Jones", pytest.approx(27000)),
            ("Carol White", pytest.approx(19500)),
            ("Dan Brown", pytest.approx(18000)),
        ]

    def test_our_commission(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.our_commission == pytest.approx(63750)


class TestComparisons:

    def test_top_agents_first_seen_wins_ties(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert [(s.name, s.sales) for s in metrics.top_agents] == [
            ("Alice Smith", 2), ("Bob Jones", 2), ("Carol White", 1), ("Dan Brown", 1),
        ]

    def test_top_agencies(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert [s.name for s in metrics.top_agencies] == ["Harcourt Success", "Ray White", "Place", "ray white"]

    def test_our_stats(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.our_agency_stats.name == "Harcourt Success"
        assert metrics.our_agency_stats.sales == 2
        assert metrics.our_agent_stats == metrics.our_agency_stats

    def test_other_operator_agency(self, sample_properties):
        metrics = compute_metrics(sample_properties, our_agency="place")
        assert metrics.our_agency_stats.sales == 1
        assert metrics.our_listings_by_suburb["Brookfield 4069"] == 1

    def test_top_n_limit(self, sample_properties):
        metrics = compute_metrics(sample_properties, top_n=2)
        assert len(metrics.top_agents) == 2

    def test_top_listers(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.top_listers_by_suburb["Moggill QLD (4070)"].agent == "Alice Smith"
        assert metrics.top_listers_by_suburb["Bellbowrie QLD (4070)"].agent == "Unknown"
        kenmore = metrics.top_listers_by_suburb["Kenmore 4069"]
        assert (kenmore.agent, kenmore.count) == ("", 0)

    def test_our_listings_by_suburb(self, sample_properties):
        metrics = compute_metrics(sample_properties)
        assert metrics.our_listings_by_suburb["Moggill QLD (4070)"] == 1
        assert metrics.our_listings_by_suburb["Kenmore 4069"] == 0


class TestEdgeCases:

    def test_empty_collection(self):
        metrics = compute_metrics([])
        assert metrics.total_listings == 0
        assert metrics.overall_avg_sale_price == 0
        assert metrics.listings_by_suburb == {}
        assert metrics.top_agents == []

    def test_not_iterable(self):
        with pytest.raises(TypeError):
            compute_metrics(None)

    def test_sparse_record(self):
        metrics = compute_metrics([PropertyDetails(id="x")])
        assert metrics.listings_by_suburb["Unknown"].listed == 0
        assert metrics.property_details[0].id == "x"

    def test_deterministic(self, sample_properties):
        assert compute_metrics(sample_properties).to_dict() == compute_metrics(sample_properties).to_dict()
