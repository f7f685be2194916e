"""
Tests for chart series builders.
"""

from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.metrics import compute_metrics
from reporting.charts import (
    MARKET_COLOR,
    OURS_COLOR,
    build_all_series,
    build_average_price_series,
    build_commission_series,
    build_comparison_series,
    build_heatmap_series,
    build_price_trend_series,
    palette_color,
)


@pytest.fixture
def metrics(sample_properties):
    return compute_metrics(sample_properties)


class TestReportCharts:

    def test_heatmap(self, metrics):
        chart = build_heatmap_series(metrics)
        sold = dict(zip(chart.labels, chart.datasets[0].data))
        assert sold["Moggill QLD (4070)"] == 2
        assert sold["Bellbowrie QLD (4070)"] == 0
        assert chart.datasets[0].background_color[0] == palette_color(0)

    def test_price_trends_fill_gaps(self, metrics):
        chart = build_price_trend_series(metrics)
        assert chart.labels == ["2026-01", "2026-02", "2026-03"]
        by_suburb = {d.label: d.data for d in chart.datasets}
        assert by_suburb["Moggill QLD (4070)"] == [700000, 750000, 800000]
        assert by_suburb["Kenmore 4069"] == [550000, 650000, None]

    def test_commission_totals(self, metrics):
        chart = build_commission_series(metrics)
        totals = dict(zip(chart.labels, chart.datasets[0].data))
        assert totals["Harcourt Success"] == pytest.approx(63750)

    def test_average_and_predicted_aligned(self, metrics):
        chart = build_average_price_series(metrics)
        average, predicted = chart.datasets
        assert len(average.data) == len(predicted.data) == len(chart.labels)
        index = chart.labels.index("Moggill QLD (4070)")
        assert average.data[index] == pytest.approx(750000)
        assert predicted.data[index] == pytest.approx(850000)


class TestComparisonCharts:

    def test_ours_is_last_and_highlighted(self, metrics):
        chart = build_comparison_series(metrics, "agencies")
        assert chart.labels[-1] == "Harcourt Success"
        colors = chart.datasets[0].background_color
        assert colors[-1] == OURS_COLOR
        assert set(colors[:-1]) == {MARKET_COLOR}

    def test_commission_comparison(self, metrics):
        chart = build_comparison_series(metrics, "commission")
        assert chart.labels[0] == "Alice Smith"
        assert chart.datasets[0].data[-1] == pytest.approx(63750)

    def test_unknown_kind(self, metrics):
        with pytest.raises(ValueError):
            build_comparison_series(metrics, "suburbs")


class TestEmpty:

    def test_no_metrics(self):
        assert set(build_all_series(None).values()) == {None}

    def test_empty_collection(self):
        assert set(build_all_series(compute_metrics([])).values()) == {None}

    def test_serialised_keys(self, metrics):
        charts = build_all_series(metrics)
        assert set(charts) == {
            "heatmap",
            "price_trends",
            "commission",
            "average_price",
            "comparison_commission",
            "comparison_agents",
            "comparison_agencies",
        }
        assert charts["price_trends"]["datasets"][0]["borderColor"] == palette_color(0)
