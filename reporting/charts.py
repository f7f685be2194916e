"""
Chart data builders.

Pure functions mapping PropertyMetrics into label/dataset structures the
front-end chart library renders directly. Each builder returns None when
its backing map is empty, so the caller can show a "no data" message.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

from core.models import PropertyMetrics


CHART_PALETTE: tuple[str, ...] = (
    "#FF6384",
    "#36A2EB",
    "#FFCE56",
    "#4BC0C0",
    "#9966FF",
    "#FF9F40",
    "#C9CBCF",
    "#8BC34A",
)

MARKET_COLOR = "#36A2EB"
OURS_COLOR = "#FF6384"


@dataclass
class Dataset:
    label: str
    data: List[Optional[float]]
    background_color: Union[str, List[str]]
    border_color: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "label": self.label,
            "data": list(self.data),
            "backgroundColor": self.background_color,
        }
        if self.border_color is not None:
            data["borderColor"] = self.border_color
        return data


@dataclass
class ChartData:
    labels: List[str]
    datasets: List[Dataset] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"labels": list(self.labels), "datasets": [d.to_dict() for d in self.datasets]}


def palette_color(index: int, palette: Sequence[str] = CHART_PALETTE) -> str:
    return palette[index % len(palette)]


def palette_colors(count: int, palette: Sequence[str] = CHART_PALETTE) -> List[str]:
    return [palette_color(i, palette) for i in range(count)]


# =============================================================================
# Report Charts
# =============================================================================


def build_heatmap_series(metrics: Optional[PropertyMetrics]) -> Optional[ChartData]:
    """Sales count per suburb."""
    if metrics is None or not metrics.listings_by_suburb:
        return None
    labels = list(metrics.listings_by_suburb)
    return ChartData(
        labels=labels,
        datasets=[Dataset(
            label="Sales",
            data=[metrics.listings_by_suburb[s].sold for s in labels],
            background_color=palette_colors(len(labels)),
        )],
    )


def build_price_trend_series(metrics: Optional[PropertyMetrics]) -> Optional[ChartData]:
    """One dataset per suburb over the union of periods; gaps are None."""
    if metrics is None or not metrics.price_trends_by_suburb:
        return None
    periods = sorted({p for series in metrics.price_trends_by_suburb.values() for p in series})
    datasets = [
        Dataset(
            label=suburb,
            data=[series.get(p) for p in periods],
            background_color=palette_color(i),
            border_color=palette_color(i),
        )
        for i, (suburb, series) in enumerate(metrics.price_trends_by_suburb.items())
    ]
    return ChartData(labels=periods, datasets=datasets)


def build_commission_series(metrics: Optional[PropertyMetrics]) -> Optional[ChartData]:
    """Total commission per agency across all periods."""
    if metrics is None or not metrics.commission_by_agency:
        return None
    labels = list(metrics.commission_by_agency)
    return ChartData(
        labels=labels,
        datasets=[Dataset(
            label="Commission Earned",
            data=[sum(metrics.commission_by_agency[a].values()) for a in labels],
            background_color=palette_colors(len(labels)),
        )],
    )


def build_average_price_series(metrics: Optional[PropertyMetrics]) -> Optional[ChartData]:
    """Average vs predicted price per suburb, aligned by suburb."""
    if metrics is None or not metrics.avg_sale_price_by_suburb:
        return None
    labels = list(metrics.avg_sale_price_by_suburb)
    return ChartData(
        labels=labels,
        datasets=[
            Dataset(
                label="Average Sale Price",
                data=[metrics.avg_sale_price_by_suburb[s] for s in labels],
                background_color=MARKET_COLOR,
            ),
            Dataset(
                label="Predicted Average Price",
                data=[metrics.predicted_avg_price_by_suburb.get(s) for s in labels],
                background_color=OURS_COLOR,
            ),
        ],
    )


# =============================================================================
# Comparison Charts
# =============================================================================

COMPARISON_KINDS = ("commission", "agents", "agencies")


def build_comparison_series(metrics: Optional[PropertyMetrics], kind: str) -> Optional[ChartData]:
    """
    Market leaders followed by the operator's own figure, highlighted.

    Args:
        metrics: Aggregate to read from.
        kind: "commission", "agents" or "agencies".
    """
    if kind not in COMPARISON_KINDS:
        raise ValueError(f"Unknown comparison kind: {kind}")
    if metrics is None:
        return None

    if kind == "commission":
        if not metrics.top_commission_earners:
            return None
        labels = [e.agent for e in metrics.top_commission_earners]
        data = [e.commission for e in metrics.top_commission_earners]
        labels.append(metrics.our_agency_stats.name)
        data.append(metrics.our_commission)
        label = "Commission Earned"
    else:
        leaders = metrics.top_agents if kind == "agents" else metrics.top_agencies
        ours = metrics.our_agent_stats if kind == "agents" else metrics.our_agency_stats
        if not leaders:
            return None
        labels = [s.name for s in leaders] + [ours.name]
        data = [s.sales for s in leaders] + [ours.sales]
        label = "Sales Count"

    colors = [MARKET_COLOR] * (len(labels) - 1) + [OURS_COLOR]
    return ChartData(labels=labels, datasets=[Dataset(label=label, data=data, background_color=colors)])


def build_all_series(metrics: Optional[PropertyMetrics]) -> dict[str, Optional[dict[str, Any]]]:
    """Every report chart, serialised; missing charts are None."""
    charts = {
        "heatmap": build_heatmap_series(metrics),
        "price_trends": build_price_trend_series(metrics),
        "commission": build_commission_series(metrics),
        "average_price": build_average_price_series(metrics),
    }
    for kind in COMPARISON_KINDS:
        charts[f"comparison_{kind}"] = build_comparison_series(metrics, kind)
    return {name: chart.to_dict() if chart else None for name, chart in charts.items()}
