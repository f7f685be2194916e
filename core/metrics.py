"""
Property Metrics Aggregator

Turns a flat property collection into the PropertyMetrics aggregate:
1. Listed / sold counts per suburb, street name, street number, agent, agency
2. Average price per group (sold price, else asking price)
3. Price trend per suburb and a one-period-ahead projection
4. Commission per agency per period
5. Market comparison tables against the operator's own agency

"Top" selections use strict greater-than against a running maximum, so the
first group seen in input order wins ties.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .commission import compute_commission, normalize_agent_name
from .models import (
    CommissionEarner,
    ConfidenceBand,
    GroupCount,
    Prediction,
    PropertyDetails,
    PropertyMetrics,
    SalesStat,
    TopLister,
    UNKNOWN,
)
from .suburbs import normalize_suburb


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

DEFAULT_OPERATOR_AGENCY = "Harcourt Success"

# Entries kept in each "top" comparison list
TOP_N = 5

# Minimum half-width of the projection band, as a share of the projection
CONFIDENCE_BAND_RATIO = 0.10

# Commission bucket for properties without a sold date
UNSOLD_PERIOD = "Unsold"


PredictFn = Callable[[Sequence[float]], Prediction]


# =============================================================================
# Trend Projection
# =============================================================================


def predict_future_avg_price(series: Sequence[float]) -> Prediction:
    """
    Project the next period's average price by linear extrapolation.

    The slope is taken between the first and last points of the series
    (one step per period). The band is +/- the larger of |slope| and 10%
    of the projection. Projections never go below zero.

    Args:
        series: Chronological average prices, oldest first.

    Returns:
        Prediction with the projected value and its band.
    """
    values = [v for v in series if v is not None]
    if not values:
        return Prediction(value=0.0, lower=0.0, upper=0.0)

    last = values[-1]
    slope = (last - values[0]) / (len(values) - 1) if len(values) > 1 else 0.0
    projected = max(last + slope, 0.0)
    margin = max(abs(slope), projected * CONFIDENCE_BAND_RATIO)
    return Prediction(
        value=projected,
        lower=max(projected - margin, 0.0),
        upper=projected + margin,
    )


# =============================================================================
# Group Keys
# =============================================================================


def period_key(prop: PropertyDetails) -> Optional[str]:
    """YYYY-MM of the sold date, else the listed date."""
    when = prop.sold_date or prop.listed_date
    return when.strftime("%Y-%m") if when else None


def commission_period(prop: PropertyDetails) -> str:
    return prop.sold_date.strftime("%Y-%m") if prop.sold_date else UNSOLD_PERIOD


def agency_key(prop: PropertyDetails) -> str:
    name = (prop.agency_name or "").strip()
    return name or UNKNOWN


GROUPINGS: Dict[str, Callable[[PropertyDetails], str]] = {
    "suburb": lambda p: normalize_suburb(p.suburb),
    "street_name": lambda p: (p.street_name or "").strip() or UNKNOWN,
    "street_number": lambda p: (p.street_number or "").strip() or UNKNOWN,
    "agent": lambda p: normalize_agent_name(p.agent_name),
    "agency": agency_key,
}


# =============================================================================
# Accumulators
# =============================================================================


@dataclass
class _PriceMean:
    total: float = 0.0
    count: int = 0

    def add(self, value: Optional[float]) -> None:
        if value is None:
            return
        self.total += value
        self.count += 1

    @property
    def mean(self) -> Optional[float]:
        return self.total / self.count if self.count else None


@dataclass
class _Grouping:
    counts: Dict[str, GroupCount] = field(default_factory=dict)
    prices: Dict[str, _PriceMean] = field(default_factory=dict)

    def add(self, key: str, prop: PropertyDetails) -> None:
        count = self.counts.setdefault(key, GroupCount())
        if prop.is_listing:
            count.listed += 1
        if prop.is_sold:
            count.sold += 1
        self.prices.setdefault(key, _PriceMean()).add(prop.price_basis)

    def averages(self) -> Dict[str, float]:
        return {k: m.mean for k, m in self.prices.items() if m.mean is not None}


def _strict_max(tallies: Dict[str, int]) -> TopLister:
    best = TopLister(agent="", count=0)
    for name, count in tallies.items():
        if count > best.count:
            best = TopLister(agent=name, count=count)
    return best


def _top(tallies: Dict[str, float], limit: int) -> List[tuple[str, float]]:
    """Largest positive tallies, first-seen order kept among equals."""
    ranked = sorted(
        ((name, value) for name, value in tallies.items() if value > 0),
        key=lambda item: -item[1],
    )
    return ranked[:limit]


# =============================================================================
# Aggregation
# =============================================================================


def compute_metrics(
    properties: Iterable[PropertyDetails],
    predict_fn: PredictFn = predict_future_avg_price,
    our_agency: str = DEFAULT_OPERATOR_AGENCY,
    top_n: int = TOP_N,
) -> PropertyMetrics:
    """
    Build the PropertyMetrics aggregate for a property collection.

    Missing values never raise: absent prices are left out of averages,
    absent names group under "Unknown".

    Args:
        properties: The (already filtered) property collection.
        predict_fn: Projection applied to each suburb's price series.
        our_agency: The operator's agency, compared case-insensitively.
        top_n: Entries kept in each top-N comparison list.

    Returns:
        A fresh PropertyMetrics.

    Raises:
        TypeError: If properties is not iterable.
    """
    properties = list(properties)
    ours = our_agency.strip().lower()

    groupings = {name: _Grouping() for name in GROUPINGS}
    trend_prices: Dict[str, Dict[str, _PriceMean]] = {}
    commission_by_agency: Dict[str, Dict[str, float]] = {}
    listers_by_suburb: Dict[str, Dict[str, int]] = {}
    our_listings_by_suburb: Dict[str, int] = {}
    commission_by_agent: Dict[str, float] = {}
    sales_by_agent: Dict[str, int] = {}
    sales_by_agency: Dict[str, int] = {}

    total_listings = 0
    total_sales = 0
    sold_prices = _PriceMean()
    our_commission = 0.0
    our_sales = 0

    for prop in properties:
        keys = {name: key_fn(prop) for name, key_fn in GROUPINGS.items()}
        for name, grouping in groupings.items():
            grouping.add(keys[name], prop)

        suburb = keys["suburb"]
        agent = keys["agent"]
        agency = keys["agency"]
        is_ours = agency.lower() == ours

        period = period_key(prop)
        if period is not None:
            trend_prices.setdefault(suburb, {}).setdefault(period, _PriceMean()).add(prop.price_basis)

        earned = compute_commission(prop).earned_amount
        agency_periods = commission_by_agency.setdefault(agency, {})
        bucket = commission_period(prop)
        agency_periods[bucket] = agency_periods.get(bucket, 0.0) + earned
        commission_by_agent[agent] = commission_by_agent.get(agent, 0.0) + earned
        if is_ours:
            our_commission += earned

        listers = listers_by_suburb.setdefault(suburb, {})
        our_listings_by_suburb.setdefault(suburb, 0)
        if prop.is_listing:
            total_listings += 1
            listers[agent] = listers.get(agent, 0) + 1
            if is_ours:
                our_listings_by_suburb[suburb] += 1

        sales_by_agent.setdefault(agent, 0)
        sales_by_agency.setdefault(agency, 0)
        if prop.is_sold:
            total_sales += 1
            sold_prices.add(prop.price_basis)
            sales_by_agent[agent] += 1
            sales_by_agency[agency] += 1
            if is_ours:
                our_sales += 1

    avg_by_suburb = groupings["suburb"].averages()

    price_trends_by_suburb: Dict[str, Dict[str, float]] = {}
    for suburb, periods in trend_prices.items():
        series = {p: m.mean for p, m in sorted(periods.items()) if m.mean is not None}
        if series:
            price_trends_by_suburb[suburb] = series

    predicted: Dict[str, float] = {}
    confidence: Dict[str, ConfidenceBand] = {}
    for suburb, average in avg_by_suburb.items():
        series = list(price_trends_by_suburb.get(suburb, {}).values()) or [average]
        prediction = predict_fn(series)
        predicted[suburb] = prediction.value
        confidence[suburb] = ConfidenceBand(lower=prediction.lower, upper=prediction.upper)

    our_stats = SalesStat(name=our_agency, sales=our_sales)

    metrics = PropertyMetrics(
        listings_by_suburb=groupings["suburb"].counts,
        listings_by_street_name=groupings["street_name"].counts,
        listings_by_street_number=groupings["street_number"].counts,
        listings_by_agent=groupings["agent"].counts,
        listings_by_agency=groupings["agency"].counts,
        avg_sale_price_by_suburb=avg_by_suburb,
        avg_sale_price_by_street_name=groupings["street_name"].averages(),
        avg_sale_price_by_street_number=groupings["street_number"].averages(),
        avg_sale_price_by_agent=groupings["agent"].averages(),
        avg_sale_price_by_agency=groupings["agency"].averages(),
        predicted_avg_price_by_suburb=predicted,
        predicted_confidence_by_suburb=confidence,
        price_trends_by_suburb=price_trends_by_suburb,
        commission_by_agency=commission_by_agency,
        property_details=properties,
        total_listings=total_listings,
        total_sales=total_sales,
        overall_avg_sale_price=sold_prices.mean or 0.0,
        top_listers_by_suburb={s: _strict_max(t) for s, t in listers_by_suburb.items()},
        our_listings_by_suburb=our_listings_by_suburb,
        top_commission_earners=[
            CommissionEarner(agent=name, commission=total)
            for name, total in _top(commission_by_agent, top_n)
        ],
        our_commission=our_commission,
        top_agents=[SalesStat(name=n, sales=int(s)) for n, s in _top(sales_by_agent, top_n)],
        our_agent_stats=our_stats,
        top_agencies=[SalesStat(name=n, sales=int(s)) for n, s in _top(sales_by_agency, top_n)],
        our_agency_stats=our_stats,
    )
    logger.debug(
        "Computed metrics for %d properties (%d listings, %d sales)",
        len(properties), total_listings, total_sales,
    )
    return metrics
