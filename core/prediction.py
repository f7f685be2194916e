"""
Price trend analysis for a single property.

Compares the first and last sale in the last year of price history for
the property's city and type, and turns the change into a BUY/SELL call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .models import _to_date, _to_number


RISING_THRESHOLD_PCT = 3.0
MAX_CONFIDENCE = 95.0
DEFAULT_CONFIDENCE = 50.0


class MarketCondition(Enum):
    RISING = "Rising"
    DECLINING = "Declining"
    STABLE = "Stable"


class Recommendation(Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class PricePrediction:
    recommendation: Recommendation
    confidence: float
    trend: float
    market_condition: Optional[MarketCondition] = None
    dates: list[str] = field(default_factory=list)
    prices: list[float] = field(default_factory=list)
    current_price: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendation": self.recommendation.value,
            "confidence": self.confidence,
            "trend": self.trend,
            "market_condition": self.market_condition.value if self.market_condition else None,
            "historical_data": {"dates": list(self.dates), "prices": list(self.prices)},
            "current_price": self.current_price,
        }


def neutral_prediction(current_price: Optional[float] = None) -> PricePrediction:
    """Returned when there is no usable history."""
    return PricePrediction(
        recommendation=Recommendation.BUY,
        confidence=DEFAULT_CONFIDENCE,
        trend=0.0,
        current_price=current_price,
    )


def analyze_price_trend(
    history: Iterable[Mapping[str, Any]],
    current_price: Optional[float] = None,
) -> PricePrediction:
    """
    Analyse a chronological price history.

    Args:
        history: Rows with `sale_date` and `price`, oldest first.
        current_price: The property's own price, carried through for display.

    Returns:
        trend is the percentage change from the first to the last price.
        Over +3% is Rising, under -3% Declining, otherwise Stable.
        Confidence is twice the absolute trend, capped at 95.
    """
    points = []
    for row in history:
        price = _to_number(row.get("price"))
        if price is None:
            continue
        points.append((_to_date(row.get("sale_date")), price))

    if not points or points[0][1] == 0:
        return neutral_prediction(current_price)

    first, last = points[0][1], points[-1][1]
    trend = (last - first) / first * 100

    if trend > RISING_THRESHOLD_PCT:
        condition = MarketCondition.RISING
    elif trend < -RISING_THRESHOLD_PCT:
        condition = MarketCondition.DECLINING
    else:
        condition = MarketCondition.STABLE

    return PricePrediction(
        recommendation=Recommendation.BUY if trend >= 0 else Recommendation.SELL,
        confidence=min(abs(trend) * 2, MAX_CONFIDENCE),
        trend=trend,
        market_condition=condition,
        dates=[d.strftime("%b %Y") if d else "N/A" for d, _ in points],
        prices=[p for _, p in points],
        current_price=current_price,
    )
