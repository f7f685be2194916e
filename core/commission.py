"""
Commission calculations.

compute_commission() is the single source of truth for what a property
earned. The admin helpers below layer per-property rate overrides
(the `agent_commissions` table) on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, Mapping, Optional

from .models import PropertyDetails, UNKNOWN
from .suburbs import normalize_suburb


# Property id -> overriding commission rate (percent)
RateOverrides = Mapping[str, float]


@dataclass(frozen=True)
class CommissionResult:
    """Commission rate (percent) and the amount it earned."""
    rate: float
    earned_amount: float


@dataclass(frozen=True)
class CommissionImpact:
    """Before/after totals for a proposed rate change."""
    old_total: float
    new_total: float

    @property
    def difference(self) -> float:
        return self.new_total - self.old_total


@dataclass(frozen=True)
class TopEarner:
    name: str
    total: float


def compute_commission(prop: PropertyDetails) -> CommissionResult:
    """
    Compute the commission earned by one property.

    rate is the property's commission percentage (0 when absent). The base
    price is the sold price, else the asking price, else 0. Nothing is
    earned unless both rate and base price are positive.
    """
    rate = prop.commission or 0
    base_price = prop.sold_price or prop.price or 0
    if rate > 0 and base_price > 0:
        return CommissionResult(rate=rate, earned_amount=base_price * rate / 100)
    return CommissionResult(rate=rate, earned_amount=0)


# =============================================================================
# Name Normalisation (commission screens)
# =============================================================================


def normalize_agency_name(agency: Optional[str]) -> str:
    """Agencies are compared case-insensitively."""
    if not agency or not agency.strip():
        return UNKNOWN
    return agency.strip().lower()


def normalize_agent_name(agent: Optional[str]) -> str:
    if not agent or not agent.strip():
        return UNKNOWN
    return agent.strip()


# =============================================================================
# Overrides
# =============================================================================


def effective_rate(prop: PropertyDetails, overrides: Optional[RateOverrides] = None) -> float:
    """Override rate when one is recorded for the property, else its own rate."""
    if overrides:
        override = overrides.get(prop.id)
        if override:
            return override
    return prop.commission or 0


def earned_with_overrides(
    prop: PropertyDetails,
    overrides: Optional[RateOverrides] = None,
) -> float:
    rate = effective_rate(prop, overrides)
    return compute_commission(replace(prop, commission=rate)).earned_amount


# =============================================================================
# Totals and Top Earners
# =============================================================================


def commission_totals(
    properties: Iterable[PropertyDetails],
    key: Callable[[PropertyDetails], str],
    overrides: Optional[RateOverrides] = None,
) -> dict[str, float]:
    """Sum earned commission per key, in first-seen order."""
    totals: dict[str, float] = {}
    for prop in properties:
        name = key(prop)
        totals[name] = totals.get(name, 0) + earned_with_overrides(prop, overrides)
    return totals


def by_agency(prop: PropertyDetails) -> str:
    return normalize_agency_name(prop.agency_name)


def by_agent(prop: PropertyDetails) -> str:
    return normalize_agent_name(prop.agent_name)


def top_earner(totals: Mapping[str, float]) -> TopEarner:
    """
    Highest total, strict greater-than against a running maximum.

    The first group seen wins ties; with no positive total the result is
    ("None", 0).
    """
    best = TopEarner(name="None", total=0)
    for name, total in totals.items():
        if total > best.total:
            best = TopEarner(name=name, total=total)
    return best


def commission_impact(
    properties: Iterable[PropertyDetails],
    property_ids: Iterable[str],
    new_rate: float,
    overrides: Optional[RateOverrides] = None,
) -> CommissionImpact:
    """Preview how totals change if the selected properties move to new_rate."""
    selected = set(property_ids)
    old_total = 0.0
    new_total = 0.0
    for prop in properties:
        if prop.id not in selected:
            continue
        old_total += earned_with_overrides(prop, overrides)
        new_total += compute_commission(replace(prop, commission=new_rate)).earned_amount
    return CommissionImpact(old_total=old_total, new_total=new_total)


def simulate_agency_commission(
    properties: Iterable[PropertyDetails],
    agency: str,
    rate: float,
    overrides: Optional[RateOverrides] = None,
) -> CommissionImpact:
    """Current vs simulated commission for every property of one agency."""
    properties = list(properties)
    target = normalize_agency_name(agency)
    ids = [p.id for p in properties if normalize_agency_name(p.agency_name) == target]
    return commission_impact(properties, ids, rate, overrides)


def monthly_commission_trend(
    properties: Iterable[PropertyDetails],
    overrides: Optional[RateOverrides] = None,
    months: int = 12,
    today: Optional[date] = None,
) -> tuple[list[str], dict[str, list[float]]]:
    """
    Commission per agency for each of the last `months` calendar months.

    Returns:
        Month labels ("Jan 2026", oldest first) and, per agency, one total
        per label. Properties without a sold date are ignored.
    """
    today = today or date.today()
    keys: list[tuple[int, int]] = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    labels = [date(y, m, 1).strftime("%b %Y") for y, m in keys]
    index = {k: i for i, k in enumerate(keys)}

    properties = list(properties)
    series: dict[str, list[float]] = {}
    for prop in properties:
        series.setdefault(normalize_agency_name(prop.agency_name), [0.0] * months)
    for prop in properties:
        if prop.sold_date is None:
            continue
        slot = index.get((prop.sold_date.year, prop.sold_date.month))
        if slot is None:
            continue
        series[normalize_agency_name(prop.agency_name)][slot] += earned_with_overrides(prop, overrides)
    return labels, series


# =============================================================================
# Commission-by-Agency Report
# =============================================================================


@dataclass
class AgencyCommissionRow:
    agency: str
    total_commission: float = 0.0
    property_count: int = 0
    suburbs: list[str] = field(default_factory=list)


@dataclass
class AgentCommissionRow:
    agent: str
    commission: float = 0.0
    listed: int = 0
    sold: int = 0


def agency_commission_totals(
    properties: Iterable[PropertyDetails],
    overrides: Optional[RateOverrides] = None,
) -> tuple[list[AgencyCommissionRow], list[AgentCommissionRow]]:
    """Per-agency and per-agent commission tables, in first-seen order."""
    agencies: dict[str, AgencyCommissionRow] = {}
    agents: dict[str, AgentCommissionRow] = {}
    for prop in properties:
        earned = earned_with_overrides(prop, overrides)

        agency_key = normalize_agency_name(prop.agency_name)
        agency_row = agencies.setdefault(agency_key, AgencyCommissionRow(agency=agency_key))
        agency_row.total_commission += earned
        agency_row.property_count += 1
        suburb = normalize_suburb(prop.suburb)
        if suburb not in agency_row.suburbs:
            agency_row.suburbs.append(suburb)

        agent_key = normalize_agent_name(prop.agent_name)
        agent_row = agents.setdefault(agent_key, AgentCommissionRow(agent=agent_key))
        agent_row.commission += earned
        if prop.is_listing:
            agent_row.listed += 1
        if prop.is_sold:
            agent_row.sold += 1
    return list(agencies.values()), list(agents.values())
