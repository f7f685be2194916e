"""
Data models for the agency reports service.

PropertyDetails mirrors one row of the backend `properties` table. The
backend owns these records; this service only reads snapshots and forwards
whole-record updates.

PropertyMetrics is the derived aggregate consumed by the reporting screens.
It is rebuilt from scratch on every filter change and never patched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional


# =============================================================================
# Categories
# =============================================================================

CATEGORY_LISTING = "Listing"
CATEGORY_SOLD = "Sold"

UNKNOWN = "Unknown"


# =============================================================================
# Field Coercion
# =============================================================================


def _to_number(value: Any) -> Optional[float]:
    """Coerce a backend value to a number; blanks and garbage become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip().replace(",", "").replace("$", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def _to_date(value: Any) -> Optional[date]:
    """Parse an ISO date or timestamp; anything unparseable becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_tags(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return [str(tag) for tag in value if tag]


NUMERIC_FIELDS = frozenset({
    "price", "sold_price", "expected_price", "commission", "commission_earned",
    "bedrooms", "bathrooms", "car_garage", "sqm", "landsize",
})
DATE_FIELDS = frozenset({"listed_date", "sold_date"})


# =============================================================================
# Property Record
# =============================================================================


@dataclass
class PropertyDetails:
    """One real-estate listing or sale record."""

    id: str

    # Address
    street_number: Optional[str] = None
    street_name: Optional[str] = None
    suburb: Optional[str] = None
    postcode: Optional[str] = None

    # Classification
    category: Optional[str] = None
    property_type: Optional[str] = None

    # Pricing
    price: Optional[float] = None
    sold_price: Optional[float] = None
    expected_price: Optional[float] = None
    commission: Optional[float] = None  # percentage, e.g. 2.5
    commission_earned: Optional[float] = None

    # People
    agent_name: Optional[str] = None
    agency_name: Optional[str] = None

    # Physical attributes
    sale_type: Optional[str] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    car_garage: Optional[float] = None
    sqm: Optional[float] = None
    landsize: Optional[float] = None

    # Dates
    listed_date: Optional[date] = None
    sold_date: Optional[date] = None

    # Risk and status
    flood_risk: Optional[str] = None
    bushfire_risk: Optional[str] = None
    contract_status: Optional[str] = None

    features: list[str] = field(default_factory=list)
    same_street_sales: list[dict] = field(default_factory=list)
    past_records: list[dict] = field(default_factory=list)

    created_at: Optional[str] = None

    @property
    def price_basis(self) -> Optional[float]:
        """Sold price when known, else asking price; None when neither is usable."""
        for value in (self.sold_price, self.price):
            if value is not None and value > 0:
                return value
        return None

    @property
    def is_listing(self) -> bool:
        return self.category == CATEGORY_LISTING

    @property
    def is_sold(self) -> bool:
        return self.category == CATEGORY_SOLD

    @property
    def address(self) -> str:
        """Single-line address used by the commission reports."""
        street = " ".join(p for p in (self.street_number, self.street_name) if p)
        return f"{street}, {self.suburb or UNKNOWN}" if street else (self.suburb or UNKNOWN)

    def with_suburb(self, suburb: str) -> "PropertyDetails":
        return replace(self, suburb=suburb)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PropertyDetails":
        """
        Build a PropertyDetails from a backend row.

        Unknown columns are ignored. Numeric and date columns are coerced;
        values that cannot be coerced are treated as absent.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in record.items():
            if key not in known:
                continue
            if key in NUMERIC_FIELDS:
                values[key] = _to_number(raw)
            elif key in DATE_FIELDS:
                values[key] = _to_date(raw)
            elif key == "features":
                values[key] = _to_tags(raw)
            elif key in ("same_street_sales", "past_records"):
                values[key] = list(raw or [])
            elif key == "id":
                values[key] = "" if raw is None else str(raw)
            else:
                values[key] = _to_text(raw)
        values.setdefault("id", "")
        return cls(**values)

    def to_record(self) -> dict[str, Any]:
        """Row dict for whole-record writes; nested collections are not columns."""
        record: dict[str, Any] = {}
        for f in fields(self):
            if f.name in ("same_street_sales", "past_records", "created_at"):
                continue
            value = getattr(self, f.name)
            if isinstance(value, date):
                value = value.isoformat()
            record[f.name] = value
        return record


def properties_from_records(records: Iterable[Mapping[str, Any]]) -> list[PropertyDetails]:
    """Convert backend rows, keeping their order."""
    return [PropertyDetails.from_record(r) for r in records]


# =============================================================================
# Filters
# =============================================================================

FILTER_FIELDS: tuple[str, ...] = (
    "suburbs",
    "street_names",
    "street_numbers",
    "agents",
    "agency_names",
)


@dataclass(frozen=True)
class Filters:
    """
    Predicate state held by a report screen.

    Each field lists accepted values; an empty field places no constraint.
    """

    suburbs: tuple[str, ...] = ()
    street_names: tuple[str, ...] = ()
    street_numbers: tuple[str, ...] = ()
    agents: tuple[str, ...] = ()
    agency_names: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in FILTER_FIELDS)

    def with_values(self, field_name: str, values: Iterable[str]) -> "Filters":
        """Return a copy with one field replaced by distinct values, order kept."""
        if field_name not in FILTER_FIELDS:
            raise KeyError(f"Unknown filter field: {field_name}")
        distinct = tuple(dict.fromkeys(v for v in values if v))
        return replace(self, **{field_name: distinct})

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(getattr(self, name)) for name in FILTER_FIELDS}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[str]]) -> "Filters":
        filters = cls()
        for name in FILTER_FIELDS:
            if data.get(name):
                filters = filters.with_values(name, data[name])
        return filters


# =============================================================================
# Metrics
# =============================================================================


@dataclass
class GroupCount:
    """Listed and sold counters for one group. The two are independent."""
    listed: int = 0
    sold: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"listed": self.listed, "sold": self.sold}


@dataclass(frozen=True)
class ConfidenceBand:
    lower: float
    upper: float

    def to_dict(self) -> dict[str, float]:
        return {"lower": self.lower, "upper": self.upper}


@dataclass(frozen=True)
class Prediction:
    """One-period-ahead projection with a heuristic confidence band."""
    value: float
    lower: float
    upper: float


@dataclass(frozen=True)
class TopLister:
    agent: str
    count: int


@dataclass(frozen=True)
class CommissionEarner:
    agent: str
    commission: float


@dataclass(frozen=True)
class SalesStat:
    """Sales count for a named agent or agency."""
    name: str
    sales: int


@dataclass
class PropertyMetrics:
    """Aggregate view over a (filtered) property collection."""

    listings_by_suburb: dict[str, GroupCount] = field(default_factory=dict)
    listings_by_street_name: dict[str, GroupCount] = field(default_factory=dict)
    listings_by_street_number: dict[str, GroupCount] = field(default_factory=dict)
    listings_by_agent: dict[str, GroupCount] = field(default_factory=dict)
    listings_by_agency: dict[str, GroupCount] = field(default_factory=dict)

    avg_sale_price_by_suburb: dict[str, float] = field(default_factory=dict)
    avg_sale_price_by_street_name: dict[str, float] = field(default_factory=dict)
    avg_sale_price_by_street_number: dict[str, float] = field(default_factory=dict)
    avg_sale_price_by_agent: dict[str, float] = field(default_factory=dict)
    avg_sale_price_by_agency: dict[str, float] = field(default_factory=dict)

    predicted_avg_price_by_suburb: dict[str, float] = field(default_factory=dict)
    predicted_confidence_by_suburb: dict[str, ConfidenceBand] = field(default_factory=dict)
    price_trends_by_suburb: dict[str, dict[str, float]] = field(default_factory=dict)
    commission_by_agency: dict[str, dict[str, float]] = field(default_factory=dict)

    property_details: list[PropertyDetails] = field(default_factory=list)

    total_listings: int = 0
    total_sales: int = 0
    overall_avg_sale_price: float = 0.0

    top_listers_by_suburb: dict[str, TopLister] = field(default_factory=dict)
    our_listings_by_suburb: dict[str, int] = field(default_factory=dict)
    top_commission_earners: list[CommissionEarner] = field(default_factory=list)
    our_commission: float = 0.0
    top_agents: list[SalesStat] = field(default_factory=list)
    our_agent_stats: SalesStat = field(default_factory=lambda: SalesStat(UNKNOWN, 0))
    top_agencies: list[SalesStat] = field(default_factory=list)
    our_agency_stats: SalesStat = field(default_factory=lambda: SalesStat(UNKNOWN, 0))

    def to_dict(self, include_properties: bool = False) -> dict[str, Any]:
        """Serialize for the JSON API."""

        def counts(groups: dict[str, GroupCount]) -> dict[str, dict[str, int]]:
            return {k: v.to_dict() for k, v in groups.items()}

        data: dict[str, Any] = {
            "listings_by_suburb": counts(self.listings_by_suburb),
            "listings_by_street_name": counts(self.listings_by_street_name),
            "listings_by_street_number": counts(self.listings_by_street_number),
            "listings_by_agent": counts(self.listings_by_agent),
            "listings_by_agency": counts(self.listings_by_agency),
            "avg_sale_price_by_suburb": dict(self.avg_sale_price_by_suburb),
            "avg_sale_price_by_street_name": dict(self.avg_sale_price_by_street_name),
            "avg_sale_price_by_street_number": dict(self.avg_sale_price_by_street_number),
            "avg_sale_price_by_agent": dict(self.avg_sale_price_by_agent),
            "avg_sale_price_by_agency": dict(self.avg_sale_price_by_agency),
            "predicted_avg_price_by_suburb": dict(self.predicted_avg_price_by_suburb),
            "predicted_confidence_by_suburb": {
                k: v.to_dict() for k, v in self.predicted_confidence_by_suburb.items()
            },
            "price_trends_by_suburb": {k: dict(v) for k, v in self.price_trends_by_suburb.items()},
            "commission_by_agency": {k: dict(v) for k, v in self.commission_by_agency.items()},
            "total_listings": self.total_listings,
            "total_sales": self.total_sales,
            "overall_avg_sale_price": self.overall_avg_sale_price,
            "top_listers_by_suburb": {
                k: {"agent": v.agent, "count": v.count}
                for k, v in self.top_listers_by_suburb.items()
            },
            "our_listings_by_suburb": dict(self.our_listings_by_suburb),
            "top_commission_earners": [
                {"agent": e.agent, "commission": e.commission}
                for e in self.top_commission_earners
            ],
            "our_commission": self.our_commission,
            "top_agents": [{"name": a.name, "sales": a.sales} for a in self.top_agents],
            "our_agent_stats": {"name": self.our_agent_stats.name, "sales": self.our_agent_stats.sales},
            "top_agencies": [{"name": a.name, "sales": a.sales} for a in self.top_agencies],
            "our_agency_stats": {"name": self.our_agency_stats.name, "sales": self.our_agency_stats.sales},
            "property_count": len(self.property_details),
        }
        if include_properties:
            data["property_details"] = [p.to_record() for p in self.property_details]
        return data
