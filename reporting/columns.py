"""
Tabular projection shared by every exporter.

A report is an ordered tuple of Column definitions. The PDF, CSV and HTML
backends all read headers, cell text and widths from here, so the three
outputs cannot drift apart.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence

from core.commission import (
    RateOverrides,
    compute_commission,
    effective_rate,
    normalize_agency_name,
    normalize_agent_name,
)
from core.models import PropertyDetails, UNKNOWN
from core.suburbs import normalize_suburb
from utils.formatting import NOT_AVAILABLE, format_array, format_currency, format_date


# =============================================================================
# Cell Formatters
# =============================================================================


def _number_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def text_or_na(value: Any) -> str:
    return str(value) if value else NOT_AVAILABLE


def number_or_na(value: Any) -> str:
    """Zero is a real value here; only absent numbers become N/A."""
    return NOT_AVAILABLE if value is None else _number_text(value)


def currency(value: Any) -> str:
    return format_currency(value or 0)


def currency_or_na(value: Any) -> str:
    return format_currency(value) if value else NOT_AVAILABLE


def percent_or_na(value: Any) -> str:
    return f"{_number_text(value)}%" if value else NOT_AVAILABLE


def plain(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Column:
    header: str
    accessor: Callable[[PropertyDetails], Any]
    formatter: Callable[[Any], str] = text_or_na
    width_mm: float = 15

    def cell(self, prop: PropertyDetails) -> str:
        return self.formatter(self.accessor(prop))


def _earned(prop: PropertyDetails) -> Optional[float]:
    if prop.commission_earned:
        return prop.commission_earned
    return compute_commission(prop).earned_amount


# =============================================================================
# Property Report (property_report.pdf / .csv / .html)
# =============================================================================

PROPERTY_REPORT_COLUMNS: tuple[Column, ...] = (
    Column("Street Number", lambda p: p.street_number, width_mm=15),
    Column("Street Name", lambda p: p.street_name, width_mm=20),
    Column("Suburb", lambda p: normalize_suburb(p.suburb), plain, width_mm=20),
    Column("Postcode", lambda p: p.postcode, width_mm=15),
    Column("Agent", lambda p: p.agent_name, width_mm=20),
    Column("Type", lambda p: p.property_type, width_mm=15),
    Column("Price", lambda p: p.price, currency, width_mm=20),
    Column("Sold Price", lambda p: p.sold_price, currency_or_na, width_mm=20),
    Column("Status", lambda p: p.category, width_mm=15),
    Column("Commission (%)", lambda p: p.commission, percent_or_na, width_mm=15),
    Column("Commission Earned", _earned, currency_or_na, width_mm=20),
    Column("Agency", lambda p: p.agency_name, width_mm=20),
    Column("Expected Price", lambda p: p.expected_price, currency_or_na, width_mm=15),
    Column("Sale Type", lambda p: p.sale_type, width_mm=15),
    Column("Bedrooms", lambda p: p.bedrooms, number_or_na, width_mm=10),
    Column("Bathrooms", lambda p: p.bathrooms, number_or_na, width_mm=10),
    Column("Car Garage", lambda p: p.car_garage, number_or_na, width_mm=10),
    Column("SQM", lambda p: p.sqm, number_or_na, width_mm=10),
    Column("Land Size", lambda p: p.landsize, number_or_na, width_mm=10),
    Column("Listed Date", lambda p: p.listed_date, format_date, width_mm=15),
    Column("Sold Date", lambda p: p.sold_date, format_date, width_mm=15),
    Column("Flood Risk", lambda p: p.flood_risk, width_mm=15),
    Column("Bushfire Risk", lambda p: p.bushfire_risk, width_mm=15),
    Column("Contract Status", lambda p: p.contract_status, width_mm=15),
    Column("Features", lambda p: p.features, format_array, width_mm=25),
)


# =============================================================================
# Admin Commission Report
# =============================================================================


def _street_address(prop: PropertyDetails) -> str:
    return f"{prop.street_number or ''} {prop.street_name or ''}, {prop.suburb or UNKNOWN}"


def admin_commission_columns(overrides: Optional[RateOverrides] = None) -> tuple[Column, ...]:
    """Columns for the admin commission export; rates include overrides."""
    return (
        Column("Property ID", lambda p: p.id, plain, width_mm=25),
        Column("Address", _street_address, plain, width_mm=60),
        Column("Agency", lambda p: normalize_agency_name(p.agency_name), plain, width_mm=35),
        Column("Agent", lambda p: normalize_agent_name(p.agent_name), plain, width_mm=30),
        Column(
            "Commission Rate",
            lambda p: effective_rate(p, overrides),
            lambda v: f"{_number_text(v or 0)}%",
            width_mm=25,
        ),
        Column("Price", lambda p: p.sold_price or p.price or 0, currency, width_mm=25),
        Column("Status", lambda p: p.contract_status or UNKNOWN, plain, width_mm=25),
    )


ADMIN_COMMISSION_COLUMNS: tuple[Column, ...] = admin_commission_columns()


# =============================================================================
# Projection
# =============================================================================


def header_row(columns: Sequence[Column]) -> List[str]:
    return [c.header for c in columns]


def project_rows(columns: Sequence[Column], properties: Iterable[PropertyDetails]) -> List[List[str]]:
    """One list of cell strings per property, in column order."""
    return [[c.cell(p) for c in columns] for p in properties]
