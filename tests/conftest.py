"""
Shared fixtures: a ten-property sample collection and a fake backend.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from core.backend import PropertyRepository, RealtimeHub
from core.models import properties_from_records

from fakes import FakeBackend


def _record(id, street_number, street_name, suburb, category, agent, agency, commission=None,
            price=None, sold_price=None, listed_date=None, sold_date=None, **extra):
    record = {
        "id": id,
        "street_number": street_number,
        "street_name": street_name,
        "suburb": suburb,
        "category": category,
        "property_type": extra.pop("property_type", "House"),
        "agent_name": agent,
        "agency_name": agency,
        "commission": commission,
        "price": price,
        "sold_price": sold_price,
        "listed_date": listed_date,
        "sold_date": sold_date,
        "created_at": f"2026-03-{31 - int(id):02d}T09:00:00+00:00",
    }
    record.update(extra)
    return record


SAMPLE_RECORDS = [
    _record("1", "12", "Main St", "Moggill", "Listing", "Alice Smith", "Harcourt Success", 2.5,
            price=700000, listed_date="2026-01-10"),
    _record("2", "14", "Main St", "moggill qld", "Sold", "Alice Smith", "Harcourt Success", 2.5,
            price=720000, sold_price=750000, listed_date="2025-12-01", sold_date="2026-02-15"),
    _record("3", "3", "River Rd", "MOGGILL QLD (4070)", "Sold", "Bob Jones", "Ray White", 2.0,
            sold_price=800000, sold_date="2026-03-10"),
    _record("4", "5", "Hill St", "Kenmore", "Sold", "Bob Jones", "Ray White", 2.0,
            sold_price=550000, sold_date="2026-01-20"),
    _record("5", "7", "Hill St", "kenmore qld", "Sold", "Carol White", "Place", 3.0,
            sold_price=650000, sold_date="2026-02-20"),
    _record("6", "9", "Ridge Rd", "Brookfield", "Listing", "Carol White", "Place",
            price=1200000, listed_date="2026-03-01"),
    _record("7", "11", "Ridge Rd", "brookfield 4069", "Sold", "Alice Smith", "Harcourt Success", 2.5,
            sold_price=1100000, sold_date="2026-03-05"),
    _record("8", "2", "Creek Ln", "Bellbowrie", "Listing", None, None,
            listed_date="2026-02-02"),
    _record("9", "4", "Creek Ln", "Pullenvale", "Under Offer", "Dan Brown", "Ray White", 2.0,
            price=900000),
    _record("10", "6", "Creek Ln", "", "Sold", "Dan Brown", "ray white ", 2.0,
            price=0, sold_price=0, sold_date="2026-01-05"),
]


@pytest.fixture
def sample_properties():
    return properties_from_records(SAMPLE_RECORDS)


@pytest.fixture
def backend():
    return FakeBackend({"properties": SAMPLE_RECORDS})


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def repository(backend, hub):
    return PropertyRepository(backend.client(), hub)
