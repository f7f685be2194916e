"""
Report Filters

Implements the conjunctive filter over the fetched property collection:
- Suburb (normalised on both sides)
- Street name, street number, agent (case-insensitive equality)
- Agency (case-insensitive equality, absent agency treated as "Unknown")

A property must match ALL fields. Within a field, matching ANY listed value
is enough. An empty field places no constraint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .models import FILTER_FIELDS, Filters, PropertyDetails, UNKNOWN
from .suburbs import normalize_suburb


logger = logging.getLogger(__name__)


class FilterValueError(ValueError):
    """Raised when a manually entered value is not one of the suggestions."""

    def __init__(self, field_name: str, value: str):
        self.field_name = field_name
        self.value = value
        label = field_name.rstrip("s").replace("_", " ")
        super().__init__(f"Invalid {label}: {value!r}. Please select from suggestions.")


# =============================================================================
# Field Accessors
# =============================================================================


def _field_value(prop: PropertyDetails, field_name: str) -> str:
    """Comparable value for a filter field, defaults applied."""
    if field_name == "suburbs":
        return normalize_suburb(prop.suburb)
    if field_name == "street_names":
        return (prop.street_name or "").lower()
    if field_name == "street_numbers":
        return (prop.street_number or "").lower()
    if field_name == "agents":
        return (prop.agent_name or "").lower()
    if field_name == "agency_names":
        return (prop.agency_name or UNKNOWN).lower()
    raise KeyError(f"Unknown filter field: {field_name}")


def _candidate_value(field_name: str, candidate: str) -> str:
    if field_name == "suburbs":
        return normalize_suburb(candidate)
    return candidate.lower()


def matches(prop: PropertyDetails, filters: Filters) -> bool:
    """Check one property against every filter field."""
    for field_name in FILTER_FIELDS:
        candidates = getattr(filters, field_name)
        if not candidates:
            continue
        value = _field_value(prop, field_name)
        if not any(_candidate_value(field_name, c) == value for c in candidates):
            return False
    return True


def apply_filters(properties: Iterable[PropertyDetails], filters: Filters) -> List[PropertyDetails]:
    """
    Filter properties, preserving order.

    With every filter field empty this returns all properties unchanged.
    """
    return [p for p in properties if matches(p, filters)]


# =============================================================================
# Suggestions
# =============================================================================


@dataclass(frozen=True)
class FilterSuggestions:
    """Distinct values per field for autocompletion, sorted."""
    suburbs: tuple[str, ...] = ()
    street_names: tuple[str, ...] = ()
    street_numbers: tuple[str, ...] = ()
    agents: tuple[str, ...] = ()
    agency_names: tuple[str, ...] = ()

    def for_field(self, field_name: str) -> tuple[str, ...]:
        if field_name not in FILTER_FIELDS:
            raise KeyError(f"Unknown filter field: {field_name}")
        return getattr(self, field_name)

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(getattr(self, name)) for name in FILTER_FIELDS}


def _distinct_sorted(values: Iterable[Optional[str]]) -> tuple[str, ...]:
    return tuple(sorted({v for v in values if v}))


def build_suggestions(properties: Iterable[PropertyDetails]) -> FilterSuggestions:
    """Collect suggestion lists from the unfiltered base collection."""
    properties = list(properties)
    return FilterSuggestions(
        suburbs=_distinct_sorted(normalize_suburb(p.suburb) for p in properties),
        street_names=_distinct_sorted(p.street_name for p in properties),
        street_numbers=_distinct_sorted(p.street_number for p in properties),
        agents=_distinct_sorted(p.agent_name for p in properties),
        agency_names=_distinct_sorted(p.agency_name or UNKNOWN for p in properties),
    )


# =============================================================================
# Stateful Engine
# =============================================================================


PreviewListener = Callable[[int], None]


@dataclass
class FilterEngine:
    """
    Filter state for one report screen.

    Staging filters only updates preview_count; the displayed list changes
    when apply() is called.
    """

    on_preview: Optional[PreviewListener] = None
    base: List[PropertyDetails] = field(default_factory=list)
    displayed: List[PropertyDetails] = field(default_factory=list)
    filters: Filters = field(default_factory=Filters)
    suggestions: FilterSuggestions = field(default_factory=FilterSuggestions)
    preview_count: int = 0

    def load(self, properties: Iterable[PropertyDetails]) -> None:
        """Replace the base collection; the display shows it unfiltered."""
        self.base = list(properties)
        self.displayed = list(self.base)
        self.suggestions = build_suggestions(self.base)
        self._publish_preview()

    def stage(self, filters: Filters) -> int:
        """Set pending filters and publish how many properties would match."""
        self.filters = filters
        return self._publish_preview()

    def apply(self, filters: Optional[Filters] = None) -> List[PropertyDetails]:
        """Commit filters (staged ones by default) to the displayed list."""
        if filters is not None:
            self.filters = filters
        self.displayed = apply_filters(self.base, self.filters)
        logger.debug("Filtered properties: %d of %d", len(self.displayed), len(self.base))
        self._publish_preview()
        return self.displayed

    def add_value(self, field_name: str, value: str) -> Filters:
        """
        Add a manually typed value to one field.

        Raises:
            FilterValueError: If the value is not among the field's suggestions.
        """
        value = value.strip()
        if not value or value not in self.suggestions.for_field(field_name):
            raise FilterValueError(field_name, value)
        current = getattr(self.filters, field_name)
        return self.stage(self.filters.with_values(field_name, [*current, value]))

    def reset(self) -> List[PropertyDetails]:
        self.filters = Filters()
        return self.apply()

    def _publish_preview(self) -> int:
        self.preview_count = sum(1 for p in self.base if matches(p, self.filters))
        if self.on_preview is not None:
            self.on_preview(self.preview_count)
        return self.preview_count
