"""
Tests for report filters.

Verifies:
- Empty filters keep everything in order
- Fields combine with AND, values within a field with OR
- Suburb matching goes through normalisation
- Staging only changes the preview count
- Manually typed values must come from the suggestions
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.filters import FilterEngine, FilterValueError, apply_filters, build_suggestions, matches
from core.models import Filters


class TestApplyFilters:

    def test_empty_filters_are_identity(self, sample_properties):
        result = apply_filters(sample_properties, Filters())
        assert [p.id for p in result] == [p.id for p in sample_properties]

    def test_suburb_filter_uses_normalised_labels(self, sample_properties):
        result = apply_filters(sample_properties, Filters(suburbs=("Moggill QLD (4070)",)))
        assert [p.id for p in result] == ["1", "2", "3"]

    def test_suburb_filter_accepts_raw_spelling(self, sample_properties):
        result = apply_filters(sample_properties, Filters(suburbs=("moggill",)))
        assert len(result) == 3

    def test_values_within_field_are_or(self, sample_properties):
        filters = Filters(suburbs=("Kenmore 4069", "Brookfield 4069"))
        assert [p.id for p in apply_filters(sample_properties, filters)] == ["4", "5", "6", "7"]

    def test_fields_are_and(self, sample_properties):
        filters = Filters(suburbs=("Moggill QLD (4070)",), agents=("alice smith",))
        assert [p.id for p in apply_filters(sample_properties, filters)] == ["1", "2"]

    def test_missing_agency_matches_unknown(self, sample_properties):
        result = apply_filters(sample_properties, Filters(agency_names=("Unknown",)))
        assert [p.id for p in result] == ["8"]

    def test_street_number_exact(self, sample_properties):
        result = apply_filters(sample_properties, Filters(street_numbers=("12",)))
        assert [p.id for p in result] == ["1"]

    def test_idempotent(self, sample_properties):
        filters = Filters(agency_names=("ray white",))
        once = apply_filters(sample_properties, filters)
        twice = apply_filters(once, filters)
        assert [p.id for p in once] == [p.id for p in twice]

    def test_result_is_subset(self, sample_properties):
        filters = Filters(street_names=("Creek Ln",))
        for prop in apply_filters(sample_properties, filters):
            assert matches(prop, filters)


class TestFiltersModel:

    def test_with_values_deduplicates(self):
        filters = Filters().with_values("agents", ["A", "B", "A", ""])
        assert filters.agents == ("A", "B")

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            Filters().with_values("colour", ["red"])

    def test_from_mapping(self):
        filters = Filters.from_mapping({"suburbs": ["Moggill"], "agents": []})
        assert filters.suburbs == ("Moggill",)
        assert filters.agents == ()
        assert not filters.is_empty()


class TestSuggestions:

    def test_sorted_distinct(self, sample_properties):
        suggestions = build_suggestions(sample_properties)
        assert suggestions.street_names == ("Creek Ln", "Hill St", "Main St", "Ridge Rd", "River Rd")
        assert "Moggill QLD (4070)" in suggestions.suburbs
        assert "Unknown" in suggestions.agency_names


class TestFilterEngine:

    def test_stage_updates_preview_only(self, sample_properties):
        engine = FilterEngine()
        engine.load(sample_properties)
        count = engine.stage(Filters(suburbs=("Moggill QLD (4070)",)))
        assert count == 3
        assert engine.preview_count == 3
        assert len(engine.displayed) == 10

    def test_apply_commits(self, sample_properties):
        engine = FilterEngine()
        engine.load(sample_properties)
        engine.stage(Filters(suburbs=("Moggill QLD (4070)",)))
        displayed = engine.apply()
        assert len(displayed) == 3
        assert engine.preview_count == 3

    def test_reset(self, sample_properties):
        engine = FilterEngine()
        engine.load(sample_properties)
        engine.apply(Filters(suburbs=("Kenmore 4069",)))
        assert len(engine.reset()) == 10
        assert engine.filters.is_empty()

    def test_preview_listener(self, sample_properties):
        seen = []
        engine = FilterEngine(on_preview=seen.append)
        engine.load(sample_properties)
        engine.stage(Filters(agents=("Bob Jones",)))
        assert seen == [10, 2]

    def test_add_value_from_suggestions(self, sample_properties):
        engine = FilterEngine()
        engine.load(sample_properties)
        filters = engine.add_value("street_names", " Hill St ")
        assert filters.street_names == ("Hill St",)
        assert engine.preview_count == 2

    def test_add_value_rejects_unknown(self, sample_properties):
        engine = FilterEngine()
        engine.load(sample_properties)
        with pytest.raises(FilterValueError, match="Please select from suggestions"):
            engine.add_value("street_names", "Nowhere Rd")
