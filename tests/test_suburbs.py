"""
Tests for suburb normalisation.

Verifies:
- Common spellings map to one canonical label
- Blank input becomes "Unknown"
- Unknown suburbs are trimmed and lower-cased only
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.suburbs import ALLOWED_SUBURBS, UNKNOWN_SUBURB, is_allowed_suburb, normalize_suburb


class TestNormalizeSuburb:
    """Alias table lookups."""

    @pytest.mark.parametrize("raw", [
        "Moggill",
        "moggill qld",
        "MOGGILL QLD (4070)",
        "  moggill 4070 ",
        "Moggill QLD 4070",
    ])
    def test_moggill_spellings(self, raw):
        assert normalize_suburb(raw) == "Moggill QLD (4070)"

    def test_kenmore_and_kenmore_hills_are_distinct(self):
        assert normalize_suburb("kenmore") == "Kenmore 4069"
        assert normalize_suburb("Kenmore Hills") == "Kenmore Hills 4069"

    def test_chapel_hill_misspelling(self):
        """Both spellings land on the agency's label."""
        assert normalize_suburb("Chapel Hill") == "Chapell Hill 4069"
        assert normalize_suburb("chapell hill qld") == "Chapell Hill 4069"

    def test_pinjarra_hills(self):
        assert normalize_suburb("Pinjarra Hills") == "Pinjara Hills 4069"

    def test_canonical_label_is_stable(self):
        for label in ALLOWED_SUBURBS:
            assert normalize_suburb(label) == label

    @pytest.mark.parametrize("raw", [None, "", "   ", "unknown", "UNKNOWN"])
    def test_blank_is_unknown(self, raw):
        assert normalize_suburb(raw) == UNKNOWN_SUBURB

    def test_unknown_suburb_passes_through_lowercased(self):
        assert normalize_suburb("  Toowong ") == "toowong"

    def test_idempotent(self):
        for raw in ["Moggill", "Toowong", "", "brookfield 4069"]:
            once = normalize_suburb(raw)
            assert normalize_suburb(once) == once


class TestIsAllowedSuburb:

    def test_allowed(self):
        assert is_allowed_suburb("bellbowrie")

    def test_not_allowed(self):
        assert not is_allowed_suburb("Toowong")
        assert not is_allowed_suburb(None)
