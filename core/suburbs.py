"""
Suburb normalisation.

Free-text suburb values coming from the backend are inconsistent
("Kenmore", "kenmore qld", "KENMORE QLD (4069)"). Every grouping and
filtering step keys on the canonical label returned by normalize_suburb().

Unknown suburbs are only trimmed and lower-cased, so two spellings of a
suburb outside the allow-list still produce two keys.
"""

from typing import Final, Optional


UNKNOWN_SUBURB: Final[str] = "Unknown"

# Canonical labels for the suburbs the agency operates in.
ALLOWED_SUBURBS: Final[tuple[str, ...]] = (
    "Pullenvale 4069",
    "Brookfield 4069",
    "Anstead 4070",
    "Chapell Hill 4069",
    "Kenmore 4069",
    "Kenmore Hills 4069",
    "Fig Tree Pocket 4069",
    "Pinjara Hills 4069",
    "Moggill QLD (4070)",
    "Bellbowrie QLD (4070)",
)


def _aliases(canonical: str, *names: str, postcode: str) -> dict[str, str]:
    """Expand the usual spellings of one suburb to its canonical label."""
    table = {canonical.lower(): canonical}
    for name in names:
        table[name] = canonical
        table[f"{name} qld"] = canonical
        table[f"{name} qld ({postcode})"] = canonical
        table[f"{name} {postcode}"] = canonical
        table[f"{name} qld {postcode}"] = canonical
    return table


SUBURB_ALIASES: Final[dict[str, str]] = {
    **_aliases("Pullenvale 4069", "pullenvale", postcode="4069"),
    **_aliases("Brookfield 4069", "brookfield", postcode="4069"),
    **_aliases("Anstead 4070", "anstead", postcode="4070"),
    **_aliases("Chapell Hill 4069", "chapel hill", "chapell hill", postcode="4069"),
    **_aliases("Kenmore 4069", "kenmore", postcode="4069"),
    **_aliases("Kenmore Hills 4069", "kenmore hills", postcode="4069"),
    **_aliases("Fig Tree Pocket 4069", "fig tree pocket", postcode="4069"),
    **_aliases("Pinjara Hills 4069", "pinjarra hills", "pinjara hills", postcode="4069"),
    **_aliases("Moggill QLD (4070)", "moggill", postcode="4070"),
    **_aliases("Bellbowrie QLD (4070)", "bellbowrie", postcode="4070"),
}


def normalize_suburb(suburb: Optional[str]) -> str:
    """
    Map a free-text suburb to its canonical label.

    Args:
        suburb: Raw suburb text, possibly empty or None.

    Returns:
        "Unknown" for absent/blank input, the canonical "Name POSTCODE" label
        for a known alias, otherwise the trimmed lower-cased input.
    """
    if not suburb or not str(suburb).strip():
        return UNKNOWN_SUBURB

    trimmed = str(suburb).strip().lower()
    if trimmed == UNKNOWN_SUBURB.lower():
        return UNKNOWN_SUBURB
    return SUBURB_ALIASES.get(trimmed, trimmed)


def is_allowed_suburb(suburb: Optional[str]) -> bool:
    """Check whether a suburb normalises to one of the allow-listed labels."""
    return normalize_suburb(suburb) in ALLOWED_SUBURBS
