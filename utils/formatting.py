"""
Formatting utilities.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Union


NOT_AVAILABLE = "N/A"


def format_currency(amount: Union[int, float, None], currency: str = "AUD") -> str:
    """
    Format an amount as currency, rounded to whole dollars.

    Args:
        amount: The amount in whole units (e.g., dollars, not cents).
        currency: Currency code (default AUD).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "AUD": "$",
        "USD": "$",
        "GBP": "£",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    value = round(amount or 0)
    if value < 0:
        return f"-{symbol}{abs(value):,}"
    return f"{symbol}{value:,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def format_date(value: Optional[Union[date, datetime]]) -> str:
    """Format a date as DD/MM/YYYY, or N/A when absent."""
    if value is None:
        return NOT_AVAILABLE
    return value.strftime("%d/%m/%Y")


def format_array(values: Optional[Iterable[str]]) -> str:
    """Join a list of tags for tabular output."""
    items = [str(v) for v in (values or []) if v]
    return ", ".join(items) if items else NOT_AVAILABLE


def format_timestamp(moment: datetime) -> str:
    """Format a generation timestamp, e.g. 'October 18th 2026, 3:04:05 pm'."""
    day = moment.day
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    hour = moment.hour % 12 or 12
    meridiem = "am" if moment.hour < 12 else "pm"
    return (
        f"{moment.strftime('%B')} {day}{suffix} {moment.year}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    )
