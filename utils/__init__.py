"""
Utility modules for the agency reports service.
"""

from .formatting import (
    NOT_AVAILABLE,
    format_array,
    format_currency,
    format_date,
    format_percent,
    format_timestamp,
)
from .config import Config

__all__ = [
    "NOT_AVAILABLE",
    "format_array",
    "format_currency",
    "format_date",
    "format_percent",
    "format_timestamp",
    "Config",
]
