"""
Utility functions for scholargy.

Low-level helpers used across the system.
No domain logic should live here.
"""

from scholargy.utils.cancel import CancellationToken
from scholargy.utils.text import normalize_text, dig, format_percent, format_count
from scholargy.utils.time import utc_now, iso_timestamp

__all__ = [
    "CancellationToken",
    "normalize_text",
    "dig",
    "format_percent",
    "format_count",
    "utc_now",
    "iso_timestamp",
]
