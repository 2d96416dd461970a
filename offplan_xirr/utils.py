"""
Shared numeric and date helpers.
"""

import math
from datetime import date, datetime
from typing import Optional

from dateutil.parser import isoparse


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def parse_date(value) -> Optional[date]:
    """
    Parse a calendar date from a date, datetime or ISO-8601 string.

    Returns None for empty or malformed input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return isoparse(value.strip()).date()
    except (ValueError, OverflowError):
        return None
