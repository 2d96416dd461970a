"""
Currency display helpers.

Calculations always run in the base currency; these helpers convert and
format amounts for display in the investor's chosen currency.
"""

import math
import re

from offplan_xirr.utils import round_half_up

CURRENCY_SYMBOLS = {
    "IDR": "Rp",
    "USD": "$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "CNY": "¥",
    "AED": "د.إ",
    "RUB": "₽",
}


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, "Rp")


def to_display(amount: float, rate: float) -> int:
    """Convert a base-currency amount to whole display units."""
    return round_half_up(amount / rate)


def from_display(value: float, rate: float) -> int:
    """Convert a display amount back to whole base-currency units."""
    return round_half_up(value * rate)


def format_display(amount: float, rate: float) -> str:
    """Whole display units with comma separators (e.g., "1,250,000")."""
    return f"{to_display(amount, rate):,}"


def format_abbreviated(amount: float, currency: str, rate: float) -> str:
    """
    Short form for summaries.

    IDR uses B/M suffixes (e.g., "2.38B", "198M"); other currencies use
    M/K (e.g., "1.25M", "12K").
    """
    display = to_display(amount, rate)
    magnitude = abs(display)

    if currency == "IDR":
        if magnitude >= 1_000_000_000:
            return f"{display / 1_000_000_000:.2f}B"
        if magnitude >= 1_000_000:
            return f"{round_half_up(display / 1_000_000)}M"
    else:
        if magnitude >= 1_000_000:
            return f"{display / 1_000_000:.2f}M"
        if magnitude >= 1_000:
            return f"{round_half_up(display / 1_000)}K"
    return f"{display:,}"


def parse_decimal_input(value: str) -> float:
    """
    Parse user-entered decimals, accepting a comma as decimal separator.

    "50,9" parses as 50.9. Returns NaN when nothing numeric remains.
    """
    normalized = value.strip().replace(",", ".", 1)
    cleaned = re.sub(r"[^0-9.]", "", normalized)
    match = re.match(r"\d*\.?\d+|\d+", cleaned)
    if not match:
        return math.nan
    return float(match.group(0))


def sanitize_decimal_input(value: str) -> str:
    """Keep only digits, periods and commas."""
    return re.sub(r"[^0-9.,]", "", value)
