"""
XIRR Calculations

Implements XIRR using Newton-Raphson method, matching Excel's XIRR function
for irregular cash flows.
"""

import math
from typing import List, Tuple
import numpy as np

from offplan_xirr.calculations.models import CashFlow

MAX_ITERATIONS = 100
TOLERANCE = 1e-7
DEFAULT_GUESS = 0.1
DAYS_PER_YEAR = 365.0

# Safety rail for the working rate between iterations
MIN_ITERATION_RATE = -0.99
MAX_ITERATION_RATE = 10.0

# Below this total magnitude the series is treated as empty
NEGLIGIBLE_TOTAL = 1.0


def _year_fractions(cash_flows: List[CashFlow]) -> Tuple[np.ndarray, np.ndarray]:
    """Sort flows by date and return (year fractions from first flow, amounts)."""
    ordered = sorted(cash_flows, key=lambda cf: cf.date)
    base_date = ordered[0].date
    years = np.array(
        [(cf.date - base_date).days / DAYS_PER_YEAR for cf in ordered], dtype=float
    )
    amounts = np.array([cf.amount for cf in ordered], dtype=float)
    return years, amounts


def calculate_xnpv(cash_flows: List[CashFlow], discount_rate: float) -> float:
    """
    Calculate XNPV (NPV with specific dates).

    Args:
        cash_flows: Dated cash flows (negative = outflow, positive = inflow)
        discount_rate: Annual discount rate (e.g., 0.10 for 10%)

    Returns:
        XNPV value discounted to the earliest flow's date
    """
    if not cash_flows:
        return 0.0
    years, amounts = _year_fractions(cash_flows)
    return float(np.sum(amounts * np.power(1 + discount_rate, -years)))


def _xnpv_derivative(years: np.ndarray, amounts: np.ndarray, rate: float) -> float:
    """Calculate derivative of XNPV with respect to rate."""
    return float(np.sum(-years * amounts * np.power(1 + rate, -years - 1)))


def is_degenerate(cash_flows: List[CashFlow]) -> bool:
    """True when no meaningful rate exists for the series."""
    if len(cash_flows) < 2:
        return True

    total_abs_amount = sum(abs(cf.amount) for cf in cash_flows)
    if total_abs_amount < NEGLIGIBLE_TOTAL:
        return True

    has_inflow = any(cf.amount > 0 for cf in cash_flows)
    has_outflow = any(cf.amount < 0 for cf in cash_flows)
    return not has_inflow or not has_outflow


def calculate_xirr(cash_flows: List[CashFlow], guess: float = DEFAULT_GUESS) -> float:
    """
    Calculate XIRR (IRR with specific dates).

    Degenerate series (fewer than 2 flows, negligible amounts, or flows
    in only one direction) return 0. A zero derivative returns NaN, which
    callers must treat as a failure. If the iteration limit is reached the
    last rate is returned as a best estimate.

    Args:
        cash_flows: Dated cash flows, in any order
        guess: Initial guess for rate (default 0.1 = 10%)

    Returns:
        Annual rate as decimal (e.g., 0.15 for 15%)
    """
    if is_degenerate(cash_flows):
        return 0.0

    years, amounts = _year_fractions(cash_flows)
    rate = guess

    for _ in range(MAX_ITERATIONS):
        discount = np.power(1 + rate, -years)
        xnpv = float(np.sum(amounts * discount))

        if abs(xnpv) < TOLERANCE:
            return rate

        dxnpv = _xnpv_derivative(years, amounts, rate)
        if dxnpv == 0:
            return math.nan

        new_rate = rate - xnpv / dxnpv

        if abs(new_rate - rate) < TOLERANCE:
            return new_rate

        # Prevent divergence
        rate = min(max(new_rate, MIN_ITERATION_RATE), MAX_ITERATION_RATE)

    return rate
