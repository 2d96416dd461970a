"""
Return Metrics

Aggregates a cash flow series and its solved rate into the figures shown
to investors.
"""

import math
from typing import List, Optional
from datetime import date

from offplan_xirr.calculations.models import (
    CashFlow,
    DealMetrics,
    InvestmentSnapshot,
    PaymentMode,
    XIRRResult,
)
from offplan_xirr.calculations.schedule import build_schedule
from offplan_xirr.calculations.xirr import calculate_xirr
from offplan_xirr.utils import round_half_up

# Externally visible bounds: -100% to +1000% annualized
MIN_RATE = -1.0
MAX_RATE = 10.0
DAYS_PER_MONTH = 30

DEAL_RATINGS = [
    (0.25, "Excellent"),
    (0.18, "Very Good"),
    (0.12, "Good"),
    (0.08, "Fair"),
]


def clamp_rate(rate: float) -> float:
    """Map NaN to 0 and clamp into the reportable range."""
    if math.isnan(rate):
        return 0.0
    return min(max(rate, MIN_RATE), MAX_RATE)


def calculate_hold_period_months(cash_flows: List[CashFlow]) -> int:
    """Months (30-day) between the first and last cash flow."""
    if not cash_flows:
        return 0
    first_date = min(cf.date for cf in cash_flows)
    last_date = max(cf.date for cf in cash_flows)
    if last_date <= first_date:
        return 0
    return round_half_up((last_date - first_date).days / DAYS_PER_MONTH)


def summarize(cash_flows: List[CashFlow], rate: float) -> XIRRResult:
    """
    Summarize a cash flow series.

    Args:
        cash_flows: Dated cash flows (negative = invested)
        rate: Rate from calculate_xirr, possibly NaN

    Returns:
        XIRRResult with a finite rate in [-1, 10]
    """
    total_invested = abs(sum(cf.amount for cf in cash_flows if cf.amount < 0))
    total_returns = sum(cf.amount for cf in cash_flows if cf.amount > 0)

    return XIRRResult(
        rate=clamp_rate(rate),
        total_invested=total_invested,
        net_profit=total_returns - total_invested,
        hold_period_months=calculate_hold_period_months(cash_flows),
    )


def compute_return(
    snapshot: InvestmentSnapshot, today: Optional[date] = None
) -> XIRRResult:
    """Build the schedule, solve for XIRR and summarize."""
    cash_flows = build_schedule(snapshot, today=today)
    rate = calculate_xirr(cash_flows)
    return summarize(cash_flows, rate)


def rate_deal(rate: float) -> str:
    """Qualitative rating for an annualized return."""
    for threshold, rating in DEAL_RATINGS:
        if rate >= threshold:
            return rating
    return "Below Average"


def assess_market_risk(hold_period_months: int, appreciation_percent: float) -> str:
    """Longer holds and steeper appreciation assumptions carry more risk."""
    if hold_period_months <= 18 and appreciation_percent <= 30:
        return "Low"
    if hold_period_months <= 30 and appreciation_percent <= 50:
        return "Moderate"
    return "High"


def deal_metrics(snapshot: InvestmentSnapshot, result: XIRRResult) -> DealMetrics:
    """Derived report figures for a computed result."""
    prop = snapshot.property
    exit_strategy = snapshot.exit

    appreciation = 0.0
    if prop.total_price > 0:
        appreciation = (
            (exit_strategy.projected_sales_price - prop.total_price) / prop.total_price
        ) * 100

    total_roi = 0.0
    if result.total_invested > 0:
        total_roi = (result.net_profit / result.total_invested) * 100

    closing_costs = exit_strategy.projected_sales_price * (
        exit_strategy.closing_cost_percent / 100
    )

    monthly_installment = 0.0
    payment = snapshot.payment
    if payment.mode == PaymentMode.plan and payment.installment_months > 0:
        down_payment = prop.total_price * (payment.down_payment_percent / 100)
        monthly_installment = (prop.total_price - down_payment) / payment.installment_months

    price_per_sqm = None
    if prop.size_sqm > 0:
        price_per_sqm = prop.total_price / prop.size_sqm

    return DealMetrics(
        appreciation_percent=appreciation,
        total_roi_percent=total_roi,
        closing_costs=closing_costs,
        net_sale_proceeds=exit_strategy.projected_sales_price - closing_costs,
        monthly_installment=monthly_installment,
        deal_rating=rate_deal(result.rate),
        market_risk=assess_market_risk(result.hold_period_months, appreciation),
        price_per_sqm=price_per_sqm,
    )
