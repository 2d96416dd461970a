"""
Payment Schedule Calculations

Builds the dated, signed cash flow series for an off-plan purchase:
booking fee, down payment, installments, ad hoc flows and the exit sale.
"""

import math
from typing import List, Optional
from datetime import date
from dateutil.relativedelta import relativedelta

from offplan_xirr.calculations.models import (
    CashFlow,
    FlowDirection,
    InstallmentEntry,
    InvestmentSnapshot,
    PaymentMode,
)
from offplan_xirr.utils import parse_date

DEFAULT_INSTALLMENT_MONTHS = 6


def _resolve_dates(snapshot: InvestmentSnapshot, today: Optional[date]):
    """Resolve purchase and handover dates with their fallbacks."""
    purchase_date = parse_date(snapshot.property.purchase_date)
    if purchase_date is None:
        purchase_date = today or date.today()

    handover_date = parse_date(snapshot.property.handover_date) or purchase_date
    return purchase_date, handover_date


def expected_remaining_balance(snapshot: InvestmentSnapshot) -> float:
    """Balance left after the down payment, to be paid in installments."""
    total_price = snapshot.property.total_price
    down_payment = total_price * (snapshot.payment.down_payment_percent / 100)
    return total_price - down_payment


def installment_shortfall(snapshot: InvestmentSnapshot) -> float:
    """
    Difference between an explicit installment schedule and the expected balance.

    Positive means the schedule overpays. Returns 0 when no explicit schedule
    is set. The schedule is never rejected for a mismatch; this is advisory.
    """
    installments = snapshot.payment.installments
    if not installments:
        return 0.0
    scheduled = sum(entry.amount for entry in installments)
    return scheduled - expected_remaining_balance(snapshot)


def months_between(
    purchase_date,
    handover_date,
    today: Optional[date] = None,
) -> int:
    """
    Whole calendar months from purchase to handover (minimum 1).

    Used to size the installment plan; defaults to 6 when no handover date.
    """
    end = parse_date(handover_date)
    if end is None:
        return DEFAULT_INSTALLMENT_MONTHS

    start = parse_date(purchase_date) or today or date.today()
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(1, months)


def generate_installments(
    total_price: float,
    down_payment_percent: float,
    installment_months: int,
    purchase_date=None,
    today: Optional[date] = None,
) -> List[InstallmentEntry]:
    """
    Generate an editable monthly installment plan.

    The first installment falls one month after purchase. The last
    installment absorbs the rounding remainder so the plan sums exactly to
    the balance after the down payment.

    Args:
        total_price: Purchase price in base currency
        down_payment_percent: Down payment as percent of price (e.g., 50)
        installment_months: Number of monthly installments
        purchase_date: Start of the plan (defaults to today)
        today: Injected current date

    Returns:
        List of installment entries, empty for non-positive price or months
    """
    if total_price <= 0 or installment_months <= 0:
        return []

    remaining = total_price * (1 - down_payment_percent / 100)
    base_payment = math.floor(remaining / installment_months)
    start_date = parse_date(purchase_date) or today or date.today()

    entries = []
    for i in range(installment_months):
        is_last = i == installment_months - 1
        amount = remaining - base_payment * i if is_last else base_payment
        entries.append(
            InstallmentEntry(
                date=start_date + relativedelta(months=i + 1),
                amount=amount,
            )
        )
    return entries


def _synthesized_installments(
    remaining: float,
    installment_months: int,
    purchase_date: date,
    handover_date: date,
) -> List[CashFlow]:
    """Equal monthly installments up to handover; last kept one gets the remainder."""
    if installment_months <= 0 or remaining <= 0:
        return []

    base_payment = math.floor(remaining / installment_months)
    remainder = remaining - base_payment * installment_months

    flows = []
    for i in range(1, installment_months + 1):
        payment_date = purchase_date + relativedelta(months=i)
        # Installments never run past handover
        if payment_date > handover_date:
            continue

        next_date = purchase_date + relativedelta(months=i + 1)
        is_last = i == installment_months or next_date > handover_date
        amount = base_payment + remainder if is_last else base_payment

        if amount > 0:
            flows.append(CashFlow(date=payment_date, amount=-amount))

    return flows


def _purchase_flows(
    snapshot: InvestmentSnapshot,
    purchase_date: date,
    handover_date: date,
) -> List[CashFlow]:
    """Outflows paying for the property itself."""
    prop = snapshot.property
    payment = snapshot.payment
    flows: List[CashFlow] = []

    if prop.total_price <= 0:
        return flows

    # Booking fee is part of the price, credited against the first payment
    booking_fee = payment.booking_fee if payment.booking_fee > 0 else 0.0
    booking_fee_date = parse_date(payment.booking_fee_date) or purchase_date

    if booking_fee > 0:
        flows.append(CashFlow(date=booking_fee_date, amount=-booking_fee))

    if payment.mode == PaymentMode.full:
        remaining_payment = prop.total_price - booking_fee
        if remaining_payment > 0:
            flows.append(CashFlow(date=purchase_date, amount=-remaining_payment))
        return flows

    # === PAYMENT PLAN ===
    down_payment = prop.total_price * (payment.down_payment_percent / 100)
    remaining_down_payment = down_payment - booking_fee
    if remaining_down_payment > 0:
        flows.append(CashFlow(date=purchase_date, amount=-remaining_down_payment))

    if payment.installments:
        # Explicit schedule is used as entered, even past handover
        for entry in payment.installments:
            entry_date = parse_date(entry.date)
            if entry_date is not None and entry.amount > 0:
                flows.append(CashFlow(date=entry_date, amount=-entry.amount))
    else:
        flows.extend(
            _synthesized_installments(
                remaining=prop.total_price - down_payment,
                installment_months=payment.installment_months,
                purchase_date=purchase_date,
                handover_date=handover_date,
            )
        )

    return flows


def build_schedule(
    snapshot: InvestmentSnapshot, today: Optional[date] = None
) -> List[CashFlow]:
    """
    Build the full cash flow series for an investment.

    Deterministic for a given snapshot and `today`. Malformed dates and
    non-positive amounts are skipped rather than raising.

    Args:
        snapshot: Investment parameters (all amounts in base currency)
        today: Fallback purchase date when none is set (defaults to date.today())

    Returns:
        Cash flows sorted by date ascending (stable for equal dates)
    """
    purchase_date, handover_date = _resolve_dates(snapshot, today)

    cash_flows = _purchase_flows(snapshot, purchase_date, handover_date)

    # === ADDITIONAL CASH FLOWS ===
    for extra in snapshot.additional_cash_flows:
        extra_date = parse_date(extra.date)
        if extra_date is None or not extra.amount > 0:
            continue
        amount = extra.amount if extra.direction == FlowDirection.inflow else -extra.amount
        cash_flows.append(CashFlow(date=extra_date, amount=amount))

    # === EXIT ===
    exit_strategy = snapshot.exit
    closing_costs = exit_strategy.projected_sales_price * (
        exit_strategy.closing_cost_percent / 100
    )
    sale_proceeds = exit_strategy.projected_sales_price - closing_costs

    if exit_strategy.sale_date is None or exit_strategy.sale_date == "":
        sale_date = handover_date
    else:
        sale_date = parse_date(exit_strategy.sale_date)

    if sale_date is not None and sale_proceeds > 0:
        cash_flows.append(CashFlow(date=sale_date, amount=sale_proceeds))

    return sorted(cash_flows, key=lambda cf: cf.date)
