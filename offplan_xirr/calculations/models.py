"""
Calculation Data Model

Immutable value types passed into and out of the calculation core.
All monetary values are in the base currency (IDR by default).
"""

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple, Union

# Dates may arrive as ISO strings from callers; the schedule builder parses
# them and drops anything malformed.
DateInput = Union[date, str, None]


class PaymentMode(str, enum.Enum):
    """How the purchase price is paid."""

    full = "full"
    plan = "plan"


class FlowDirection(str, enum.Enum):
    """Direction of an ad hoc cash flow, seen from the investor."""

    inflow = "inflow"
    outflow = "outflow"


@dataclass(frozen=True)
class CashFlow:
    """A single dated, signed amount (negative = outflow)."""

    date: date
    amount: float


@dataclass(frozen=True)
class Property:
    """Property being purchased off-plan."""

    total_price: float
    purchase_date: DateInput = None
    handover_date: DateInput = None
    currency: str = "IDR"  # Display currency only
    project_name: str = ""
    location: str = ""
    size_sqm: float = 0.0


@dataclass(frozen=True)
class InstallmentEntry:
    """One row of an explicit (user-edited) installment schedule."""

    date: DateInput
    amount: float


@dataclass(frozen=True)
class PaymentTerms:
    """Payment structure for the purchase price."""

    mode: PaymentMode = PaymentMode.plan
    down_payment_percent: float = 50.0
    installment_months: int = 6
    booking_fee: float = 0.0
    booking_fee_date: DateInput = None
    installments: Tuple[InstallmentEntry, ...] = ()


@dataclass(frozen=True)
class ExitStrategy:
    """Projected exit sale."""

    projected_sales_price: float = 0.0
    closing_cost_percent: float = 2.5
    sale_date: DateInput = None
    strategy_type: str = "flip"
    hold_period_years: float = 0.0


@dataclass(frozen=True)
class AdditionalCashFlow:
    """Ad hoc cash flow such as furniture cost or rental income."""

    date: DateInput
    amount: float
    direction: FlowDirection = FlowDirection.outflow
    description: str = ""


@dataclass(frozen=True)
class InvestmentSnapshot:
    """Complete set of investment parameters for one calculation."""

    property: Property
    payment: PaymentTerms = field(default_factory=PaymentTerms)
    exit: ExitStrategy = field(default_factory=ExitStrategy)
    additional_cash_flows: Tuple[AdditionalCashFlow, ...] = ()


@dataclass(frozen=True)
class XIRRResult:
    """Summary of an investment's return."""

    rate: float
    total_invested: float
    net_profit: float
    hold_period_months: int


@dataclass(frozen=True)
class DealMetrics:
    """Derived figures shown alongside the XIRR in reports."""

    appreciation_percent: float
    total_roi_percent: float
    closing_costs: float
    net_sale_proceeds: float
    monthly_installment: float
    deal_rating: str
    market_risk: str
    price_per_sqm: Optional[float] = None
