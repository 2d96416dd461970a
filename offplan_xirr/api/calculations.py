"""
Financial calculation API endpoints.

These endpoints accept investment parameters and return calculated results.
All amounts are in the base currency.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from dataclasses import asdict

from offplan_xirr.calculations import exit_strategies, returns, schedule, xirr
from offplan_xirr.calculations.models import (
    AdditionalCashFlow,
    CashFlow,
    ExitStrategy,
    FlowDirection,
    InstallmentEntry,
    InvestmentSnapshot,
    PaymentMode,
    PaymentTerms,
    Property,
)

router = APIRouter()


class PropertyInput(BaseModel):
    """Property details."""

    total_price: float = 0.0
    purchase_date: Optional[str] = None
    handover_date: Optional[str] = None
    currency: str = "IDR"
    project_name: str = ""
    location: str = ""
    size_sqm: float = 0.0


class InstallmentInput(BaseModel):
    """One row of an explicit installment schedule."""

    date: Optional[str] = None
    amount: float


class PaymentInput(BaseModel):
    """Payment terms."""

    mode: PaymentMode = PaymentMode.plan
    down_payment_percent: float = 50.0
    installment_months: int = 6
    booking_fee: float = 0.0
    booking_fee_date: Optional[str] = None
    installments: List[InstallmentInput] = []


class ExitInput(BaseModel):
    """Exit sale assumptions."""

    projected_sales_price: float = 0.0
    closing_cost_percent: float = 2.5
    sale_date: Optional[str] = None
    strategy_type: str = "flip"
    hold_period_years: float = 0.0


class AdditionalCashFlowInput(BaseModel):
    """Ad hoc cash flow (furniture, rental income, ...)."""

    date: Optional[str] = None
    amount: float
    direction: FlowDirection = FlowDirection.outflow
    description: str = ""


class InvestmentInput(BaseModel):
    """Input for schedule and XIRR calculation."""

    property: PropertyInput
    payment: PaymentInput = PaymentInput()
    exit: ExitInput = ExitInput()
    additional_cash_flows: List[AdditionalCashFlowInput] = []
    today: Optional[date] = None

    def to_snapshot(self) -> InvestmentSnapshot:
        return InvestmentSnapshot(
            property=Property(**self.property.model_dump()),
            payment=PaymentTerms(
                mode=self.payment.mode,
                down_payment_percent=self.payment.down_payment_percent,
                installment_months=self.payment.installment_months,
                booking_fee=self.payment.booking_fee,
                booking_fee_date=self.payment.booking_fee_date,
                installments=tuple(
                    InstallmentEntry(date=entry.date, amount=entry.amount)
                    for entry in self.payment.installments
                ),
            ),
            exit=ExitStrategy(**self.exit.model_dump()),
            additional_cash_flows=tuple(
                AdditionalCashFlow(**cf.model_dump()) for cf in self.additional_cash_flows
            ),
        )


class CashFlowOutput(BaseModel):
    """A dated, signed cash flow."""

    date: date
    amount: float


class ReturnMetrics(BaseModel):
    """Calculated return metrics."""

    rate: float
    total_invested: float
    net_profit: float
    hold_period_months: int


class DealMetricsOutput(BaseModel):
    """Derived report figures."""

    appreciation_percent: float
    total_roi_percent: float
    closing_costs: float
    net_sale_proceeds: float
    monthly_installment: float
    deal_rating: str
    market_risk: str
    price_per_sqm: Optional[float] = None


class XIRRResponse(BaseModel):
    """Response with cash flows and metrics."""

    metrics: ReturnMetrics
    deal: DealMetricsOutput
    cash_flows: List[CashFlowOutput]
    expected_installment_total: float
    installment_shortfall: float


def _cash_flow_outputs(cash_flows: List[CashFlow]) -> List[CashFlowOutput]:
    return [CashFlowOutput(date=cf.date, amount=cf.amount) for cf in cash_flows]


@router.post("/xirr", response_model=XIRRResponse)
async def calculate_xirr_endpoint(inputs: InvestmentInput):
    """Calculate the payment schedule, XIRR and summary metrics."""
    snapshot = inputs.to_snapshot()

    cash_flows = schedule.build_schedule(snapshot, today=inputs.today)
    rate = xirr.calculate_xirr(cash_flows)
    result = returns.summarize(cash_flows, rate)
    deal = returns.deal_metrics(snapshot, result)

    return XIRRResponse(
        metrics=ReturnMetrics(
            rate=result.rate,
            total_invested=result.total_invested,
            net_profit=result.net_profit,
            hold_period_months=result.hold_period_months,
        ),
        deal=DealMetricsOutput(**asdict(deal)),
        cash_flows=_cash_flow_outputs(cash_flows),
        expected_installment_total=schedule.expected_remaining_balance(snapshot),
        installment_shortfall=schedule.installment_shortfall(snapshot),
    )


@router.post("/schedule", response_model=List[CashFlowOutput])
async def calculate_schedule(inputs: InvestmentInput):
    """Return the dated cash flow series for an investment."""
    cash_flows = schedule.build_schedule(inputs.to_snapshot(), today=inputs.today)
    return _cash_flow_outputs(cash_flows)


class InstallmentPlanInput(BaseModel):
    """Input for generating an editable installment plan."""

    total_price: float
    down_payment_percent: float = 50.0
    installment_months: Optional[int] = None
    purchase_date: Optional[str] = None
    handover_date: Optional[str] = None
    today: Optional[date] = None


class InstallmentOutput(BaseModel):
    date: date
    amount: float


class InstallmentPlanResponse(BaseModel):
    installment_months: int
    installments: List[InstallmentOutput]


@router.post("/installments", response_model=InstallmentPlanResponse)
async def calculate_installments(inputs: InstallmentPlanInput):
    """Generate an evenly distributed installment plan."""
    months = inputs.installment_months
    if months is None:
        months = schedule.months_between(
            inputs.purchase_date, inputs.handover_date, today=inputs.today
        )

    entries = schedule.generate_installments(
        total_price=inputs.total_price,
        down_payment_percent=inputs.down_payment_percent,
        installment_months=months,
        purchase_date=inputs.purchase_date,
        today=inputs.today,
    )
    return InstallmentPlanResponse(
        installment_months=months,
        installments=[
            InstallmentOutput(date=entry.date, amount=entry.amount) for entry in entries
        ],
    )


class ExitStrategyInput(BaseModel):
    """Input for applying an exit strategy preset."""

    investment: InvestmentInput
    strategy_id: str = "flip"
    appreciation: Optional[float] = None
    hold_years: Optional[float] = None


@router.post("/exit-strategy", response_model=ExitInput)
async def apply_exit_strategy(inputs: ExitStrategyInput):
    """Compute exit price and sale date from a strategy preset."""
    try:
        updated = exit_strategies.apply_exit_strategy(
            inputs.investment.to_snapshot(),
            inputs.strategy_id,
            appreciation=inputs.appreciation,
            hold_years=inputs.hold_years,
            today=inputs.investment.today,
        )
    except exit_strategies.UnknownExitStrategyError:
        raise HTTPException(
            status_code=404, detail=f"Unknown exit strategy: {inputs.strategy_id}"
        )

    return ExitInput(
        projected_sales_price=updated.exit.projected_sales_price,
        closing_cost_percent=updated.exit.closing_cost_percent,
        sale_date=updated.exit.sale_date.isoformat(),
        strategy_type=updated.exit.strategy_type,
        hold_period_years=updated.exit.hold_period_years,
    )
