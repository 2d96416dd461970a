"""
Exit Strategy Presets

Default appreciation and hold assumptions for common exit strategies.
"""

from typing import Dict, Optional
from datetime import date, timedelta
from dataclasses import dataclass, replace
from dateutil.relativedelta import relativedelta

from offplan_xirr.calculations.models import InvestmentSnapshot
from offplan_xirr.utils import parse_date, round_half_up


class UnknownExitStrategyError(KeyError):
    """Raised when an exit strategy id is not registered."""


@dataclass(frozen=True)
class ExitStrategyOption:
    """A selectable exit strategy with its default assumptions."""

    id: str
    name: str
    description: str
    default_hold_years: float
    default_appreciation: float  # Percent over purchase price


EXIT_STRATEGIES: Dict[str, ExitStrategyOption] = {
    "flip": ExitStrategyOption(
        id="flip",
        name="Flip at Completion",
        description=(
            "Buy during pre-construction and sell immediately upon handover. "
            "Capitalizes on the price appreciation gap."
        ),
        default_hold_years=0,
        default_appreciation=40,
    ),
}


def get_exit_strategy(strategy_id: str) -> ExitStrategyOption:
    """Look up a registered exit strategy."""
    try:
        return EXIT_STRATEGIES[strategy_id]
    except KeyError:
        raise UnknownExitStrategyError(strategy_id) from None


def _sale_date_after_hold(handover_date: date, hold_years: float) -> date:
    """Handover plus whole years plus the fractional year in months."""
    whole_years = int(hold_years // 1)
    extra_months = round_half_up((hold_years % 1) * 12)
    return handover_date + relativedelta(years=whole_years, months=extra_months)


def apply_exit_strategy(
    snapshot: InvestmentSnapshot,
    strategy_id: str,
    appreciation: Optional[float] = None,
    hold_years: Optional[float] = None,
    today: Optional[date] = None,
) -> InvestmentSnapshot:
    """
    Return a new snapshot with the exit set from a strategy preset.

    Args:
        snapshot: Current investment parameters
        strategy_id: Registered strategy id (e.g., "flip")
        appreciation: Percent over purchase price (defaults to the preset's)
        hold_years: Years held after handover (defaults to the preset's)
        today: Injected current date, used when no handover date is set

    Returns:
        Snapshot with projected sales price, sale date and hold period updated

    Raises:
        UnknownExitStrategyError: If strategy_id is not registered
    """
    option = get_exit_strategy(strategy_id)
    if appreciation is None:
        appreciation = option.default_appreciation
    if hold_years is None:
        hold_years = option.default_hold_years

    handover_date = parse_date(snapshot.property.handover_date)
    if handover_date is None:
        handover_date = (today or date.today()) + timedelta(days=365)

    if strategy_id == "flip":
        # Sell at handover
        sale_date = handover_date
        hold_years = 0
    else:
        sale_date = _sale_date_after_hold(handover_date, hold_years)

    new_exit = replace(
        snapshot.exit,
        strategy_type=strategy_id,
        projected_sales_price=snapshot.property.total_price * (1 + appreciation / 100),
        hold_period_years=hold_years,
        sale_date=sale_date,
    )
    return replace(snapshot, exit=new_exit)
