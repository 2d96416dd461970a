"""
Tests for exit strategy presets.
"""

import pytest
from datetime import date

from offplan_xirr.calculations import exit_strategies
from offplan_xirr.calculations.exit_strategies import (
    ExitStrategyOption,
    UnknownExitStrategyError,
    apply_exit_strategy,
)
from offplan_xirr.calculations.models import ExitStrategy, InvestmentSnapshot, Property


@pytest.fixture
def snapshot():
    return InvestmentSnapshot(
        property=Property(
            total_price=2_375_000_000,
            purchase_date="2025-01-01",
            handover_date="2025-07-01",
        ),
        exit=ExitStrategy(projected_sales_price=0, closing_cost_percent=2.5),
    )


class TestExitStrategies:
    """Test applying exit strategy presets."""

    def test_flip_sells_at_handover(self, snapshot):
        updated = apply_exit_strategy(snapshot, "flip")

        assert updated.exit.strategy_type == "flip"
        assert updated.exit.sale_date == date(2025, 7, 1)
        assert updated.exit.projected_sales_price == pytest.approx(3_325_000_000)
        assert updated.exit.hold_period_years == 0
        # Untouched fields carry over
        assert updated.exit.closing_cost_percent == 2.5
        assert updated.property == snapshot.property

    def test_original_snapshot_unchanged(self, snapshot):
        apply_exit_strategy(snapshot, "flip")
        assert snapshot.exit.projected_sales_price == 0

    def test_custom_appreciation(self, snapshot):
        updated = apply_exit_strategy(snapshot, "flip", appreciation=20)
        assert updated.exit.projected_sales_price == pytest.approx(2_850_000_000)

    def test_hold_after_handover(self, snapshot, monkeypatch):
        """Non-flip strategies sell after the hold period."""
        monkeypatch.setitem(
            exit_strategies.EXIT_STRATEGIES,
            "hold",
            ExitStrategyOption(
                id="hold",
                name="Hold and Sell",
                description="Rent out after handover, then sell.",
                default_hold_years=2.5,
                default_appreciation=60,
            ),
        )
        updated = apply_exit_strategy(snapshot, "hold")

        assert updated.exit.sale_date == date(2028, 1, 1)
        assert updated.exit.hold_period_years == 2.5
        assert updated.exit.projected_sales_price == pytest.approx(3_800_000_000)

    def test_missing_handover_uses_one_year_from_today(self):
        snapshot = InvestmentSnapshot(property=Property(total_price=1_000_000))
        updated = apply_exit_strategy(snapshot, "flip", today=date(2025, 1, 1))
        assert updated.exit.sale_date == date(2026, 1, 1)

    def test_unknown_strategy(self, snapshot):
        with pytest.raises(UnknownExitStrategyError):
            apply_exit_strategy(snapshot, "moon")
