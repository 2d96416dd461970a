"""
Tests for calculation and exchange rate API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from offplan_xirr.main import app
from offplan_xirr.services.rates import get_rate_service

INVESTMENT = {
    "property": {
        "total_price": 2_375_000_000,
        "purchase_date": "2025-01-01",
        "handover_date": "2025-07-01",
    },
    "payment": {
        "mode": "plan",
        "down_payment_percent": 50,
        "installment_months": 6,
    },
    "exit": {
        "projected_sales_price": 3_325_000_000,
        "closing_cost_percent": 2.5,
    },
    "today": "2025-01-01",
}


@pytest.fixture
def client():
    """Create test client (startup is skipped, so no live rate fetch)."""
    return TestClient(app)


@pytest.fixture
def offline_rates(failing_provider, make_rate_service):
    """Rate service whose provider is unreachable."""
    service = make_rate_service(failing_provider)
    app.dependency_overrides[get_rate_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_rate_service, None)


@pytest.fixture
def live_rates(provider, make_rate_service):
    """Rate service with a working provider."""
    service = make_rate_service(provider)
    app.dependency_overrides[get_rate_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_rate_service, None)


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestCalculationsAPI:
    """Test calculation endpoints."""

    def test_calculate_xirr(self, client):
        """Test the full return calculation."""
        response = client.post("/api/calculate/xirr", json=INVESTMENT)
        assert response.status_code == 200
        data = response.json()

        metrics = data["metrics"]
        assert metrics["total_invested"] == pytest.approx(2_375_000_000)
        assert metrics["net_profit"] == pytest.approx(866_875_000)
        assert metrics["hold_period_months"] == 6
        assert 0.1 < metrics["rate"] <= 10

        assert data["deal"]["appreciation_percent"] == pytest.approx(40.0)
        assert data["deal"]["market_risk"] == "Moderate"
        assert len(data["cash_flows"]) == 8
        assert data["cash_flows"][0] == {"date": "2025-01-01", "amount": -1_187_500_000}
        assert data["expected_installment_total"] == pytest.approx(1_187_500_000)
        assert data["installment_shortfall"] == 0

    def test_calculate_xirr_empty_investment(self, client):
        """Nothing entered yet gives a zero result, not an error."""
        response = client.post(
            "/api/calculate/xirr",
            json={"property": {"total_price": 0}, "today": "2025-01-01"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["metrics"]["rate"] == 0
        assert data["metrics"]["total_invested"] == 0
        assert data["cash_flows"] == []

    def test_calculate_xirr_explicit_schedule_mismatch(self, client):
        """A mismatched explicit schedule is accepted and reported."""
        payload = {
            **INVESTMENT,
            "payment": {
                "mode": "plan",
                "down_payment_percent": 50,
                "installments": [
                    {"date": "2025-03-01", "amount": 1_000_000_000},
                    {"date": "not a date", "amount": 100},
                ],
            },
        }
        response = client.post("/api/calculate/xirr", json=payload)
        assert response.status_code == 200
        data = response.json()
        assert data["installment_shortfall"] == pytest.approx(-187_499_900)
        assert {"date": "2025-03-01", "amount": -1_000_000_000} in data["cash_flows"]

    def test_calculate_schedule(self, client):
        """Test schedule endpoint with ad hoc flows."""
        payload = {
            **INVESTMENT,
            "additional_cash_flows": [
                {"date": "2025-03-15", "amount": 50_000_000, "direction": "outflow"},
                {"date": "", "amount": 10_000_000, "direction": "inflow"},
            ],
        }
        response = client.post("/api/calculate/schedule", json=payload)
        assert response.status_code == 200
        flows = response.json()
        assert len(flows) == 9
        assert {"date": "2025-03-15", "amount": -50_000_000} in flows
        assert flows[-1]["date"] == "2025-07-01"

    def test_invalid_payment_mode(self, client):
        payload = {**INVESTMENT, "payment": {"mode": "lease"}}
        response = client.post("/api/calculate/schedule", json=payload)
        assert response.status_code == 422

    def test_generate_installments_from_dates(self, client):
        """Installment count defaults to the months until handover."""
        response = client.post(
            "/api/calculate/installments",
            json={
                "total_price": 1_000_000,
                "down_payment_percent": 25,
                "purchase_date": "2025-01-01",
                "handover_date": "2025-08-01",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["installment_months"] == 7
        assert len(data["installments"]) == 7
        assert data["installments"][0]["date"] == "2025-02-01"
        assert sum(entry["amount"] for entry in data["installments"]) == pytest.approx(750_000)

    def test_apply_exit_strategy(self, client):
        response = client.post(
            "/api/calculate/exit-strategy",
            json={"investment": INVESTMENT, "strategy_id": "flip"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["sale_date"] == "2025-07-01"
        assert data["projected_sales_price"] == pytest.approx(3_325_000_000)

    def test_unknown_exit_strategy(self, client):
        response = client.post(
            "/api/calculate/exit-strategy",
            json={"investment": INVESTMENT, "strategy_id": "moon"},
        )
        assert response.status_code == 404


class TestRatesAPI:
    """Test exchange rate endpoints."""

    def test_get_rates_before_initialize(self, client, offline_rates):
        response = client.get("/api/rates/")
        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "fallback"
        assert data["state"] == "uninitialized"
        assert data["rates"]["USD"] == 16000

    def test_refresh_failure_is_advisory(self, client, offline_rates):
        """A failed refresh still returns rates, flagged with an error."""
        response = client.post("/api/rates/refresh")
        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "fallback"
        assert data["error"] is not None

    def test_refresh_live(self, client, live_rates):
        response = client.post("/api/rates/refresh")
        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "api"
        assert data["rates"]["USD"] == 16669
        assert data["error"] is None

    def test_get_single_rate(self, client, offline_rates):
        response = client.get("/api/rates/eur")
        assert response.status_code == 200
        assert response.json() == {
            "currency": "EUR",
            "symbol": "€",
            "rate": 17000,
            "source": "fallback",
        }

    def test_unknown_currency_rate_is_one(self, client, offline_rates):
        response = client.get("/api/rates/XYZ")
        assert response.status_code == 200
        assert response.json()["rate"] == 1

    def test_convert_to_display(self, client, offline_rates):
        response = client.get(
            "/api/rates/convert", params={"amount": 32_000_000, "currency": "USD"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["converted"] == 2000
        assert data["formatted"] == "2,000"
        assert data["abbreviated"] == "2K"

    def test_convert_to_base(self, client, offline_rates):
        response = client.get(
            "/api/rates/convert",
            params={"amount": 2000, "currency": "usd", "to_base": True},
        )
        assert response.status_code == 200
        assert response.json()["converted"] == 32_000_000
        assert response.json()["abbreviated"] == "32M"

    def test_convert_typed_decimal(self, client, offline_rates):
        """Amounts are accepted as typed, with a comma decimal separator."""
        response = client.get(
            "/api/rates/convert",
            params={"amount": "$ 1,5", "currency": "USD", "to_base": True},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == 1.5
        assert data["converted"] == 24_000
        assert data["formatted"] == "24,000"

    def test_convert_invalid_amount(self, client, offline_rates):
        response = client.get("/api/rates/convert", params={"amount": "abc"})
        assert response.status_code == 422
