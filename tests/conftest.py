"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os
from datetime import date, datetime, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from offplan_xirr.db.models import Base
from offplan_xirr.services.rate_cache import InMemoryRateCache
from offplan_xirr.services.rates import RateService

TODAY = date(2025, 1, 1)
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

# Provider payload: units of each currency per 1 USD
PROVIDER_PAYLOAD = {
    "base": "USD",
    "rates": {
        "USD": 1,
        "IDR": 16669,
        "AUD": 1.51,
        "EUR": 0.852,
        "GBP": 0.74,
        "INR": 88.0,
        "CNY": 7.1,
        "AED": 3.6725,
        "RUB": 80.0,
    },
}


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


@pytest.fixture(scope="session")
def anyio_backend():
    """Backend for async tests."""
    return "asyncio"


# Shared in-memory database for the database-backed cache
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def session_factory():
    """Create tables before each test and drop after."""
    Base.metadata.create_all(bind=test_engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=test_engine)


class FakeProvider:
    """Scripted exchange rate provider counting the requests it receives."""

    def __init__(self, status_code=200, payload=None, error=None):
        self.status_code = status_code
        self.payload = PROVIDER_PAYLOAD if payload is None else payload
        self.error = error
        self.calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error("provider unavailable", request=request)
        return httpx.Response(self.status_code, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def provider():
    """Provider returning a valid payload."""
    return FakeProvider()


@pytest.fixture
def failing_provider():
    """Provider whose requests fail at the network level."""
    return FakeProvider(error=httpx.ConnectError)


@pytest.fixture
def make_rate_service():
    """Factory for rate services wired to a fake provider and fixed clock."""

    def _make(provider, cache=None, clock=lambda: NOW):
        return RateService(
            cache=cache if cache is not None else InMemoryRateCache(),
            http_client=provider.client(),
            api_url="https://rates.test/latest/USD",
            base_currency="IDR",
            clock=clock,
        )

    return _make


@pytest.fixture
def make_provider():
    """Factory for providers with a custom status code or payload."""
    return FakeProvider
