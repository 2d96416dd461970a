"""
Application services module.
"""

from offplan_xirr.services.rate_cache import (
    RateCache,
    InMemoryRateCache,
    DatabaseRateCache,
    get_rate_cache,
)
from offplan_xirr.services.rates import (
    ExchangeRateSnapshot,
    Provenance,
    RateService,
    RateServiceState,
    get_rate_service,
)

__all__ = [
    "RateCache",
    "InMemoryRateCache",
    "DatabaseRateCache",
    "get_rate_cache",
    "ExchangeRateSnapshot",
    "Provenance",
    "RateService",
    "RateServiceState",
    "get_rate_service",
]
