"""
Exchange rate service.

Keeps the current conversion factors (base-currency units per 1 unit of
another currency) in an immutable snapshot. Rates come from a fresh cache
entry, a live fetch, or a static fallback table, in that order. Lookups
never fail: unknown currencies fall back to the static table, then to 1.
"""

import asyncio
import contextlib
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import httpx
from dateutil.parser import isoparse

from offplan_xirr.config import get_settings
from offplan_xirr.services.rate_cache import RateCache, get_rate_cache
from offplan_xirr.utils import round_half_up

logger = logging.getLogger(__name__)

# IDR per 1 unit of currency, used when no live or cached data exists
FALLBACK_RATES: Dict[str, float] = {
    "IDR": 1,
    "USD": 16000,
    "AUD": 10300,
    "EUR": 17000,
    "GBP": 20000,
    "INR": 190,
    "CNY": 2200,
    "AED": 4350,
    "RUB": 160,
}


class Provenance(str, enum.Enum):
    """Where a rate snapshot came from."""

    live = "api"
    cached = "cache"
    fallback = "fallback"


class RateServiceState(str, enum.Enum):
    """Lifecycle of the rate service."""

    uninitialized = "uninitialized"
    fetching = "fetching"
    ready = "ready"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExchangeRateSnapshot:
    """Conversion factors captured at one point in time. Never mutated."""

    rates: Mapping[str, float]
    captured_at: datetime
    provenance: Provenance

    def __post_init__(self):
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    def age(self, now: datetime) -> timedelta:
        return now - self.captured_at

    def to_blob(self) -> Dict[str, Any]:
        """Serialize to the cache blob shape."""
        return {
            "rates": dict(self.rates),
            "lastUpdated": self.captured_at.isoformat(),
            "source": self.provenance.value,
        }

    @classmethod
    def from_blob(cls, blob: Dict[str, Any]) -> "ExchangeRateSnapshot":
        """
        Deserialize a cache blob. Loaded snapshots are tagged as cached.

        Raises:
            KeyError, TypeError, ValueError: If the blob is malformed
        """
        captured_at = isoparse(blob["lastUpdated"])
        if captured_at.tzinfo is None:
            captured_at = captured_at.replace(tzinfo=timezone.utc)
        rates = {str(code): float(rate) for code, rate in blob["rates"].items()}
        return cls(rates=rates, captured_at=captured_at, provenance=Provenance.cached)


def rebase_rates(
    usd_rates: Mapping[str, Any],
    base_currency: str,
    currencies: Iterable[str],
    fallback_base_per_usd: float,
) -> Dict[str, float]:
    """
    Convert provider rates (units per 1 USD) into base units per 1 unit.

    Each derived rate is rounded to the nearest whole base unit. Currencies
    missing from the payload are left out so lookups use the fallback table.

    Args:
        usd_rates: Provider payload's ``rates`` object
        base_currency: Currency all calculations are done in (e.g., "IDR")
        currencies: Currency codes to derive
        fallback_base_per_usd: Used when the payload lacks the base currency

    Returns:
        Mapping of currency code to base units per 1 unit
    """
    if not isinstance(usd_rates, Mapping):
        raise TypeError("Provider payload 'rates' is not an object")

    base_per_usd = usd_rates.get(base_currency) or fallback_base_per_usd

    rates: Dict[str, float] = {base_currency: 1.0}
    for code in currencies:
        if code == base_currency:
            continue
        if code == "USD":
            rates[code] = float(round_half_up(base_per_usd))
            continue
        per_usd = usd_rates.get(code)
        if not isinstance(per_usd, (int, float)) or per_usd <= 0:
            logger.debug(f"Provider returned no usable rate for {code}")
            continue
        rates[code] = float(round_half_up(base_per_usd / per_usd))
    return rates


class RateService:
    """
    Exchange rate service with caching and static fallback.

    Only one live fetch is outstanding at a time; concurrent refreshes
    await the same fetch. A completed fetch replaces the snapshot wholesale.
    """

    def __init__(
        self,
        cache: Optional[RateCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        api_url: Optional[str] = None,
        base_currency: Optional[str] = None,
        freshness: Optional[timedelta] = None,
        timeout: Optional[float] = None,
        fallback_rates: Optional[Mapping[str, float]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        settings = get_settings()
        self.cache = cache if cache is not None else get_rate_cache()
        self.api_url = api_url or settings.rates_api_url
        self.base_currency = base_currency or settings.base_currency
        self.freshness = freshness or timedelta(hours=settings.rates_freshness_hours)
        self.timeout = timeout or settings.rates_timeout_seconds
        self.fallback_rates = dict(fallback_rates or FALLBACK_RATES)
        self._http_client = http_client
        self._clock = clock

        self.state = RateServiceState.uninitialized
        self.last_error: Optional[str] = None
        self._snapshot = self._fallback_snapshot()
        self._inflight: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> ExchangeRateSnapshot:
        return self._snapshot

    @property
    def provenance(self) -> Provenance:
        return self._snapshot.provenance

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def get_rate(self, currency: str) -> float:
        """Base-currency units per 1 unit of `currency`. Never raises."""
        code = (currency or "").upper()
        return self._snapshot.rates.get(code) or self.fallback_rates.get(code) or 1.0

    async def initialize(self) -> ExchangeRateSnapshot:
        """
        Load rates on startup.

        A fresh cache entry is used immediately; if it is older than half
        the freshness window a refresh runs in the background. Otherwise a
        live fetch is awaited and the fallback table is used if it fails.
        """
        cached = self._load_cache()
        if cached is not None:
            age = cached.age(self._clock())
            if age < self.freshness:
                self._snapshot = cached
                self.state = RateServiceState.ready
                logger.info(f"Using cached exchange rates from {cached.captured_at.isoformat()}")
                if age > self.freshness / 2:
                    self._start_fetch()
                return self._snapshot
            logger.info("Cached exchange rates are stale")

        self.state = RateServiceState.fetching
        await asyncio.shield(self._start_fetch())
        if self._snapshot.provenance == Provenance.fallback:
            self.last_error = self.last_error or "Using fallback rates - API unavailable"
        self.state = RateServiceState.ready
        return self._snapshot

    async def refresh(self) -> ExchangeRateSnapshot:
        """Force a live fetch, joining one already in flight."""
        await asyncio.shield(self._start_fetch())
        self.state = RateServiceState.ready
        return self._snapshot

    async def close(self) -> None:
        """Cancel any background fetch."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._inflight
        self._inflight = None

    def _fallback_snapshot(self) -> ExchangeRateSnapshot:
        return ExchangeRateSnapshot(
            rates=self.fallback_rates,
            captured_at=self._clock(),
            provenance=Provenance.fallback,
        )

    def _start_fetch(self) -> asyncio.Task:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._fetch_and_store())
        return self._inflight

    async def _fetch_and_store(self) -> bool:
        try:
            snapshot = await self._fetch_live()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch exchange rates: {e}")
            self.last_error = "Failed to fetch latest rates"
            return False
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed exchange rate payload: {e}")
            self.last_error = "Failed to fetch latest rates"
            return False

        self._snapshot = snapshot
        self.last_error = None
        self._save_cache(snapshot)
        logger.info(f"Fetched exchange rates: {dict(snapshot.rates)}")
        return True

    async def _fetch_live(self) -> ExchangeRateSnapshot:
        if self._http_client is not None:
            response = await self._http_client.get(self.api_url, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.api_url)

        response.raise_for_status()
        payload = response.json()

        rates = rebase_rates(
            payload["rates"],
            base_currency=self.base_currency,
            currencies=self.fallback_rates.keys(),
            fallback_base_per_usd=self.fallback_rates.get("USD", 1.0),
        )
        return ExchangeRateSnapshot(
            rates=rates, captured_at=self._clock(), provenance=Provenance.live
        )

    def _load_cache(self) -> Optional[ExchangeRateSnapshot]:
        try:
            blob = self.cache.load()
        except Exception as e:
            logger.warning(f"Could not read exchange rate cache: {e}")
            return None
        if blob is None:
            return None
        try:
            return ExchangeRateSnapshot.from_blob(blob)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring malformed exchange rate cache: {e}")
            return None

    def _save_cache(self, snapshot: ExchangeRateSnapshot) -> None:
        try:
            self.cache.save(snapshot.to_blob())
        except Exception as e:
            logger.warning(f"Could not write exchange rate cache: {e}")


# Singleton instance
_rate_service: Optional[RateService] = None


def get_rate_service() -> RateService:
    """Get the rate service singleton."""
    global _rate_service
    if _rate_service is None:
        _rate_service = RateService()
    return _rate_service
