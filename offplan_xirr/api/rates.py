"""
Exchange rate API endpoints.
"""

import math

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime

from offplan_xirr.services import currency
from offplan_xirr.services.rates import RateService, get_rate_service

router = APIRouter()


class RatesResponse(BaseModel):
    """Current exchange rate snapshot."""

    rates: Dict[str, float]
    last_updated: datetime
    source: str
    state: str
    is_fetching: bool
    error: Optional[str] = None


class RateResponse(BaseModel):
    """Rate for a single currency."""

    currency: str
    symbol: str
    rate: float
    source: str


class ConversionResponse(BaseModel):
    """Amount converted between base and display currency."""

    currency: str
    rate: float
    amount: float
    converted: int
    formatted: str
    abbreviated: str


def _rates_response(service: RateService) -> RatesResponse:
    snapshot = service.snapshot
    return RatesResponse(
        rates=dict(snapshot.rates),
        last_updated=snapshot.captured_at,
        source=snapshot.provenance.value,
        state=service.state.value,
        is_fetching=service.is_fetching,
        error=service.last_error,
    )


@router.get("/", response_model=RatesResponse)
async def get_rates(service: RateService = Depends(get_rate_service)):
    """Get the current exchange rates (base-currency units per 1 unit)."""
    return _rates_response(service)


@router.post("/refresh", response_model=RatesResponse)
async def refresh_rates(service: RateService = Depends(get_rate_service)):
    """Force a live fetch. On failure the previous rates stay in place."""
    await service.refresh()
    return _rates_response(service)


@router.get("/convert", response_model=ConversionResponse)
async def convert_amount(
    amount: str,
    currency_code: str = Query("USD", alias="currency"),
    to_base: bool = False,
    service: RateService = Depends(get_rate_service),
):
    """
    Convert an amount from base to display currency, or back with to_base.

    The amount is parsed the way it is typed into a form, so "1500,5"
    reads as 1500.5.
    """
    value = currency.parse_decimal_input(currency.sanitize_decimal_input(amount))
    if math.isnan(value):
        raise HTTPException(status_code=422, detail=f"Invalid amount: {amount}")

    code = currency_code.upper()
    rate = service.get_rate(code)

    if to_base:
        converted = currency.from_display(value, rate)
        formatted = f"{converted:,}"
        abbreviated = currency.format_abbreviated(converted, service.base_currency, 1)
    else:
        converted = currency.to_display(value, rate)
        formatted = currency.format_display(value, rate)
        abbreviated = currency.format_abbreviated(value, code, rate)

    return ConversionResponse(
        currency=code,
        rate=rate,
        amount=value,
        converted=converted,
        formatted=formatted,
        abbreviated=abbreviated,
    )


@router.get("/{currency_code}", response_model=RateResponse)
async def get_rate(currency_code: str, service: RateService = Depends(get_rate_service)):
    """Get the rate for one currency."""
    code = currency_code.upper()
    return RateResponse(
        currency=code,
        symbol=currency.currency_symbol(code),
        rate=service.get_rate(code),
        source=service.provenance.value,
    )
