"""FastAPI route definitions for the market gateway."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from market_gateway.api.deps import get_ledger, get_price_cache, get_source
from market_gateway.api.schemas import (
    BalanceResponse,
    BalanceUpdateRequest,
    FormattedChartResponse,
    RegisterRequest,
    RegisterResponse,
)
from market_gateway.core.exceptions import InvalidInput, UpstreamError
from market_gateway.ledger.store import JsonBalanceLedger
from market_gateway.prices.cache import SpotPriceCache
from market_gateway.prices.models import PriceSnapshot
from market_gateway.prices.normalize import normalize_chart, resolve_interval
from market_gateway.prices.provider import ChartSource

logger = logging.getLogger(__name__)

router = APIRouter()

PRICE_FAILED = "Failed to fetch price"


# -- Charts --


@router.get("/yahoo/chart")
async def yahoo_chart(
    symbol: str | None = Query(None),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    interval: str | None = Query(None),
    source: ChartSource = Depends(get_source),
):
    """Relay Yahoo's chart JSON unmodified.

    Parameters are not validated: absent ones are left out of the upstream
    query, and a missing symbol requests the bare chart path.
    """
    return await source.fetch_series(
        symbol or "",
        period1=from_,
        period2=to,
        interval=interval,
    )


@router.get("/yahoo/chart/formatted", response_model=FormattedChartResponse)
async def yahoo_chart_formatted(
    symbol: str | None = Query(None),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    interval: str | None = Query(None),
    source: ChartSource = Depends(get_source),
):
    """OHLC candles for a symbol and range, with incomplete minutes dropped."""
    if not (symbol and from_ and to and interval):
        missing = [
            name
            for name, value in (
                ("symbol", symbol),
                ("from", from_),
                ("to", to),
                ("interval", interval),
            )
            if not value
        ]
        raise InvalidInput("Missing query params", context={"field": missing})

    # Reject before spending an upstream call
    resolve_interval(interval)

    raw = await source.fetch_series(symbol, period1=from_, period2=to, interval=interval)
    chart = normalize_chart(interval, raw)
    return FormattedChartResponse(interval=chart.interval, data=chart.candles)


# -- Prices --


@router.get("/price/{symbol}", response_model=PriceSnapshot)
async def get_price(
    symbol: str,
    cache: SpotPriceCache = Depends(get_price_cache),
):
    """Latest price and percent change, served from cache while fresh."""
    try:
        return await cache.get_price(symbol)
    except UpstreamError as e:
        logger.warning("Price lookup for %s failed: %s %s", symbol, e, e.context)
        return JSONResponse(status_code=500, content={"error": PRICE_FAILED})


# -- Balances --


@router.post("/register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    ledger: JsonBalanceLedger = Depends(get_ledger),
):
    """Create (or reset) a user's balance at zero."""
    if not body.uid:
        raise InvalidInput("Missing userId", context={"field": "uid"})
    await ledger.register(body.uid)
    balance = await ledger.get_balance(body.uid)
    return RegisterResponse(message="User registered", balance=balance)


@router.get("/balance/{user_id}", response_model=BalanceResponse)
async def get_balance(
    user_id: str,
    ledger: JsonBalanceLedger = Depends(get_ledger),
):
    """Current balance for a user; unknown users report 0."""
    balance = await ledger.get_balance(user_id)
    return BalanceResponse(user_id=user_id, balance=balance)


@router.put("/balance/{user_id}", response_model=BalanceResponse)
async def set_balance(
    user_id: str,
    body: BalanceUpdateRequest,
    ledger: JsonBalanceLedger = Depends(get_ledger),
):
    """Overwrite a user's balance."""
    if body.amount is None:
        raise InvalidInput("Invalid amount", context={"field": "amount"})
    await ledger.set_balance(user_id, body.amount)
    balance = await ledger.get_balance(user_id)
    return BalanceResponse(user_id=user_id, balance=balance)
