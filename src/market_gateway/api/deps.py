"""Dependency injection for FastAPI routes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from fastapi import Request

from market_gateway.core.config import GatewayConfig
from market_gateway.ledger.store import JsonBalanceLedger
from market_gateway.prices.cache import SpotPriceCache
from market_gateway.prices.provider import ChartSource

access_logger = logging.getLogger("market_gateway.access")


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: GatewayConfig
    source: ChartSource
    price_cache: SpotPriceCache
    ledger: JsonBalanceLedger


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_source(request: Request) -> ChartSource:
    """Dependency: retrieve the upstream chart client."""
    return request.app.state.app_state.source


def get_price_cache(request: Request) -> SpotPriceCache:
    """Dependency: retrieve the spot price cache."""
    return request.app.state.app_state.price_cache


def get_ledger(request: Request) -> JsonBalanceLedger:
    """Dependency: retrieve the balance ledger."""
    return request.app.state.app_state.ledger


async def access_log_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: log method, path, status and latency for every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    access_logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
