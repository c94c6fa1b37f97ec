"""Market data layer: Yahoo chart client, normalizers, and spot price cache.

Data flow
---------
    YahooChartClient → raw chart JSON → normalize_price / normalize_chart
                                     ↘ SpotPriceCache (spot price only)

Key abstractions:

- ``ChartSource``: protocol for anything that can fetch raw chart JSON.
- ``YahooChartClient``: httpx implementation of ``ChartSource``.
- ``normalize_price`` / ``normalize_chart``: pure transforms into models.
- ``SpotPriceCache``: time-bounded per-symbol cache over the price lookup.
"""

from market_gateway.prices.cache import SpotPriceCache, wall_clock_ms
from market_gateway.prices.models import (
    INTERVAL_MAP,
    CacheEntry,
    Candle,
    FormattedChart,
    PriceSnapshot,
)
from market_gateway.prices.normalize import (
    candle_time,
    normalize_chart,
    normalize_price,
    resolve_interval,
)
from market_gateway.prices.provider import ChartSource
from market_gateway.prices.yahoo import YahooChartClient

__all__ = [
    # Models
    "INTERVAL_MAP",
    "CacheEntry",
    "Candle",
    "FormattedChart",
    "PriceSnapshot",
    # Protocols
    "ChartSource",
    # Yahoo Finance
    "YahooChartClient",
    # Normalizers
    "candle_time",
    "normalize_chart",
    "normalize_price",
    "resolve_interval",
    # Cache
    "SpotPriceCache",
    "wall_clock_ms",
]
