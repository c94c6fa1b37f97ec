"""Price and candle models produced by the Yahoo chart normalizers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Caller-facing interval token -> display label. Tokens are passed to Yahoo
# unchanged; anything not listed here is rejected before a fetch.
INTERVAL_MAP: dict[str, str] = {
    "1m": "1M",
    "5m": "5M",
    "15m": "15M",
    "30m": "30M",
    "1h": "1H",
    "1d": "1D",
}

# Series requested for a spot price lookup
SPOT_RANGE = "1d"
SPOT_INTERVAL = "1m"


class PriceSnapshot(BaseModel):
    """Latest close for a symbol and its percent change vs. the prior close.

    Serializes ``change_percent`` as ``changePercent``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str
    price: float
    change_percent: float = Field(alias="changePercent")


class CacheEntry(BaseModel):
    """A cached snapshot plus the wall-clock millisecond it was fetched at."""

    model_config = ConfigDict(frozen=True)

    data: PriceSnapshot
    fetched_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.fetched_at_ms


class Candle(BaseModel):
    """One OHLC observation, stamped with its UTC minute."""

    model_config = ConfigDict(frozen=True)

    time: str
    open: float
    high: float
    low: float
    close: float


class FormattedChart(BaseModel):
    """Normalized chart: display interval label plus candles in upstream order."""

    model_config = ConfigDict(frozen=True)

    interval: str
    candles: list[Candle]
