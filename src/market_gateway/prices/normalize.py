"""Pure transforms from raw Yahoo chart JSON into gateway models.

Yahoo's chart payload looks like::

    {"chart": {"result": [{"timestamp": [...],
                           "indicators": {"quote": [{"open": [...], "high": [...],
                                                     "low": [...], "close": [...]}]}}],
               "error": null}}

The arrays are parallel and may contain ``null`` for minutes without trades.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from market_gateway.core.exceptions import InvalidInput, UpstreamShapeError
from market_gateway.prices.models import (
    INTERVAL_MAP,
    Candle,
    FormattedChart,
    PriceSnapshot,
)

logger = logging.getLogger(__name__)

_CANDLE_TIME_FORMAT = "%Y-%m-%d %H:%M"


def resolve_interval(token: str) -> str:
    """Map a caller interval token to its display label.

    Raises:
        InvalidInput: ``token`` is not a key of ``INTERVAL_MAP``.
    """
    label = INTERVAL_MAP.get(token)
    if label is None:
        raise InvalidInput(
            "Unsupported interval",
            context={"field": "interval", "value": token},
        )
    return label


def first_result(raw: Any) -> dict | None:
    """Return ``chart.result[0]`` or None when any level is missing."""
    if not isinstance(raw, dict):
        return None
    chart = raw.get("chart")
    if not isinstance(chart, dict):
        return None
    results = chart.get("result")
    if not results or not isinstance(results, list):
        return None
    result = results[0]
    return result if isinstance(result, dict) else None


def _first_quote(result: dict) -> dict:
    indicators = result.get("indicators")
    if not isinstance(indicators, dict):
        return {}
    quotes = indicators.get("quote")
    if not quotes or not isinstance(quotes, list):
        return {}
    quote = quotes[0]
    return quote if isinstance(quote, dict) else {}


def _series(container: dict, key: str) -> list:
    """Return ``container[key]`` when it is a list, otherwise an empty list."""
    values = container.get(key)
    return values if isinstance(values, list) else []


def _number(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite value {value!r}")
    return number


def _at(values: list, i: int) -> Any:
    return values[i] if i < len(values) else None


def candle_time(ts: int | float) -> str:
    """Format an epoch-seconds timestamp as its UTC minute, e.g. ``2023-11-14 22:13``."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(_CANDLE_TIME_FORMAT)


def normalize_price(symbol: str, raw: Any) -> PriceSnapshot | None:
    """Derive the spot price and percent change from a 1d/1m series.

    Returns None when the payload has no result, no timestamps, or no
    non-null closes. Null closes are dropped before picking the latest and
    previous values. With a single close the change is 0. A previous close
    of exactly zero also yields a change of 0 rather than an infinity.

    Raises:
        UpstreamShapeError: the latest or previous close is not a finite number.
    """
    result = first_result(raw)
    if result is None:
        return None

    timestamps = _series(result, "timestamp")
    closes = [c for c in _series(_first_quote(result), "close") if c is not None]
    if not timestamps or not closes:
        return None

    try:
        latest = _number(closes[-1])
        previous = _number(closes[-2]) if len(closes) > 1 else latest
    except (TypeError, ValueError) as e:
        raise UpstreamShapeError(
            "Invalid Yahoo response",
            context={"symbol": symbol, "reason": str(e)},
        ) from e

    if previous == 0:
        logger.debug("Previous close for %s is zero; reporting 0%% change", symbol)
        change_percent = 0.0
    else:
        change_percent = (latest - previous) / previous * 100

    return PriceSnapshot(symbol=symbol, price=latest, change_percent=change_percent)


def normalize_chart(interval_token: str, raw: Any) -> FormattedChart:
    """Convert a chart payload into candles labelled with the display interval.

    Every index whose open, high, low or close is null (or past the end of
    its array) is dropped. Nothing is sorted, deduplicated or interpolated.

    Raises:
        InvalidInput: unknown interval token.
        UpstreamShapeError: no ``chart.result[0]``, or an OHLC value that is not a
            finite number.
    """
    label = resolve_interval(interval_token)

    result = first_result(raw)
    if result is None:
        raise UpstreamShapeError(
            "Invalid Yahoo response",
            context={"missing": "chart.result[0]"},
        )

    timestamps = _series(result, "timestamp")
    quote = _first_quote(result)
    opens = _series(quote, "open")
    highs = _series(quote, "high")
    lows = _series(quote, "low")
    closes = _series(quote, "close")

    candles: list[Candle] = []
    for i, ts in enumerate(timestamps):
        o, h, lo, c = _at(opens, i), _at(highs, i), _at(lows, i), _at(closes, i)
        if any(x is None for x in (o, h, lo, c)):
            continue
        try:
            candles.append(
                Candle(
                    time=candle_time(ts),
                    open=_number(o),
                    high=_number(h),
                    low=_number(lo),
                    close=_number(c),
                )
            )
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise UpstreamShapeError(
                "Invalid Yahoo response",
                context={"index": i, "reason": str(e)},
            ) from e

    skipped = len(timestamps) - len(candles)
    if skipped:
        logger.debug("Dropped %d incomplete candles of %d", skipped, len(timestamps))

    return FormattedChart(interval=label, candles=candles)
