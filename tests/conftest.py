"""Shared pytest fixtures for market-gateway."""

from __future__ import annotations

import pytest


def make_chart(
    timestamps: list | None = None,
    opens: list | None = None,
    highs: list | None = None,
    lows: list | None = None,
    closes: list | None = None,
) -> dict:
    """Build a Yahoo ``/v8/finance/chart`` payload from parallel arrays."""
    quote: dict = {}
    for key, values in (("open", opens), ("high", highs), ("low", lows), ("close", closes)):
        if values is not None:
            quote[key] = values
    return {
        "chart": {
            "result": [
                {
                    "meta": {"currency": "USD", "symbol": "ACME"},
                    "timestamp": timestamps if timestamps is not None else [],
                    "indicators": {"quote": [quote]},
                }
            ],
            "error": None,
        }
    }


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeChartSource:
    """ChartSource that replays queued payloads and records every call."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def fetch_series(self, symbol, *, period1=None, period2=None, interval=None, range=None):
        self.calls.append(
            {
                "symbol": symbol,
                "period1": period1,
                "period2": period2,
                "interval": interval,
                "range": range,
            }
        )
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def acme_chart() -> dict:
    """Two one-minute ACME closes: 10 then 12."""
    return make_chart(
        timestamps=[1_700_000_000, 1_700_000_060],
        opens=[9.5, 10.0],
        highs=[10.5, 12.5],
        lows=[9.0, 9.8],
        closes=[10, 12],
    )


@pytest.fixture
def chart_payload():
    """Factory fixture: ``chart_payload(timestamps=..., closes=...)``."""
    return make_chart


@pytest.fixture
def fake_source():
    """Factory fixture: ``fake_source(payload, ...)`` -> FakeChartSource."""
    return FakeChartSource
