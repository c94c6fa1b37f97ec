"""Chart source protocol: the seam between the cache and the network.

Architecture
------------
    ChartSource → raw chart JSON → normalize_* → PriceSnapshot / FormattedChart

- **ChartSource** is what the spot price cache and the HTTP routes depend
  on. ``YahooChartClient`` is the production implementation; tests inject
  fakes that count calls.

- The normalizers in ``market_gateway.prices.normalize`` are pure functions
  over the raw JSON and never touch the network.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ChartSource(Protocol):
    """Fetches one raw chart document per call.

    Implementations must issue exactly one upstream request per call and
    raise ``UpstreamUnreachable`` on transport failure or a non-JSON body.
    """

    async def fetch_series(
        self,
        symbol: str,
        *,
        period1: str | None = None,
        period2: str | None = None,
        interval: str | None = None,
        range: str | None = None,
    ) -> Any: ...
