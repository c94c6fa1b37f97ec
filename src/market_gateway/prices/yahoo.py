"""Yahoo Finance chart client: direct HTTP implementation.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx. The
client only fetches and decodes; shaping the response is left to
``market_gateway.prices.normalize``.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from market_gateway.core.config import UpstreamConfig
from market_gateway.core.exceptions import UpstreamUnreachable

logger = logging.getLogger(__name__)

_CHART_PATH = "/v8/finance/chart"

# Message surfaced to HTTP clients for any transport or decode failure
FETCH_FAILED = "Yahoo fetch failed"


class YahooChartClient:
    """Async client for Yahoo Finance's chart API.

    One ``fetch_series`` call is one GET request: no retry, no backoff, no
    caching. Use via ``async with YahooChartClient(...) as client:`` or call
    ``close()`` explicitly.

    Parameters
    ----------
    config : UpstreamConfig
        Base URL, timeout and User-Agent.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override, mainly for tests.
    """

    def __init__(
        self,
        config: UpstreamConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or UpstreamConfig()
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._config.user_agent},
            timeout=httpx.Timeout(self._config.request_timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> YahooChartClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    def chart_url(self, symbol: str) -> str:
        """Return the chart URL for ``symbol``, percent-encoding every reserved char."""
        return f"{self._config.base_url}{_CHART_PATH}/{quote(symbol, safe='')}"

    async def fetch_series(
        self,
        symbol: str,
        *,
        period1: str | None = None,
        period2: str | None = None,
        interval: str | None = None,
        range: str | None = None,
    ) -> Any:
        """Fetch the raw chart JSON for ``symbol``.

        Only the parameters that are given end up in the query string.
        A non-2xx status is not an error here: Yahoo reports failures inside
        ``chart.error`` and the body is returned as-is.

        Raises:
            UpstreamUnreachable: transport failure, timeout, or non-JSON body.
        """
        url = self.chart_url(symbol)
        params = {
            key: value
            for key, value in (
                ("period1", period1),
                ("period2", period2),
                ("interval", interval),
                ("range", range),
            )
            if value is not None
        }

        try:
            response = await self._client.get(url, params=params)
        except httpx.RequestError as e:
            logger.error("Yahoo Finance request error for %s: %s", symbol, e)
            raise UpstreamUnreachable(
                FETCH_FAILED,
                context={"url": url, "symbol": symbol, "reason": str(e)},
            ) from e

        if response.is_error:
            logger.warning(
                "Yahoo Finance HTTP %s for %s: %s",
                response.status_code,
                symbol,
                response.text[:200],
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "Yahoo Finance returned non-JSON body for %s (HTTP %s)",
                symbol,
                response.status_code,
            )
            raise UpstreamUnreachable(
                FETCH_FAILED,
                context={
                    "url": url,
                    "symbol": symbol,
                    "reason": f"invalid JSON: {e}",
                    "status_code": response.status_code,
                },
            ) from e
