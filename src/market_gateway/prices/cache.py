"""Short-lived in-memory cache in front of the spot price lookup.

Freshness is checked on read; nothing sweeps expired entries and nothing is
ever evicted, so the mapping grows by one entry per distinct symbol for the
life of the process.

Concurrency
-----------
By default the cache takes no locks. Two concurrent misses for the same
symbol each call upstream and each write the cache; the last write wins.
With ``single_flight=True`` the first miss starts a task and concurrent
misses for that symbol await the same task, so they see one upstream call
and share its result or its error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from market_gateway.core.exceptions import NoUsableData
from market_gateway.prices.models import (
    SPOT_INTERVAL,
    SPOT_RANGE,
    CacheEntry,
    PriceSnapshot,
)
from market_gateway.prices.normalize import normalize_price
from market_gateway.prices.provider import ChartSource

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_MS = 10_000


def wall_clock_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class SpotPriceCache:
    """Per-symbol spot price cache with a fixed freshness window.

    Parameters
    ----------
    source : ChartSource
        Upstream client used on a miss.
    freshness_ms : int
        A cached snapshot is served while ``now - fetched_at_ms`` is
        strictly below this value. Default: 10 000.
    clock : Callable[[], int]
        Returns the current time in milliseconds. Injected for tests.
    single_flight : bool
        Coalesce concurrent misses for the same symbol into one fetch.
    """

    def __init__(
        self,
        source: ChartSource,
        freshness_ms: int = DEFAULT_FRESHNESS_MS,
        clock: Callable[[], int] = wall_clock_ms,
        single_flight: bool = False,
    ) -> None:
        if freshness_ms < 0:
            raise ValueError(f"freshness_ms must be >= 0, got {freshness_ms}")
        self._source = source
        self._freshness_ms = freshness_ms
        self._clock = clock
        self._single_flight = single_flight
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[PriceSnapshot]] = {}

    @property
    def freshness_ms(self) -> int:
        return self._freshness_ms

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._entries

    def peek(self, symbol: str) -> CacheEntry | None:
        """Return the stored entry for ``symbol`` without a freshness check."""
        return self._entries.get(symbol)

    async def get_price(self, symbol: str) -> PriceSnapshot:
        """Return a fresh snapshot for ``symbol``, fetching on miss or staleness.

        A failed refresh leaves any previous entry in place with its original
        timestamp, so the next call retries rather than serving it.

        Raises:
            UpstreamUnreachable: the fetch failed.
            UpstreamShapeError: a close was not a finite number.
            NoUsableData: the payload had no usable closes.
        """
        now = self._clock()
        entry = self._entries.get(symbol)
        if entry is not None and entry.age_ms(now) < self._freshness_ms:
            logger.debug("Price cache hit for %s (age %d ms)", symbol, entry.age_ms(now))
            return entry.data

        logger.debug("Price cache miss for %s", symbol)
        if not self._single_flight:
            return await self._refresh(symbol, now)

        task = self._in_flight.get(symbol)
        if task is None:
            task = asyncio.ensure_future(self._refresh(symbol, now))
            self._in_flight[symbol] = task
            task.add_done_callback(lambda t: self._forget(symbol, t))
        # shield: one cancelled waiter must not cancel the fetch for the others
        return await asyncio.shield(task)

    def _forget(self, symbol: str, task: asyncio.Task[PriceSnapshot]) -> None:
        if self._in_flight.get(symbol) is task:
            del self._in_flight[symbol]
        # Retrieve the exception so an error nobody awaited is not reported as lost
        if not task.cancelled():
            task.exception()

    async def _refresh(self, symbol: str, now: int) -> PriceSnapshot:
        raw = await self._source.fetch_series(
            symbol, range=SPOT_RANGE, interval=SPOT_INTERVAL
        )

        snapshot = normalize_price(symbol, raw)
        if snapshot is None:
            logger.warning("No usable price data for %s", symbol)
            raise NoUsableData("no data", context={"symbol": symbol})

        self._entries[symbol] = CacheEntry(data=snapshot, fetched_at_ms=now)
        return snapshot
