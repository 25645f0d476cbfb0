"""TTL cache in front of a market data provider.

Owned and injected by the caller; the decision engine never caches.
"""

import logging
import time
from typing import Any, Callable

from stratflow.market.base import MarketDataProvider
from stratflow.strategy.models import CandleData

logger = logging.getLogger("stratflow")


class CachedMarketData:
    """Wraps a ``MarketDataProvider`` and memoises responses for *ttl_seconds*.

    Failures are never cached.  Implements ``MarketDataProvider``.

    Args:
        provider: The upstream provider.
        ttl_seconds: How long a response stays fresh.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self._provider = provider
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Any]] = {}

    def _get(self, key: tuple) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return False, None
        return True, value

    def _purge_expired(self, now: float) -> None:
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self._ttl
        ]
        for key in expired:
            del self._entries[key]

    def _put(self, key: tuple, value: Any) -> None:
        now = self._clock()
        self._purge_expired(now)
        self._entries[key] = (now, value)

    @property
    def size(self) -> int:
        """Number of entries currently held, fresh or not yet purged."""
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    async def fetch_candles(
        self, symbol: str, interval: str, limit: int,
    ) -> list[CandleData]:
        key = ("candles", symbol, interval, limit)
        hit, value = self._get(key)
        if hit:
            logger.debug("Cache hit for %s %s x%d candles", symbol, interval, limit)
            return list(value)
        candles = await self._provider.fetch_candles(symbol, interval, limit)
        self._put(key, tuple(candles))
        return candles

    async def fetch_current_price(self, symbol: str) -> float:
        key = ("price", symbol)
        hit, value = self._get(key)
        if hit:
            return value
        price = await self._provider.fetch_current_price(symbol)
        self._put(key, price)
        return price
