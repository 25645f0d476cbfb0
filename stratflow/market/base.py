"""Market data provider protocol.

Defines the interface the decision engine consumes.  Implementations
raise ``DataUnavailable`` for empty or unusable responses and a
``MarketDataError`` subclass for provider-level failures.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from stratflow.strategy.models import CandleData


@runtime_checkable
class MarketDataProvider(Protocol):
    """Interface every market data source must satisfy."""

    async def fetch_candles(
        self, symbol: str, interval: str, limit: int,
    ) -> list[CandleData]:
        """Return up to *limit* candles for *symbol*, oldest first."""
        ...

    async def fetch_current_price(self, symbol: str) -> float:
        """Return the last traded price for *symbol*."""
        ...
