"""Synthetic candle generator — random-walk OHLC data for offline backtests.

All randomness flows through a ``numpy.random.Generator`` so a fixed seed
reproduces the same series.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np

from stratflow.strategy.models import CandleData

_BASE_PRICES: dict[str, float] = {
    "SOL": 150.0,
    "ETH": 3500.0,
}
_DEFAULT_BASE_PRICE = 65_000.0  # BTC and anything unknown
_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def base_price_for(symbol: str) -> float:
    """Reference starting price for *symbol*."""
    upper = symbol.upper()
    for asset, price in _BASE_PRICES.items():
        if asset in upper:
            return price
    return _DEFAULT_BASE_PRICE


def _resolve_rng(
    seed: Optional[int], rng: Optional[np.random.Generator],
) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def generate_candles(
    count: int = 200,
    symbol: str = "BTC/USDT",
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    step: timedelta = timedelta(days=1),
) -> list[CandleData]:
    """Generate *count* daily candles as a random walk.

    Each bar opens at the previous close; high and low sit up to ~4 %
    away from the open and the close lands uniformly between them.
    Pass *seed* or an explicit *rng* for reproducible output.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    gen = _resolve_rng(seed, rng)

    price = base_price_for(symbol) * (0.95 + gen.random() * 0.1)
    candles: list[CandleData] = []
    for i in range(count):
        open_ = price
        up = open_ * (1 + (gen.random() - 0.45) * 0.04)
        down = open_ * (1 - (gen.random() - 0.45) * 0.04)
        low, high = min(up, down), max(up, down)
        close = low + gen.random() * (high - low)
        candles.append(
            CandleData(
                time=(_START + step * i).isoformat(),
                open=open_,
                high=max(high, open_),
                low=min(low, open_),
                close=close,
                volume=float(gen.uniform(100.0, 1_000.0)),
            )
        )
        price = close
    return candles


class SyntheticMarketData:
    """``MarketDataProvider`` backed by ``generate_candles``.

    The current price is the close of the most recent series generated
    for the symbol.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self._rng = _resolve_rng(seed, rng)
        self._last_close: dict[str, float] = {}

    async def fetch_candles(
        self, symbol: str, interval: str = "1d", limit: int = 100,
    ) -> list[CandleData]:
        candles = generate_candles(limit, symbol, rng=self._rng)
        if candles:
            self._last_close[symbol] = candles[-1].close
        return candles

    async def fetch_current_price(self, symbol: str) -> float:
        if symbol not in self._last_close:
            await self.fetch_candles(symbol, limit=1)
        return self._last_close[symbol]
