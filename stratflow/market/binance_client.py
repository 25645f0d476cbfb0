"""Binance public REST market data client (async).

Fetches klines and last prices.  Only unauthenticated endpoints are
used; no orders are ever sent.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from stratflow.config import Config
from stratflow.errors import (
    AuthenticationFailure,
    DataUnavailable,
    NetworkFailure,
)
from stratflow.strategy.models import CandleData

logger = logging.getLogger("stratflow")

# Retry settings
_RETRY_BASE_DELAY = 1.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}
_AUTH_STATUS_CODES = {401, 403}


def normalize_symbol(symbol: str) -> str:
    """``"BTC/USDT"`` → ``"BTCUSDT"``."""
    return symbol.replace("/", "").replace("-", "").upper()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason_phrase or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("msg") or body.get("code") or resp.reason_phrase)
    return resp.reason_phrase or f"HTTP {resp.status_code}"


class BinanceMarketData:
    """Async client for Binance spot market data.

    Implements ``MarketDataProvider``.

    Args:
        config: Application configuration (network, timeout, retries).
        retry_base_delay: First backoff delay in seconds.
    """

    def __init__(
        self,
        config: Config,
        retry_base_delay: float = _RETRY_BASE_DELAY,
    ) -> None:
        self._base_url = config.market_data_base_url
        self._timeout = config.request_timeout_seconds
        self._max_retries = max(1, config.max_retries)
        self._retry_base_delay = retry_base_delay
        self._headers = {"Accept": "application/json"}

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, path: str, params: dict) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504), rate limits
        (429) and transport errors.  Raises ``AuthenticationFailure`` on
        401/403, ``DataUnavailable`` on any other client error and
        ``NetworkFailure`` once retries are exhausted.
        """
        url = f"{self._base_url}{path}"
        last_error = "no attempt made"

        for attempt in range(self._max_retries):
            delay = self._retry_base_delay * (2 ** attempt)
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        url,
                        headers=self._headers,
                        params=params,
                        timeout=self._timeout,
                    )
            except httpx.TransportError as exc:
                logger.warning(
                    "Binance GET %s transport error (%s) — retry %d/%d in %.1fs",
                    path, exc, attempt + 1, self._max_retries, delay,
                )
                last_error = str(exc) or type(exc).__name__
                await asyncio.sleep(delay)
                continue

            if resp.status_code in _RETRYABLE_STATUS_CODES:
                logger.warning(
                    "Binance GET %s returned %d — retry %d/%d in %.1fs",
                    path, resp.status_code, attempt + 1, self._max_retries, delay,
                )
                last_error = f"HTTP {resp.status_code}"
                await asyncio.sleep(delay)
                continue

            if resp.status_code in _AUTH_STATUS_CODES:
                raise AuthenticationFailure(
                    f"Binance rejected the request: {_error_message(resp)}"
                )
            if resp.is_error:
                raise DataUnavailable(
                    f"Binance API error {resp.status_code}: {_error_message(resp)}"
                )
            return resp

        raise NetworkFailure(
            f"Binance GET {path} failed after {self._max_retries} attempts: {last_error}"
        )

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str = "1h",
        limit: int = 100,
    ) -> list[CandleData]:
        """Fetch klines from Binance.

        Args:
            symbol: e.g. ``"BTC/USDT"`` or ``"BTCUSDT"``
            interval: e.g. ``"1h"``, ``"4h"``, ``"1d"``
            limit: number of candles to request (max 1000)

        Returns:
            List of ``CandleData`` ordered oldest-first.
        """
        params = {
            "symbol": normalize_symbol(symbol),
            "interval": interval,
            "limit": limit,
        }
        resp = await self._get_with_retry("/api/v3/klines", params)

        try:
            rows = resp.json()
            candles = [
                CandleData(
                    time=datetime.fromtimestamp(
                        int(row[0]) / 1000, tz=timezone.utc,
                    ).isoformat(),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                )
                for row in rows
            ]
        except (ValueError, TypeError, IndexError) as exc:
            raise DataUnavailable(f"Malformed kline data for {symbol}: {exc}") from exc

        if not candles:
            raise DataUnavailable(f"No candle data returned for {symbol}")
        return candles

    # ── Prices ───────────────────────────────────────────────────────────

    async def fetch_current_price(self, symbol: str) -> float:
        """Return the last traded price for *symbol*."""
        resp = await self._get_with_retry(
            "/api/v3/ticker/price", {"symbol": normalize_symbol(symbol)},
        )
        price: Optional[float] = None
        try:
            price = float(resp.json()["price"])
        except (ValueError, TypeError, KeyError):
            price = None
        if price is None or price <= 0:
            raise DataUnavailable(f"No valid last price for {symbol}")
        return price
