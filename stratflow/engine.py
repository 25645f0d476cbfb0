"""stratflow — decision engine (live evaluation).

Fetches recent candles, computes the strategy's indicator, checks the
condition and returns BUY / SELL / WAIT.  Stateless: no position memory
is kept between calls.  Nothing raises past ``evaluate``; failures come
back as a ``WAIT`` decision whose diagnostics carry the error.
"""

import logging
from typing import Optional

from stratflow.config import Config, default_config
from stratflow.errors import DataUnavailable, StratflowError
from stratflow.market.base import MarketDataProvider
from stratflow.strategy.indicators import compute_indicator, last_defined
from stratflow.strategy.models import (
    ACTION_KINDS,
    DECISION_WAIT,
    Decision,
    Diagnostics,
    Strategy,
)

logger = logging.getLogger("stratflow")


async def _decide(
    strategy: Strategy,
    symbol: str,
    market_data: MarketDataProvider,
    interval: str,
    limit: int,
    diag: dict,
) -> Decision:
    # 1 ── Candles
    candles = await market_data.fetch_candles(symbol, interval, limit)
    if not candles:
        raise DataUnavailable(f"No candle data returned for {symbol}")
    closes = [c.close for c in candles]

    # 2 ── Indicator
    indicator = strategy.indicator
    series = compute_indicator(closes, indicator.type, indicator.period)
    value = last_defined(series)
    if value is None:
        raise DataUnavailable(
            f"Not enough history for {indicator.type.upper()}({indicator.period}): "
            f"got {len(closes)} candles"
        )
    diag["indicator_value"] = value

    # 3 ── Condition
    condition = strategy.condition
    diag["threshold"] = condition.threshold
    condition_met = condition.holds(value)

    if not condition_met:
        return Decision(
            kind=DECISION_WAIT,
            message=(
                f"Decision: WAIT. Condition not met "
                f"({value:.2f} {condition.operator} {condition.threshold:g} is false)."
            ),
            diagnostics=Diagnostics(**diag),
        )

    # 4 ── Action
    kind = strategy.action.kind.lower()
    if kind not in ACTION_KINDS:
        raise ValueError(f"Unknown action kind {strategy.action.kind!r}")
    price = await market_data.fetch_current_price(symbol)
    diag["current_price"] = price
    decision = kind.upper()
    return Decision(
        kind=decision,
        message=(
            f"Decision: {decision}. Condition met "
            f"({value:.2f} {condition.operator} {condition.threshold:g}). "
            f"Price: {price}"
        ),
        diagnostics=Diagnostics(**diag),
    )


async def evaluate(
    strategy: Strategy,
    symbol: str,
    market_data: MarketDataProvider,
    interval: str = "1h",
    limit: int = 100,
) -> Decision:
    """Evaluate *strategy* against live data for *symbol*.

    Returns ``BUY``/``SELL`` when the condition holds, ``WAIT`` when it
    does not, and ``WAIT`` with ``diagnostics.error`` set when the
    engine could not run (no data, short history, unsupported indicator,
    invalid operator, provider failure).
    """
    diag: dict = {}
    try:
        decision = await _decide(strategy, symbol, market_data, interval, limit, diag)
    except Exception as exc:
        error_kind = type(exc).__name__
        if isinstance(exc, (StratflowError, ValueError)):
            logger.warning("Strategy evaluation for %s failed (%s): %s", symbol, error_kind, exc)
        else:
            logger.exception("Unexpected error evaluating strategy for %s", symbol)
        return Decision(
            kind=DECISION_WAIT,
            message=f"Error: strategy could not run. {exc}",
            diagnostics=Diagnostics(**diag, error=str(exc) or error_kind, error_kind=error_kind),
        )

    logger.info("Decision for %s: %s", symbol, decision.message)
    return decision


class DecisionEngine:
    """Binds a market data provider and candle settings to ``evaluate``.

    Args:
        market_data: A ``MarketDataProvider`` (or compatible duck-type / mock).
        config: Application configuration (symbol, interval, limit).
    """

    def __init__(
        self,
        market_data: MarketDataProvider,
        config: Optional[Config] = None,
    ) -> None:
        self._market_data = market_data
        self._config = config or default_config()

    async def evaluate(
        self, strategy: Strategy, symbol: Optional[str] = None,
    ) -> Decision:
        return await evaluate(
            strategy,
            symbol or self._config.default_symbol,
            self._market_data,
            interval=self._config.candle_interval,
            limit=self._config.candle_limit,
        )
