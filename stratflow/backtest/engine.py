"""Backtest engine — replays historical candles through a compiled strategy.

Iterates candles chronologically with a flat/open position state machine
and a virtual equity.  No real orders are placed.

Entry uses the strategy's own condition.  Exit uses a separate rule that
does not depend on the strategy (``gt 70`` unless configured otherwise).
The engine never fails: an incomplete or unusable strategy is repaired
with the compiler's defaults and the repair is logged.

``optimize_period`` re-runs the backtest across indicator periods and keeps
the one with the highest finite profit factor.
"""

import logging
import math
from dataclasses import replace
from typing import Iterable, Optional, Union

from stratflow.backtest.models import (
    BacktestResult,
    PeriodOptimization,
    PortfolioPoint,
    PricePoint,
    Trade,
)
from stratflow.backtest.stats import calculate_stats
from stratflow.config import Config, default_config
from stratflow.errors import GraphValidationError
from stratflow.strategy.compiler import compile_graph_dict, compile_strategy, parse_graph
from stratflow.strategy.indicators import IndicatorSeries, compute_indicator, min_period
from stratflow.strategy.models import (
    ACTION_KINDS,
    DEFAULT_ACTION_KIND,
    DEFAULT_AMOUNT,
    DEFAULT_OPERATOR,
    DEFAULT_PERIOD,
    DEFAULT_THRESHOLD,
    EDITOR_OPERATORS,
    EVALUABLE_OPERATORS,
    ActionPayload,
    ActionSpec,
    CandleData,
    ConditionSpec,
    IndicatorPayload,
    IndicatorSpec,
    LogicPayload,
    Strategy,
    StrategyGraph,
)

logger = logging.getLogger("stratflow")

StrategySource = Union[Strategy, StrategyGraph, dict]

# Candidate periods swept by ``optimize_period``.
OPTIMIZE_PERIODS = range(7, 31)


class BacktestEngine:
    """Simulates a strategy on historical candle data.

    Args:
        config: Application configuration (initial equity, exit rule).
        exit_rule: Overrides the configured exit condition.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        exit_rule: Optional[ConditionSpec] = None,
    ) -> None:
        self._config = config or default_config()
        self._exit_rule = exit_rule or ConditionSpec(
            operator=self._config.backtest_exit_operator,
            threshold=self._config.backtest_exit_threshold,
        )

    @property
    def exit_rule(self) -> ConditionSpec:
        return self._exit_rule

    # ── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        strategy: StrategySource,
        candles: list[CandleData],
        initial_equity: Optional[float] = None,
    ) -> BacktestResult:
        """Execute a full backtest.

        Args:
            strategy: A compiled ``Strategy``, a ``StrategyGraph`` or the
                editor's JSON document.  Graphs that do not compile are
                repaired with defaults.
            candles: Candles iterated chronologically.
            initial_equity: Starting virtual equity (config default if None).

        Returns:
            ``BacktestResult`` with equity curve, trades, annotated price
            series and summary statistics.
        """
        strategy = self._resolve_strategy(strategy)
        start_equity = self._config.initial_equity
        if initial_equity is not None:
            if _usable_number(initial_equity) and initial_equity > 0:
                start_equity = float(initial_equity)
            else:
                logger.warning(
                    "Backtest replacing initial equity %r with %.2f",
                    initial_equity, start_equity,
                )
        series = self._indicator_series(strategy, candles)
        entry_rule = strategy.condition

        equity = start_equity
        peak_equity = start_equity
        max_drawdown = 0.0
        in_position = False
        entry_price = 0.0
        trades: list[Trade] = []
        round_trips: list[float] = []
        equity_curve: list[PortfolioPoint] = []
        if candles:
            equity_curve.append(PortfolioPoint(time=candles[0].time, equity=equity))

        for i in range(1, len(candles)):
            candle = candles[i]
            value = series[i]

            if value is not None:
                if not in_position and self._holds(entry_rule, value):
                    in_position = True
                    entry_price = candle.close
                    trades.append(Trade(time=candle.time, side="buy", price=candle.close))
                elif in_position and self._holds(self._exit_rule, value):
                    profit = candle.close - entry_price
                    equity += profit
                    round_trips.append(profit)
                    in_position = False
                    trades.append(Trade(time=candle.time, side="sell", price=candle.close))

            peak_equity = max(peak_equity, equity)
            drawdown = (peak_equity - equity) / peak_equity if peak_equity > 0 else 0.0
            max_drawdown = max(max_drawdown, drawdown)

            equity_curve.append(PortfolioPoint(time=candle.time, equity=equity))

        if in_position:
            logger.debug("Backtest ended with an open position from %.4f", entry_price)

        stats = calculate_stats(round_trips, start_equity, equity, max_drawdown)
        logger.info(
            "Backtest finished: %d candles, %d round trips, net %.2f%%",
            len(candles), stats.total_trades, stats.net_profit_pct,
        )
        return BacktestResult(
            equity_curve=equity_curve,
            trades=trades,
            price_series=[
                PricePoint(
                    time=c.time,
                    open=c.open,
                    high=c.high,
                    low=c.low,
                    close=c.close,
                    volume=c.volume,
                    indicator_value=series[i],
                )
                for i, c in enumerate(candles)
            ],
            stats=stats,
        )

    def optimize_period(
        self,
        strategy: StrategySource,
        candles: list[CandleData],
        periods: Iterable[int] = OPTIMIZE_PERIODS,
        initial_equity: Optional[float] = None,
    ) -> PeriodOptimization:
        """Re-run the backtest for each indicator period in *periods*.

        Keeps the period with the highest finite profit factor; ties go to
        the earlier period.  Periods whose profit factor is infinite (wins
        and no losses) are recorded but never selected.
        """
        base = self._resolve_strategy(strategy)
        best_period = base.indicator.period
        best_pf: Optional[float] = None
        factors: dict[int, float] = {}

        for period in periods:
            candidate = replace(
                base, indicator=IndicatorSpec(base.indicator.type, period),
            )
            pf = self.run(candidate, candles, initial_equity).stats.profit_factor
            factors[period] = pf
            if math.isfinite(pf) and (best_pf is None or pf > best_pf):
                best_pf = pf
                best_period = period

        if best_pf is None:
            logger.info(
                "Period sweep found no finite profit factor; keeping period %d",
                best_period,
            )
        else:
            logger.info(
                "Best %s period: %d (profit factor %.2f)",
                base.indicator.type, best_period, best_pf,
            )
        return PeriodOptimization(
            period=best_period, profit_factor=best_pf, profit_factors=factors,
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _holds(rule: ConditionSpec, value: float) -> bool:
        # Operators without a rule (``crossover``) never trigger.
        if rule.operator not in EVALUABLE_OPERATORS:
            return False
        return rule.holds(value)

    @staticmethod
    def _indicator_series(
        strategy: Strategy, candles: list[CandleData],
    ) -> IndicatorSeries:
        closes = [c.close for c in candles]
        spec = strategy.indicator
        try:
            return compute_indicator(closes, spec.type, spec.period)
        except (TypeError, ValueError) as exc:
            fallback = IndicatorSpec()
            logger.warning(
                "Backtest cannot compute %s(%s): %s — using %s(%d)",
                spec.type, spec.period, exc, fallback.type, fallback.period,
            )
            return compute_indicator(closes, fallback.type, fallback.period)

    def _resolve_strategy(self, source: StrategySource) -> Strategy:
        if isinstance(source, Strategy):
            return _repair(source)

        result = (
            compile_graph_dict(source) if isinstance(source, dict)
            else compile_strategy(source)
        )
        if result.valid and result.strategy is not None:
            return result.strategy

        logger.warning("Backtest repairing invalid strategy graph: %s", result.message)
        graph = source
        if isinstance(source, dict):
            try:
                graph = parse_graph(source)
            except GraphValidationError:
                logger.warning("Unreadable strategy graph; using default strategy")
                graph = StrategyGraph()
        return _strategy_from_partial_graph(graph)


# ── Default repair ───────────────────────────────────────────────────────


def _usable_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _repair(strategy: Strategy) -> Strategy:
    """Replace unusable period, operator, threshold and action values with
    the compiler defaults."""
    indicator = strategy.indicator
    period = indicator.period
    if (
        not isinstance(period, int)
        or isinstance(period, bool)
        or period < min_period(str(indicator.type))
    ):
        logger.warning(
            "Backtest replacing period %r with %d", period, DEFAULT_PERIOD,
        )
        indicator = IndicatorSpec(indicator.type, DEFAULT_PERIOD)
    condition = strategy.condition
    if not _usable_number(condition.threshold):
        logger.warning(
            "Backtest replacing threshold %r with %g", condition.threshold, DEFAULT_THRESHOLD,
        )
        condition = ConditionSpec(condition.operator, DEFAULT_THRESHOLD)
    if condition.operator not in EDITOR_OPERATORS:
        logger.warning(
            "Backtest replacing operator %r with %r", condition.operator, DEFAULT_OPERATOR,
        )
        condition = ConditionSpec(DEFAULT_OPERATOR, condition.threshold)
    action = strategy.action
    if action.kind not in ACTION_KINDS:
        action = ActionSpec(DEFAULT_ACTION_KIND, action.amount)
    if (
        indicator is strategy.indicator
        and condition is strategy.condition
        and action is strategy.action
    ):
        return strategy
    return Strategy(indicator=indicator, condition=condition, action=action)


def _strategy_from_partial_graph(graph: StrategyGraph) -> Strategy:
    """Take the first node of each role, defaulting whatever is missing."""
    indicator = IndicatorPayload()
    logic = LogicPayload()
    action = ActionPayload()
    for node in reversed(graph.nodes):
        if isinstance(node.payload, IndicatorPayload):
            indicator = node.payload
        elif isinstance(node.payload, LogicPayload):
            logic = node.payload
        elif isinstance(node.payload, ActionPayload):
            action = node.payload

    # _repair swaps in defaults for missing or unusable values.
    amount = action.amount
    if not _usable_number(amount) or amount <= 0:
        amount = DEFAULT_AMOUNT
    return _repair(
        Strategy(
            indicator=IndicatorSpec(
                type=str(indicator.indicator_type or IndicatorSpec().type).lower(),
                period=indicator.period,
            ),
            condition=ConditionSpec(
                operator=str(logic.operator or DEFAULT_OPERATOR).lower(),
                threshold=logic.threshold,
            ),
            action=ActionSpec(
                kind=str(action.action_kind or DEFAULT_ACTION_KIND).lower(),
                amount=float(amount),
            ),
        )
    )


def run_backtest(
    strategy: StrategySource,
    candles: list[CandleData],
    initial_equity: float = 10_000.0,
    exit_rule: Optional[ConditionSpec] = None,
) -> BacktestResult:
    """Backtest *strategy* over *candles* with default configuration."""
    return BacktestEngine(exit_rule=exit_rule).run(
        strategy, candles, initial_equity=initial_equity,
    )


def optimize_period(
    strategy: StrategySource,
    candles: list[CandleData],
    periods: Iterable[int] = OPTIMIZE_PERIODS,
    initial_equity: float = 10_000.0,
    exit_rule: Optional[ConditionSpec] = None,
) -> PeriodOptimization:
    """Find the indicator period with the best finite profit factor."""
    return BacktestEngine(exit_rule=exit_rule).optimize_period(
        strategy, candles, periods, initial_equity=initial_equity,
    )
