"""Backtest statistics — pure functions for trade-series analysis."""

import math

from stratflow.backtest.models import BacktestStats


def calculate_stats(
    round_trip_pnls: list[float],
    initial_equity: float,
    final_equity: float,
    max_drawdown: float,
) -> BacktestStats:
    """Compute summary statistics for a finished backtest.

    Args:
        round_trip_pnls: Realised P&L of each closed buy/sell pair.
        initial_equity: Starting virtual equity.
        final_equity: Equity after the last bar.
        max_drawdown: Largest peak-relative drawdown as a fraction (0.12 = 12 %).

    A P&L of exactly zero counts as a loss, matching the winner/loser
    split used for the profit factor.
    """
    total = len(round_trip_pnls)
    winners = [p for p in round_trip_pnls if p > 0]
    losers = [p for p in round_trip_pnls if p <= 0]

    win_rate = (len(winners) / total) * 100.0 if total else 0.0
    net_profit_pct = (
        (final_equity - initial_equity) / initial_equity * 100.0
        if initial_equity > 0 else 0.0
    )

    return BacktestStats(
        net_profit_pct=net_profit_pct,
        total_trades=total,
        win_rate_pct=win_rate,
        max_drawdown_pct=max_drawdown * 100.0,
        profit_factor=profit_factor(sum(winners), abs(sum(losers))),
    )


def profit_factor(total_profit: float, total_loss: float) -> float:
    """Gross profit / gross loss.

    ``math.inf`` when there is profit and no loss; ``0.0`` when both are zero.
    """
    if total_loss > 0:
        return total_profit / total_loss
    if total_profit > 0:
        return math.inf
    return 0.0
