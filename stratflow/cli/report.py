"""CLI report — prints compile, decision and backtest summaries to the console."""

import math

from stratflow.backtest.models import BacktestResult, PeriodOptimization
from stratflow.strategy.models import CompileResult, Decision

_RULE = "──────────────────────────────────────────────────"


def _emit(title: str, lines: list[str]) -> str:
    header = f"──────────────── {title} ".ljust(len(_RULE), "─")
    output = "\n".join([header, *lines, _RULE])
    print(output)
    return output


def print_compile_result(result: CompileResult) -> str:
    """Format and print a compile result.

    Returns:
        The formatted string (also printed to stdout).
    """
    lines = [f"  Valid:           {result.valid}", f"  Message:         {result.message}"]
    if result.strategy is not None:
        s = result.strategy
        lines += [
            f"  Indicator:       {s.indicator.type.upper()}({s.indicator.period})",
            f"  Condition:       {s.condition.operator} {s.condition.threshold:g}",
            f"  Action:          {s.action.kind} {s.action.amount:g}",
        ]
    return _emit("Strategy", lines)


def print_decision(symbol: str, decision: Decision) -> str:
    """Format and print a live decision."""
    d = decision.diagnostics
    value_str = f"{d.indicator_value:.2f}" if d.indicator_value is not None else "N/A"
    price_str = f"{d.current_price:,.2f}" if d.current_price is not None else "N/A"
    lines = [
        f"  Symbol:          {symbol}",
        f"  Decision:        {decision.kind}",
        f"  Indicator:       {value_str}",
        f"  Price:           {price_str}",
        f"  Message:         {decision.message}",
    ]
    if decision.failed:
        lines.append(f"  Error:           {d.error_kind}: {d.error}")
    return _emit("Decision", lines)


def print_backtest(result: BacktestResult) -> str:
    """Format and print backtest statistics."""
    st = result.stats
    pf = "∞" if math.isinf(st.profit_factor) else f"{st.profit_factor:.2f}"
    final = result.equity_curve[-1].equity if result.equity_curve else None
    final_str = f"${final:,.2f}" if final is not None else "N/A"
    lines = [
        f"  Candles:         {len(result.price_series)}",
        f"  Final Equity:    {final_str}",
        f"  Net Profit:      {st.net_profit_pct:.2f}%",
        f"  Total Trades:    {st.total_trades}",
        f"  Win Rate:        {st.win_rate_pct:.2f}%",
        f"  Max Drawdown:    {st.max_drawdown_pct:.2f}%",
        f"  Profit Factor:   {pf}",
    ]
    return _emit("Backtest", lines)


def print_optimization(result: PeriodOptimization) -> str:
    """Format and print the outcome of a period sweep."""
    if result.found:
        best = f"{result.period} (profit factor {result.profit_factor:.2f})"
    else:
        best = f"{result.period} (no finite profit factor)"
    lines = [f"  Best Period:     {best}"]
    for period, pf in result.profit_factors.items():
        pf_str = "∞" if math.isinf(pf) else f"{pf:.2f}"
        lines.append(f"    {period:>3}           {pf_str}")
    return _emit("Optimization", lines)
