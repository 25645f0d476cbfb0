"""Backtest data models — trades, equity curve, statistics."""

import math
from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Trade:
    time: str
    side: str  # "buy" or "sell"
    price: float


@dataclass(frozen=True)
class PortfolioPoint:
    time: str
    equity: float


@dataclass(frozen=True)
class PricePoint:
    """A replayed candle annotated with its indicator value."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    indicator_value: Optional[float] = None


@dataclass(frozen=True)
class BacktestStats:
    net_profit_pct: float
    total_trades: int
    win_rate_pct: float
    max_drawdown_pct: float
    profit_factor: float  # ``math.inf`` when there are wins and no losses

    def to_dict(self) -> dict:
        data = asdict(self)
        if math.isinf(self.profit_factor):
            # JSON has no infinity
            data["profit_factor"] = "Infinity"
        return data


@dataclass(frozen=True)
class BacktestResult:
    equity_curve: list[PortfolioPoint] = field(default_factory=list)
    trades: list[Trade] = field(default_factory=list)
    price_series: list[PricePoint] = field(default_factory=list)
    stats: BacktestStats = field(
        default_factory=lambda: BacktestStats(0.0, 0, 0.0, 0.0, 0.0)
    )

    def to_dict(self) -> dict:
        return {
            "equity_curve": [asdict(p) for p in self.equity_curve],
            "trades": [asdict(t) for t in self.trades],
            "price_series": [asdict(p) for p in self.price_series],
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class PeriodOptimization:
    """Outcome of a period sweep.

    ``profit_factor`` is ``None`` when no candidate period produced a
    finite profit factor; ``period`` is then the strategy's own period.
    """

    period: int
    profit_factor: Optional[float]
    profit_factors: dict[int, float] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.profit_factor is not None

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "profit_factor": self.profit_factor,
            "profit_factors": {
                str(p): ("Infinity" if math.isinf(pf) else pf)
                for p, pf in self.profit_factors.items()
            },
        }
