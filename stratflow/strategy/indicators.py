"""Technical indicators — RSI, SMA, EMA. Pure functions, no I/O.

Every function takes a list of prices and returns a series of the same
length.  Entries before the warm-up period completes are ``None``; the
first defined value always sits at index ``period - 1``.  A price list
shorter than *period* yields an all-``None`` series.
"""

from typing import Callable, Optional

from stratflow.errors import UnsupportedIndicator

IndicatorSeries = list[Optional[float]]


def _check_period(period: int, minimum: int = 1) -> None:
    if period < minimum:
        raise ValueError(f"period must be >= {minimum}, got {period}")


# ── SMA / EMA ────────────────────────────────────────────────────────────


def calculate_sma(prices: list[float], period: int = 20) -> IndicatorSeries:
    """Simple moving average of the last *period* prices."""
    _check_period(period)
    sma: IndicatorSeries = [None] * len(prices)
    if len(prices) < period:
        return sma

    window_sum = sum(prices[:period])
    sma[period - 1] = window_sum / period
    for i in range(period, len(prices)):
        window_sum += prices[i] - prices[i - period]
        sma[i] = window_sum / period
    return sma


def calculate_ema(prices: list[float], period: int = 20) -> IndicatorSeries:
    """Exponential moving average.

    ``EMA_today = price × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the SMA of the first *period*
    prices.
    """
    _check_period(period)
    ema: IndicatorSeries = [None] * len(prices)
    if len(prices) < period:
        return ema

    k = 2.0 / (period + 1)
    prev = sum(prices[:period]) / period
    ema[period - 1] = prev
    for i in range(period, len(prices)):
        prev = prices[i] * k + prev * (1 - k)
        ema[i] = prev
    return ema


# ── RSI ──────────────────────────────────────────────────────────────────


def _rsi_from_avgs(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi(prices: list[float], period: int = 14) -> IndicatorSeries:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = price[i] - price[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = mean of the ``period - 1`` deltas
           inside the first window of *period* bars (index ``period - 1``).
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RS = avg_gain / avg_loss
        6. RSI = 100 - 100 / (1 + RS)

    Step 4 carries the previous smoothed average forward; it is not a
    fresh mean over the last *period* deltas.
    """
    _check_period(period, minimum=min_period("rsi"))
    rsi: IndicatorSeries = [None] * len(prices)
    if len(prices) < period:
        return rsi

    deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    seed = period - 1
    avg_gain = sum(gains[:seed]) / seed
    avg_loss = sum(losses[:seed]) / seed
    rsi[period - 1] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(seed, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one bar
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


# ── Dispatch ─────────────────────────────────────────────────────────────

INDICATORS: dict[str, Callable[[list[float], int], IndicatorSeries]] = {
    "rsi": calculate_rsi,
    "sma": calculate_sma,
    "ema": calculate_ema,
}

# RSI needs at least one price change to seed its averages.
_MIN_PERIODS: dict[str, int] = {"rsi": 2}


def min_period(indicator_type: str) -> int:
    """Smallest period *indicator_type* accepts."""
    return _MIN_PERIODS.get(str(indicator_type).lower(), 1)


def compute_indicator(
    prices: list[float], indicator_type: str, period: int,
) -> IndicatorSeries:
    """Compute the indicator named *indicator_type* over *prices*.

    Raises ``UnsupportedIndicator`` for unknown types and ``ValueError``
    for a period the indicator cannot use.
    """
    fn = INDICATORS.get(str(indicator_type).lower())
    if fn is None:
        raise UnsupportedIndicator(indicator_type)
    return fn(prices, period)


def last_defined(series: IndicatorSeries) -> Optional[float]:
    """Return the most recent non-``None`` value, or ``None``."""
    for value in reversed(series):
        if value is not None:
            return value
    return None
