"""Deterministic tests for the indicator engine.

All tests use fixed price fixtures. Same input = same output, always.
"""

import pytest

from stratflow.errors import UnsupportedIndicator
from stratflow.strategy.indicators import (
    calculate_ema,
    calculate_rsi,
    calculate_sma,
    compute_indicator,
    last_defined,
    min_period,
)


# ── Fixtures ─────────────────────────────────────────────────────────────

_ZIGZAG = [
    44.34, 44.09, 44.15, 43.61, 44.33, 44.83, 45.10, 45.42, 45.84, 46.08,
    45.89, 46.03, 45.61, 46.28, 46.28, 46.00, 46.03, 46.41, 46.22, 45.64,
    46.21, 46.25, 45.71, 46.45, 45.78, 45.35, 44.03, 44.18, 44.22, 44.57,
]


def _reference_rsi(prices, period):
    """Straightforward Wilder RSI used as an oracle."""
    deltas = [b - a for a, b in zip(prices, prices[1:])]
    gains = [max(d, 0.0) for d in deltas]
    losses = [max(-d, 0.0) for d in deltas]
    ag = sum(gains[: period - 1]) / (period - 1)
    al = sum(losses[: period - 1]) / (period - 1)
    out = [None] * (period - 1)
    out.append(100.0 if al == 0 else 100 - 100 / (1 + ag / al))
    for g, l in zip(gains[period - 1 :], losses[period - 1 :]):
        ag = (ag * (period - 1) + g) / period
        al = (al * (period - 1) + l) / period
        out.append(100.0 if al == 0 else 100 - 100 / (1 + ag / al))
    return out


# ── RSI ──────────────────────────────────────────────────────────────────


class TestRSI:

    def test_warmup_length(self):
        """period - 1 leading None entries, the rest defined."""
        period = 14
        rsi = calculate_rsi(_ZIGZAG, period)
        assert len(rsi) == len(_ZIGZAG)
        assert rsi[: period - 1] == [None] * (period - 1)
        assert all(v is not None for v in rsi[period - 1 :])
        assert sum(v is not None for v in rsi) == len(_ZIGZAG) - (period - 1)

    def test_bounded(self):
        rsi = calculate_rsi(_ZIGZAG, 5)
        for v in rsi:
            if v is not None:
                assert 0.0 <= v <= 100.0

    def test_matches_wilder_recurrence(self):
        expected = _reference_rsi(_ZIGZAG, 14)
        got = calculate_rsi(_ZIGZAG, 14)
        for e, g in zip(expected, got):
            if e is None:
                assert g is None
            else:
                assert g == pytest.approx(e)

    def test_smoothing_is_not_a_fresh_window(self):
        """The value after the seed differs from a re-windowed simple mean."""
        period = 3
        prices = [10.0, 11.0, 12.0, 11.0, 10.0]
        rsi = calculate_rsi(prices, period)
        # Seed at index 2: deltas +1, +1 → avg_gain 1, avg_loss 0 → 100
        assert rsi[2] == pytest.approx(100.0)
        # Index 3: ag = (1*2 + 0)/3 = 2/3, al = (0*2 + 1)/3 = 1/3 → RS 2 → 66.67
        assert rsi[3] == pytest.approx(100 - 100 / 3)
        # A fresh window over the last 2 deltas (+1, -1) would give 50
        assert rsi[3] != pytest.approx(50.0)

    def test_monotonic_rise_is_100(self):
        rsi = calculate_rsi([float(p) for p in range(1, 31)], 14)
        assert all(v == 100.0 for v in rsi[13:])

    def test_monotonic_fall_is_0(self):
        rsi = calculate_rsi([float(p) for p in range(30, 0, -1)], 14)
        assert all(v == pytest.approx(0.0) for v in rsi[13:])

    def test_short_series_all_none(self):
        assert calculate_rsi([1.0, 2.0, 3.0], 14) == [None, None, None]

    def test_empty_series(self):
        assert calculate_rsi([], 14) == []

    def test_period_one_rejected(self):
        with pytest.raises(ValueError):
            calculate_rsi(_ZIGZAG, 1)


# ── SMA / EMA ────────────────────────────────────────────────────────────


class TestMovingAverages:

    def test_sma_values(self):
        sma = calculate_sma([1.0, 2.0, 3.0, 4.0, 5.0], 3)
        assert sma[:2] == [None, None]
        assert sma[2:] == [pytest.approx(2.0), pytest.approx(3.0), pytest.approx(4.0)]

    def test_ema_seeded_with_sma(self):
        ema = calculate_ema([1.0, 2.0, 3.0, 4.0], 3)
        assert ema[:2] == [None, None]
        assert ema[2] == pytest.approx(2.0)
        # k = 0.5 → 4*0.5 + 2*0.5 = 3
        assert ema[3] == pytest.approx(3.0)

    def test_zero_period_rejected(self):
        with pytest.raises(ValueError):
            calculate_sma([1.0, 2.0], 0)


# ── Dispatch ─────────────────────────────────────────────────────────────


class TestComputeIndicator:

    def test_dispatch_case_insensitive(self):
        assert compute_indicator(_ZIGZAG, "RSI", 14) == calculate_rsi(_ZIGZAG, 14)
        assert compute_indicator(_ZIGZAG, "sma", 5) == calculate_sma(_ZIGZAG, 5)

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedIndicator, match="macd"):
            compute_indicator(_ZIGZAG, "macd", 14)

    def test_min_period(self):
        assert min_period("rsi") == 2
        assert min_period("RSI") == 2
        assert min_period("sma") == 1
        assert min_period("ema") == 1

    def test_last_defined(self):
        assert last_defined([None, 1.0, 2.0]) == 2.0
        assert last_defined([None, None]) is None
