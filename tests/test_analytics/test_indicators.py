"""Tests for the pure indicator functions."""

import math
from datetime import datetime, timezone

import pytest

from conftest import make_candles
from market_radar.analytics.indicators import (
    calculate_correlation,
    calculate_liquidity,
    calculate_price_velocity,
    calculate_rsi,
    calculate_volatility,
    detect_breakout,
    round_half_up,
)
from market_radar.shared.models import BreakoutType, VelocityTrend


def compound(start, changes_pct):
    closes = [start]
    for pct in changes_pct:
        closes.append(closes[-1] * (1 + pct / 100))
    return closes


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [(2.5, 3), (3.5, 4), (2.4, 2), (-2.5, -2)])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestVolatility:
    def test_range_scaled(self):
        assert calculate_volatility(105, 95, 100) == 50

    def test_clamped_to_100(self):
        assert calculate_volatility(200, 50, 100) == 100

    def test_zero_price_is_zero(self):
        assert calculate_volatility(10, 5, 0) == 0

    @pytest.mark.parametrize(
        "high,low,last", [(math.nan, 1, 1), (math.inf, 1, 1), (90, 110, 100)]
    )
    def test_degenerate_inputs_stay_in_range(self, high, low, last):
        assert 0 <= calculate_volatility(high, low, last) <= 100


class TestLiquidity:
    @pytest.mark.parametrize(
        "volume,expected",
        [(5_000, 0), (10_000, 0), (100_000, 25), (1_000_000, 50), (100_000_000, 100), (1e12, 100)],
    )
    def test_log_scale(self, volume, expected):
        assert calculate_liquidity(volume) == expected

    def test_custom_band(self):
        assert calculate_liquidity(1_000, floor=10, ceiling=100_000) == 50

    def test_nan_volume(self):
        assert calculate_liquidity(math.nan) == 0


class TestRSI:
    def test_fewer_than_period_plus_one_is_neutral(self):
        assert calculate_rsi(make_candles([float(i) for i in range(1, 15)])) == 50

    def test_no_losses_is_100(self):
        assert calculate_rsi(make_candles([float(i) for i in range(1, 16)])) == 100

    def test_balanced_moves_are_50(self):
        closes = [100.0 if i % 2 == 0 else 101.0 for i in range(15)]
        assert calculate_rsi(make_candles(closes)) == pytest.approx(50)

    def test_gain_loss_ratio(self):
        closes = [10.0, 12.0, 11.0] + [11.0] * 12
        assert calculate_rsi(make_candles(closes)) == pytest.approx(200 / 3)

    def test_only_last_period_counts(self):
        closes = [200.0, 150.0, 100.0, 50.0, 25.0] + [float(i) for i in range(26, 41)]
        assert calculate_rsi(make_candles(closes)) == 100

    def test_result_in_range(self):
        closes = compound(100, [5, -7, 3, -2, 8, -9, 1, -1, 4, -6, 2, -3, 7, -8])
        assert 0 <= calculate_rsi(make_candles(closes)) <= 100


class TestCorrelation:
    def test_identical_series_is_100(self):
        candles = make_candles(compound(100, [1, -2, 3, -1, 2, 4]))
        assert calculate_correlation(candles, candles) == 100

    def test_opposite_series_is_minus_100(self):
        changes = [1, -2, 3, -1, 2, 4]
        asset = make_candles(compound(100, changes))
        reference = make_candles(compound(100, [-c for c in changes]))
        assert calculate_correlation(asset, reference) == -100

    def test_fewer_than_five_matches_is_zero(self):
        candles = make_candles(compound(100, [1, -2, 3]))
        assert calculate_correlation(candles, candles) == 0

    def test_unaligned_times_is_zero(self):
        asset = make_candles(compound(100, [1, -2, 3, -1, 2, 4]))
        reference = make_candles(compound(100, [1, -2, 3, -1, 2, 4]), interval_ms=60_000)
        # Only the first open_time lines up
        assert calculate_correlation(asset, reference) == 0

    def test_zero_variance_is_zero(self):
        flat = make_candles([100.0] * 8)
        moving = make_candles(compound(100, [1, -2, 3, -1, 2, 4, 1]))
        assert calculate_correlation(moving, flat) == 0


class TestVelocity:
    def test_fewer_than_three_candles(self):
        assert calculate_price_velocity(make_candles([1.0, 2.0])) == (0, VelocityTrend.STABLE)

    def test_accelerating(self):
        candles = make_candles([100.0, 101.0, 103.0])
        velocity, trend = calculate_price_velocity(candles)

        span_s = (candles[-1].close_time - candles[-1].open_time) / 1000
        assert velocity == pytest.approx((2 / 101) / span_s * 10000)
        assert trend is VelocityTrend.ACCELERATING

    def test_decelerating(self):
        _, trend = calculate_price_velocity(make_candles([100.0, 102.0, 103.0]))
        assert trend is VelocityTrend.DECELERATING

    def test_stable_within_threshold(self):
        _, trend = calculate_price_velocity(make_candles([100.0, 101.0, 102.01]))
        assert trend is VelocityTrend.STABLE

    def test_negative_velocity_when_falling(self):
        velocity, _ = calculate_price_velocity(make_candles([100.0, 99.0, 97.0]))
        assert velocity < 0


class TestBreakout:
    NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_fewer_than_ten_candles(self):
        assert detect_breakout(make_candles([100.0] * 9), 1_000.0) is None

    def test_resistance_break(self):
        # high 101, low 99, average range 2 -> threshold 2/3
        breakout = detect_breakout(make_candles([100.0] * 10), 102.0, now=self.NOW)
        assert breakout.type is BreakoutType.RESISTANCE
        assert breakout.price == 101.0
        assert breakout.time == self.NOW

    def test_support_break(self):
        breakout = detect_breakout(make_candles([100.0] * 10), 98.0, now=self.NOW)
        assert breakout.type is BreakoutType.SUPPORT
        assert breakout.price == 99.0

    @pytest.mark.parametrize("price", [100.0, 101.5, 98.5])
    def test_within_threshold_is_none(self, price):
        assert detect_breakout(make_candles([100.0] * 10), price) is None

    def test_uses_last_ten_candles(self):
        candles = make_candles([500.0] * 5 + [100.0] * 10)
        assert detect_breakout(candles, 102.0).type is BreakoutType.RESISTANCE
