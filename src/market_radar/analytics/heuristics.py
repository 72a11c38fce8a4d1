"""Ranking heuristics.

Pump probability and profit target are simple weighted scores, not calibrated
models. Their thresholds and weights are part of the public behaviour and must
not be tuned without a product decision.
"""

import math
from collections.abc import Sequence

from market_radar.analytics.indicators import clamp, round_half_up
from market_radar.shared.models import Candle, Timeframe, TrendDetails, TrendDirection

# (scale, offset): shorter timeframes are pulled harder toward 50
TIMEFRAME_DAMPING: dict[Timeframe, tuple[float, float]] = {
    Timeframe.M15: (0.8, 10.0),
    Timeframe.M30: (0.85, 7.5),
    Timeframe.H1: (0.9, 5.0),
    Timeframe.H4: (0.95, 2.5),
    Timeframe.D1: (1.0, 0.0),
}

PROFIT_MULTIPLIER: dict[Timeframe, float] = {
    Timeframe.M15: 0.5,
    Timeframe.M30: 0.6,
    Timeframe.H1: 0.8,
    Timeframe.H4: 1.2,
    Timeframe.D1: 1.5,
}


def _timeframe(value: Timeframe | str) -> Timeframe | None:
    try:
        return Timeframe.parse(value)
    except ValueError:
        return None


def _or_zero(value: float | None) -> float:
    return value if value is not None and math.isfinite(value) else 0.0


def calculate_pump_probability(
    price_change_percent: float,
    volume_change_percent: float | None,
    volatility: float,
    timeframe: Timeframe | str,
) -> float:
    """Additive 0-100 score from price change, volume change and volatility."""
    price_change = _or_zero(price_change_percent)
    volume_change = _or_zero(volume_change_percent)
    vol = _or_zero(volatility)

    score = 50.0

    if price_change > 5:
        score += 10
    elif price_change > 2:
        score += 5
    elif price_change < -5:
        score -= 10
    elif price_change < -2:
        score -= 5

    if volume_change > 100:
        score += 15
    elif volume_change > 50:
        score += 10
    elif volume_change > 20:
        score += 5
    elif volume_change < -50:
        score -= 10

    if vol > 70:
        score += 10
    elif vol > 50:
        score += 5
    elif vol < 20:
        score -= 5

    tf = _timeframe(timeframe)
    if tf is not None:
        scale, offset = TIMEFRAME_DAMPING[tf]
        score = score * scale + offset

    return clamp(score, 0, 100)


def calculate_profit_target(volatility: float, timeframe: Timeframe | str) -> float:
    """Expected move in percent, 1-30."""
    tf = _timeframe(timeframe)
    multiplier = PROFIT_MULTIPLIER[tf] if tf is not None else 1.0
    return clamp(round_half_up(_or_zero(volatility) / 10 * multiplier), 1, 30)


def calculate_volume_change(candles: Sequence[Candle]) -> float:
    """Percent change of the last candle's volume over the one before."""
    if len(candles) < 2:
        return 0.0
    previous = candles[-2].volume
    if previous <= 0:
        return 0.0
    change = (candles[-1].volume - previous) / previous * 100
    return change if math.isfinite(change) else 0.0


def calculate_trend_details(price_change_percent: float) -> TrendDetails:
    """Direction and 0-100 strength of a 24h move; within +-1% is sideways."""
    change = _or_zero(price_change_percent)
    if change > 1:
        return TrendDetails(direction=TrendDirection.UP, strength=min(100, change * 5))
    if change < -1:
        return TrendDetails(direction=TrendDirection.DOWN, strength=min(100, -change * 5))
    return TrendDetails()


def count_consecutive_gains(candles: Sequence[Candle]) -> int:
    """Number of rising closes among the last five candles."""
    window = candles[-5:]
    return sum(1 for prev, cur in zip(window, window[1:]) if cur.close > prev.close)
