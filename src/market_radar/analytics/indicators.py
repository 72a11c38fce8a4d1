"""Technical indicators over ticker and candle data.

Every function is total: insufficient or non-finite input yields the documented
neutral value instead of an exception, so callers can run them on whatever data
has arrived so far.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timezone

import numpy as np

from market_radar.shared.models import Breakout, BreakoutType, Candle, VelocityTrend

DEFAULT_LIQUIDITY_FLOOR = 10_000.0
DEFAULT_LIQUIDITY_CEILING = 100_000_000.0

MIN_CORRELATION_POINTS = 5
BREAKOUT_LOOKBACK = 10
VELOCITY_TREND_THRESHOLD = 0.1


def round_half_up(value: float) -> int:
    """Round .5 away from the even neighbour, e.g. 2.5 -> 3."""
    return math.floor(value + 0.5)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def calculate_volatility(high: float, low: float, last: float) -> float:
    """24h high-low range relative to last price, scaled x5 onto 0-100."""
    if not _finite(high, low, last) or last <= 0:
        return 0
    range_pct = (high - low) / last * 100
    return clamp(round_half_up(range_pct * 5), 0, 100)


def calculate_liquidity(
    volume: float,
    floor: float = DEFAULT_LIQUIDITY_FLOOR,
    ceiling: float = DEFAULT_LIQUIDITY_CEILING,
) -> float:
    """
    Log-scale 24h quote volume onto 0-100.

    Volume at or below ``floor`` maps to 0, at or above ``ceiling`` to 100.
    """
    if not _finite(volume) or floor <= 0 or ceiling <= floor:
        return 0
    if volume <= floor:
        return 0
    if volume >= ceiling:
        return 100
    span = math.log(ceiling) - math.log(floor)
    return round_half_up((math.log(volume) - math.log(floor)) / span * 100)


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> float:
    """
    Simple-average RSI over the last ``period`` close-to-close changes.

    Returns:
        50 with fewer than ``period + 1`` candles, 100 when there were no
        losses in the window, otherwise ``100 - 100 / (1 + avg_gain/avg_loss)``
    """
    if period < 1 or len(candles) < period + 1:
        return 50
    closes = np.array([c.close for c in candles[-(period + 1):]], dtype=float)
    if not np.all(np.isfinite(closes)):
        return 50

    changes = np.diff(closes)
    avg_gain = float(np.clip(changes, 0, None).sum()) / period
    avg_loss = float(np.clip(-changes, 0, None).sum()) / period

    if avg_loss == 0:
        return 100
    rs = avg_gain / avg_loss
    return clamp(100 - 100 / (1 + rs), 0, 100)


def calculate_correlation(
    candles: Sequence[Candle], reference: Sequence[Candle]
) -> float:
    """
    Pearson correlation of close-to-close % changes against a reference asset.

    Candles are matched on ``open_time``. Fewer than five matched points, zero
    variance or non-finite changes all mean "no relationship" and return 0.

    Returns:
        Correlation scaled to -100..100 and rounded
    """
    reference_closes = {c.open_time: c.close for c in reference}
    matched = [
        (c.close, reference_closes[c.open_time])
        for c in candles
        if c.open_time in reference_closes
    ]
    if len(matched) < MIN_CORRELATION_POINTS:
        return 0

    pairs = np.array(matched, dtype=float)
    previous = pairs[:-1]
    if np.any(previous == 0):
        return 0
    changes = np.diff(pairs, axis=0) / previous * 100
    if not np.all(np.isfinite(changes)):
        return 0

    deviations = changes - changes.mean(axis=0)
    numerator = float((deviations[:, 0] * deviations[:, 1]).sum())
    denominator = math.sqrt(
        float((deviations[:, 0] ** 2).sum()) * float((deviations[:, 1] ** 2).sum())
    )
    if denominator == 0 or not math.isfinite(denominator):
        return 0
    return clamp(round_half_up(numerator / denominator * 100), -100, 100)


def _change_per_second(previous: Candle, current: Candle) -> float:
    span_s = (current.close_time - current.open_time) / 1000
    if span_s <= 0 or previous.close == 0:
        return 0.0
    change = (current.close - previous.close) / previous.close / span_s
    return change if math.isfinite(change) else 0.0


def calculate_price_velocity(
    candles: Sequence[Candle],
) -> tuple[float, VelocityTrend]:
    """
    Relative price change per second over the latest candle (x10000).

    The trend compares the magnitude of the last two per-second changes:
    more than 10% larger is accelerating, more than 10% smaller is
    decelerating. Fewer than three candles gives ``(0, STABLE)``.
    """
    if len(candles) < 3:
        return 0.0, VelocityTrend.STABLE

    first, second, third = candles[-3:]
    previous_v = _change_per_second(first, second)
    current_v = _change_per_second(second, third)

    trend = VelocityTrend.STABLE
    if abs(current_v) > abs(previous_v) * (1 + VELOCITY_TREND_THRESHOLD):
        trend = VelocityTrend.ACCELERATING
    elif abs(current_v) < abs(previous_v) * (1 - VELOCITY_TREND_THRESHOLD):
        trend = VelocityTrend.DECELERATING

    return current_v * 10000, trend


def detect_breakout(
    candles: Sequence[Candle],
    current_price: float,
    now: datetime | None = None,
) -> Breakout | None:
    """
    Detect a break of the last ten candles' range.

    The price must clear the range by a third of the average candle size.
    """
    if len(candles) < BREAKOUT_LOOKBACK or not _finite(current_price):
        return None

    window = candles[-BREAKOUT_LOOKBACK:]
    recent_high = max(c.high for c in window)
    recent_low = min(c.low for c in window)
    threshold = sum(c.high - c.low for c in window) / BREAKOUT_LOOKBACK / 3
    if not _finite(recent_high, recent_low, threshold):
        return None

    time = now or datetime.now(timezone.utc)
    if current_price > recent_high + threshold:
        return Breakout(price=recent_high, type=BreakoutType.RESISTANCE, time=time)
    if current_price < recent_low - threshold:
        return Breakout(price=recent_low, type=BreakoutType.SUPPORT, time=time)
    return None
