"""Analytics engine: pure indicators, ranking heuristics and record assembly."""

from market_radar.analytics.heuristics import (
    calculate_profit_target,
    calculate_pump_probability,
    calculate_trend_details,
    calculate_volume_change,
    count_consecutive_gains,
)
from market_radar.analytics.indicators import (
    calculate_correlation,
    calculate_liquidity,
    calculate_price_velocity,
    calculate_rsi,
    calculate_volatility,
    detect_breakout,
)
from market_radar.analytics.records import MarketRecordBook, build_market_record

__all__ = [
    "MarketRecordBook",
    "build_market_record",
    "calculate_correlation",
    "calculate_liquidity",
    "calculate_price_velocity",
    "calculate_profit_target",
    "calculate_pump_probability",
    "calculate_rsi",
    "calculate_trend_details",
    "calculate_volatility",
    "calculate_volume_change",
    "count_consecutive_gains",
    "detect_breakout",
]
