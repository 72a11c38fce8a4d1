from market_radar.shared.models.enums import (
    BreakoutType,
    SymbolStatus,
    Timeframe,
    TrendDirection,
    VelocityTrend,
)
from market_radar.shared.models.market import (
    Breakout,
    Candle,
    MarketMood,
    MarketRecord,
    Symbol,
    TickerSnapshot,
    TrendDetails,
)

__all__ = [
    "Breakout",
    "BreakoutType",
    "Candle",
    "MarketMood",
    "MarketRecord",
    "Symbol",
    "SymbolStatus",
    "TickerSnapshot",
    "Timeframe",
    "TrendDetails",
    "TrendDirection",
    "VelocityTrend",
]
