"""
Shared enumerations for market-radar.
"""

import enum


class Timeframe(str, enum.Enum):
    """Ranking horizons exposed to consumers; values double as kline intervals."""

    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @classmethod
    def parse(cls, value: "Timeframe | str") -> "Timeframe":
        """Accept an enum member or its string value.

        Raises:
            ValueError: If the value is not a supported timeframe
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).strip())


class VelocityTrend(str, enum.Enum):
    """Direction of change in price velocity between the last two candles."""

    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"
    STABLE = "stable"


class BreakoutType(str, enum.Enum):
    """Which side of the recent range was broken."""

    RESISTANCE = "resistance"
    SUPPORT = "support"


class TrendDirection(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    SIDEWAYS = "sideways"


class SymbolStatus(str, enum.Enum):
    """Exchange trading status values we care about."""

    TRADING = "TRADING"
    BREAK = "BREAK"
    HALT = "HALT"
