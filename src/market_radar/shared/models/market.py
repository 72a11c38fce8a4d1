# market_radar/shared/models/market.py

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

from market_radar.shared.models.enums import (
    BreakoutType,
    TrendDirection,
    VelocityTrend,
)


class Symbol(BaseModel):
    """
    Tradable spot pair as listed in exchange metadata.

    Immutable once fetched; the whole list is replaced on each metadata pull.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1, description="Exchange pair, e.g. BTCUSDT")
    base_asset: str = Field(..., min_length=1)
    quote_asset: str = Field(..., min_length=1)
    trading_enabled: bool = Field(default=True)


class TickerSnapshot(BaseModel):
    """Point-in-time 24h statistics for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    last_price: float = Field(..., ge=0)
    price_change_percent_24h: float
    high_price_24h: float = Field(..., ge=0)
    low_price_24h: float = Field(..., ge=0)
    volume_24h: float = Field(..., ge=0)


class Candle(BaseModel):
    """
    One OHLCV candle. Times are epoch milliseconds as delivered by the exchange.
    """

    model_config = ConfigDict(frozen=True)

    open_time: int = Field(..., ge=0)
    close_time: int = Field(..., ge=0)
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_time_order(self):
        if self.close_time < self.open_time:
            raise ValueError("close_time precedes open_time")
        return self


class Breakout(BaseModel):
    """A recent high/low band broken by more than the noise threshold."""

    model_config = ConfigDict(frozen=True)

    price: float = Field(..., description="The broken range level")
    type: BreakoutType
    time: datetime


class TrendDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: TrendDirection = TrendDirection.SIDEWAYS
    strength: float = Field(default=0.0, ge=0, le=100)
    duration: int = Field(default=0, ge=0)


class MarketRecord(BaseModel):
    """
    Normalized analytics output for one symbol.

    Latest-wins: a new record for a symbol replaces the previous one in full.
    Fields that cannot be derived from the available inputs stay ``None``.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    base_asset: str
    quote_asset: str

    price: float
    price_change_percent: float
    volume: float
    volume_change_percent: float | None = None
    high_24h: float
    low_24h: float
    market_cap: float | None = None

    volatility: float = Field(..., ge=0, le=100)
    liquidity: float = Field(..., ge=0, le=100)
    rsi: float | None = Field(default=None, ge=0, le=100)
    correlation_to_reference: float | None = Field(default=None, ge=-100, le=100)
    velocity: float = 0.0
    velocity_trend: VelocityTrend = VelocityTrend.STABLE
    breakout: Breakout | None = None
    pump_probability: float = Field(..., ge=0, le=100)
    profit_target: float = Field(..., ge=1, le=30)
    sentiment: float | None = Field(default=None, ge=0, le=100)

    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MarketMood(BaseModel):
    """Aggregate market sentiment on a 0-100 scale (0-33 bearish, 67-100 bullish)."""

    model_config = ConfigDict(frozen=True)

    sentiment: float = Field(..., ge=0, le=100)
    btc_change_percent: float
    market_change_percent: float
    volatility: float = Field(..., ge=0, le=100)

    @classmethod
    def neutral(cls) -> "MarketMood":
        """Fallback returned whenever upstream data is unavailable."""
        return cls(
            sentiment=50,
            btc_change_percent=0,
            market_change_percent=0,
            volatility=30,
        )
