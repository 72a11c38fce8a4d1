"""Assembly of MarketRecords and the latest-record book."""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from market_radar.analytics.heuristics import (
    calculate_profit_target,
    calculate_pump_probability,
    calculate_volume_change,
)
from market_radar.analytics.indicators import (
    calculate_correlation,
    calculate_liquidity,
    calculate_price_velocity,
    calculate_rsi,
    calculate_volatility,
    clamp,
    detect_breakout,
)
from market_radar.infrastructure.observability import get_analytics_logger
from market_radar.ingestion.config.value_objects import LiquidityBand
from market_radar.shared.models import (
    Candle,
    MarketRecord,
    Symbol,
    TickerSnapshot,
    Timeframe,
    VelocityTrend,
)

log = get_analytics_logger("record-book")


def split_symbol(symbol: str, quote_asset: str) -> tuple[str, str]:
    """``BTCUSDT`` -> ``("BTC", "USDT")`` when the pair ends in the quote asset."""
    if quote_asset and symbol.endswith(quote_asset) and len(symbol) > len(quote_asset):
        return symbol[: -len(quote_asset)], quote_asset
    return symbol, quote_asset


def build_market_record(
    snapshot: TickerSnapshot,
    timeframe: Timeframe | str,
    symbol: Symbol | None = None,
    candles: Sequence[Candle] | None = None,
    reference_candles: Sequence[Candle] | None = None,
    market_cap: float | None = None,
    sentiment: float | None = None,
    liquidity_band: LiquidityBand | None = None,
    rsi_period: int = 14,
    quote_asset: str = "USDT",
    now: datetime | None = None,
) -> MarketRecord:
    """
    Derive a full MarketRecord from a snapshot and whatever extra data exists.

    Candle-based fields (rsi, volume change, velocity, breakout) stay at
    None/neutral without candles; correlation needs reference candles too.
    Nothing is inferred from absent inputs.
    """
    band = liquidity_band or LiquidityBand()
    if symbol is not None:
        base, quote = symbol.base_asset, symbol.quote_asset
    else:
        base, quote = split_symbol(snapshot.symbol, quote_asset)

    volatility = calculate_volatility(
        snapshot.high_price_24h, snapshot.low_price_24h, snapshot.last_price
    )
    liquidity = calculate_liquidity(snapshot.volume_24h, band.floor, band.ceiling)

    rsi = volume_change = correlation = breakout = None
    velocity, velocity_trend = 0.0, VelocityTrend.STABLE
    if candles:
        rsi = calculate_rsi(candles, rsi_period)
        volume_change = calculate_volume_change(candles)
        velocity, velocity_trend = calculate_price_velocity(candles)
        breakout = detect_breakout(candles, snapshot.last_price, now=now)
        if reference_candles is not None:
            correlation = calculate_correlation(candles, reference_candles)

    if sentiment is not None:
        sentiment = clamp(sentiment, 0, 100) if math.isfinite(sentiment) else None

    return MarketRecord(
        symbol=snapshot.symbol,
        base_asset=base,
        quote_asset=quote,
        price=snapshot.last_price,
        price_change_percent=snapshot.price_change_percent_24h,
        volume=snapshot.volume_24h,
        volume_change_percent=volume_change,
        high_24h=snapshot.high_price_24h,
        low_24h=snapshot.low_price_24h,
        market_cap=market_cap,
        volatility=volatility,
        liquidity=liquidity,
        rsi=rsi,
        correlation_to_reference=correlation,
        velocity=velocity,
        velocity_trend=velocity_trend,
        breakout=breakout,
        pump_probability=calculate_pump_probability(
            snapshot.price_change_percent_24h, volume_change, volatility, timeframe
        ),
        profit_target=calculate_profit_target(volatility, timeframe),
        sentiment=sentiment,
        updated_at=now or datetime.now(timezone.utc),
    )


class MarketRecordBook:
    """
    Latest MarketRecord per symbol.

    A stored record is replaced whole, never merged. ``updated_at`` never goes
    backwards for a symbol: a record stamped earlier than the one it replaces
    inherits the previous timestamp.
    """

    def __init__(self):
        self._records: dict[str, MarketRecord] = {}

    def put(self, record: MarketRecord) -> MarketRecord:
        previous = self._records.get(record.symbol)
        if previous is not None and record.updated_at < previous.updated_at:
            log.debug("record_timestamp_clamped", symbol=record.symbol)
            record = record.model_copy(update={"updated_at": previous.updated_at})
        self._records[record.symbol] = record
        return record

    def put_many(self, records: Iterable[MarketRecord]) -> list[MarketRecord]:
        return [self.put(r) for r in records]

    def get(self, symbol: str) -> MarketRecord | None:
        return self._records.get(symbol)

    def all(self) -> list[MarketRecord]:
        return list(self._records.values())

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._records
