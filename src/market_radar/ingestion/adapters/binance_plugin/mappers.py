"""Binance payload -> validated model mappers.

Binance sends prices and volumes as decimal strings. Every mapper coerces them
to floats through the pydantic models and raises ``MalformedPayloadError`` for
any entry that is missing fields or cannot be coerced, so nothing undefined
reaches the analytics layer.
"""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import ValidationError

from market_radar.infrastructure.observability import get_ingestion_logger
from market_radar.ingestion.exceptions import MalformedPayloadError
from market_radar.shared.models import Candle, Symbol, SymbolStatus, TickerSnapshot

T = TypeVar("T")

log = get_ingestion_logger("binance-mappers", exchange="binance")

_MAPPING_ERRORS = (
    AttributeError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    ValidationError,
)


def map_symbol(raw: dict[str, Any]) -> Symbol:
    """``/exchangeInfo`` symbol entry -> Symbol."""
    try:
        trading = raw.get("status") == SymbolStatus.TRADING.value and bool(
            raw.get("isSpotTradingAllowed", True)
        )
        return Symbol(
            symbol=raw["symbol"],
            base_asset=raw["baseAsset"],
            quote_asset=raw["quoteAsset"],
            trading_enabled=trading,
        )
    except _MAPPING_ERRORS as e:
        raise MalformedPayloadError(f"Invalid symbol entry: {e}", "exchangeInfo") from e


def _volume(raw: dict[str, Any], quote_key: str, base_key: str) -> Any:
    # Quote volume is USD-denominated for USDT pairs, which is what the
    # liquidity band is expressed in.
    quote = raw.get(quote_key)
    return quote if quote is not None else raw[base_key]


def map_ticker(raw: dict[str, Any]) -> TickerSnapshot:
    """``/ticker/24hr`` entry -> TickerSnapshot."""
    try:
        return TickerSnapshot(
            symbol=raw["symbol"],
            last_price=raw["lastPrice"],
            price_change_percent_24h=raw["priceChangePercent"],
            high_price_24h=raw["highPrice"],
            low_price_24h=raw["lowPrice"],
            volume_24h=_volume(raw, "quoteVolume", "volume"),
        )
    except _MAPPING_ERRORS as e:
        raise MalformedPayloadError(f"Invalid ticker entry: {e}", "ticker/24hr") from e


def map_stream_tick(raw: dict[str, Any]) -> TickerSnapshot:
    """``<symbol>@ticker`` websocket event -> TickerSnapshot.

    Event keys: s=symbol, c=last, P=change %, h/l=24h high/low,
    v=base volume, q=quote volume.
    """
    try:
        return TickerSnapshot(
            symbol=raw["s"],
            last_price=raw["c"],
            price_change_percent_24h=raw["P"],
            high_price_24h=raw["h"],
            low_price_24h=raw["l"],
            volume_24h=_volume(raw, "q", "v"),
        )
    except _MAPPING_ERRORS as e:
        raise MalformedPayloadError(f"Invalid ticker event: {e}", "ws:ticker") from e


def map_kline(raw: list[Any]) -> Candle:
    """``/klines`` row ``[openTime, o, h, l, c, v, closeTime, ...]`` -> Candle."""
    try:
        return Candle(
            open_time=int(raw[0]),
            open=raw[1],
            high=raw[2],
            low=raw[3],
            close=raw[4],
            volume=raw[5],
            close_time=int(raw[6]),
        )
    except _MAPPING_ERRORS as e:
        raise MalformedPayloadError(f"Invalid kline row: {e}", "klines") from e


def map_batch(
    items: Iterable[Any], mapper: Callable[[Any], T], endpoint: str
) -> list[T]:
    """Map every item, skipping malformed ones.

    Raises:
        MalformedPayloadError: If the batch is non-empty and no item maps
    """
    records: list[T] = []
    errors: list[str] = []
    total = 0
    for i, raw in enumerate(items):
        total += 1
        try:
            records.append(mapper(raw))
        except MalformedPayloadError as e:
            errors.append(f"Index {i}: {e}")

    if errors:
        log.warning(
            "malformed_entries_skipped",
            endpoint=endpoint,
            skipped=len(errors),
            total=total,
            first_error=errors[0],
        )
        if len(errors) == total:
            raise MalformedPayloadError(
                f"Every entry of {endpoint} was malformed", endpoint
            )
    return records
