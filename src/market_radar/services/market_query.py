"""
Market query facade.

Composes the snapshot fetcher, market-cap provider, analytics engine and tick
aggregator into the ranked views consumed by UI collaborators.

Failure policy:
- Aggregate views (market data, top gainers, gems, mood) never raise on
  upstream failure; they return shorter lists or the neutral mood.
- Pinpoint queries (``get_symbol_analytics``) let errors propagate.
"""

import math
from collections.abc import AsyncIterator, Iterable

from market_radar.analytics.indicators import clamp
from market_radar.analytics.records import (
    MarketRecordBook,
    build_market_record,
    split_symbol,
)
from market_radar.infrastructure.observability import get_service_logger
from market_radar.ingestion.adapters.binance_plugin.snapshot_fetcher import (
    BinanceSnapshotFetcher,
)
from market_radar.ingestion.config.value_objects import LiquidityBand
from market_radar.ingestion.exceptions import MarketDataError
from market_radar.ingestion.ports.data_ports import (
    IMarketCapProvider,
    ISentimentProvider,
)
from market_radar.ingestion.streaming.tick_aggregator import (
    BatchCallback,
    TickAggregator,
)
from market_radar.shared.models import MarketMood, MarketRecord, Timeframe

log = get_service_logger()

DEFAULT_MIN_CAP = 10_000_000.0
DEFAULT_MAX_CAP = 500_000_000.0


def gem_score(record: MarketRecord) -> float:
    """0.4 * volatility + 0.3 * |volume change| + 0.3 * |price change|."""
    volume_change = record.volume_change_percent or 0.0
    return (
        record.volatility * 0.4
        + abs(volume_change) * 0.3
        + abs(record.price_change_percent) * 0.3
    )


class MarketQueryService:
    """Ranked market views over one exchange.

    Dependencies injected:
    - fetcher: Throttled snapshot fetcher
    - aggregator: Tick aggregator backing ``subscribe``
    - market_caps: Optional market-cap provider; without it gems are empty
    - sentiment: Optional opaque 0-100 sentiment provider
    - record_book: Latest record per symbol, shared with the aggregator
    """

    def __init__(
        self,
        fetcher: BinanceSnapshotFetcher,
        aggregator: TickAggregator | None = None,
        market_caps: IMarketCapProvider | None = None,
        sentiment: ISentimentProvider | None = None,
        record_book: MarketRecordBook | None = None,
        reference_symbol: str = "BTCUSDT",
        liquidity_band: LiquidityBand | None = None,
        rsi_period: int = 14,
        candle_limit: int = 100,
    ):
        self.fetcher = fetcher
        self.market_caps = market_caps
        self.sentiment = sentiment
        self.record_book = record_book if record_book is not None else MarketRecordBook()
        self.aggregator = aggregator or TickAggregator(
            liquidity_band=liquidity_band,
            record_book=self.record_book,
            quote_asset=fetcher.endpoints.quote_asset,
        )
        self.reference_symbol = reference_symbol.upper()
        self.liquidity_band = liquidity_band or LiquidityBand()
        self.rsi_period = rsi_period
        self.candle_limit = candle_limit

    @property
    def quote_asset(self) -> str:
        return self.fetcher.endpoints.quote_asset

    # ------------------------------------------------------------------
    # Aggregate views
    # ------------------------------------------------------------------

    async def get_market_data(
        self, timeframe: Timeframe | str = Timeframe.D1
    ) -> list[MarketRecord]:
        """
        One record per tradable symbol that has a live 24h ticker.

        Rows without a ticker or with zero price/volume are dropped. Order
        follows the symbol listing.

        Raises:
            ValueError: If ``timeframe`` is not a supported value
        """
        tf = Timeframe.parse(timeframe)
        symbols = await self.fetcher.list_tradable_symbols()
        if not symbols:
            return []
        snapshots = {s.symbol: s for s in await self.fetcher.get_24h_snapshots()}

        records = []
        for symbol in symbols:
            snapshot = snapshots.get(symbol.symbol)
            if snapshot is None or snapshot.last_price <= 0 or snapshot.volume_24h <= 0:
                continue
            records.append(
                build_market_record(
                    snapshot,
                    tf,
                    symbol=symbol,
                    liquidity_band=self.liquidity_band,
                    rsi_period=self.rsi_period,
                )
            )

        log.debug(
            "market_data_built",
            symbols=len(symbols),
            snapshots=len(snapshots),
            records=len(records),
        )
        return self.record_book.put_many(records)

    async def get_top_gainers(
        self, timeframe: Timeframe | str = Timeframe.H1, limit: int = 10
    ) -> list[MarketRecord]:
        """Positive movers, largest 24h change first; ties keep listing order."""
        if limit <= 0:
            return []
        records = await self.get_market_data(timeframe)
        gainers = [r for r in records if r.price_change_percent > 0]
        # sorted() is stable, so equal changes keep listing order
        gainers = sorted(gainers, key=lambda r: r.price_change_percent, reverse=True)
        return gainers[:limit]

    async def get_low_cap_gems(
        self,
        timeframe: Timeframe | str = Timeframe.D1,
        min_cap: float = DEFAULT_MIN_CAP,
        max_cap: float = DEFAULT_MAX_CAP,
        limit: int = 10,
    ) -> list[MarketRecord]:
        """
        Symbols inside the market-cap band ranked by ``gem_score``.

        Symbols without a known (positive) market cap are excluded.
        """
        if limit <= 0 or self.market_caps is None:
            return []
        records = await self.get_market_data(timeframe)
        if not records:
            return []

        caps = await self.market_caps.get_market_caps(r.base_asset for r in records)
        candidates = []
        for record in records:
            cap = caps.get(record.base_asset.upper())
            if cap is None or cap <= 0 or not (min_cap <= cap <= max_cap):
                continue
            candidates.append(record.model_copy(update={"market_cap": cap}))

        ranked = sorted(candidates, key=gem_score, reverse=True)[:limit]
        log.debug("gems_ranked", candidates=len(candidates), returned=len(ranked))
        return self.record_book.put_many(ranked)

    async def get_market_mood(self) -> MarketMood:
        """
        0-100 sentiment from the reference asset and the market average.

        ``50 + 4*btc + 3*market``, then lowered by 0.2x volatility while the
        reference asset is falling, raised by 0.1x otherwise. Any upstream
        failure yields ``MarketMood.neutral()``.
        """
        try:
            reference = await self.fetcher.get_snapshot(self.reference_symbol)
            tickers = [
                t
                for t in await self.fetcher.get_24h_snapshots()
                if t.symbol.endswith(self.quote_asset)
            ]
        except MarketDataError as e:
            log.warning("market_mood_unavailable", cause=str(e))
            return MarketMood.neutral()

        if not tickers:
            log.warning("market_mood_unavailable", cause="empty market listing")
            return MarketMood.neutral()

        btc_change = reference.price_change_percent_24h
        market_change = sum(t.price_change_percent_24h for t in tickers) / len(tickers)

        ranges = []
        for t in tickers:
            mid = (t.high_price_24h + t.low_price_24h) / 2
            ranges.append((t.high_price_24h - t.low_price_24h) / mid * 100 if mid > 0 else 0.0)
        volatility = clamp(sum(ranges) / len(ranges) * 10, 0, 100)

        if not all(math.isfinite(v) for v in (btc_change, market_change, volatility)):
            log.warning("market_mood_unavailable", cause="non-finite inputs")
            return MarketMood.neutral()

        sentiment = 50 + btc_change * 4 + market_change * 3
        if btc_change < 0:
            sentiment -= volatility * 0.2
        else:
            sentiment += volatility * 0.1

        return MarketMood(
            sentiment=clamp(sentiment, 0, 100),
            btc_change_percent=btc_change,
            market_change_percent=market_change,
            volatility=volatility,
        )

    # ------------------------------------------------------------------
    # Pinpoint query
    # ------------------------------------------------------------------

    async def get_symbol_analytics(
        self,
        symbol: str,
        timeframe: Timeframe | str = Timeframe.H1,
        candle_limit: int | None = None,
    ) -> MarketRecord:
        """
        Full derivation for one symbol: candles, reference correlation,
        market cap and sentiment where providers are configured.

        Raises:
            ValueError: If ``timeframe`` is not a supported value
            TransportError: When the exchange could not be reached
            MalformedPayloadError: When a response failed validation
        """
        symbol = symbol.upper()
        tf = Timeframe.parse(timeframe)
        limit = candle_limit or self.candle_limit

        snapshot = await self.fetcher.get_snapshot(symbol)
        candles = await self.fetcher.get_candles(symbol, tf.value, limit)
        if symbol == self.reference_symbol:
            reference_candles = candles
        else:
            reference_candles = await self.fetcher.get_candles(
                self.reference_symbol, tf.value, limit
            )

        base, _ = split_symbol(symbol, self.quote_asset)
        market_cap = None
        if self.market_caps is not None:
            market_cap = (await self.market_caps.get_market_caps([base])).get(base)
        sentiment = None
        if self.sentiment is not None:
            sentiment = await self.sentiment.get_score(symbol, tf.value)

        record = build_market_record(
            snapshot,
            tf,
            candles=candles,
            reference_candles=reference_candles,
            market_cap=market_cap,
            sentiment=sentiment,
            liquidity_band=self.liquidity_band,
            rsi_period=self.rsi_period,
            quote_asset=self.quote_asset,
        )
        return self.record_book.put(record)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def subscribe(
        self, symbols: Iterable[str], on_batch: BatchCallback | None = None
    ) -> None:
        """Replace the live subscription; batches go to ``on_batch`` and ``batches()``."""
        await self.aggregator.subscribe(symbols, on_batch)

    async def unsubscribe_all(self) -> None:
        await self.aggregator.unsubscribe_all()

    def batches(self) -> AsyncIterator[list[MarketRecord]]:
        return self.aggregator.batches()

    def latest(self, symbol: str) -> MarketRecord | None:
        """Most recent record computed for ``symbol`` by any path."""
        return self.record_book.get(symbol.upper())
