"""Tests for MarketQueryService ranked views and failure policy."""

from unittest.mock import AsyncMock

import pytest

from conftest import RoutedHttpClient, kline_row, stream_event, symbol_entry, ticker_entry
from market_radar.ingestion.adapters.binance_plugin import BinanceSnapshotFetcher
from market_radar.ingestion.config.value_objects import ExchangeEndpoints, RetryConfig
from market_radar.ingestion.connectors import RetryHandler, RetryingTransport
from market_radar.ingestion.exceptions import TransportError
from market_radar.ingestion.orchestration import RequestThrottle
from market_radar.services import MarketQueryService, gem_score
from market_radar.shared.models import MarketMood

SYMBOLS = {
    "symbols": [
        symbol_entry("BTCUSDT", "BTC"),
        symbol_entry("ETHUSDT", "ETH"),
        symbol_entry("XRPUSDT", "XRP"),
        symbol_entry("SOLUSDT", "SOL"),
    ]
}

TICKERS = [
    ticker_entry("BTCUSDT", 3.0),
    ticker_entry("ETHUSDT", 7.0),
    ticker_entry("XRPUSDT", -1.0),
    ticker_entry("SOLUSDT", 7.0),
]


def make_service(routes, sleep, market_caps=None, sentiment=None):
    client = RoutedHttpClient(routes)
    transport = RetryingTransport(
        client, RetryHandler(RetryConfig(max_attempts=2, base_delay=0.1)), sleep=sleep
    )
    fetcher = BinanceSnapshotFetcher(transport, RequestThrottle(), ExchangeEndpoints())
    return MarketQueryService(fetcher, market_caps=market_caps, sentiment=sentiment)


def caps_provider(caps):
    provider = AsyncMock()
    provider.get_market_caps = AsyncMock(return_value=caps)
    return provider


class TestMarketData:
    @pytest.mark.asyncio
    async def test_joins_symbols_and_tickers_in_listing_order(self, no_sleep):
        service = make_service({"exchangeInfo": SYMBOLS, "ticker/24hr": TICKERS}, no_sleep)

        records = await service.get_market_data("1d")

        assert [r.symbol for r in records] == ["BTCUSDT", "ETHUSDT", "XRPUSDT", "SOLUSDT"]
        assert service.latest("ethusdt").price_change_percent == 7.0

    @pytest.mark.asyncio
    async def test_drops_zero_price_and_missing_tickers(self, no_sleep):
        tickers = [ticker_entry("BTCUSDT", 1.0), ticker_entry("ETHUSDT", 1.0, last=0)]
        service = make_service({"exchangeInfo": SYMBOLS, "ticker/24hr": tickers}, no_sleep)

        records = await service.get_market_data("1d")

        assert [r.symbol for r in records] == ["BTCUSDT"]

    @pytest.mark.asyncio
    async def test_empty_when_listing_unavailable(self, no_sleep):
        service = make_service({"ticker/24hr": TICKERS}, no_sleep)
        assert await service.get_market_data("1d") == []

    @pytest.mark.asyncio
    async def test_invalid_timeframe_raises(self, no_sleep):
        service = make_service({}, no_sleep)
        with pytest.raises(ValueError):
            await service.get_market_data("2w")


class TestTopGainers:
    @pytest.mark.asyncio
    async def test_positive_descending_stable(self, no_sleep):
        service = make_service({"exchangeInfo": SYMBOLS, "ticker/24hr": TICKERS}, no_sleep)

        gainers = await service.get_top_gainers("1h", 5)

        # ETH and SOL tie at +7%; listing order breaks the tie
        assert [g.symbol for g in gainers] == ["ETHUSDT", "SOLUSDT", "BTCUSDT"]

    @pytest.mark.asyncio
    async def test_truncated_to_limit(self, no_sleep):
        service = make_service({"exchangeInfo": SYMBOLS, "ticker/24hr": TICKERS}, no_sleep)
        assert [g.symbol for g in await service.get_top_gainers("1h", 1)] == ["ETHUSDT"]
        assert await service.get_top_gainers("1h", 0) == []

    @pytest.mark.asyncio
    async def test_upstream_failure_is_empty(self, no_sleep):
        service = make_service({}, no_sleep)
        assert await service.get_top_gainers("1h", 5) == []


class TestLowCapGems:
    @pytest.mark.asyncio
    async def test_band_filter_and_ranking(self, no_sleep):
        tickers = [
            ticker_entry("BTCUSDT", 3.0),
            ticker_entry("ETHUSDT", 2.0, high=101, low=99),
            ticker_entry("XRPUSDT", -1.0),
            ticker_entry("SOLUSDT", 9.0, high=110, low=90),
        ]
        provider = caps_provider({"BTC": 1e12, "ETH": 2e8, "SOL": 3e8, "XRP": 0.0})
        service = make_service(
            {"exchangeInfo": SYMBOLS, "ticker/24hr": tickers}, no_sleep, market_caps=provider
        )

        gems = await service.get_low_cap_gems("1d", 1e7, 5e8, 10)

        assert [g.symbol for g in gems] == ["SOLUSDT", "ETHUSDT"]
        assert gems[0].market_cap == 3e8
        scores = [gem_score(g) for g in gems]
        assert scores == sorted(scores, reverse=True)
        provider.get_market_caps.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_provider_no_gems(self, no_sleep):
        service = make_service({"exchangeInfo": SYMBOLS, "ticker/24hr": TICKERS}, no_sleep)
        assert await service.get_low_cap_gems() == []

    @pytest.mark.asyncio
    async def test_unknown_caps_excluded(self, no_sleep):
        service = make_service(
            {"exchangeInfo": SYMBOLS, "ticker/24hr": TICKERS},
            no_sleep,
            market_caps=caps_provider({}),
        )
        assert await service.get_low_cap_gems() == []


class TestMarketMood:
    @pytest.mark.asyncio
    async def test_neutral_on_transport_failure(self, no_sleep):
        service = make_service({}, no_sleep)

        mood = await service.get_market_mood()

        assert mood == MarketMood(
            sentiment=50, btc_change_percent=0, market_change_percent=0, volatility=30
        )

    @pytest.mark.asyncio
    async def test_neutral_on_empty_listing(self, no_sleep):
        service = make_service(
            {"ticker/24hr?BTCUSDT": ticker_entry("BTCUSDT", 2.0), "ticker/24hr": []},
            no_sleep,
        )
        assert await service.get_market_mood() == MarketMood.neutral()

    @pytest.mark.asyncio
    async def test_bullish_formula(self, no_sleep):
        routes = {
            "ticker/24hr?BTCUSDT": ticker_entry("BTCUSDT", 2.0, high=110, low=90),
            "ticker/24hr": [
                ticker_entry("BTCUSDT", 2.0, high=110, low=90),
                ticker_entry("ETHUSDT", 4.0, high=105, low=95),
                ticker_entry("ETHBTC", 50.0),
            ],
        }
        service = make_service(routes, no_sleep)

        mood = await service.get_market_mood()

        # ranges 20% and 10% -> 15 * 10 capped at 100
        assert mood.btc_change_percent == 2.0
        assert mood.market_change_percent == 3.0
        assert mood.volatility == 100
        assert mood.sentiment == pytest.approx(50 + 8 + 9 + 10)

    @pytest.mark.asyncio
    async def test_bearish_volatility_drag(self, no_sleep):
        routes = {
            "ticker/24hr?BTCUSDT": ticker_entry("BTCUSDT", -1.0, high=101, low=99),
            "ticker/24hr": [ticker_entry("BTCUSDT", -1.0, high=101, low=99)],
        }
        service = make_service(routes, no_sleep)

        mood = await service.get_market_mood()

        # range 2% -> volatility 20; 50 - 4 - 3 - 0.2 * 20
        assert mood.volatility == pytest.approx(20)
        assert mood.sentiment == pytest.approx(39)


class TestSymbolAnalytics:
    @pytest.mark.asyncio
    async def test_full_derivation(self, no_sleep):
        rows = [kline_row(i, 100.0 + i) for i in range(20)]
        sentiment = AsyncMock()
        sentiment.get_score = AsyncMock(return_value=72.0)
        routes = {
            "ticker/24hr?ETHUSDT": ticker_entry("ETHUSDT", 4.0, last=119.0),
            "klines?ETHUSDT": rows,
            "klines?BTCUSDT": rows,
        }
        service = make_service(
            routes, no_sleep, market_caps=caps_provider({"ETH": 2e8}), sentiment=sentiment
        )

        record = await service.get_symbol_analytics("ethusdt", "4h", candle_limit=20)

        assert record.symbol == "ETHUSDT"
        assert record.rsi == 100
        assert record.correlation_to_reference == 100
        assert record.market_cap == 2e8
        assert record.sentiment == 72.0
        sentiment.get_score.assert_awaited_once_with("ETHUSDT", "4h")
        assert service.latest("ETHUSDT") == record

    @pytest.mark.asyncio
    async def test_pinpoint_failure_propagates(self, no_sleep):
        service = make_service({}, no_sleep)
        with pytest.raises(TransportError):
            await service.get_symbol_analytics("ETHUSDT")


class TestStreaming:
    @pytest.mark.asyncio
    async def test_subscribe_delegates_to_aggregator(self, no_sleep):
        service = make_service({}, no_sleep)
        batches = []

        await service.subscribe(["SOLUSDT"], batches.append)
        service.aggregator.ingest(stream_event("SOLUSDT", last=21.0))
        service.aggregator.flush()
        await service.unsubscribe_all()

        assert batches[0][0].price == 21.0
        assert service.latest("SOLUSDT").price == 21.0
