"""Tests for MarketRadarContainer wiring. Nothing here touches the network."""

import pytest

from market_radar.config.state import ConfigState
from market_radar.ingestion.adapters.coingecko_plugin import CoinGeckoMarketCapProvider
from market_radar.ingestion.dependency_container import MarketRadarContainer
from market_radar.services import MarketQueryService


def make_config(**overrides) -> ConfigState:
    return ConfigState.model_validate(overrides)


class TestValueObjects:
    def test_sections_mapped(self):
        container = MarketRadarContainer(
            make_config(
                exchange={"api_base_url": "https://example.test", "quote_asset": "fdusd"},
                throttle={"requests_per_window": 50, "window_seconds": 10},
                stream={"flush_window": 0.25},
                analytics={"liquidity_floor": 1, "liquidity_ceiling": 1000},
            )
        )

        assert container.exchange_endpoints().api_root == "https://example.test/api/v3"
        assert container.exchange_endpoints().quote_asset == "FDUSD"
        assert container.throttle_config().requests_per_window == 50
        assert container.stream_config().flush_window == 0.25
        assert container.stream_config().url == "wss://stream.binance.com:9443/ws"
        assert container.liquidity_band().ceiling == 1000


class TestFactories:
    def test_service_fully_wired(self):
        sentiment = object()
        container = MarketRadarContainer(make_config(), sentiment_provider=sentiment)

        service = container.create_market_query_service()

        assert isinstance(service, MarketQueryService)
        assert isinstance(service.market_caps, CoinGeckoMarketCapProvider)
        assert service.sentiment is sentiment
        assert service.aggregator.source is not None
        assert service.aggregator.record_book is service.record_book
        assert service.reference_symbol == "BTCUSDT"

    def test_throttle_shared_across_adapters(self):
        container = MarketRadarContainer(make_config())

        fetcher = container.create_snapshot_fetcher()
        caps = container.create_market_cap_provider()

        assert fetcher.throttle is caps.throttle
        assert fetcher.transport.http_client is caps.transport.http_client

    def test_market_caps_disabled(self):
        container = MarketRadarContainer(make_config(market_cap={"enabled": False}))
        assert container.create_market_cap_provider() is None
        assert container.create_market_query_service().market_caps is None

    def test_record_book_shared_between_services(self):
        container = MarketRadarContainer(make_config())
        first = container.create_market_query_service()
        second = container.create_market_query_service()
        assert first.record_book is second.record_book


class TestClose:
    @pytest.mark.asyncio
    async def test_close_releases_shared_collaborators(self):
        container = MarketRadarContainer(make_config())
        throttle = container.get_throttle()
        client = container.get_http_client()

        await container.close()

        assert container.get_throttle() is not throttle
        assert container.get_http_client() is not client
        await container.close()

    @pytest.mark.asyncio
    async def test_close_without_use(self):
        await MarketRadarContainer(make_config()).close()
