"""
Dependency injection container for market-radar.

Wires together:
- HTTP client (aiohttp wrapper, shared by REST and websocket)
- Retry handler and retrying transport
- Request throttle (one per container, shared by every REST adapter)
- Binance snapshot fetcher and ticker stream
- CoinGecko market-cap provider
- Tick aggregator, record book and the market query facade
"""

from market_radar.analytics.records import MarketRecordBook
from market_radar.config.state import ConfigState, get_config
from market_radar.infrastructure.observability import get_infrastructure_logger
from market_radar.ingestion.adapters.binance_plugin.snapshot_fetcher import (
    BinanceSnapshotFetcher,
)
from market_radar.ingestion.adapters.coingecko_plugin.market_caps import (
    CoinGeckoMarketCapProvider,
)
from market_radar.ingestion.config.value_objects import (
    ExchangeEndpoints,
    HttpClientConfig,
    LiquidityBand,
    RetryConfig,
    StreamConfig,
    ThrottleConfig,
)
from market_radar.ingestion.connectors.aiohttp_client import AiohttpClient
from market_radar.ingestion.connectors.retry_handler import RetryHandler
from market_radar.ingestion.connectors.retrying_transport import RetryingTransport
from market_radar.ingestion.connectors.ticker_stream import BinanceTickerStream
from market_radar.ingestion.orchestration.request_throttle import RequestThrottle
from market_radar.ingestion.ports.data_ports import (
    IMarketCapProvider,
    ISentimentProvider,
    ITickSource,
)
from market_radar.ingestion.streaming.tick_aggregator import TickAggregator
from market_radar.services.market_query import MarketQueryService

log = get_infrastructure_logger("dependency-container")


class MarketRadarContainer:
    """
    Single place where concrete implementations are chosen.

    Stateful collaborators (HTTP client, throttle, record book) are created
    once and shared; everything else is built on demand. Override any
    ``create_*`` method in a subclass to swap an implementation in tests.

    Usage:
        container = MarketRadarContainer(get_config())
        service = container.create_market_query_service()
        gainers = await service.get_top_gainers("1h", 5)
        await container.close()
    """

    def __init__(
        self,
        config: ConfigState | None = None,
        sentiment_provider: ISentimentProvider | None = None,
    ):
        self.config = config or get_config()
        self.sentiment_provider = sentiment_provider

        self._http_client: AiohttpClient | None = None
        self._throttle: RequestThrottle | None = None
        self._record_book: MarketRecordBook | None = None

        log.info(
            "container_initialized",
            env=self.config.env,
            exchange=self.config.exchange.name,
        )

    # ==================== Value objects ====================

    def http_config(self) -> HttpClientConfig:
        return HttpClientConfig(
            timeout=self.config.http.timeout,
            connect_timeout=self.config.http.connect_timeout,
        )

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.config.retry.max_attempts,
            base_delay=self.config.retry.base_delay,
            max_delay=self.config.retry.max_delay,
        )

    def throttle_config(self) -> ThrottleConfig:
        return ThrottleConfig(
            requests_per_window=self.config.throttle.requests_per_window,
            window_seconds=self.config.throttle.window_seconds,
        )

    def stream_config(self) -> StreamConfig:
        s = self.config.stream
        return StreamConfig(
            url=self.config.exchange.ws_base_url,
            flush_window=s.flush_window,
            max_reconnect_attempts=s.max_reconnect_attempts,
            reconnect_delay=s.reconnect_delay,
            reconnect_backoff=s.reconnect_backoff,
            heartbeat_timeout=s.heartbeat_timeout,
            batch_queue_size=s.batch_queue_size,
        )

    def exchange_endpoints(self) -> ExchangeEndpoints:
        e = self.config.exchange
        return ExchangeEndpoints(
            base_url=e.api_base_url,
            quote_asset=e.quote_asset,
            blacklisted_assets=frozenset(e.blacklisted_assets),
        )

    def liquidity_band(self) -> LiquidityBand:
        return LiquidityBand(
            floor=self.config.analytics.liquidity_floor,
            ceiling=self.config.analytics.liquidity_ceiling,
        )

    # ==================== Shared collaborators ====================

    def get_http_client(self) -> AiohttpClient:
        if self._http_client is None:
            self._http_client = self.create_http_client()
        return self._http_client

    def get_throttle(self) -> RequestThrottle:
        if self._throttle is None:
            self._throttle = self.create_throttle()
        return self._throttle

    def get_record_book(self) -> MarketRecordBook:
        if self._record_book is None:
            self._record_book = MarketRecordBook()
        return self._record_book

    # ==================== Factories ====================

    def create_http_client(self) -> AiohttpClient:
        return AiohttpClient(config=self.http_config())

    def create_throttle(self) -> RequestThrottle:
        return RequestThrottle(config=self.throttle_config())

    def create_retry_handler(self) -> RetryHandler:
        return RetryHandler(config=self.retry_config())

    def create_transport(self) -> RetryingTransport:
        return RetryingTransport(
            http_client=self.get_http_client(),
            retry_handler=self.create_retry_handler(),
        )

    def create_snapshot_fetcher(self) -> BinanceSnapshotFetcher:
        return BinanceSnapshotFetcher(
            transport=self.create_transport(),
            throttle=self.get_throttle(),
            endpoints=self.exchange_endpoints(),
        )

    def create_market_cap_provider(self) -> IMarketCapProvider | None:
        mc = self.config.market_cap
        if not mc.enabled:
            return None
        return CoinGeckoMarketCapProvider(
            transport=self.create_transport(),
            throttle=self.get_throttle(),
            base_url=mc.base_url,
            vs_currency=mc.vs_currency,
            per_page=mc.per_page,
        )

    def create_tick_source(self) -> ITickSource:
        return BinanceTickerStream(
            http_client=self.get_http_client(), config=self.stream_config()
        )

    def create_tick_aggregator(self) -> TickAggregator:
        return TickAggregator(
            source=self.create_tick_source(),
            config=self.stream_config(),
            liquidity_band=self.liquidity_band(),
            record_book=self.get_record_book(),
            quote_asset=self.config.exchange.quote_asset,
        )

    def create_market_query_service(self) -> MarketQueryService:
        """Create the fully wired market query facade."""
        analytics = self.config.analytics
        return MarketQueryService(
            fetcher=self.create_snapshot_fetcher(),
            aggregator=self.create_tick_aggregator(),
            market_caps=self.create_market_cap_provider(),
            sentiment=self.sentiment_provider,
            record_book=self.get_record_book(),
            reference_symbol=self.config.exchange.reference_symbol,
            liquidity_band=self.liquidity_band(),
            rsi_period=analytics.rsi_period,
            candle_limit=analytics.candle_limit,
        )

    async def close(self) -> None:
        """Close the throttle and the shared HTTP session."""
        if self._throttle is not None:
            await self._throttle.close()
            self._throttle = None
        if self._http_client is not None:
            await self._http_client.close()
            self._http_client = None
        log.info("container_closed")
