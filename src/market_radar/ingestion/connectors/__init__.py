from market_radar.ingestion.connectors.aiohttp_client import AiohttpClient
from market_radar.ingestion.connectors.retry_handler import RetryHandler
from market_radar.ingestion.connectors.retrying_transport import RetryingTransport
from market_radar.ingestion.connectors.ticker_stream import BinanceTickerStream

__all__ = [
    "AiohttpClient",
    "BinanceTickerStream",
    "RetryHandler",
    "RetryingTransport",
]
