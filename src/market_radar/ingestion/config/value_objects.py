"""Configuration value objects for dependency injection.

Components receive these small frozen dataclasses instead of the global
``ConfigState``; the composition root builds them from settings.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class HttpClientConfig:
    """Configuration for HTTP client."""

    timeout: float = 10.0
    connect_timeout: float = 5.0


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0


@dataclass(frozen=True)
class ThrottleConfig:
    """Ceiling of requests per rolling window."""

    requests_per_window: int = 1200
    window_seconds: float = 60.0


@dataclass(frozen=True)
class StreamConfig:
    """Websocket feed and tick batching configuration."""

    url: str = "wss://stream.binance.com:9443/ws"
    flush_window: float = 0.1
    max_reconnect_attempts: int = 5
    reconnect_delay: float = 2.0
    reconnect_backoff: float = 1.5
    heartbeat_timeout: float = 30.0
    batch_queue_size: int = 100


@dataclass(frozen=True)
class ExchangeEndpoints:
    """REST surface of the spot exchange."""

    base_url: str = "https://api.binance.com"
    quote_asset: str = "USDT"
    blacklisted_assets: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {"USDC", "BUSD", "TUSD", "PAX", "USDS", "DAI", "UST"}
        )
    )

    @property
    def api_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/v3"


@dataclass(frozen=True)
class LiquidityBand:
    """24h volume mapped to liquidity 0 (floor) .. 100 (ceiling)."""

    floor: float = 10_000.0
    ceiling: float = 100_000_000.0
