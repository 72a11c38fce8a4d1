"""Binance spot snapshot fetcher.

Every public call is routed through the shared RequestThrottle and the
RetryingTransport; nothing here talks to the HTTP client directly.
"""

from typing import Any

from market_radar.infrastructure.observability import get_ingestion_logger
from market_radar.ingestion.config.value_objects import ExchangeEndpoints
from market_radar.ingestion.connectors.retrying_transport import RetryingTransport
from market_radar.ingestion.exceptions import MalformedPayloadError, MarketDataError
from market_radar.ingestion.orchestration.request_throttle import RequestThrottle
from market_radar.shared.models import Candle, Symbol, TickerSnapshot

from .mappers import map_batch, map_kline, map_symbol, map_ticker

log = get_ingestion_logger("snapshot-fetcher", exchange="binance")


class BinanceSnapshotFetcher:
    """Symbols, 24h tickers and candles from the Binance REST API.

    Failure policy:
    - Market-wide listings (``list_tradable_symbols``, ``get_24h_snapshots``)
      log the cause and return ``[]``. Callers must read an empty list as
      "temporarily unavailable", not "no symbols exist".
    - Pinpoint queries (``get_snapshot``, ``get_candles``) raise.
    """

    def __init__(
        self,
        transport: RetryingTransport,
        throttle: RequestThrottle,
        endpoints: ExchangeEndpoints | None = None,
    ):
        self.transport = transport
        self.throttle = throttle
        self.endpoints = endpoints or ExchangeEndpoints()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.endpoints.api_root}/{path}"
        return await self.throttle.schedule(
            lambda: self.transport.fetch_json(url, params=params)
        )

    # ------------------------------------------------------------------
    # Market-wide listings (degrade to empty)
    # ------------------------------------------------------------------

    async def list_tradable_symbols(self) -> list[Symbol]:
        """Trading-enabled spot pairs in the configured quote asset.

        Stable coins on the blacklist are excluded so they do not show up as
        self-correlated noise in gem rankings.
        """
        try:
            data = await self._get("exchangeInfo")
            if not isinstance(data, dict) or not isinstance(data.get("symbols"), list):
                raise MalformedPayloadError(
                    "exchangeInfo response has no 'symbols' array", "exchangeInfo"
                )
            symbols = map_batch(data["symbols"], map_symbol, "exchangeInfo")
        except MarketDataError as e:
            log.warning("symbols_unavailable", cause=str(e))
            return []

        quote = self.endpoints.quote_asset
        blacklist = self.endpoints.blacklisted_assets
        tradable = [
            s
            for s in symbols
            if s.quote_asset == quote
            and s.trading_enabled
            and s.base_asset not in blacklist
        ]
        log.debug("symbols_fetched", total=len(symbols), tradable=len(tradable))
        return tradable

    async def get_24h_snapshots(self, symbol: str | None = None) -> list[TickerSnapshot]:
        """24h ticker statistics for one symbol or the whole market."""
        try:
            return await self._fetch_snapshots(symbol)
        except MarketDataError as e:
            log.warning("snapshots_unavailable", symbol=symbol, cause=str(e))
            return []

    # ------------------------------------------------------------------
    # Pinpoint queries (raise)
    # ------------------------------------------------------------------

    async def get_snapshot(self, symbol: str) -> TickerSnapshot:
        """24h ticker statistics for exactly one symbol.

        Raises:
            TransportError: When the exchange could not be reached
            MalformedPayloadError: When the response is not a valid ticker
        """
        snapshots = await self._fetch_snapshots(symbol)
        if not snapshots:
            raise MalformedPayloadError(f"No ticker returned for {symbol}", "ticker/24hr")
        return snapshots[0]

    async def get_candles(
        self, symbol: str, interval: str = "1h", limit: int = 100
    ) -> list[Candle]:
        """Most recent ``limit`` candles for ``symbol``, oldest first.

        Raises:
            TransportError: When the exchange could not be reached
            MalformedPayloadError: When the response is not a kline array
        """
        data = await self._get(
            "klines", {"symbol": symbol, "interval": interval, "limit": limit}
        )
        if not isinstance(data, list):
            raise MalformedPayloadError("klines response is not an array", "klines")
        candles = map_batch(data, map_kline, "klines")
        return sorted(candles, key=lambda c: c.open_time)

    async def _fetch_snapshots(self, symbol: str | None) -> list[TickerSnapshot]:
        params = {"symbol": symbol} if symbol else None
        data = await self._get("ticker/24hr", params)
        entries = data if isinstance(data, list) else [data]
        return map_batch(entries, map_ticker, "ticker/24hr")
