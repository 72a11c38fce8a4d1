"""
Shared fixtures: fake HTTP clients, a fake clock and payload builders shaped
like the Binance REST/websocket responses.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from market_radar.ingestion.ports.http import HttpResponse  # noqa: E402
from market_radar.shared.models import Candle  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Fake HTTP clients
# ============================================================================


def _as_response(url: str, item: Any) -> HttpResponse:
    if isinstance(item, BaseException):
        raise item
    if isinstance(item, HttpResponse):
        return item
    return HttpResponse(status_code=200, body=item, url=url)


class ScriptedHttpClient:
    """Returns (or raises) the scripted items in order; the last one repeats."""

    def __init__(self, *items: Any):
        self.items = list(items)
        self.calls: list[tuple[str, dict | None]] = []

    async def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        return _as_response(url, item)

    async def close(self) -> None:
        pass


class RoutedHttpClient:
    """
    Serves bodies by URL path suffix.

    A route key ``"ticker/24hr?BTCUSDT"`` matches only requests with
    ``params["symbol"] == "BTCUSDT"`` and wins over the bare path key.
    Unknown routes answer 404.
    """

    def __init__(self, routes: dict[str, Any]):
        self.routes = routes
        self.calls: list[tuple[str, dict | None]] = []

    async def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        symbol = (params or {}).get("symbol")
        for key, item in self.routes.items():
            path, _, route_symbol = key.partition("?")
            if not url.endswith(path):
                continue
            if route_symbol and route_symbol != symbol:
                continue
            if not route_symbol and symbol and f"{path}?{symbol}" in self.routes:
                continue
            return _as_response(url, item)
        return HttpResponse(status_code=404, body="not found", url=url)

    async def close(self) -> None:
        pass


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep():
    """Awaitable sleep that records delays instead of waiting."""
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


# ============================================================================
# Payload builders
# ============================================================================


def symbol_entry(
    symbol: str,
    base: str,
    quote: str = "USDT",
    status: str = "TRADING",
    spot: bool = True,
) -> dict[str, Any]:
    return {
        "symbol": symbol,
        "status": status,
        "baseAsset": base,
        "quoteAsset": quote,
        "isSpotTradingAllowed": spot,
    }


def ticker_entry(
    symbol: str,
    change: float = 0.0,
    last: float = 100.0,
    high: float = 105.0,
    low: float = 95.0,
    quote_volume: float = 5_000_000.0,
) -> dict[str, Any]:
    return {
        "symbol": symbol,
        "priceChangePercent": str(change),
        "lastPrice": str(last),
        "highPrice": str(high),
        "lowPrice": str(low),
        "volume": str(quote_volume / last if last else 0),
        "quoteVolume": str(quote_volume),
    }


def stream_event(
    symbol: str,
    last: float = 100.0,
    change: float = 1.0,
    high: float = 105.0,
    low: float = 95.0,
    quote_volume: float = 5_000_000.0,
) -> dict[str, Any]:
    return {
        "e": "24hrTicker",
        "s": symbol,
        "c": str(last),
        "P": str(change),
        "h": str(high),
        "l": str(low),
        "v": str(quote_volume / last),
        "q": str(quote_volume),
    }


def kline_row(index: int, close: float, volume: float = 1000.0, spread: float = 1.0,
              interval_ms: int = 3_600_000) -> list[Any]:
    open_time = 1_700_000_000_000 + index * interval_ms
    return [
        open_time,
        str(close),
        str(close + spread),
        str(close - spread),
        str(close),
        str(volume),
        open_time + interval_ms - 1,
        "0",
        10,
        "0",
        "0",
        "0",
    ]


def make_candles(
    closes: list[float],
    volumes: list[float] | None = None,
    spread: float = 1.0,
    interval_ms: int = 3_600_000,
) -> list[Candle]:
    volumes = volumes or [1000.0] * len(closes)
    candles = []
    for i, (close, volume) in enumerate(zip(closes, volumes)):
        open_time = 1_700_000_000_000 + i * interval_ms
        candles.append(
            Candle(
                open_time=open_time,
                close_time=open_time + interval_ms - 1,
                open=close,
                high=close + spread,
                low=close - spread,
                close=close,
                volume=volume,
            )
        )
    return candles


@pytest.fixture
def payloads():
    """Namespace of payload builders for tests that prefer fixtures to imports."""

    class _Payloads:
        symbol = staticmethod(symbol_entry)
        ticker = staticmethod(ticker_entry)
        event = staticmethod(stream_event)
        kline = staticmethod(kline_row)
        candles = staticmethod(make_candles)

    return _Payloads
