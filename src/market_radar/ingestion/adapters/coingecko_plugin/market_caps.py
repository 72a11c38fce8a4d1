"""CoinGecko market capitalisation provider."""

from collections.abc import Iterable
from typing import Any

from market_radar.infrastructure.observability import get_ingestion_logger
from market_radar.ingestion.connectors.retrying_transport import RetryingTransport
from market_radar.ingestion.exceptions import MarketDataError
from market_radar.ingestion.orchestration.request_throttle import RequestThrottle

log = get_ingestion_logger("market-caps", exchange="coingecko")


class CoinGeckoMarketCapProvider:
    """IMarketCapProvider backed by ``/coins/markets``.

    Base assets are sent lower-cased as coin ids; results are keyed by the
    upper-cased ticker symbol CoinGecko reports. Requests share the exchange
    throttle and are chunked to ``per_page`` ids. A failed chunk is logged and
    skipped, so the result may be partial or empty but the call never raises
    on transport errors.
    """

    def __init__(
        self,
        transport: RetryingTransport,
        throttle: RequestThrottle,
        base_url: str = "https://api.coingecko.com/api/v3",
        vs_currency: str = "usd",
        per_page: int = 250,
    ):
        self.transport = transport
        self.throttle = throttle
        self.base_url = base_url.rstrip("/")
        self.vs_currency = vs_currency
        self.per_page = per_page

    async def get_market_caps(self, base_assets: Iterable[str]) -> dict[str, float]:
        ids = list(dict.fromkeys(a.lower() for a in base_assets if a))
        caps: dict[str, float] = {}
        for start in range(0, len(ids), self.per_page):
            chunk = ids[start : start + self.per_page]
            try:
                data = await self._fetch(chunk)
            except MarketDataError as e:
                log.warning("market_caps_unavailable", ids=len(chunk), cause=str(e))
                continue
            caps.update(parse_market_caps(data))
        return caps

    async def _fetch(self, ids: list[str]) -> Any:
        url = f"{self.base_url}/coins/markets"
        params = {
            "vs_currency": self.vs_currency,
            "ids": ",".join(ids),
            "per_page": self.per_page,
        }
        return await self.throttle.schedule(
            lambda: self.transport.fetch_json(url, params=params)
        )


def parse_market_caps(data: Any) -> dict[str, float]:
    """Map ``[{symbol, market_cap}, ...]`` to ``{SYMBOL: cap}``; junk entries skipped."""
    caps: dict[str, float] = {}
    if not isinstance(data, list):
        return caps
    for coin in data:
        if not isinstance(coin, dict) or not isinstance(coin.get("symbol"), str):
            continue
        try:
            cap = float(coin.get("market_cap") or 0)
        except (TypeError, ValueError):
            continue
        caps[coin["symbol"].upper()] = cap
    return caps
