"""CoinGecko adapter (market caps only)."""

from .market_caps import CoinGeckoMarketCapProvider

__all__ = ["CoinGeckoMarketCapProvider"]
