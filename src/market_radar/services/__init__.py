from market_radar.services.market_query import MarketQueryService, gem_score

__all__ = ["MarketQueryService", "gem_score"]
