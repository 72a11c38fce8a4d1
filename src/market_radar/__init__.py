"""
Market data ingestion and analytics engine.

Modules:
- ingestion: Throttled REST fetch layer, websocket feed and tick batching
- analytics: Indicators, ranking heuristics and MarketRecord assembly
- services: Market query facade (top gainers, gems, market mood)
- shared: Common models and enums
- config, infrastructure: Configuration and logging
"""
