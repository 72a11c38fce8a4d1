from market_radar.ingestion.streaming.tick_aggregator import (
    AggregatorState,
    TickAggregator,
)

__all__ = ["AggregatorState", "TickAggregator"]
