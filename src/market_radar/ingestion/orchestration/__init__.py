from market_radar.ingestion.orchestration.request_throttle import RequestThrottle

__all__ = ["RequestThrottle"]
