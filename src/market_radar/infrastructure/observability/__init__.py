"""
Observability for market-radar: structlog setup plus one logger factory per
architectural layer so that fetch failures, feed reconnects and degraded
aggregate views can be filtered by layer and component.
"""

from .logging import (
    get_analytics_logger,
    get_infrastructure_logger,
    get_ingestion_logger,
    get_logger,
    get_service_logger,
    get_streaming_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_infrastructure_logger",
    "get_ingestion_logger",
    "get_streaming_logger",
    "get_analytics_logger",
    "get_service_logger",
]
