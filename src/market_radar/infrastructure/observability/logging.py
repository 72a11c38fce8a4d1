"""
Structured logging for market-radar.

Every entry is a structlog event dict with the architectural context bound
at logger creation time:

    {
        "app": "market-radar",
        "layer": "ingestion",           # Architectural layer
        "component": "snapshot-fetcher",
        "exchange": "binance",          # Domain context
        "event": "snapshots_fetched",   # What happened
        ...
    }

Architectural Layers:
    - infrastructure: Config loading, composition root
    - ingestion: REST fetch layer (throttle, transport, snapshot fetchers)
    - streaming: Websocket ticker feed and tick aggregation
    - analytics: Derived score computation
    - service: Market query facade consumed by UI collaborators
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

Layer = Literal["infrastructure", "ingestion", "streaming", "analytics", "service"]

APP_NAME = "market-radar"


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every entry with the application identifier."""
    event_dict["app"] = APP_NAME
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Map structlog levels onto cloud-logging severity names."""
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = {
            "debug": "DEBUG",
            "info": "INFO",
            "warning": "WARNING",
            "error": "ERROR",
            "critical": "CRITICAL",
        }.get(level, "INFO")
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Logging level name; unknown names fall back to INFO
        json_logs: JSON lines when True, colored console output otherwise
        include_timestamp: Prepend an ISO timestamp to each entry

    Usage:
        >>> from market_radar.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger with layer/component context bound.

    Args:
        name: Logger name (typically the layer or ``__name__``)
        layer: Architectural layer
        component: Component within the layer
        **initial_context: Extra key-value pairs bound to every entry

    Usage:
        >>> log = get_logger(__name__, layer="ingestion", component="throttle")
        >>> log.info("window_reset", pending=12)
    """
    logger = structlog.get_logger(name)

    context: dict[str, Any] = {}
    if layer:
        context["layer"] = layer
    if component:
        context["component"] = component
    if name:
        context["module"] = name
    context.update(initial_context)

    if context:
        logger = logger.bind(**context)
    return logger


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Logger for config loading and dependency wiring."""
    return get_logger(
        "infrastructure", layer="infrastructure", component=component, **context
    )


def get_ingestion_logger(
    component: str,
    exchange: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Logger for the REST ingestion layer.

    Usage:
        >>> log = get_ingestion_logger("snapshot-fetcher", exchange="binance")
        >>> log.warning("symbols_unavailable", cause="timeout")
    """
    ctx: dict[str, Any] = {}
    if exchange:
        ctx["exchange"] = exchange
    ctx.update(context)
    return get_logger("ingestion", layer="ingestion", component=component, **ctx)


def get_streaming_logger(
    component: str,
    exchange: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """Logger for the websocket feed and tick aggregation."""
    ctx: dict[str, Any] = {}
    if exchange:
        ctx["exchange"] = exchange
    ctx.update(context)
    return get_logger("streaming", layer="streaming", component=component, **ctx)


def get_analytics_logger(
    component: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Logger for record assembly and derived scores."""
    return get_logger("analytics", layer="analytics", component=component, **context)


def get_service_logger(
    component: str = "market-query", **context: Any
) -> structlog.stdlib.BoundLogger:
    """Logger for the market query facade."""
    return get_logger("service", layer="service", component=component, **context)
