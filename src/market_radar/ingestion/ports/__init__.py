"""Ports for capability-based ingestion."""

from .data_ports import IMarketCapProvider, ISentimentProvider, ITickSource
from .http import HttpResponse, IHttpClient

__all__ = [
    "HttpResponse",
    "IHttpClient",
    "IMarketCapProvider",
    "ISentimentProvider",
    "ITickSource",
]
