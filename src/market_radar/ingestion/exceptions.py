"""
Market data exception hierarchy.

Transport failures reach only pinpoint callers; aggregate listings catch
``MarketDataError`` and degrade to empty or neutral results.
"""


class MarketDataError(Exception):
    """Base exception for all ingestion errors."""


class TransportError(MarketDataError):
    """Raised once an HTTP call has exhausted its retries."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        attempts: int = 0,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.attempts = attempts
        self.cause = cause


class MalformedPayloadError(MarketDataError):
    """Payload failed validation at the ingestion boundary."""

    def __init__(self, message: str, endpoint: str | None = None):
        super().__init__(message)
        self.endpoint = endpoint


class ThrottleClosedError(MarketDataError):
    """The request throttle was closed before the task could run."""

    pass
