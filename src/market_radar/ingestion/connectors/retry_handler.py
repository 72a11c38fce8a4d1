"""
Retry delay policy for exchange REST calls.

Every non-2xx status and every network failure is retryable; only the delay
differs. 429 responses may carry a ``Retry-After`` header which is honoured
when it asks for longer than the exponential backoff.
"""

from market_radar.ingestion.config.value_objects import RetryConfig


class RetryHandler:
    """Computes backoff delays for retrying transport attempts."""

    RATE_LIMIT_STATUS_CODES = (418, 429)

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def should_retry(self, attempt: int, max_attempts: int | None = None) -> bool:
        """
        Whether another attempt is allowed after ``attempt`` failed.

        Args:
            attempt: The attempt that just failed (1-indexed)
            max_attempts: Per-call override of the configured maximum
        """
        limit = max_attempts if max_attempts is not None else self.config.max_attempts
        return attempt < limit

    def get_retry_delay(
        self,
        attempt: int,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> float:
        """
        Calculate retry delay with exponential backoff.

        Args:
            attempt: The attempt that just failed (1-indexed)
            status_code: HTTP status code, ``None`` for network failures
            headers: Response headers that may contain Retry-After

        Returns:
            Number of seconds to wait before the next attempt
        """
        delay = self.config.base_delay * 2 ** (attempt - 1)

        if status_code in self.RATE_LIMIT_STATUS_CODES and headers:
            retry_after = _header(headers, "Retry-After")
            if retry_after:
                try:
                    delay = max(delay, float(retry_after))
                except ValueError:
                    pass

        return min(delay, self.config.max_delay)


def _header(headers: dict[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
