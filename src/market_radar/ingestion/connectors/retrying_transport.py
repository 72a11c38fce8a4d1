import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from market_radar.infrastructure.observability import get_ingestion_logger
from market_radar.ingestion.connectors.retry_handler import RetryHandler
from market_radar.ingestion.exceptions import TransportError
from market_radar.ingestion.ports.http import IHttpClient

log = get_ingestion_logger("retrying-transport")

NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


class RetryingTransport:
    """Single JSON GET with bounded exponential-backoff retry.

    Single Responsibility: turn one logical request into up to ``max_retries``
    HTTP attempts. A structurally valid but empty JSON body is a success here;
    deciding what absent data means is left to the caller.

    Dependencies injected:
    - http_client: Executes HTTP requests
    - retry_handler: Computes delays between attempts
    - sleep: Awaitable sleep, replaced by a fake in tests
    """

    def __init__(
        self,
        http_client: IHttpClient,
        retry_handler: RetryHandler | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.retry_handler = retry_handler or RetryHandler()
        self._sleep = sleep

    async def fetch_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        max_retries: int | None = None,
    ) -> Any:
        """Fetch and decode a JSON document.

        Args:
            url: Full URL
            params: Query parameters
            max_retries: Maximum attempts; defaults to the retry config

        Returns:
            Decoded JSON body

        Raises:
            TransportError: After the last attempt failed, carrying the final
                status code (if any) and underlying cause
        """
        max_attempts = max_retries or self.retry_handler.max_attempts
        last_status: int | None = None
        last_cause: BaseException | None = None

        for attempt in range(1, max_attempts + 1):
            headers: dict[str, str] | None = None
            try:
                response = await self.http_client.get(url, params=params)
            except NETWORK_ERRORS as e:
                last_status, last_cause = None, e
                reason = f"{type(e).__name__}: {e}"
            else:
                if response.ok:
                    return response.body
                last_status, last_cause = response.status_code, None
                headers = response.headers
                reason = f"HTTP {response.status_code}"

            if not self.retry_handler.should_retry(attempt, max_attempts):
                break

            delay = self.retry_handler.get_retry_delay(attempt, last_status, headers)
            log.warning(
                "request_retry",
                url=url,
                attempt=attempt,
                max_attempts=max_attempts,
                reason=reason,
                sleep_s=delay,
            )
            await self._sleep(delay)

        cause = f"HTTP {last_status}" if last_cause is None else repr(last_cause)
        log.error("request_failed", url=url, attempts=max_attempts, cause=cause)
        raise TransportError(
            f"Maximum retries reached for {url}: {cause}",
            url=url,
            status_code=last_status,
            attempts=max_attempts,
            cause=last_cause,
        ) from last_cause
