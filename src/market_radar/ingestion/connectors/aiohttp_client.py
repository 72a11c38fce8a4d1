"""Concrete HTTP client implementation for async requests.

Wraps aiohttp behind the IHttpClient abstraction.
"""

from typing import Any

import aiohttp

from market_radar.ingestion.config.value_objects import HttpClientConfig
from market_radar.ingestion.ports.http import HttpResponse, IHttpClient


class AiohttpClient(IHttpClient):
    """HTTP client implementation using aiohttp."""

    def __init__(self, config: HttpClientConfig):
        self.config = config
        self._session: aiohttp.ClientSession | None = None

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or lazily create the shared aiohttp session.

        The websocket ticker stream reuses this session.
        """
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.config.timeout, connect=self.config.connect_timeout
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Execute GET request.

        Returns:
            HttpResponse; the body is decoded JSON for 2xx responses and the
            raw text otherwise

        Raises:
            aiohttp.ClientError: On connection errors
            asyncio.TimeoutError: On timeout
            ValueError: If a 2xx body is not JSON
        """
        session = await self.get_session()
        timeout_obj = aiohttp.ClientTimeout(total=timeout or self.config.timeout)

        async with session.get(
            url,
            params=params,
            headers=headers,
            timeout=timeout_obj,
        ) as resp:
            if 200 <= resp.status < 300:
                body = await resp.json(content_type=None)
            else:
                body = await resp.text()
            return HttpResponse(
                status_code=resp.status,
                body=body,
                headers=dict(resp.headers),
                url=str(resp.url),
            )

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
