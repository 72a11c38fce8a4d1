"""HTTP communication abstractions.

Separates the HTTP transport from retry, throttling and payload mapping so
fetchers can be exercised against fake clients in tests.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class HttpResponse:
    """HTTP response data container."""

    status_code: int
    body: Any  # JSON-decoded on 2xx, raw text otherwise
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class IHttpClient(Protocol):
    """Abstraction for HTTP client.

    Single Responsibility: Execute HTTP requests and return responses.
    Does NOT handle:
    - Retry logic
    - Rate limiting
    - Payload validation
    """

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Execute GET request.

        Raises:
            aiohttp.ClientError: On network or connection errors
            asyncio.TimeoutError: When the request times out
            ValueError: When a 2xx body is not valid JSON
        """
        ...

    async def close(self) -> None:
        ...
