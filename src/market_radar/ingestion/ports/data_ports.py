"""Ports for data consumed from collaborators outside the exchange REST API."""

from collections.abc import AsyncIterator, Iterable
from typing import Any, Protocol


class IMarketCapProvider(Protocol):
    """Market capitalisation lookup keyed by upper-case base asset."""

    async def get_market_caps(self, base_assets: Iterable[str]) -> dict[str, float]:
        """Return known caps; unknown assets are simply missing from the result.

        Implementations degrade to ``{}`` on failure.
        """
        ...


class ISentimentProvider(Protocol):
    """Opaque sentiment score provider; only the 0-100 contract matters."""

    async def get_score(self, symbol: str, timeframe: str) -> float | None:
        ...


class ITickSource(Protocol):
    """Push feed of raw per-symbol ticker payloads."""

    def stream(self, symbols: list[str]) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded ticker payloads for ``symbols`` until cancelled."""
        ...

    async def close(self) -> None:
        ...
