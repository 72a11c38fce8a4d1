"""Binance websocket ticker feed.

Connects to the raw ``/ws`` endpoint, subscribes to ``<symbol>@ticker`` streams
with a SUBSCRIBE frame and yields decoded ticker events. Dropped connections
are re-established with exponential backoff.
"""

import asyncio
import itertools
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import aiohttp

from market_radar.infrastructure.observability import get_streaming_logger
from market_radar.ingestion.config.value_objects import StreamConfig
from market_radar.ingestion.connectors.aiohttp_client import AiohttpClient

log = get_streaming_logger("ticker-stream", exchange="binance")

_CLOSING = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
    aiohttp.WSMsgType.ERROR,
)


def stream_names(symbols: list[str]) -> list[str]:
    return [f"{s.lower()}@ticker" for s in symbols]


def unwrap_event(payload: Any) -> dict[str, Any] | None:
    """Return the ticker event inside a frame, or None for control frames.

    Combined-stream frames wrap the event as ``{"stream": ..., "data": {...}}``;
    SUBSCRIBE acknowledgements look like ``{"result": null, "id": 1}``.
    """
    if not isinstance(payload, dict):
        return None
    if "data" in payload and "stream" in payload:
        payload = payload["data"]
        if not isinstance(payload, dict):
            return None
    if "result" in payload and "id" in payload:
        return None
    return payload


class BinanceTickerStream:
    """ITickSource over the Binance websocket API.

    Reuses the session of the injected AiohttpClient. After
    ``max_reconnect_attempts`` consecutive failed connections the stream ends.
    """

    def __init__(
        self,
        http_client: AiohttpClient,
        config: StreamConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.config = config or StreamConfig()
        self._sleep = sleep
        self._ids = itertools.count(1)
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._closed = False

    def reconnect_delay(self, attempt: int) -> float:
        return self.config.reconnect_delay * self.config.reconnect_backoff ** (attempt - 1)

    async def stream(self, symbols: list[str]) -> AsyncIterator[dict[str, Any]]:
        """Yield ticker events for ``symbols`` until closed or out of retries."""
        self._closed = False
        attempt = 0

        while not self._closed:
            try:
                session = await self.http_client.get_session()
                # receive_timeout also drops a feed that is connected but silent
                async with session.ws_connect(
                    self.config.url,
                    heartbeat=self.config.heartbeat_timeout,
                    receive_timeout=self.config.heartbeat_timeout,
                ) as ws:
                    self._ws = ws
                    await ws.send_json(
                        {
                            "method": "SUBSCRIBE",
                            "params": stream_names(symbols),
                            "id": next(self._ids),
                        }
                    )
                    attempt = 0
                    log.info("stream_connected", url=self.config.url, symbols=len(symbols))

                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            try:
                                event = unwrap_event(json.loads(msg.data))
                            except ValueError:
                                log.debug("stream_frame_undecodable", data=msg.data[:200])
                                continue
                            if event is not None:
                                yield event
                        elif msg.type in _CLOSING:
                            break
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                log.warning("stream_connection_error", error=f"{type(e).__name__}: {e}")
            finally:
                self._ws = None

            if self._closed:
                break

            attempt += 1
            if attempt > self.config.max_reconnect_attempts:
                log.error(
                    "stream_reconnect_exhausted",
                    attempts=self.config.max_reconnect_attempts,
                )
                break

            delay = self.reconnect_delay(attempt)
            log.info("stream_reconnecting", attempt=attempt, sleep_s=delay)
            await self._sleep(delay)

    async def close(self) -> None:
        """Stop reconnecting and close the live socket, if any."""
        self._closed = True
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
