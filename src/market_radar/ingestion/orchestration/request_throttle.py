"""
Request throttling for exchange REST calls.

Serializes outbound requests through one FIFO queue and a request counter per
fixed window, so a burst of fetches cannot exceed the exchange's per-minute
request weight.
"""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from market_radar.infrastructure.observability import get_ingestion_logger
from market_radar.ingestion.config.value_objects import ThrottleConfig
from market_radar.ingestion.exceptions import ThrottleClosedError

T = TypeVar("T")

log = get_ingestion_logger("request-throttle")


class RequestThrottle:
    """
    FIFO request queue with a per-window ceiling.

    Tasks run one at a time, strictly in submission order, on the event loop
    that submitted them. When ``requests_per_window`` tasks have started in the
    current window, draining pauses until the window elapses and the counter
    resets. A failing task does not stall the queue: its exception is handed to
    its own caller and the next task starts.

    The counter is only touched by the drain task and always updated before it
    awaits, so no lock is needed.
    """

    def __init__(
        self,
        config: ThrottleConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or ThrottleConfig()
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._drain_task: asyncio.Task | None = None
        self._requests_in_window = 0
        self._window_end: float | None = None
        self._closed = False

    @property
    def pending(self) -> int:
        """Tasks submitted but not yet started."""
        return len(self._queue)

    @property
    def requests_in_window(self) -> int:
        return self._requests_in_window

    async def schedule(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Queue ``task`` and wait for its outcome.

        Args:
            task: Zero-argument coroutine function performing one request

        Returns:
            Whatever ``task`` returns

        Raises:
            ThrottleClosedError: If the throttle is or gets closed first
            Exception: Whatever ``task`` raises
        """
        if self._closed:
            raise ThrottleClosedError("Request throttle is closed")

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._queue.append((task, future))

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())

        return await future

    def _roll_window(self, now: float) -> None:
        if self._window_end is None or now >= self._window_end:
            self._requests_in_window = 0
            self._window_end = now + self.config.window_seconds

    async def _drain(self) -> None:
        while self._queue:
            self._roll_window(self._clock())

            if self._requests_in_window >= self.config.requests_per_window:
                wait = max(0.0, self._window_end - self._clock())
                log.info(
                    "throttle_window_exhausted",
                    limit=self.config.requests_per_window,
                    pending=len(self._queue),
                    wait_s=round(wait, 3),
                )
                await self._sleep(wait)
                self._requests_in_window = 0
                self._window_end = self._clock() + self.config.window_seconds
                continue

            task, future = self._queue.popleft()
            if future.done():
                # Caller gave up while queued
                continue

            self._requests_in_window += 1
            try:
                result = await task()
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)

    async def close(self) -> None:
        """Stop draining and fail every queued caller with ThrottleClosedError."""
        self._closed = True
        while self._queue:
            _, future = self._queue.popleft()
            if not future.done():
                future.set_exception(ThrottleClosedError("Request throttle closed"))
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
        self._drain_task = None
