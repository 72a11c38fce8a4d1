"""
Debounced tick batching.

Ticks for the subscribed symbols are buffered per symbol (latest wins) and a
single timer is re-armed on every tick. When the feed has been quiet for one
flush window, the buffer is turned into MarketRecords and delivered in one
batch, both to the subscription callback and to the ``batches()`` iterator.
"""

import asyncio
import enum
import inspect
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from market_radar.analytics.records import MarketRecordBook, build_market_record
from market_radar.infrastructure.observability import get_streaming_logger
from market_radar.ingestion.adapters.binance_plugin.mappers import map_stream_tick
from market_radar.ingestion.config.value_objects import LiquidityBand, StreamConfig
from market_radar.ingestion.exceptions import MalformedPayloadError
from market_radar.ingestion.ports.data_ports import ITickSource
from market_radar.shared.models import MarketRecord, TickerSnapshot, Timeframe

log = get_streaming_logger("tick-aggregator")

# Plain function or coroutine function; coroutines are scheduled on the loop
BatchCallback = Callable[[list[MarketRecord]], Any]

_END = object()


class AggregatorState(str, enum.Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    BUFFERING = "buffering"


def _offer(queue: asyncio.Queue, item: Any) -> bool:
    """put_nowait that evicts the oldest entry when full. True if one was evicted."""
    evicted = False
    if queue.full():
        queue.get_nowait()
        evicted = True
    queue.put_nowait(item)
    return evicted


class TickAggregator:
    """
    One subscription at a time; subscribing again replaces it.

    Args:
        source: Optional push feed. Without one, ticks are fed via ``ingest``.
        config: Flush window and batch queue size
        timeframe: Horizon used for pump probability and profit target
        liquidity_band: Volume floor/ceiling for the liquidity score
        record_book: Shared latest-record book updated on every flush
    """

    def __init__(
        self,
        source: ITickSource | None = None,
        config: StreamConfig | None = None,
        timeframe: Timeframe | str = Timeframe.H1,
        liquidity_band: LiquidityBand | None = None,
        record_book: MarketRecordBook | None = None,
        quote_asset: str = "USDT",
    ):
        self.source = source
        self.config = config or StreamConfig()
        self.timeframe = timeframe
        self.liquidity_band = liquidity_band or LiquidityBand()
        self.record_book = record_book if record_book is not None else MarketRecordBook()
        self.quote_asset = quote_asset

        self._state = AggregatorState.IDLE
        self._symbols: frozenset[str] = frozenset()
        self._on_batch: BatchCallback | None = None
        self._buffer: dict[str, TickerSnapshot] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._pump_task: asyncio.Task | None = None
        self._queue: asyncio.Queue | None = None
        self._callback_tasks: set[asyncio.Future] = set()

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def symbols(self) -> frozenset[str]:
        return self._symbols

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    async def subscribe(
        self, symbols: Iterable[str], on_batch: BatchCallback | None = None
    ) -> None:
        """Start (or replace) the subscription for ``symbols``."""
        await self.unsubscribe_all()

        self._symbols = frozenset(s.upper() for s in symbols)
        self._on_batch = on_batch
        self._queue = asyncio.Queue(maxsize=self.config.batch_queue_size)
        self._state = AggregatorState.SUBSCRIBED
        log.info("subscribed", symbols=len(self._symbols))

        if self.source is not None and self._symbols:
            self._pump_task = asyncio.get_running_loop().create_task(
                self._pump(sorted(self._symbols))
            )

    async def unsubscribe_all(self) -> None:
        """Cancel the timer, drop buffered ticks unflushed and stop the feed.

        Idempotent. Pending ``batches()`` iterators terminate.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        dropped = len(self._buffer)
        self._buffer.clear()

        was_active = self._state is not AggregatorState.IDLE
        self._state = AggregatorState.IDLE
        self._symbols = frozenset()
        self._on_batch = None

        if self._queue is not None:
            _offer(self._queue, _END)
            self._queue = None

        pump, self._pump_task = self._pump_task, None
        if pump is not None and not pump.done():
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
        if pump is not None and self.source is not None:
            await self.source.close()

        if was_active:
            log.info("unsubscribed", dropped_ticks=dropped)

    def ingest(self, raw: dict[str, Any]) -> bool:
        """
        Buffer one raw ticker event.

        Returns:
            True if the tick was accepted, False if there is no subscription,
            the symbol is not subscribed or the payload is malformed
        """
        if self._state is AggregatorState.IDLE:
            return False
        try:
            tick = map_stream_tick(raw)
        except MalformedPayloadError as e:
            log.debug("tick_rejected", error=str(e))
            return False
        if tick.symbol not in self._symbols:
            return False

        self._buffer[tick.symbol] = tick
        self._state = AggregatorState.BUFFERING

        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(
            self.config.flush_window, self.flush
        )
        return True

    def flush(self) -> list[MarketRecord]:
        """Normalize and deliver the buffer now. Called by the debounce timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._buffer:
            return []

        ticks = list(self._buffer.values())
        self._buffer.clear()
        self._state = AggregatorState.SUBSCRIBED

        records = self.record_book.put_many(
            build_market_record(
                tick,
                self.timeframe,
                liquidity_band=self.liquidity_band,
                quote_asset=self.quote_asset,
            )
            for tick in ticks
        )

        if self._on_batch is not None:
            try:
                result = self._on_batch(records)
            except Exception:
                log.exception("batch_callback_failed", batch_size=len(records))
            else:
                if inspect.isawaitable(result):
                    self._track_callback(result, len(records))

        if self._queue is not None and _offer(self._queue, records):
            log.warning("batch_queue_overflow", maxsize=self.config.batch_queue_size)

        log.debug("batch_flushed", batch_size=len(records))
        return records

    def _track_callback(self, awaitable: Any, batch_size: int) -> None:
        """Run a coroutine callback as a task; its failure is logged like a sync one."""
        task = asyncio.ensure_future(awaitable)
        self._callback_tasks.add(task)

        def _done(t: asyncio.Future) -> None:
            self._callback_tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                log.error(
                    "batch_callback_failed",
                    batch_size=batch_size,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)

    def batches(self) -> AsyncIterator[list[MarketRecord]]:
        """Iterate flushed batches of the current subscription.

        Bound to the subscription active at call time. Ends on
        ``unsubscribe_all`` or when the subscription is replaced; subscribe
        again to get a fresh iterator.
        """
        return self._drain_batches(self._queue)

    @staticmethod
    async def _drain_batches(
        queue: asyncio.Queue | None,
    ) -> AsyncIterator[list[MarketRecord]]:
        if queue is None:
            return
        while True:
            batch = await queue.get()
            if batch is _END:
                return
            yield batch

    async def _pump(self, symbols: list[str]) -> None:
        try:
            async for raw in self.source.stream(symbols):
                self.ingest(raw)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("tick_source_failed")
        else:
            log.warning("tick_source_ended")
