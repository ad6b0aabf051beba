"""Fixed-interval background reads owned by whoever activates a view.

Each tick runs as its own task, so a slow read may still be in flight when
the next tick fires. All reads here are idempotent, so overlap is allowed.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .cache import CacheStore
from .history import HistoryAggregator
from .reader import ChainReader
from .util import _log, from_raw_units


class Ticker:
    def __init__(
        self,
        name: str,
        interval: float,
        fn: Callable[[], Awaitable[Any]],
        run_immediately: bool = True,
    ):
        self.name = name
        self.interval = interval
        self.fn = fn
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def cancel(self) -> None:
        tasks = list(self._inflight)
        if self._task is not None:
            tasks.append(self._task)
            self._task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "Ticker":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()

    async def _loop(self) -> None:
        if self.run_immediately:
            self._spawn()
        while True:
            await asyncio.sleep(self.interval)
            self._spawn()

    def _spawn(self) -> None:
        task = asyncio.create_task(self._tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick(self) -> None:
        try:
            await self.fn()
        except Exception as exc:
            _log(f"{self.name} tick failed: {exc}")


class GroupWatcher:
    """Polls wallet balance, pending prize, group history and the cache for one dashboard."""

    def __init__(
        self,
        reader: ChainReader,
        history: HistoryAggregator,
        cache: Optional[CacheStore],
        wallet: str,
        intervals: Dict[str, float],
        group_address: Optional[str] = None,
        admin: bool = False,
    ):
        self.reader = reader
        self.history = history
        self.cache = cache
        self.wallet = wallet
        self.intervals = intervals
        self.group_address = group_address
        self.admin = admin
        self.tickers: List[Ticker] = []

        self.on_balance: Optional[Callable[[Any], Any]] = None
        self.on_prize: Optional[Callable[[Any], Any]] = None
        self.on_history: Optional[Callable[[Any], Any]] = None
        self.on_cache_groups: Optional[Callable[[Any], Any]] = None

    def start(self) -> None:
        if self.tickers:
            return
        if self.on_balance:
            self.tickers.append(Ticker("balance", self.intervals["balance"], self._poll_balance))
        if self.group_address and self.on_prize:
            self.tickers.append(Ticker("pending_prize", self.intervals["pending_prize"], self._poll_prize))
        if self.group_address and self.on_history:
            self.tickers.append(Ticker("history", self.intervals["history"], self._poll_history))
        if self.cache is not None and self.on_cache_groups:
            self.tickers.append(Ticker("cache_sync", self.intervals["cache_sync"], self._poll_cache))
        for ticker in self.tickers:
            ticker.start()

    async def stop(self) -> None:
        tickers, self.tickers = self.tickers, []
        await asyncio.gather(*(t.cancel() for t in tickers))

    async def __aenter__(self) -> "GroupWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _poll_balance(self) -> None:
        await _emit(self.on_balance, await self.reader.token_balance_display(self.wallet))

    async def _poll_prize(self) -> None:
        raw = await self.reader.pending_prize(self.group_address, self.wallet)
        await _emit(self.on_prize, from_raw_units(raw, await self.reader.token_decimals()))

    async def _poll_history(self) -> None:
        await _emit(self.on_history, await self.history.get_history(self.group_address))

    async def _poll_cache(self) -> None:
        if self.admin:
            records = await self.cache.all_groups()
        else:
            created = await self.cache.groups_by_creator(self.wallet)
            participating = await self.cache.groups_by_participant(self.wallet)
            records = {"created": created, "participating": participating}
        await _emit(self.on_cache_groups, records)


async def _emit(callback: Optional[Callable[[Any], Any]], value: Any) -> None:
    result = callback(value)
    if asyncio.iscoroutine(result):
        await result
