"""Rate-limited priority queues used for enumeration and processing."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple

from pyrate_limiter import Duration, InMemoryBucket, Limiter, Rate

from .config import RateLimitConfig

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


class RateLimiter:
    """Admission limiter for one queue, backed by pyrate-limiter.

    At most ``burst`` jobs are admitted within any ``interval``, and over a
    span of several intervals no more than ``rate`` per interval on average.
    Capacity left unused in a quiet window can therefore be spent in the next
    one, up to ``burst``.

    Example:
        limiter = RateLimiter(rate=5, interval=1.0)

        # Waits until the limiter admits another job
        await limiter.acquire()
        await call_api()

        # Non-blocking check
        if limiter.try_acquire():
            await call_api()
    """

    def __init__(
        self,
        rate: int,
        interval: float,
        burst: Optional[int] = None,
        name: str = "bulkedit",
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        burst = burst if burst is not None else rate * 2
        if burst < rate:
            raise ValueError(f"burst must be at least rate ({rate}), got {burst}")

        self.name = name
        self.rate = rate
        self.interval = interval
        self.burst = burst
        self.rates = self.build_rates(rate, interval, burst)
        self._bucket = InMemoryBucket(self.rates)
        self._limiter = Limiter(self._bucket, raise_when_fail=False)
        self._poll_interval = max(interval / burst, 0.001)
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def from_config(cls, config: RateLimitConfig, name: str = "bulkedit") -> "RateLimiter":
        return cls(config.interval_cap, config.interval, config.effective_burst, name=name)

    @staticmethod
    def build_rates(rate: int, interval: float, burst: int) -> List[Rate]:
        """Translate rate, interval and burst into pyrate-limiter rates.

        The short rate caps a single window at ``burst``. The long rate spans
        enough windows to exceed the burst and holds the average to ``rate``.
        """
        window = int(Duration.SECOND.value * interval)
        if window < 1:
            raise ValueError(f"interval must be at least one millisecond, got {interval}")
        if burst == rate:
            return [Rate(rate, window)]
        spans = burst // rate + 1
        return [Rate(burst, window), Rate(rate * spans, window * spans)]

    def try_acquire(self) -> bool:
        """Take an admission slot if one is free, without waiting."""
        return bool(self._limiter.try_acquire(self.name))

    async def acquire(self) -> None:
        """Wait until an admission slot is free and take it."""
        async with self._lock:
            while not self.try_acquire():
                await asyncio.sleep(self._poll_interval)

    def close(self) -> None:
        """Release the bucket from the limiter's background leaker."""
        if not self._closed:
            self._closed = True
            self._limiter.dispose(self._bucket)


class RateLimitedQueue:
    """Priority queue whose jobs are admitted through a :class:`RateLimiter`.

    Admitted jobs run concurrently; the limiter is the only throughput bound.
    Higher ``priority`` values are admitted first, ties in insertion order.
    A queue created with ``autostart=False`` accepts jobs but admits none of
    them until :meth:`start` is called.
    """

    def __init__(self, name: str, limiter: RateLimiter, autostart: bool = True) -> None:
        self.name = name
        self._limiter = limiter
        self._heap: List[Tuple[int, int, Job, asyncio.Future]] = []
        self._counter = itertools.count()
        self._in_flight = 0
        self._started = autostart
        self._worker: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def size(self) -> int:
        """Number of jobs waiting for admission."""
        return len(self._heap)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ------------------------------------------------------------------
    def add(self, job: Job, priority: int = 0) -> asyncio.Future:
        """Queue ``job`` and return a future resolving to its result."""
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._heap, (-priority, next(self._counter), job, future))
        self._idle.clear()
        self._wakeup.set()
        if self._started:
            self._ensure_worker()
        return future

    def start(self) -> None:
        """Begin admitting jobs."""
        if not self._started:
            logger.debug(f"Starting queue {self.name} with {self.size} pending jobs")
        self._started = True
        if self._heap:
            self._ensure_worker()

    async def on_idle(self) -> None:
        """Wait until no job is pending or running.

        Never returns while a stopped queue still holds jobs.
        """
        await self._idle.wait()

    async def close(self) -> None:
        """Stop the worker and cancel every job that has not finished."""
        tasks = list(self._tasks)
        if self._worker is not None:
            tasks.append(self._worker)
            self._worker = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for _, _, _, future in self._heap:
            future.cancel()
        self._heap.clear()
        self._idle.set()
        self._limiter.close()

    # ------------------------------------------------------------------
    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name=f"queue:{self.name}")

    async def _run(self) -> None:
        while True:
            while not self._heap:
                self._wakeup.clear()
                await self._wakeup.wait()
            await self._limiter.acquire()
            _, _, job, future = heapq.heappop(self._heap)
            if future.cancelled():
                self._check_idle()
                continue
            self._in_flight += 1
            task = asyncio.create_task(self._execute(job, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _execute(self, job: Job, future: asyncio.Future) -> None:
        try:
            result = await job()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self._in_flight -= 1
            self._check_idle()

    def _check_idle(self) -> None:
        if not self._heap and self._in_flight == 0:
            self._idle.set()
