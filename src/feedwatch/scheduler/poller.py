"""Feed poller.

Runs a poll cycle on a timer: every URL in the observer registry is
fetched once, and the result is handed to each observer of that URL.
Fetch failures are logged and skipped; the URL simply catches up on the
next cycle.

Concurrency rules:
- Distinct URLs are fetched concurrently, bounded by a semaphore that
  covers the fetch only, not dispatch to observers.
- Refreshes of the same URL are serialized by a per-URL lock.
- Observers are re-read from the registry after the fetch completes, so
  subscribers removed mid-fetch are skipped.
- Every fetch runs under a timeout so one hanging host cannot stall a cycle.

Example:
    >>> from feedwatch.registry import ObserverRegistry
    >>> from feedwatch.scheduler.poller import Poller
    >>> async def handle(observer, result):
    ...     print(observer.subscriber_id, len(result.items))
    >>> # poller = Poller(ObserverRegistry(), fetcher, handle, interval=60)
    >>> # poller.start()
    >>> # ...
    >>> # await poller.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from feedwatch.core.exceptions import FetchError
from feedwatch.models.item import FetchResult
from feedwatch.models.subscription import Observer
from feedwatch.protocols.fetcher import FeedFetcher
from feedwatch.registry.observers import ObserverRegistry

logger = logging.getLogger(__name__)

ItemHandler = Callable[[Observer, FetchResult], Awaitable[object]]


@dataclass
class PollerStats:
    """Counters for one poll cycle.

    Example:
        >>> stats = PollerStats(urls=3, fetched=2, failed=1)
        >>> stats.urls - stats.fetched
        1
    """

    urls: int = 0
    fetched: int = 0
    failed: int = 0
    dispatched: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None


class Poller:
    """Timer-driven and on-demand feed refresher.

    Args:
        registry: Observer registry to iterate.
        fetcher: Feed fetcher (one attempt per call).
        handler: Coroutine invoked once per (observer, fetch result).
        interval: Seconds between cycles.
        timeout: Per-fetch timeout in seconds.
        max_concurrency: Max fetches in flight.
    """

    def __init__(
        self,
        registry: ObserverRegistry,
        fetcher: FeedFetcher,
        handler: ItemHandler,
        *,
        interval: float = 60.0,
        timeout: float = 30.0,
        max_concurrency: int = 8,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._registry = registry
        self._fetcher = fetcher
        self._handler = handler
        self._interval = interval
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending: set[asyncio.Task[int | None]] = set()
        self._task: asyncio.Task[None] | None = None
        self._cycles = 0
        self._last_stats: PollerStats | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        """True while the timer loop is active."""
        return self._task is not None and not self._task.done()

    @property
    def cycles(self) -> int:
        """Completed poll cycles."""
        return self._cycles

    @property
    def last_stats(self) -> PollerStats | None:
        """Stats of the most recent completed cycle."""
        return self._last_stats

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the timer loop; the first cycle runs immediately."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="feedwatch-poller")
        logger.info("Poller started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Stop the timer and wait for in-flight refreshes to finish or time out."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._pending:
            await asyncio.wait(set(self._pending))
        logger.info("Poller stopped after %d cycles", self._cycles)

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Poll cycle crashed")
            await asyncio.sleep(self._interval)

    # --- Polling ---

    async def run_cycle(self) -> PollerStats:
        """Refresh every observed URL once."""
        stats = PollerStats()
        urls = self._registry.urls()
        stats.urls = len(urls)

        tasks = [self._spawn(url) for url in urls]
        if tasks:
            # asyncio.wait leaves the refresh tasks running if this cycle is cancelled.
            await asyncio.wait(tasks)

        for task in tasks:
            outcome = task.result()
            if outcome is None:
                stats.failed += 1
            else:
                stats.fetched += 1
                stats.dispatched += outcome

        self._prune_locks()
        stats.completed_at = datetime.now(UTC)
        self._cycles += 1
        self._last_stats = stats
        logger.debug(
            "Cycle %d: %d urls, %d fetched, %d failed, %d dispatched",
            self._cycles,
            stats.urls,
            stats.fetched,
            stats.failed,
            stats.dispatched,
        )
        return stats

    def trigger(self, url: str) -> asyncio.Task[int | None] | None:
        """Schedule an out-of-cycle refresh of one URL.

        Does nothing unless the poller is running; the first cycle after
        start covers every URL anyway.
        """
        if not self.running:
            return None
        logger.debug("Out-of-cycle refresh for %s", url)
        return self._spawn(url)

    async def refresh(self, url: str) -> int | None:
        """Fetch one URL and dispatch the result to its current observers.

        Returns:
            Number of observers the result was dispatched to, or None if
            the fetch failed.
        """
        lock = self._locks.setdefault(url, asyncio.Lock())
        async with lock:
            if url not in self._registry:
                return 0

            try:
                async with self._semaphore:
                    result = await asyncio.wait_for(self._fetcher.fetch(url), self._timeout)
            except FetchError as e:
                logger.warning("Fetch failed for %s: %s", url, e)
                return None
            except TimeoutError:
                logger.warning("Fetch timed out after %ss for %s", self._timeout, url)
                return None
            except Exception:
                logger.exception("Unexpected error fetching %s", url)
                return None

            if not result.items:
                return 0

            dispatched = 0
            for observer in self._registry.observers_for(url):
                try:
                    await self._handler(observer, result)
                except Exception:
                    logger.exception(
                        "Handler failed for %s on %s",
                        observer.subscriber_id,
                        url,
                    )
                    continue
                dispatched += 1
            return dispatched

    def _spawn(self, url: str) -> asyncio.Task[int | None]:
        task = asyncio.create_task(self.refresh(url), name=f"feedwatch-refresh:{url}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _prune_locks(self) -> None:
        for url in list(self._locks):
            lock = self._locks[url]
            if url not in self._registry and not lock.locked():
                del self._locks[url]
