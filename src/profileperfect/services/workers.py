"""Bounded asyncio worker pool for background jobs."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WorkerPoolStats:
    """Snapshot of pool activity."""

    workers: int
    running: bool
    queued: int
    active: int
    processed: int
    errors: int


@dataclass
class JobWorkerPool(Generic[T]):
    """Runs queued items through a handler with a fixed number of workers."""

    handler: Callable[[T], Awaitable[None]]
    concurrency: int = 4
    name: str = "jobs"
    _queue: asyncio.Queue = field(init=False, repr=False)
    _tasks: list[asyncio.Task] = field(init=False, default_factory=list, repr=False)
    _active: int = field(init=False, default=0)
    _processed: int = field(init=False, default=0)
    _errors: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._queue = asyncio.Queue()

    @property
    def running(self) -> bool:
        """Whether worker tasks are currently started."""
        return bool(self._tasks)

    async def start(self) -> None:
        """Spawn the worker tasks on the running loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._work(index), name=f"{self.name}-worker-{index}")
            for index in range(self.concurrency)
        ]
        _logger.info("Started %s %s workers", self.concurrency, self.name)

    async def stop(self) -> None:
        """Cancel the workers. Items still queued are left unprocessed."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            _logger.info(
                "Stopped %s workers with %s items queued",
                self.name,
                self._queue.qsize(),
            )

    def enqueue(self, item: T) -> None:
        """Queue an item for the next free worker."""
        self._queue.put_nowait(item)

    async def join(self) -> None:
        """Wait until every queued item has been handled."""
        await self._queue.join()

    def stats(self) -> WorkerPoolStats:
        """Return current pool counters."""
        return WorkerPoolStats(
            workers=len(self._tasks),
            running=self.running,
            queued=self._queue.qsize(),
            active=self._active,
            processed=self._processed,
            errors=self._errors,
        )

    async def _work(self, index: int) -> None:
        while True:
            item = await self._queue.get()
            self._active += 1
            try:
                await self.handler(item)
            except Exception:
                self._errors += 1
                _logger.exception("Unhandled error in %s worker %s", self.name, index)
            finally:
                self._active -= 1
                self._processed += 1
                self._queue.task_done()
