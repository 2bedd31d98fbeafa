"""
Serialized background writes for a single ledger file.

Each collector owns one WriteQueue. Flush requests go through a bounded
channel to one worker task, so writes to the same file never interleave
and run in FIFO order.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class WriteQueue:
    """Single-consumer flush queue for one ledger file.

    A flush job calls ``prepare`` on the event loop to take a consistent
    snapshot of the document as serialized text, then hands the blocking
    ``write`` to a thread. The channel holds at most one pending job:
    a request made while a job is still waiting to start is folded into
    it, because that job snapshots the document only when it runs.

    Without a running event loop, requests are flushed inline.
    """

    def __init__(self, label: str, prepare: Callable[[], str], write: Callable[[str], None]):
        """Create a queue.

        Args:
            label: Name used in log messages, usually the file path
            prepare: Produces the serialized snapshot to write
            write: Writes serialized content to disk
        """
        self.label = label
        self._prepare = prepare
        self._write = write
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.completed_writes = 0
        self.failed_writes = 0

    @property
    def pending(self) -> int:
        """Number of flush jobs waiting to start."""
        return self._queue.qsize() if self._queue is not None else 0

    def submit(self) -> None:
        """Request a flush. Never blocks and never raises on write failure."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._flush_inline()
            return

        queue = self._ensure_worker(loop)
        if queue.full():
            logger.debug("Flush already pending for %s, coalescing", self.label)
            return
        queue.put_nowait(None)

    async def join(self) -> None:
        """Wait until every submitted flush has completed."""
        if self._queue is None or self._loop is not asyncio.get_running_loop():
            return
        await self._queue.join()

    async def close(self) -> None:
        """Drain outstanding flushes and stop the worker."""
        await self.join()
        worker, self._worker = self._worker, None
        self._queue = None
        self._loop = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> asyncio.Queue:
        if self._loop is not loop or self._worker is None or self._worker.done():
            self._loop = loop
            self._queue = asyncio.Queue(maxsize=1)
            self._worker = loop.create_task(self._drain(self._queue))
        return self._queue

    async def _drain(self, queue: asyncio.Queue) -> None:
        while True:
            await queue.get()
            try:
                await self._flush_async()
            finally:
                queue.task_done()

    async def _flush_async(self) -> None:
        try:
            content = self._prepare()
            await asyncio.to_thread(self._write, content)
        except Exception:
            self.failed_writes += 1
            logger.exception("Failed to persist %s", self.label)
        else:
            self.completed_writes += 1

    def _flush_inline(self) -> None:
        try:
            self._write(self._prepare())
        except Exception:
            self.failed_writes += 1
            logger.exception("Failed to persist %s", self.label)
        else:
            self.completed_writes += 1
