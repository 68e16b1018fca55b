# site_prerender/crawler/queue.py
"""
Bounded-concurrency work queue.

Tasks are coroutine factories. At most ``concurrency`` of them run at once; running
tasks may add more work to the same queue, and :meth:`WorkQueue.done` waits until
nothing is pending and nothing is running.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from site_prerender.errors import QueueClosedError

TaskFactory = Callable[[], Awaitable[Any]]
_Job = Tuple[TaskFactory, "asyncio.Future[Any]"]


class WorkQueue:
    """Worker pool over an :class:`asyncio.Queue`.

    A failing task does not cancel its running siblings. Tasks report expected
    failures through the error policy and return normally, so only an exception
    that escapes a task (``fail`` mode, a renderer crash) reaches the queue. That
    exception aborts the run: the queue closes, new work is refused, queued work
    that has not started yet is dropped, and :meth:`done` re-raises the failure
    once the running tasks have finished.
    """

    def __init__(self, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self.logger = logging.getLogger("SitePrerender.queue")
        self._pending: Optional[asyncio.Queue[_Job]] = None
        self._workers: List[asyncio.Task[None]] = []
        self._error: Optional[BaseException] = None
        self._running = 0

    @property
    def closed(self) -> bool:
        return self._error is not None

    @property
    def running(self) -> int:
        return self._running

    @property
    def pending(self) -> int:
        return 0 if self._pending is None else self._pending.qsize()

    def add(self, task: TaskFactory) -> "asyncio.Future[Any]":
        """Schedule *task*; never blocks. Returns a future with the task's result."""
        if self._error is not None:
            raise QueueClosedError("queue is closed after a failed task")
        loop = asyncio.get_running_loop()
        if self._pending is None:
            self._pending = asyncio.Queue()
        handle: asyncio.Future[Any] = loop.create_future()
        self._pending.put_nowait((task, handle))
        self._start_workers()
        return handle

    async def done(self) -> None:
        """Wait until every task added so far, including tasks added by tasks, has finished."""
        if self._pending is not None:
            await self._pending.join()
        await self._stop_workers()
        if self._error is not None:
            raise self._error

    def _start_workers(self) -> None:
        while len(self._workers) < self.concurrency:
            self._workers.append(asyncio.create_task(self._worker()))

    async def _stop_workers(self) -> None:
        for w in self._workers:
            w.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def _worker(self) -> None:
        pending = self._pending
        if pending is None:
            raise RuntimeError("worker started before any work was added")
        while True:
            task, handle = await pending.get()
            try:
                if self._error is not None:
                    handle.cancel()
                    continue
                self._running += 1
                try:
                    result = await task()
                except asyncio.CancelledError:
                    handle.cancel()
                    raise
                except Exception as exc:
                    self._fail(exc, handle)
                else:
                    if not handle.done():
                        handle.set_result(result)
                finally:
                    self._running -= 1
            finally:
                pending.task_done()

    def _fail(self, exc: BaseException, handle: "asyncio.Future[Any]") -> None:
        if self._error is None:
            self._error = exc
            self.logger.debug("Task failed, closing queue: %r", exc)
        if not handle.done():
            handle.set_exception(exc)
            # the failure is re-raised by done(); mark it retrieved on the handle
            handle.exception()


__all__ = ["WorkQueue", "TaskFactory"]
