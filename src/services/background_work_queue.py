"""
Bounded fire-and-forget job queue.

Request handlers hand work they must not wait for (summary recomputation,
last-used timestamps) to a fixed pool of daemon threads. Submission never blocks:
when the queue is full the job is dropped with a warning. Every job is expected
to be repeatable from durable state, so a dropped job costs freshness, not data.
"""

import logging
import queue
import threading
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_STOP = object()


class BackgroundWorkQueue:
    """Fixed pool of worker threads draining a bounded queue."""

    def __init__(self, workers: int = 2, maxsize: int = 1000, name: str = "background-work"):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._name = name
        self._threads: list[threading.Thread] = []
        self._closed = False
        self._lock = threading.Lock()
        self.dropped = 0

        for index in range(workers):
            thread = threading.Thread(target=self._run, name=f"{name}-{index}", daemon=True)
            thread.start()
            self._threads.append(thread)

        logger.info(f"Started {workers} {name} worker(s) (queue size {maxsize})")

    @property
    def pending(self) -> int:
        """Approximate number of jobs waiting to run."""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """Queue ``func(*args, **kwargs)`` without waiting.

        Returns:
            True if the job was queued, False if it was dropped
        """
        job_name = getattr(func, "__qualname__", repr(func))
        # Holding the lock orders every accepted job ahead of the stop sentinels
        with self._lock:
            if self._closed:
                logger.warning(f"{self._name} is shut down; dropping job {job_name}")
                return False
            try:
                self._queue.put_nowait((func, args, kwargs))
            except queue.Full:
                self.dropped += 1
                logger.warning(f"{self._name} queue full; dropping job {job_name}")
                return False
        return True

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued job has finished.

        Returns:
            True if the queue drained, False if the timeout expired first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop accepting jobs and stop the workers once queued jobs have run."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        for _ in self._threads:
            self._queue.put(_STOP)

        if wait:
            for thread in self._threads:
                thread.join(timeout)
        logger.info(f"{self._name} stopped")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                func, args, kwargs = item
                try:
                    func(*args, **kwargs)
                except Exception:
                    logger.exception(f"Background job {getattr(func, '__qualname__', func)!r} failed")
            finally:
                self._queue.task_done()
