"""Matching concurrency layer.

Architecture:
    FastAPI (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> Recognizer

A recognition scan is O(profiles x dim) of numpy work and grows with the
catalog, so it runs on worker threads rather than the event loop. At most N
scans run at once; further requests wait up to ``queue_timeout`` seconds
for a slot, then get 503.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from magicmirror.config import Settings
    from magicmirror.engine.enrollment import EnrollmentResult, EnrollmentSample
    from magicmirror.engine.recognizer import CatalogEntry, RecognitionResult, Recognizer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MatchingPool:
    """Runs enrollment and recognition for one ``Recognizer`` on worker threads."""

    def __init__(self, settings: Settings, recognizer: Recognizer) -> None:
        self._recognizer = recognizer
        self._timeout = settings.queue_timeout
        self._semaphore = asyncio.Semaphore(settings.max_concurrent)
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="face-matching",
        )
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._completed: int = 0
        self._rejected: int = 0
        self._counter_lock = threading.Lock()

    # -- Engine calls -------------------------------------------------------

    async def enroll(self, samples: Sequence[EnrollmentSample]) -> EnrollmentResult:
        """Aggregate a capture session into a canonical embedding."""
        return await self.run(self._recognizer.enroll, samples)

    async def recognize(
        self,
        query: object,
        catalog: Iterable[CatalogEntry],
        threshold: float | None = None,
    ) -> RecognitionResult | None:
        """Match ``query`` against a catalog snapshot."""
        return await self.run(self._recognizer.recognize, query, catalog, threshold)

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Run ``func(*args)`` on a worker thread once a slot is free.

        Raises:
            TimeoutError: If no slot frees up within ``queue_timeout`` seconds.
        """
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._timeout)
        except TimeoutError:
            with self._counter_lock:
                self._rejected += 1
            logger.warning("Matching pool saturated, gave up after %.1fs", self._timeout)
            raise
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

        with self._counter_lock:
            self._active_count += 1
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, func, *args)
        finally:
            self._semaphore.release()
            with self._counter_lock:
                self._active_count -= 1
                self._completed += 1

    # -- Counters -----------------------------------------------------------

    @property
    def active_count(self) -> int:
        """Number of engine calls running right now."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of requests waiting for a slot."""
        with self._counter_lock:
            return self._queue_depth

    @property
    def completed_count(self) -> int:
        """Engine calls that ran to completion or raised."""
        with self._counter_lock:
            return self._completed

    @property
    def rejected_count(self) -> int:
        """Requests turned away because the pool stayed saturated."""
        with self._counter_lock:
            return self._rejected

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)
