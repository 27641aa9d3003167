"""Tests for the matching thread pool."""

from __future__ import annotations

import asyncio
import threading

import pytest

from magicmirror.config import Settings
from magicmirror.engine.enrollment import EnrollmentSample
from magicmirror.engine.errors import InsufficientSamples
from magicmirror.engine.pool import MatchingPool
from magicmirror.engine.recognizer import CatalogEntry, Recognizer


def _pool(**settings: float) -> MatchingPool:
    return MatchingPool(Settings(**settings), Recognizer(dim=2))


class TestMatchingPool:
    async def test_runs_function_in_executor(self) -> None:
        pool = _pool(max_concurrent=2)
        try:
            name = await pool.run(lambda: threading.current_thread().name)
            assert name.startswith("face-matching")
            assert pool.active_count == 0
            assert pool.queue_depth == 0
            assert pool.completed_count == 1
        finally:
            pool.shutdown()

    async def test_propagates_errors(self) -> None:
        pool = _pool(max_concurrent=1)

        def boom() -> None:
            raise ValueError("bad input")

        try:
            with pytest.raises(ValueError, match="bad input"):
                await pool.run(boom)
            assert pool.active_count == 0
            assert pool.completed_count == 1
        finally:
            pool.shutdown()

    async def test_times_out_when_saturated(self) -> None:
        pool = _pool(max_concurrent=1, queue_timeout=0.05)
        release = threading.Event()
        try:
            first = asyncio.create_task(pool.run(release.wait, 5))
            await asyncio.sleep(0.01)
            assert pool.active_count == 1

            with pytest.raises(TimeoutError):
                await pool.run(sum, [1, 2])
            assert pool.queue_depth == 0
            assert pool.rejected_count == 1

            release.set()
            assert await first is True
            assert pool.completed_count == 1
        finally:
            release.set()
            pool.shutdown()


class TestEngineCalls:
    async def test_enroll(self) -> None:
        pool = _pool()
        samples = [EnrollmentSample([1.0, 0.0]), EnrollmentSample([3.0, 2.0]), EnrollmentSample([2.0, 1.0])]
        try:
            result = await pool.enroll(samples)
            assert result.to_list() == pytest.approx([2.0, 1.0])
            assert result.sample_count == 3
        finally:
            pool.shutdown()

    async def test_enroll_errors_propagate(self) -> None:
        pool = _pool()
        try:
            with pytest.raises(InsufficientSamples):
                await pool.enroll([EnrollmentSample([1.0, 0.0])])
        finally:
            pool.shutdown()

    async def test_recognize(self) -> None:
        pool = _pool()
        catalog = [CatalogEntry("a", "Ada", (0.0, 0.0)), CatalogEntry("b", "Bob", (1.0, 1.0))]
        try:
            match = await pool.recognize([0.9, 1.0], catalog)
            assert match is not None
            assert match.profile_id == "b"
            assert await pool.recognize([5.0, 5.0], catalog, 0.5) is None
        finally:
            pool.shutdown()
