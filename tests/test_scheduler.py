"""Tests for periodic sweeps and keyed locks."""

import asyncio

import pytest

from trackrecord.locks import KeyedLock
from trackrecord.services.scheduler import PeriodicTask


class TestPeriodicTask:
    @pytest.mark.asyncio
    async def test_run_once_sync_and_async(self):
        sync_task = PeriodicTask("sync", 60, lambda: 3)

        async def sweep():
            return 2

        async_task = PeriodicTask("async", 60, sweep)
        assert await sync_task.run_once() == 3
        assert await async_task.run_once() == 2
        assert await PeriodicTask("none", 60, lambda: None).run_once() == 0
        assert sync_task.runs == 1

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self):
        calls = []
        task = PeriodicTask("sweep", 0.01, lambda: calls.append(1) or 0)
        task.start()
        assert task.running
        await asyncio.sleep(0.06)
        await task.stop()
        assert not task.running
        assert len(calls) >= 2

        count = len(calls)
        await asyncio.sleep(0.03)
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_loop(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first run fails")
            return 0

        task = PeriodicTask("flaky", 0.01, flaky)
        task.start()
        await asyncio.sleep(0.06)
        await task.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await PeriodicTask("idle", 1, lambda: 0).stop()


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_serializes(self):
        locks = KeyedLock()
        order = []

        async def worker(label, delay):
            async with locks.hold("a"):
                order.append(f"{label}-in")
                await asyncio.sleep(delay)
                order.append(f"{label}-out")

        await asyncio.gather(worker("first", 0.02), worker("second", 0))
        assert order == ["first-in", "first-out", "second-in", "second-out"]

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        async with locks.hold("a"):
            await asyncio.wait_for(_acquire(locks, "b"), timeout=0.1)
        assert "a" in locks and "b" in locks

    @pytest.mark.asyncio
    async def test_discard(self):
        locks = KeyedLock()
        async with locks.hold("a"):
            locks.discard("a")
            assert "a" in locks
        locks.discard("a")
        assert len(locks) == 0


async def _acquire(locks, key):
    async with locks.hold(key):
        pass
