"""
Tests for PeriodicTask.
"""

import asyncio

import pytest

from services.timers import PeriodicTask


class TestPeriodicTask:

    def test_rejects_non_positive_interval(self):
        async def tick():
            pass

        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, tick)

    @pytest.mark.asyncio
    async def test_runs_repeatedly_until_cancelled(self):
        calls = []

        async def tick():
            calls.append(1)

        timer = PeriodicTask("fast", 0.01, tick, run_immediately=True)
        timer.start()
        await asyncio.sleep(0.1)
        await timer.cancel()

        assert len(calls) >= 2
        assert not timer.is_running

        count = len(calls)
        await asyncio.sleep(0.05)
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_waits_one_interval_before_first_tick(self):
        calls = []

        async def tick():
            calls.append(1)

        timer = PeriodicTask("slow", 10, tick)
        timer.start()
        await asyncio.sleep(0.05)

        assert calls == []
        assert timer.is_running
        await timer.cancel()

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_stop_timer(self):
        calls = []

        async def tick():
            calls.append(1)
            raise RuntimeError("store unreachable")

        timer = PeriodicTask("flaky", 0.01, tick, run_immediately=True)
        timer.start()
        await asyncio.sleep(0.1)

        assert timer.is_running
        await timer.cancel()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_cancel_lets_in_flight_tick_finish(self):
        events = []

        async def tick():
            events.append("started")
            await asyncio.sleep(0.05)
            events.append("finished")

        timer = PeriodicTask("write", 10, tick, run_immediately=True)
        timer.start()
        await asyncio.sleep(0.01)
        await timer.cancel()

        assert events == ["started", "finished"]
        assert not timer.is_running

    @pytest.mark.asyncio
    async def test_cancel_before_start_and_twice(self):
        async def tick():
            pass

        timer = PeriodicTask("idle", 10, tick)
        await timer.cancel()

        timer.start()
        await timer.cancel()
        await timer.cancel()
        assert not timer.is_running
