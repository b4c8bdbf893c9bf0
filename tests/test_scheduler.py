import asyncio

import pytest

from jointstream.common.scheduler import ScheduledLoop


def test_fires_repeatedly():
    calls = []

    async def tick():
        calls.append(asyncio.get_running_loop().time())

    async def run():
        loop = ScheduledLoop(0.05, tick, name="test")
        await loop.start()
        await asyncio.sleep(0.4)
        await loop.stop()
        return loop

    loop = asyncio.run(run())

    assert len(calls) >= 5
    assert loop.execution_count == len(calls)
    assert loop.running is False


def test_overrunning_callback_skips_instead_of_queueing():
    active = 0
    peak = 0

    async def slow_tick():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.12)
        active -= 1

    async def run():
        loop = ScheduledLoop(0.05, slow_tick)
        await loop.start()
        await asyncio.sleep(0.6)
        await loop.stop()
        return loop

    loop = asyncio.run(run())

    assert peak == 1
    assert loop.skipped_count > 0
    assert loop.execution_count <= 6


def test_stop_lets_running_callback_finish():
    state = {"started": False, "finished": False}

    async def tick():
        state["started"] = True
        await asyncio.sleep(0.1)
        state["finished"] = True

    async def run():
        loop = ScheduledLoop(0.02, tick)
        await loop.start()
        while not state["started"]:
            await asyncio.sleep(0.005)
        await loop.stop()

    asyncio.run(run())

    assert state["finished"] is True


def test_callback_errors_do_not_stop_the_loop():
    calls = []

    async def tick():
        calls.append(1)
        raise RuntimeError("boom")

    async def run():
        loop = ScheduledLoop(0.03, tick)
        await loop.start()
        await asyncio.sleep(0.25)
        await loop.stop()

    asyncio.run(run())

    assert len(calls) >= 3


def test_stop_before_start_is_harmless():
    async def tick():
        pass

    async def run():
        loop = ScheduledLoop(0.1, tick)
        await loop.stop()

    asyncio.run(run())


def test_interval_must_be_positive():
    async def tick():
        pass

    with pytest.raises(ValueError):
        ScheduledLoop(0, tick)
