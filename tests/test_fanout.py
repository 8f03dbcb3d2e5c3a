import asyncio

import pytest

from src.matrix.fanout import FanOut, count_failures


@pytest.mark.asyncio
async def test_settle_all_keeps_order_and_isolates_failures():
    async def ok(value):
        await asyncio.sleep(0)
        return value

    async def boom():
        raise RuntimeError("boom")

    results = await FanOut().settle_all(1, [ok("a"), boom(), ok("c")])

    assert results[0] == "a"
    assert isinstance(results[1], RuntimeError)
    assert results[2] == "c"
    assert count_failures(results + [False, True]) == 2


@pytest.mark.asyncio
async def test_pending_counts_unfinished_tasks_per_operation_and_overall():
    fanout = FanOut()
    release = asyncio.Event()

    async def held():
        await release.wait()
        return True

    first = asyncio.ensure_future(fanout.settle_all(1, [held(), held()]))
    second = asyncio.ensure_future(fanout.settle_all(2, [held()]))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert fanout.pending(1) == 2
    assert fanout.pending(2) == 1
    assert fanout.pending() == 3

    release.set()
    assert await first == [True, True]
    await second
    assert fanout.pending() == 0


@pytest.mark.asyncio
async def test_cancel_superseded_leaves_active_operation_running():
    fanout = FanOut()
    release = asyncio.Event()

    async def held():
        await release.wait()
        return True

    old = asyncio.ensure_future(fanout.settle_all(1, [held()]))
    active = asyncio.ensure_future(fanout.settle_all(2, [held()]))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert fanout.cancel_superseded(2) == 1
    release.set()

    assert isinstance((await old)[0], asyncio.CancelledError)
    assert await active == [True]
